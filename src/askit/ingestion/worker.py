"""ARQ worker running website ingestion jobs."""

from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis

from askit.core.config import AppSettings, RedisSettings
from askit.core.logging import configure_logging
from askit.core.telemetry import ensure_metrics_exporter, init_telemetry
from askit.crawl.browser import BrowserFetcher
from askit.crawl.crawler import Crawler
from askit.ingestion.models import IngestJob
from askit.ingestion.pipeline import IngestionPipeline
from askit.ingestion.producer import arq_redis_settings
from askit.ingestion.sinks import PostgresSiteRecordSink
from askit.ingestion.status import RedisJobStatusStore
from askit.rag.embeddings import EmbeddingClient
from askit.rag.vector_store import QdrantVectorStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "askit_worker"


async def startup(ctx: dict[str, Any]) -> None:
    """Initialise connections, the shared browser and the pipeline."""

    settings = AppSettings.load()
    ctx["settings"] = settings

    configure_logging()
    init_telemetry(SERVICE_NAME, settings.telemetry)
    ensure_metrics_exporter(settings.telemetry)

    redis_client = Redis(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        password=settings.redis.password,
    )
    status_store = RedisJobStatusStore(
        redis=redis_client,
        prefix=settings.redis.status_prefix,
        channel_template=settings.redis.progress_channel_template,
    )

    browser = BrowserFetcher(settings.browser)
    await browser.start()

    embedder = EmbeddingClient(settings.openai)
    vector_store = QdrantVectorStore(settings.qdrant)
    site_records = PostgresSiteRecordSink(settings.postgres)

    ctx["pipeline"] = IngestionPipeline(
        crawler=Crawler(browser, settings=settings.crawler),
        embedder=embedder,
        vector_store=vector_store,
        site_records=site_records,
        status_publisher=status_store,
        settings=settings.ingestion,
        max_pages=settings.crawler.default_max_pages,
        page_limit=settings.crawler.max_pages_limit,
        vector_dimension=settings.qdrant.vector_size,
    )
    ctx["redis"] = redis_client
    ctx["browser"] = browser
    ctx["embedder"] = embedder
    ctx["vector_store"] = vector_store
    ctx["site_records"] = site_records
    logger.info("ingestion worker ready", extra={"queue": settings.redis.queue_name})


async def shutdown(ctx: dict[str, Any]) -> None:
    """Release the browser and close every client opened in :func:`startup`."""

    browser: BrowserFetcher | None = ctx.get("browser")
    if browser:
        await browser.stop()

    embedder: EmbeddingClient | None = ctx.get("embedder")
    if embedder:
        await embedder.close()

    vector_store: QdrantVectorStore | None = ctx.get("vector_store")
    if vector_store:
        await vector_store.close()

    site_records: PostgresSiteRecordSink | None = ctx.get("site_records")
    if site_records:
        await site_records.close()

    redis_client: Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()


async def process_website_ingest(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Run one ingestion job and return its summary as the ARQ job result."""

    job = IngestJob.model_validate(payload)
    pipeline: IngestionPipeline = ctx["pipeline"]
    logger.info(
        "ingestion job started",
        extra={"job_id": job.job_id, "url": job.website_url, "attempt": ctx.get("job_try", 1)},
    )
    summary = await pipeline.run(job)
    return summary.as_dict()


_REDIS = RedisSettings()


class WorkerSettings:
    """ARQ worker configuration; failed jobs are not retried."""

    functions = [process_website_ingest]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = arq_redis_settings(_REDIS)
    queue_name = _REDIS.queue_name
    max_jobs = _REDIS.max_jobs
    job_timeout = _REDIS.job_timeout_seconds
    max_tries = 1
