"""Async pipeline turning a website into vectors in the vector store."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

from askit.core import metrics
from askit.core.config import IngestionSettings
from askit.core.errors import CoreError, ValidationError
from askit.core.logging import bound_context
from askit.crawl.models import (
    MAX_PAGE_BUDGET,
    CrawlRequest,
    CrawlResult,
    Page,
    ProgressSink,
)
from askit.ingestion.errors import (
    CrawlError,
    IngestionError,
    NoContentError,
    PersistenceError,
)
from askit.ingestion.models import IngestJob, IngestSummary, JobPhase
from askit.ingestion.progress import (
    FINAL_FLUSH_PROGRESS,
    PROCESSING_START,
    ProgressTracker,
    StatusPublisher,
    processing_progress,
)
from askit.ingestion.sinks import SiteRecordSink
from askit.rag.chunking import Chunk, ChunkingConfig, ChunkingError, chunk_text
from askit.rag.errors import EmbeddingError, VectorStoreError
from askit.rag.vector_store import RecordMetadata, VectorRecord, VectorStore, build_record_id
from askit.utils.tracing import start_span

logger = logging.getLogger(__name__)


class PageCrawler(Protocol):
    async def crawl(
        self, request: CrawlRequest, progress: ProgressSink | None = None
    ) -> CrawlResult:
        ...


class AsyncEmbedder(Protocol):
    async def embed(self, text: str) -> list[float]:
        ...


@dataclass(slots=True, frozen=True)
class PlannedChunk:
    """A chunk scheduled for embedding together with its source page."""

    url: str
    website: str
    chunk: Chunk


def page_website(url: str) -> str:
    return urlparse(url).hostname or url


def collect_chunks(
    pages: Sequence[Page], config: ChunkingConfig | None = None
) -> list[PlannedChunk]:
    """Chunk every page up front so the total is known before embedding.

    Pages whose text cannot be chunked are skipped with a warning.
    """

    config = config or ChunkingConfig()
    planned: list[PlannedChunk] = []
    for page in pages:
        try:
            chunks = chunk_text(page.text, config.chunk_size, config.overlap)
        except ChunkingError as exc:
            logger.warning(
                "failed to chunk page text",
                extra={"url": page.url, "error": exc.message},
            )
            continue
        website = page_website(page.url)
        planned.extend(PlannedChunk(url=page.url, website=website, chunk=c) for c in chunks)
    return planned


class IngestionPipeline:
    """Crawl, chunk, embed and persist a single website ingestion job."""

    def __init__(
        self,
        *,
        crawler: PageCrawler,
        embedder: AsyncEmbedder,
        vector_store: VectorStore,
        site_records: SiteRecordSink,
        status_publisher: StatusPublisher,
        settings: IngestionSettings | None = None,
        max_pages: int = 10,
        page_limit: int = MAX_PAGE_BUDGET,
        vector_dimension: int | None = None,
    ) -> None:
        self._crawler = crawler
        self._embedder = embedder
        self._vector_store = vector_store
        self._site_records = site_records
        self._publisher = status_publisher
        self._settings = settings or IngestionSettings()
        self._chunking = ChunkingConfig(
            chunk_size=self._settings.chunk_size, overlap=self._settings.chunk_overlap
        )
        self._max_pages = max_pages
        self._page_limit = page_limit
        self._vector_dimension = vector_dimension

    async def run(self, job: IngestJob) -> IngestSummary:
        """Execute the job; failures mark it failed and remove its site record."""

        tracker = ProgressTracker(job, self._publisher)
        started = time.perf_counter()
        with bound_context(job_id=job.job_id), start_span(
            "ingest", job_id=job.job_id, website_url=job.website_url
        ):
            try:
                summary = await self._execute(job, tracker)
            except IngestionError as exc:
                await self._fail(job, tracker, exc.message)
                raise
            except asyncio.CancelledError:
                # arq cancels the task when job_timeout elapses
                await self._fail(job, tracker, "ingestion timed out")
                raise
            except Exception as exc:
                logger.exception(
                    "unexpected error in ingestion pipeline", extra={"job_id": job.job_id}
                )
                await self._fail(job, tracker, f"unexpected ingestion failure: {exc}")
                raise IngestionError("unexpected ingestion failure") from exc
            finally:
                metrics.INGEST_DURATION.observe(time.perf_counter() - started)

        metrics.INGEST_JOBS.labels(phase=JobPhase.COMPLETED.value).inc()
        return summary

    async def _execute(self, job: IngestJob, tracker: ProgressTracker) -> IngestSummary:
        await self._site_records.mark_crawling(job.job_id)
        await tracker.update(
            phase=JobPhase.INITIALIZING,
            percent=0,
            message=f"Initializing crawl of {job.website_url}",
        )

        crawl = await self._crawl(job, tracker)
        pages = crawl.pages
        if not pages:
            raise NoContentError(
                "No pages found to crawl - website may be empty or inaccessible"
            )

        plan = collect_chunks(pages, self._chunking)
        if not plan:
            raise NoContentError("No valid text chunks could be created from crawled pages")

        total = len(plan)
        await tracker.update(
            phase=JobPhase.PROCESSING,
            percent=PROCESSING_START,
            message=f"Processing {total} chunks from {len(pages)} pages",
            pages_crawled=len(pages),
            chunks_attempted=total,
        )
        logger.info(
            "processing chunks",
            extra={"job_id": job.job_id, "pages": len(pages), "chunks": total},
        )

        succeeded = await self._embed_and_store(job, plan, tracker)

        summary = IngestSummary(
            pages_crawled=len(pages),
            chunks_attempted=total,
            chunks_succeeded=succeeded,
            crawl_stats=crawl.stats,
        )
        await self._site_records.mark_completed(job.job_id, summary)
        await tracker.complete(summary)
        logger.info(
            "ingestion completed",
            extra={"job_id": job.job_id, **summary.as_dict()},
        )
        return summary

    async def _crawl(self, job: IngestJob, tracker: ProgressTracker) -> CrawlResult:
        request = CrawlRequest(
            root_url=job.website_url,
            max_pages=self._max_pages,
            page_limit=self._page_limit,
        )
        try:
            return await self._crawler.crawl(request, progress=tracker)
        except CoreError as exc:
            raise CrawlError(f"Crawling failed: {exc.message}") from exc

    async def _embed_and_store(
        self, job: IngestJob, plan: list[PlannedChunk], tracker: ProgressTracker
    ) -> int:
        batch: list[VectorRecord] = []
        succeeded = 0
        total = len(plan)
        preview_length = self._settings.text_preview_length

        for processed, item in enumerate(plan, start=1):
            record = await self._embed(job, item, preview_length)
            if record is not None:
                batch.append(record)
                succeeded += 1
            if len(batch) >= self._settings.batch_size:
                await self._flush(job, batch)
                batch = []
            await tracker.update(
                percent=processing_progress(processed, total),
                message=f"Processed {processed}/{total} chunks",
                chunks_processed=succeeded,
            )

        if batch:
            await tracker.update(
                percent=FINAL_FLUSH_PROGRESS,
                message=f"Saving final batch of {len(batch)} vectors",
            )
            await self._flush(job, batch)
        return succeeded

    async def _embed(
        self, job: IngestJob, item: PlannedChunk, preview_length: int
    ) -> VectorRecord | None:
        try:
            vector = await self._embedder.embed(item.chunk.text)
        except (EmbeddingError, ValidationError) as exc:
            metrics.CHUNKS_EMBEDDED.labels(outcome="failed").inc()
            logger.warning(
                "failed to embed chunk",
                extra={"url": item.url, "index": item.chunk.index, "error": exc.message},
            )
            return None

        if self._vector_dimension and len(vector) != self._vector_dimension:
            metrics.CHUNKS_EMBEDDED.labels(outcome="dimension_mismatch").inc()
            logger.warning(
                "embedding dimension mismatch",
                extra={
                    "url": item.url,
                    "index": item.chunk.index,
                    "expected": self._vector_dimension,
                    "actual": len(vector),
                },
            )
            return None

        metrics.CHUNKS_EMBEDDED.labels(outcome="succeeded").inc()
        return VectorRecord(
            id=build_record_id(job.tenant_key, item.url, item.chunk.index),
            values=vector,
            metadata=RecordMetadata(
                url=item.url,
                website=item.website,
                text_preview=item.chunk.text[:preview_length],
                tenant_key=job.tenant_key,
            ),
        )

    async def _flush(self, job: IngestJob, batch: list[VectorRecord]) -> None:
        try:
            await self._vector_store.upsert(batch)
        except (VectorStoreError, ValidationError) as exc:
            raise PersistenceError(f"Vector upsert failed: {exc.message}") from exc
        logger.info(
            "upserted vector batch", extra={"job_id": job.job_id, "count": len(batch)}
        )

    async def _fail(self, job: IngestJob, tracker: ProgressTracker, reason: str) -> None:
        metrics.INGEST_JOBS.labels(phase=JobPhase.FAILED.value).inc()
        logger.error("ingestion failed", extra={"job_id": job.job_id, "reason": reason})
        await tracker.fail(reason)
        try:
            await self._site_records.delete(job.job_id)
        except Exception:
            logger.exception(
                "failed to remove site record of failed job", extra={"job_id": job.job_id}
            )
