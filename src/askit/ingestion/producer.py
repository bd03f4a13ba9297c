"""Submission and bookkeeping of website ingestion jobs on the ARQ queue."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol
from uuid import uuid4

from arq import create_pool
from arq.connections import ArqRedis
from arq.connections import RedisSettings as ArqRedisSettings

from askit.core.config import RedisSettings
from askit.core.errors import NotFoundError, ValidationError
from askit.crawl.policy import PolicyGate
from askit.ingestion.errors import IngestionRejected
from askit.ingestion.models import IngestJob, JobPhase, JobStatus, QueueStats
from askit.ingestion.status import RedisJobStatusStore

logger = logging.getLogger(__name__)

INGEST_FUNCTION = "process_website_ingest"

_IN_PROGRESS = frozenset({JobPhase.INITIALIZING, JobPhase.CRAWLING, JobPhase.PROCESSING})


class JobStatusStore(Protocol):
    async def put(self, status: JobStatus) -> None:
        ...

    async def get(self, job_id: str) -> JobStatus | None:
        ...

    async def delete(self, job_id: str) -> bool:
        ...

    async def list_statuses(self) -> list[JobStatus]:
        ...


def arq_redis_settings(settings: RedisSettings) -> ArqRedisSettings:
    return ArqRedisSettings(
        host=settings.host,
        port=settings.port,
        database=settings.db,
        password=settings.password,
    )


class IngestionProducer:
    """Validate submissions, record their status and enqueue them for the worker."""

    def __init__(
        self,
        settings: RedisSettings,
        *,
        gate: PolicyGate,
        pool: ArqRedis | None = None,
        status_store: JobStatusStore | None = None,
    ) -> None:
        self._settings = settings
        self._gate = gate
        self._pool = pool
        self._status_store = status_store
        self._lock = asyncio.Lock()

    async def submit(self, website_url: str, tenant_key: str) -> str:
        """Enqueue an ingestion of ``website_url`` and return its job id."""

        if not tenant_key or not tenant_key.strip():
            raise IngestionRejected("tenant key is required")
        if not website_url or not website_url.strip():
            raise IngestionRejected("website url is required")

        website_url = website_url.strip()
        decision = await self._gate.validate(website_url)
        if not decision.valid:
            logger.info(
                "ingestion rejected by url policy",
                extra={"url": website_url, "reason": decision.reason},
            )
            raise IngestionRejected(
                f"url rejected: {decision.reason}", details={"url": website_url}
            )

        job = IngestJob(job_id=uuid4().hex, website_url=website_url, tenant_key=tenant_key)
        store = await self._ensure_status_store()
        await store.put(JobStatus.queued(job))

        pool = await self._ensure_pool()
        await pool.enqueue_job(
            INGEST_FUNCTION,
            job.model_dump(),
            _job_id=job.job_id,
            _queue_name=self._settings.queue_name,
        )
        logger.info(
            "ingestion job enqueued",
            extra={"job_id": job.job_id, "url": website_url, "tenant_key": tenant_key},
        )
        return job.job_id

    async def get_status(self, job_id: str) -> JobStatus | None:
        store = await self._ensure_status_store()
        return await store.get(job_id)

    async def clear_job(self, job_id: str) -> None:
        """Remove the status record of a finished job."""

        store = await self._ensure_status_store()
        status = await store.get(job_id)
        if status is None:
            raise NotFoundError("job not found", details={"job_id": job_id})
        if not status.phase.is_terminal:
            raise ValidationError(
                "only completed or failed jobs can be cleared",
                details={"job_id": job_id, "phase": status.phase.value},
            )
        await store.delete(job_id)

    async def clear_jobs(self, phase: JobPhase | None = None) -> int:
        """Remove finished job records, optionally only those in ``phase``."""

        if phase is not None and not phase.is_terminal:
            raise ValidationError(
                "only completed or failed jobs can be cleared",
                details={"phase": phase.value},
            )
        store = await self._ensure_status_store()
        cleared = 0
        for status in await store.list_statuses():
            if not status.phase.is_terminal:
                continue
            if phase is not None and status.phase is not phase:
                continue
            if await store.delete(status.job_id):
                cleared += 1
        logger.info(
            "cleared job records",
            extra={"phase": phase.value if phase else "all", "count": cleared},
        )
        return cleared

    async def queue_stats(self) -> QueueStats:
        store = await self._ensure_status_store()
        stats = QueueStats()
        for status in await store.list_statuses():
            if status.phase is JobPhase.QUEUED:
                stats.queued += 1
            elif status.phase in _IN_PROGRESS:
                stats.in_progress += 1
            elif status.phase is JobPhase.COMPLETED:
                stats.completed += 1
            else:
                stats.failed += 1
        return stats

    async def close(self) -> None:
        async with self._lock:
            if self._pool is not None:
                await self._pool.close()
                self._pool = None

    async def _ensure_pool(self) -> ArqRedis:
        if self._pool is not None:
            return self._pool

        async with self._lock:
            if self._pool is None:
                logger.info("connecting to ingestion queue")
                self._pool = await create_pool(
                    arq_redis_settings(self._settings),
                    default_queue_name=self._settings.queue_name,
                )
        return self._pool

    async def _ensure_status_store(self) -> JobStatusStore:
        if self._status_store is None:
            pool = await self._ensure_pool()
            self._status_store = RedisJobStatusStore(
                redis=pool,
                prefix=self._settings.status_prefix,
                channel_template=self._settings.progress_channel_template,
            )
        return self._status_store
