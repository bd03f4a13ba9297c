"""Progress bookkeeping for ingestion jobs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

from askit.ingestion.models import IngestJob, IngestSummary, JobPhase, JobStatus

logger = logging.getLogger(__name__)

PROCESSING_START = 40
PROCESSING_SPAN = 55
PROCESSING_CAP = 95
FINAL_FLUSH_PROGRESS = 98
COMPLETE_PROGRESS = 100


def processing_progress(processed: int, total: int) -> int:
    """Map ``processed`` of ``total`` chunks into the 40-95 processing band."""

    if total <= 0:
        return PROCESSING_START
    return min(PROCESSING_START + processed * PROCESSING_SPAN // total, PROCESSING_CAP)


class StatusPublisher(Protocol):
    async def put(self, status: JobStatus) -> None:
        ...


class ProgressTracker:
    """Publish monotonic :class:`JobStatus` snapshots for one job.

    Progress never decreases and never reaches 100 before the job is marked
    completed. The tracker also acts as the crawler's progress sink.
    """

    def __init__(self, job: IngestJob, publisher: StatusPublisher) -> None:
        self._publisher = publisher
        self._status = JobStatus(
            job_id=job.job_id,
            website_url=job.website_url,
            tenant_key=job.tenant_key,
        )

    @property
    def status(self) -> JobStatus:
        return self._status

    async def update(
        self,
        *,
        phase: JobPhase | None = None,
        percent: int | None = None,
        message: str | None = None,
        pages_crawled: int | None = None,
        chunks_attempted: int | None = None,
        chunks_processed: int | None = None,
        result: dict[str, object] | None = None,
    ) -> JobStatus:
        current = self._status
        if current.phase.is_terminal:
            return current

        next_phase = phase or current.phase
        next_percent = current.progress_percent
        if percent is not None:
            next_percent = max(next_percent, percent)
        if next_phase is not JobPhase.COMPLETED:
            next_percent = min(next_percent, COMPLETE_PROGRESS - 1)

        changes: dict[str, object] = {
            "phase": next_phase,
            "progress_percent": next_percent,
        }
        if message is not None:
            changes["message"] = message
        if pages_crawled is not None:
            changes["pages_crawled"] = pages_crawled
        if chunks_attempted is not None:
            changes["chunks_attempted"] = chunks_attempted
        if chunks_processed is not None:
            changes["chunks_processed"] = chunks_processed
        if result is not None:
            changes["result"] = result

        changes["updated_at"] = datetime.now(UTC)
        self._status = current.model_copy(update=changes)
        await self._publisher.put(self._status)
        return self._status

    async def emit(self, percent: int, message: str) -> None:
        await self.update(phase=JobPhase.CRAWLING, percent=percent, message=message)

    async def complete(self, summary: IngestSummary) -> JobStatus:
        return await self.update(
            phase=JobPhase.COMPLETED,
            percent=COMPLETE_PROGRESS,
            message=(
                f"Ingestion completed: {summary.chunks_succeeded}/"
                f"{summary.chunks_attempted} chunks ({summary.success_rate}%)"
            ),
            pages_crawled=summary.pages_crawled,
            chunks_attempted=summary.chunks_attempted,
            chunks_processed=summary.chunks_succeeded,
            result=summary.as_dict(),
        )

    async def fail(self, reason: str) -> JobStatus:
        if self._status.phase.is_terminal:
            return self._status
        self._status = self._status.model_copy(
            update={
                "phase": JobPhase.FAILED,
                "error": reason,
                "message": reason,
                "updated_at": datetime.now(UTC),
            }
        )
        logger.info(
            "job marked failed",
            extra={"job_id": self._status.job_id, "reason": reason},
        )
        await self._publisher.put(self._status)
        return self._status
