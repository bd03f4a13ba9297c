"""Queue payloads, job status records and summaries for website ingestion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from askit.crawl.models import CrawlStats


class JobPhase(str, Enum):
    """Lifecycle phases of an ingestion job; ``failed`` is reachable from any."""

    QUEUED = "queued"
    INITIALIZING = "initializing"
    CRAWLING = "crawling"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.COMPLETED, JobPhase.FAILED)


class IngestJob(BaseModel):
    """Payload handed to the ingestion worker."""

    job_id: str = Field(..., min_length=1)
    website_url: str = Field(..., min_length=1, alias="websiteUrl")
    tenant_key: str = Field(..., min_length=1, alias="tenantKey")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("website_url")
    @classmethod
    def _validate_website_url(cls, value: str) -> str:
        if "://" not in value:
            msg = "website_url must include a scheme (e.g. https://example.com)"
            raise ValueError(msg)
        return value.strip()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JobStatus(BaseModel):
    """Snapshot of a job's progress as stored in the status store."""

    job_id: str
    website_url: str
    tenant_key: str
    phase: JobPhase = JobPhase.QUEUED
    progress_percent: int = Field(default=0, ge=0, le=100)
    pages_crawled: int = 0
    chunks_attempted: int = 0
    chunks_processed: int = 0
    message: str = ""
    error: str | None = None
    result: dict[str, Any] | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def queued(cls, job: IngestJob) -> JobStatus:
        return cls(
            job_id=job.job_id,
            website_url=job.website_url,
            tenant_key=job.tenant_key,
            message="Job queued",
        )


class QueueStats(BaseModel):
    """Number of known jobs per coarse state."""

    queued: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.queued + self.in_progress + self.completed + self.failed


@dataclass(slots=True, frozen=True)
class IngestSummary:
    """Outcome of a completed ingestion job."""

    pages_crawled: int
    chunks_attempted: int
    chunks_succeeded: int
    crawl_stats: CrawlStats | None = None

    @property
    def success_rate(self) -> float:
        if not self.chunks_attempted:
            return 0.0
        return round(self.chunks_succeeded / self.chunks_attempted * 100, 1)

    def as_dict(self) -> dict[str, Any]:
        return {
            "pages_crawled": self.pages_crawled,
            "chunks_attempted": self.chunks_attempted,
            "chunks_succeeded": self.chunks_succeeded,
            "success_rate": self.success_rate,
            "crawl_stats": self.crawl_stats.as_dict() if self.crawl_stats else None,
        }
