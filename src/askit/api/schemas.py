"""Request and response bodies of the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from askit.ingestion.models import QueueStats
from askit.rag.answer import Answer


class HealthResponse(BaseModel):
    status: str = "ok"


class IngestRequest(BaseModel):
    website_url: str = Field(..., min_length=1, alias="websiteUrl")
    tenant_key: str = Field(..., min_length=1, alias="tenantKey")

    model_config = ConfigDict(populate_by_name=True)


class IngestResponse(BaseModel):
    job_id: str
    status_url: str


class ClearJobsResponse(BaseModel):
    cleared: int


class QueueStatsResponse(BaseModel):
    queued: int
    in_progress: int
    completed: int
    failed: int
    total: int

    @classmethod
    def from_stats(cls, stats: QueueStats) -> QueueStatsResponse:
        return cls(**stats.model_dump(), total=stats.total)


class QueryRequest(BaseModel):
    question: str = Field(..., min_length=1)
    tenant_key: str = Field(..., min_length=1, alias="tenantKey")
    website: str | None = None
    # range is enforced by the answer engine so it surfaces as a domain error
    top_k: int = Field(default=20, alias="topK")

    model_config = ConfigDict(populate_by_name=True)


class SourceHit(BaseModel):
    chunk_id: str
    score: float
    url: str
    website: str


class QueryResponse(BaseModel):
    answer: str
    sources: list[str] = Field(default_factory=list)
    websites: list[str] = Field(default_factory=list)
    website_filter: str | None = None
    context_used: int = 0
    hits: list[SourceHit] = Field(default_factory=list)

    @classmethod
    def from_answer(cls, answer: Answer) -> QueryResponse:
        return cls(
            answer=answer.answer,
            sources=answer.sources,
            websites=answer.websites,
            website_filter=answer.website_filter,
            context_used=answer.context_used,
            hits=[
                SourceHit(
                    chunk_id=hit.chunk_id,
                    score=hit.score,
                    url=hit.metadata.url,
                    website=hit.metadata.website,
                )
                for hit in answer.hits
            ],
        )
