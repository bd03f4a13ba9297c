from __future__ import annotations

from collections.abc import Mapping, Sequence

import pytest
from fastapi.testclient import TestClient

from askit.api.app import create_app
from askit.api.dependencies import get_answer_engine, get_producer
from askit.core.config import LLMSettings
from askit.core.errors import NotFoundError, ValidationError
from askit.ingestion.errors import IngestionRejected
from askit.ingestion.models import JobPhase, JobStatus, QueueStats
from askit.rag.answer import AnswerEngine
from askit.rag.errors import EmbeddingError, ProviderErrorKind
from askit.rag.vector_store import RecordMetadata, RetrievalHit

pytestmark = pytest.mark.unit


class StubProducer:
    def __init__(self) -> None:
        self.submitted: list[tuple[str, str]] = []
        self.statuses: dict[str, JobStatus] = {}
        self.cleared_phase: list[JobPhase | None] = []

    async def submit(self, website_url: str, tenant_key: str) -> str:
        if website_url.startswith("http://10."):
            raise IngestionRejected("url rejected: private address")
        self.submitted.append((website_url, tenant_key))
        return "job-1"

    async def get_status(self, job_id: str) -> JobStatus | None:
        return self.statuses.get(job_id)

    async def clear_job(self, job_id: str) -> None:
        status = self.statuses.get(job_id)
        if status is None:
            raise NotFoundError("job not found")
        if not status.phase.is_terminal:
            raise ValidationError("only completed or failed jobs can be cleared")
        del self.statuses[job_id]

    async def clear_jobs(self, phase: JobPhase | None = None) -> int:
        self.cleared_phase.append(phase)
        return 3

    async def queue_stats(self) -> QueueStats:
        return QueueStats(queued=1, in_progress=2, completed=3, failed=4)


class StubEmbedder:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def embed(self, text: str) -> list[float]:
        if self.error is not None:
            raise self.error
        return [0.1, 0.2, 0.3]


class StubVectorStore:
    def __init__(self, hits: list[RetrievalHit]) -> None:
        self.hits = hits

    async def upsert(self, records: Sequence) -> int:  # pragma: no cover - unused
        return len(records)

    async def query(
        self, vector: Sequence[float], top_k: int, filters: Mapping[str, str] | None = None
    ) -> list[RetrievalHit]:
        return self.hits[:top_k]


class StubGenerator:
    async def generate(self, prompt: str) -> str | None:
        return "We are open 9 to 5."


HIT = RetrievalHit(
    chunk_id="tenant-a::https%3A%2F%2Fexample.com%2Fhours::0",
    score=0.87,
    metadata=RecordMetadata(
        url="https://example.com/hours",
        website="example.com",
        text_preview="Opening hours: 9 to 5",
        tenant_key="tenant-a",
    ),
)


def make_client(
    producer: StubProducer | None = None, embedder: StubEmbedder | None = None
) -> TestClient:
    app = create_app()
    engine = AnswerEngine(
        embedder=embedder or StubEmbedder(),
        vector_store=StubVectorStore([HIT]),
        generator=StubGenerator(),
        llm=LLMSettings(),
    )
    app.dependency_overrides[get_producer] = lambda: producer or StubProducer()
    app.dependency_overrides[get_answer_engine] = lambda: engine
    return TestClient(app)


def test_health_endpoint() -> None:
    response = make_client().get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


def test_ingest_accepts_camel_case_body() -> None:
    producer = StubProducer()
    client = make_client(producer)

    response = client.post(
        "/ingest", json={"websiteUrl": "https://example.com", "tenantKey": "tenant-a"}
    )

    assert response.status_code == 202
    assert response.json() == {"job_id": "job-1", "status_url": "/jobs/job-1"}
    assert producer.submitted == [("https://example.com", "tenant-a")]


def test_rejected_ingest_renders_problem_details() -> None:
    client = make_client()

    response = client.post(
        "/ingest", json={"website_url": "http://10.0.0.1", "tenant_key": "tenant-a"}
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["code"] == "ingestion_rejected"
    assert body["instance"] == "/ingest"


def test_job_status_round_trip() -> None:
    producer = StubProducer()
    producer.statuses["job-1"] = JobStatus(
        job_id="job-1",
        website_url="https://example.com",
        tenant_key="tenant-a",
        phase=JobPhase.PROCESSING,
        progress_percent=67,
    )
    client = make_client(producer)

    response = client.get("/jobs/job-1")

    assert response.status_code == 200
    body = response.json()
    assert body["phase"] == "processing"
    assert body["progress_percent"] == 67

    missing = client.get("/jobs/unknown")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_clearing_jobs() -> None:
    producer = StubProducer()
    producer.statuses["running"] = JobStatus(
        job_id="running",
        website_url="https://example.com",
        tenant_key="tenant-a",
        phase=JobPhase.CRAWLING,
    )
    producer.statuses["done"] = producer.statuses["running"].model_copy(
        update={"job_id": "done", "phase": JobPhase.COMPLETED}
    )
    client = make_client(producer)

    assert client.delete("/jobs/running").status_code == 422
    assert client.delete("/jobs/done").status_code == 204

    response = client.delete("/jobs", params={"phase": "failed"})
    assert response.json() == {"cleared": 3}
    assert producer.cleared_phase == [JobPhase.FAILED]


def test_queue_stats_includes_total() -> None:
    response = make_client().get("/queue-stats")

    assert response.json() == {
        "queued": 1,
        "in_progress": 2,
        "completed": 3,
        "failed": 4,
        "total": 10,
    }


def test_query_returns_answer_and_sources() -> None:
    response = make_client().post(
        "/query", json={"question": "When are you open?", "tenantKey": "tenant-a", "topK": 5}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "We are open 9 to 5."
    assert body["sources"] == ["https://example.com/hours"]
    assert body["websites"] == ["example.com"]
    assert body["context_used"] == 1
    assert body["hits"][0]["chunk_id"] == HIT.chunk_id


@pytest.mark.parametrize("top_k", [0, 51])
def test_query_rejects_out_of_range_top_k(top_k: int) -> None:
    response = make_client().post(
        "/query", json={"question": "q?", "tenant_key": "tenant-a", "top_k": top_k}
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_query_surfaces_provider_failures_as_bad_gateway() -> None:
    embedder = StubEmbedder(EmbeddingError(ProviderErrorKind.RATE_LIMITED, "rate limit exceeded"))

    response = make_client(embedder=embedder).post(
        "/query", json={"question": "q?", "tenant_key": "tenant-a"}
    )

    assert response.status_code == 502
    assert response.json()["code"] == "rate_limited"
