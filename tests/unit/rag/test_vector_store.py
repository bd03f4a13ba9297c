from __future__ import annotations

import json
import uuid

import httpx
import pytest

from askit.core.config import QdrantSettings
from askit.core.errors import ValidationError
from askit.rag.errors import VectorStoreError, VectorStoreErrorKind
from askit.rag.vector_store import (
    QdrantVectorStore,
    RecordMetadata,
    VectorRecord,
    build_record_id,
    point_id,
)
from askit.utils.retry import RetryConfig

pytestmark = pytest.mark.unit

NO_RETRY = RetryConfig(attempts=1, base_delay=0.0, jitter=0.0)


class QdrantStub:
    """Minimal in-process stand-in for the Qdrant REST API."""

    def __init__(self, *, collection_exists: bool = True) -> None:
        self.collection_exists = collection_exists
        self.requests: list[httpx.Request] = []
        self.search_result: list[dict] = []
        self.error: httpx.Response | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path == "/collections/chunks":
            if self.collection_exists:
                return httpx.Response(200, json={"result": {"status": "green"}})
            return httpx.Response(404, json={"status": {"error": "Not found"}})
        if request.method == "PUT" and path == "/collections/chunks":
            self.collection_exists = True
            return httpx.Response(200, json={"result": True})
        if self.error is not None:
            return self.error
        if request.method == "PUT" and path == "/collections/chunks/points":
            return httpx.Response(200, json={"result": {"status": "completed"}})
        if request.method == "POST" and path == "/collections/chunks/points/search":
            return httpx.Response(200, json={"result": self.search_result})
        return httpx.Response(404)

    def bodies(self, method: str, path: str) -> list[dict]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.method == method and request.url.path == path
        ]


def make_store(stub: QdrantStub, retry: RetryConfig = NO_RETRY) -> QdrantVectorStore:
    settings = QdrantSettings(
        url="http://qdrant.test:6333", collection="chunks", vector_size=3, api_key="secret"
    )
    return QdrantVectorStore(settings, transport=httpx.MockTransport(stub), retry=retry)


def make_record(index: int = 0, values: list[float] | None = None) -> VectorRecord:
    url = "https://example.com/about us"
    return VectorRecord(
        id=build_record_id("tenant-a", url, index),
        values=[0.1, 0.2, 0.3] if values is None else values,
        metadata=RecordMetadata(
            url=url,
            website="example.com",
            text_preview="About us",
            tenant_key="tenant-a",
        ),
    )


def test_record_id_is_deterministic_and_uri_encoded() -> None:
    record_id = build_record_id("tenant-a", "https://example.com/a b?x=1", 2)

    assert record_id == "tenant-a::https%3A%2F%2Fexample.com%2Fa%20b%3Fx%3D1::2"
    assert build_record_id("tenant-a", "https://example.com/a b?x=1", 2) == record_id
    assert point_id(record_id) == str(uuid.uuid5(uuid.NAMESPACE_URL, record_id))


@pytest.mark.asyncio
async def test_upsert_creates_missing_collection_then_writes_points() -> None:
    stub = QdrantStub(collection_exists=False)
    store = make_store(stub)

    count = await store.upsert([make_record(0), make_record(1)])

    assert count == 2
    assert stub.bodies("PUT", "/collections/chunks") == [
        {"vectors": {"size": 3, "distance": "Cosine"}}
    ]
    (body,) = stub.bodies("PUT", "/collections/chunks/points")
    first = body["points"][0]
    assert first["id"] == point_id(make_record(0).id)
    assert first["payload"] == {
        "record_id": make_record(0).id,
        "url": "https://example.com/about us",
        "website": "example.com",
        "text_preview": "About us",
        "tenant_key": "tenant-a",
    }
    assert all(request.headers["api-key"] == "secret" for request in stub.requests)
    await store.close()


@pytest.mark.asyncio
async def test_collection_is_checked_once() -> None:
    stub = QdrantStub()
    store = make_store(stub)

    await store.upsert([make_record(0)])
    await store.upsert([make_record(1)])

    assert sum(1 for request in stub.requests if request.method == "GET") == 1
    await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "records",
    [
        [],
        [make_record(values=[])],
        [VectorRecord(id="", values=[1.0], metadata=make_record().metadata)],
    ],
)
async def test_upsert_validates_records_before_any_request(records) -> None:
    stub = QdrantStub()
    store = make_store(stub)

    with pytest.raises(ValidationError):
        await store.upsert(records)

    assert stub.requests == []
    await store.close()


@pytest.mark.asyncio
async def test_query_sends_filters_and_maps_hits() -> None:
    stub = QdrantStub()
    stub.search_result = [
        {
            "id": point_id(make_record(0).id),
            "score": 0.91,
            "payload": {
                "record_id": make_record(0).id,
                "url": "https://example.com/about us",
                "website": "example.com",
                "text_preview": "About us",
                "tenant_key": "tenant-a",
            },
        }
    ]
    store = make_store(stub)

    hits = await store.query(
        [0.1, 0.2, 0.3], 5, {"tenant_key": "tenant-a", "website": "example.com"}
    )

    (body,) = stub.bodies("POST", "/collections/chunks/points/search")
    assert body["limit"] == 5
    assert body["with_payload"] is True
    assert body["filter"] == {
        "must": [
            {"key": "tenant_key", "match": {"value": "tenant-a"}},
            {"key": "website", "match": {"value": "example.com"}},
        ]
    }
    assert len(hits) == 1
    assert hits[0].chunk_id == make_record(0).id
    assert hits[0].score == pytest.approx(0.91)
    assert hits[0].metadata.website == "example.com"
    await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("top_k", [0, 10_001])
async def test_query_rejects_out_of_range_top_k(top_k: int) -> None:
    store = make_store(QdrantStub())

    with pytest.raises(ValidationError):
        await store.query([0.1, 0.2, 0.3], top_k)
    await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "kind"),
    [
        (httpx.Response(401, text="unauthorized"), VectorStoreErrorKind.AUTH),
        (httpx.Response(404, text="missing"), VectorStoreErrorKind.NOT_FOUND),
        (
            httpx.Response(400, text="Wrong input: Vector dimension error: expected dim: 3"),
            VectorStoreErrorKind.DIMENSION_MISMATCH,
        ),
        (httpx.Response(429, text="slow down"), VectorStoreErrorKind.QUOTA),
        (httpx.Response(500, text="boom"), VectorStoreErrorKind.OTHER),
    ],
)
async def test_error_responses_are_classified(
    response: httpx.Response, kind: VectorStoreErrorKind
) -> None:
    stub = QdrantStub()
    stub.error = response
    store = make_store(stub)

    with pytest.raises(VectorStoreError) as excinfo:
        await store.upsert([make_record()])

    assert excinfo.value.kind is kind
    assert excinfo.value.code == f"vector_store_{kind.value}"
    await store.close()


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    stub = QdrantStub()
    failures = {"remaining": 1}

    def flaky(request: httpx.Request) -> httpx.Response:
        if failures["remaining"]:
            failures["remaining"] -= 1
            raise httpx.ConnectError("connection refused", request=request)
        return stub(request)

    settings = QdrantSettings(url="http://qdrant.test:6333", collection="chunks", vector_size=3)
    store = QdrantVectorStore(
        settings,
        transport=httpx.MockTransport(flaky),
        retry=RetryConfig(attempts=2, base_delay=0.0, jitter=0.0),
    )

    assert await store.upsert([make_record()]) == 1
    await store.close()


@pytest.mark.asyncio
async def test_persistent_transport_failure_raises_vector_store_error() -> None:
    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    settings = QdrantSettings(url="http://qdrant.test:6333", collection="chunks", vector_size=3)
    store = QdrantVectorStore(settings, transport=httpx.MockTransport(down), retry=NO_RETRY)

    with pytest.raises(VectorStoreError) as excinfo:
        await store.upsert([make_record()])

    assert excinfo.value.kind is VectorStoreErrorKind.OTHER
    await store.close()
