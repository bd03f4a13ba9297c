"""Vector records and the Qdrant-backed vector store client."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from askit.core.config import QdrantSettings
from askit.core.errors import ValidationError
from askit.rag.errors import VectorStoreError, VectorStoreErrorKind
from askit.utils.retry import RetryConfig, async_retry

logger = logging.getLogger(__name__)

MAX_QUERY_TOP_K = 10_000
# characters left unescaped by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_record_id(tenant_key: str, page_url: str, chunk_index: int) -> str:
    """Deterministic record id so re-ingesting a page overwrites its chunks."""

    return f"{tenant_key}::{quote(page_url, safe=_URI_COMPONENT_SAFE)}::{chunk_index}"


def point_id(record_id: str) -> str:
    """Qdrant point id (UUIDv5) derived from a string record id."""

    return str(uuid.uuid5(uuid.NAMESPACE_URL, record_id))


@dataclass(slots=True, frozen=True)
class RecordMetadata:
    url: str
    website: str
    text_preview: str
    tenant_key: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RecordMetadata:
        return cls(
            url=str(payload.get("url") or ""),
            website=str(payload.get("website") or ""),
            text_preview=str(payload.get("text_preview") or ""),
            tenant_key=str(payload.get("tenant_key") or ""),
        )


@dataclass(slots=True, frozen=True)
class VectorRecord:
    """One embedded chunk ready for upsert."""

    id: str
    values: Sequence[float]
    metadata: RecordMetadata


@dataclass(slots=True, frozen=True)
class RetrievalHit:
    chunk_id: str
    score: float
    metadata: RecordMetadata


class VectorStore(Protocol):
    async def upsert(self, records: Sequence[VectorRecord]) -> int:
        ...

    async def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filters: Mapping[str, str] | None = None,
    ) -> list[RetrievalHit]:
        ...


def _validate_records(records: Sequence[VectorRecord]) -> None:
    if not records:
        raise ValidationError("no vectors provided for upsert")
    for position, record in enumerate(records):
        if not record.id or not record.values:
            raise ValidationError(
                f"invalid vector at index {position}: must have id and values",
                details={"index": position},
            )


def classify_response(response: httpx.Response) -> VectorStoreErrorKind:
    body = response.text.lower()
    if response.status_code in (401, 403) or "api key" in body:
        return VectorStoreErrorKind.AUTH
    if response.status_code == 404:
        return VectorStoreErrorKind.NOT_FOUND
    if "dimension" in body:
        return VectorStoreErrorKind.DIMENSION_MISMATCH
    if response.status_code == 429 or "quota" in body:
        return VectorStoreErrorKind.QUOTA
    return VectorStoreErrorKind.OTHER


class QdrantVectorStore:
    """Async HTTP integration with a single Qdrant collection.

    The collection is created on first use when it does not exist yet.
    Transport failures are retried with exponential backoff; HTTP error
    responses are classified into :class:`VectorStoreErrorKind`.
    """

    def __init__(
        self,
        settings: QdrantSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self._settings = settings
        self._collection = settings.collection
        headers = {"Content-Type": "application/json"}
        if settings.api_key:
            headers["api-key"] = settings.api_key
        self._client = httpx.AsyncClient(
            base_url=settings.url.rstrip("/"),
            headers=headers,
            timeout=settings.timeout_seconds,
            transport=transport,
        )
        self._collection_ready = False
        self._collection_lock = asyncio.Lock()
        self._send = async_retry(
            config=retry or RetryConfig(),
            exceptions=(httpx.TransportError,),
        )(self._send_once)

    @property
    def dimension(self) -> int:
        return self._settings.vector_size

    async def close(self) -> None:
        await self._client.aclose()

    async def ensure_collection(self) -> None:
        if self._collection_ready:
            return
        async with self._collection_lock:
            if self._collection_ready:
                return
            path = f"/collections/{self._collection}"
            response = await self._request("GET", path, allow_missing=True)
            if response.status_code == 404:
                await self._request(
                    "PUT",
                    path,
                    json={
                        "vectors": {
                            "size": self._settings.vector_size,
                            "distance": self._settings.distance,
                        }
                    },
                )
                logger.info(
                    "created qdrant collection",
                    extra={
                        "collection": self._collection,
                        "size": self._settings.vector_size,
                    },
                )
            self._collection_ready = True

    async def upsert(self, records: Sequence[VectorRecord]) -> int:
        _validate_records(records)
        await self.ensure_collection()
        points = [
            {
                "id": point_id(record.id),
                "vector": [float(value) for value in record.values],
                "payload": {"record_id": record.id, **asdict(record.metadata)},
            }
            for record in records
        ]
        await self._request(
            "PUT",
            f"/collections/{self._collection}/points",
            params={"wait": "true"},
            json={"points": points},
        )
        logger.info(
            "upserted vectors",
            extra={"collection": self._collection, "count": len(points)},
        )
        return len(points)

    async def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filters: Mapping[str, str] | None = None,
    ) -> list[RetrievalHit]:
        if not vector:
            raise ValidationError("query vector cannot be empty")
        if not 1 <= top_k <= MAX_QUERY_TOP_K:
            raise ValidationError(
                f"top_k must be between 1 and {MAX_QUERY_TOP_K}", details={"top_k": top_k}
            )
        await self.ensure_collection()

        body: dict[str, Any] = {
            "vector": [float(value) for value in vector],
            "limit": top_k,
            "with_payload": True,
        }
        if filters:
            body["filter"] = {
                "must": [
                    {"key": key, "match": {"value": value}}
                    for key, value in filters.items()
                ]
            }
        response = await self._request(
            "POST", f"/collections/{self._collection}/points/search", json=body
        )
        hits: list[RetrievalHit] = []
        for item in response.json().get("result") or []:
            payload = item.get("payload") or {}
            hits.append(
                RetrievalHit(
                    chunk_id=str(payload.get("record_id") or item.get("id")),
                    score=float(item.get("score") or 0.0),
                    metadata=RecordMetadata.from_payload(payload),
                )
            )
        return hits

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await self._client.request(method, path, **kwargs)

    async def _request(
        self, method: str, path: str, *, allow_missing: bool = False, **kwargs: Any
    ) -> httpx.Response:
        try:
            response = await self._send(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "qdrant unreachable", extra={"path": path, "error": str(exc)}
            )
            raise VectorStoreError(
                VectorStoreErrorKind.OTHER, f"vector store request failed: {exc}"
            ) from exc

        if response.is_success or (allow_missing and response.status_code == 404):
            return response

        kind = classify_response(response)
        logger.warning(
            "qdrant request rejected",
            extra={
                "path": path,
                "status": response.status_code,
                "kind": kind.value,
                "body": response.text[:500],
            },
        )
        raise VectorStoreError(
            kind,
            f"vector store request failed ({response.status_code})",
            details={"status": response.status_code},
        )
