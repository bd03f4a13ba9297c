"""Embedding client for OpenAI-compatible APIs."""

from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from askit.core.config import OpenAISettings
from askit.core.errors import ValidationError
from askit.rag.errors import EmbeddingError, ProviderErrorKind, classify_openai_error

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turn one text into one vector; every call is independent."""

    def __init__(self, settings: OpenAISettings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def model(self) -> str:
        return self._settings.embedding_model

    @property
    def dimensions(self) -> int | None:
        return self._settings.embedding_dimensions

    async def embed(self, text: str) -> list[float]:
        if not text or not isinstance(text, str):
            raise ValidationError("text must be a non-empty string")

        client = self._load_client()
        request: dict[str, Any] = {"input": text, "model": self._settings.embedding_model}
        if self._settings.embedding_dimensions:
            request["dimensions"] = self._settings.embedding_dimensions

        try:
            response = await client.embeddings.create(**request)
        except openai.OpenAIError as exc:
            kind, message = classify_openai_error(exc)
            logger.warning(
                "embedding request failed",
                extra={"kind": kind.value, "model": self.model, "error": str(exc)},
            )
            raise EmbeddingError(kind, message) from exc

        try:
            vector = [float(value) for value in response.data[0].embedding]
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingError(
                ProviderErrorKind.MALFORMED_RESPONSE, "unexpected embedding response format"
            ) from exc
        if not vector:
            raise EmbeddingError(
                ProviderErrorKind.MALFORMED_RESPONSE, "provider returned an empty embedding"
            )
        return vector

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()

    def _load_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._settings.api_key:
            raise EmbeddingError(
                ProviderErrorKind.UNAUTHORIZED, "embedding api key not configured"
            )
        self._client = AsyncOpenAI(
            api_key=self._settings.api_key,
            base_url=self._settings.base_url,
            timeout=self._settings.embedding_timeout_seconds,
            max_retries=0,
        )
        return self._client
