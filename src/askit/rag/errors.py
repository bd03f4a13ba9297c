"""Classified failures of the embedding, generation and vector store providers."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import openai

from askit.core.errors import UpstreamError


class ProviderErrorKind(str, Enum):
    """Failure kinds shared by the embedding and generation APIs."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"


class VectorStoreErrorKind(str, Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    DIMENSION_MISMATCH = "dimension_mismatch"
    QUOTA = "quota"
    OTHER = "other"


class ProviderError(UpstreamError):
    """Base class for provider failures carrying a :class:`ProviderErrorKind`."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        *,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=kind.value, details=details)
        self.kind = kind


class EmbeddingError(ProviderError):
    """Raised when a text could not be turned into an embedding vector."""


class GenerationError(ProviderError):
    """Raised when the generation API fails to produce an answer."""


class VectorStoreError(UpstreamError):
    """Raised when the vector database rejects or fails a request."""

    def __init__(
        self,
        kind: VectorStoreErrorKind,
        message: str,
        *,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=f"vector_store_{kind.value}", details=details)
        self.kind = kind


def classify_openai_error(exc: openai.OpenAIError) -> tuple[ProviderErrorKind, str]:
    """Map an OpenAI SDK exception onto a provider failure kind and message."""

    # APITimeoutError subclasses APIConnectionError
    if isinstance(exc, openai.APITimeoutError):
        return ProviderErrorKind.TIMEOUT, "request to provider timed out"
    if isinstance(exc, openai.APIConnectionError):
        return ProviderErrorKind.UNREACHABLE, "cannot connect to provider"
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderErrorKind.UNAUTHORIZED, "invalid provider api key"
    if isinstance(exc, openai.RateLimitError):
        return ProviderErrorKind.RATE_LIMITED, "rate limit exceeded, please try again later"
    if isinstance(exc, openai.APIResponseValidationError):
        return ProviderErrorKind.MALFORMED_RESPONSE, "unexpected provider response format"
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return ProviderErrorKind.UNREACHABLE, f"provider error ({exc.status_code})"
        return ProviderErrorKind.BAD_REQUEST, f"invalid request: {exc.message}"
    return ProviderErrorKind.BAD_REQUEST, str(exc) or exc.__class__.__name__
