"""Exception types for website ingestion jobs."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from askit.core.errors import CoreError


class IngestionRejected(CoreError):
    """Raised when a submission is refused before it is enqueued."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.BAD_REQUEST,
            code="ingestion_rejected",
            details=details,
        )


class IngestionError(CoreError):
    """Base class for failures that end a job in the ``failed`` phase."""

    code = "ingestion_failed"

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=type(self).code, details=details)


class CrawlError(IngestionError):
    """Raised when the crawl itself could not run."""

    code = "crawl_failed"


class NoContentError(IngestionError):
    """Raised when a crawl produced no pages or no chunks."""

    code = "no_content"


class PersistenceError(IngestionError):
    """Raised when vectors could not be written to the vector store."""

    code = "persistence_failed"
