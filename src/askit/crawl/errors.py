"""Exception types raised while fetching and crawling pages."""

from __future__ import annotations

from enum import Enum

from askit.core.errors import CoreError, ValidationError


class FetchErrorKind(str, Enum):
    """Classified reasons a page could not be rendered."""

    TIMEOUT = "timeout"
    DNS = "dns"
    CONNECTION_REFUSED = "connection_refused"
    TLS = "tls"
    OTHER = "other"


_FETCH_MESSAGES = {
    FetchErrorKind.TIMEOUT: "page load timeout",
    FetchErrorKind.DNS: "domain not found",
    FetchErrorKind.CONNECTION_REFUSED: "connection refused",
    FetchErrorKind.TLS: "tls certificate error",
}


class FetchError(CoreError):
    """Raised when the headless browser fails to render a URL."""

    def __init__(self, kind: FetchErrorKind, url: str, detail: str | None = None) -> None:
        message = _FETCH_MESSAGES.get(kind) or detail or "page fetch failed"
        super().__init__(message, code=f"fetch_{kind.value}", details={"url": url})
        self.kind = kind
        self.url = url


class InvalidCrawlTarget(ValidationError):
    """Raised when the crawl root cannot be parsed into an http(s) URL."""
