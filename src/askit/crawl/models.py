"""Data models produced and consumed by the crawler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

MIN_PAGE_BUDGET = 1
MAX_PAGE_BUDGET = 50


def clamp_page_budget(max_pages: int, *, limit: int = MAX_PAGE_BUDGET) -> int:
    """Clamp a requested page budget into ``[1, limit]``."""

    return max(MIN_PAGE_BUDGET, min(int(max_pages), limit))


@dataclass(slots=True)
class CrawlRequest:
    """A single crawl invocation rooted at ``root_url``."""

    root_url: str
    max_pages: int = 10
    page_limit: int = MAX_PAGE_BUDGET

    def __post_init__(self) -> None:
        self.max_pages = clamp_page_budget(self.max_pages, limit=self.page_limit)


@dataclass(slots=True, frozen=True)
class Page:
    """Extracted text of one crawled URL."""

    url: str
    text: str


@dataclass(slots=True, frozen=True)
class CrawlFailure:
    """A URL the crawler could not turn into a page."""

    url: str
    reason: str


@dataclass(slots=True, frozen=True)
class CrawlStats:
    pages_found: int
    total_processed: int
    errors: int
    root_url: str
    max_pages: int
    queue_remaining: int

    def as_dict(self) -> dict[str, object]:
        return {
            "pages_found": self.pages_found,
            "total_processed": self.total_processed,
            "errors": self.errors,
            "root_url": self.root_url,
            "max_pages": self.max_pages,
            "queue_remaining": self.queue_remaining,
        }


@dataclass(slots=True)
class CrawlResult:
    """Pages collected by a crawl plus best-effort diagnostics."""

    pages: list[Page] = field(default_factory=list)
    errors: list[CrawlFailure] = field(default_factory=list)
    stats: CrawlStats | None = None


class ProgressSink(Protocol):
    """Receives ``(percent, message)`` progress events from long-running work."""

    async def emit(self, percent: int, message: str) -> None:
        ...
