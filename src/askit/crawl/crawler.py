"""Breadth-first, same-host website crawler."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from urllib.parse import urlparse

from askit.core import metrics
from askit.core.config import CrawlerSettings
from askit.crawl.browser import Fetcher
from askit.crawl.errors import FetchError, InvalidCrawlTarget
from askit.crawl.extractor import extract_links, extract_text
from askit.crawl.models import (
    CrawlFailure,
    CrawlRequest,
    CrawlResult,
    CrawlStats,
    Page,
    ProgressSink,
)
from askit.crawl.robots import RobotsLoader, RobotsPolicy
from askit.utils.tracing import start_span

logger = logging.getLogger(__name__)

CRAWL_START_PROGRESS = 5
CRAWL_MAX_RUNNING_PROGRESS = 39
CRAWL_END_PROGRESS = 40
_CRAWL_SPAN = CRAWL_END_PROGRESS - CRAWL_START_PROGRESS

SKIP_PATTERNS: tuple[str, ...] = (
    "/login",
    "/signup",
    "/register",
    "/account",
    "/profile",
    "/cart",
    "/checkout",
    "/order",
    "/payment",
    "/admin",
    "/wp-admin",
    "/dashboard",
    "/search",
    "/filter",
    "?search",
    "?filter",
    "/api/",
    "/ajax/",
    "/json",
    ".pdf",
    ".doc",
    ".zip",
    ".exe",
    ".dmg",
    "mailto:",
    "tel:",
    "javascript:",
    "#",
    "?ref=",
    "?utm_",
    "?fbclid",
    "/gp/",
    "/dp/",
    "/s?",
)


def should_skip_url(url: str) -> bool:
    """Return True for URLs that rarely carry crawlable content."""

    lowered = url.lower()
    return any(pattern in lowered for pattern in SKIP_PATTERNS)


def crawl_progress(collected: int, max_pages: int) -> int:
    """Map ``collected`` of ``max_pages`` into the running crawl band."""

    ratio = min(collected, max_pages) / max_pages
    return min(CRAWL_START_PROGRESS + int(ratio * _CRAWL_SPAN), CRAWL_MAX_RUNNING_PROGRESS)


def _root_hostname(root_url: str) -> str:
    if not root_url or not isinstance(root_url, str):
        raise InvalidCrawlTarget("invalid root url provided")
    parsed = urlparse(root_url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidCrawlTarget("invalid url format", details={"url": root_url})
    return parsed.hostname


class _ProgressEmitter:
    """Forward only strictly increasing percentages to the sink."""

    def __init__(self, sink: ProgressSink | None) -> None:
        self._sink = sink
        self.last = 0

    async def __call__(self, percent: int, message: str) -> None:
        if self._sink is None or percent <= self.last:
            return
        self.last = percent
        await self._sink.emit(percent, message)

    async def step(self, message: str) -> None:
        await self(min(self.last + 1, CRAWL_MAX_RUNNING_PROGRESS), message)


class Crawler:
    """Collect up to ``max_pages`` text-bearing pages below a root URL.

    The frontier is a FIFO queue seeded with the root; each attempted URL
    counts against an attempt budget of ``attempt_multiplier * max_pages``.
    Fetch and extraction failures are recorded per URL and never abort the
    crawl.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        settings: CrawlerSettings | None = None,
        robots_loader: RobotsLoader | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings or CrawlerSettings()
        self._robots_loader = robots_loader or RobotsLoader(
            user_agent=self._settings.user_agent,
            timeout=self._settings.robots_timeout_seconds,
        )
        self._sleep = sleep

    async def crawl(
        self, request: CrawlRequest, progress: ProgressSink | None = None
    ) -> CrawlResult:
        root_url = request.root_url.strip()
        root_host = _root_hostname(root_url)
        max_pages = request.max_pages
        settings = self._settings

        with start_span("crawl", root_url=root_url, max_pages=max_pages):
            robots = await self._robots_loader.load(root_url)
            emit = _ProgressEmitter(progress)

            frontier: deque[str] = deque([root_url])
            seen: set[str] = {root_url}
            pages: list[Page] = []
            failures: list[CrawlFailure] = []
            attempts = 0
            attempt_budget = max_pages * settings.attempt_multiplier

            logger.info(
                "crawl started",
                extra={"root_url": root_url, "max_pages": max_pages},
            )
            await emit(CRAWL_START_PROGRESS, f"Starting crawl of {root_url}...")

            while frontier and len(pages) < max_pages and attempts < attempt_budget:
                url = frontier.popleft()
                attempts += 1
                await emit(
                    crawl_progress(attempts - 1, max_pages),
                    f"Starting page {attempts}: {url}",
                )

                page, html = await self._visit(url, robots, failures)
                if html is None:
                    continue

                if page is not None:
                    pages.append(page)
                    metrics.PAGES_CRAWLED.inc()
                    await emit(
                        crawl_progress(len(pages), max_pages),
                        f"Completed {len(pages)}/{max_pages} pages: {url}",
                    )

                added = self._harvest(html, url, root_host, seen, frontier)
                if added:
                    logger.debug(
                        "links discovered", extra={"url": url, "links_added": added}
                    )
                    await emit.step(f"Discovered {added} new links from {url}")

                if settings.request_delay_seconds:
                    await self._sleep(settings.request_delay_seconds)

            await emit(CRAWL_END_PROGRESS, f"Crawling completed: {len(pages)} pages found")

        stats = CrawlStats(
            pages_found=len(pages),
            total_processed=attempts,
            errors=len(failures),
            root_url=root_url,
            max_pages=max_pages,
            queue_remaining=len(frontier),
        )
        logger.info("crawl completed", extra=stats.as_dict())
        return CrawlResult(pages=pages, errors=failures, stats=stats)

    async def _visit(
        self, url: str, robots: RobotsPolicy, failures: list[CrawlFailure]
    ) -> tuple[Page | None, str | None]:
        if not robots.allows(url):
            logger.info("url blocked by robots.txt", extra={"url": url})
            return None, None
        if should_skip_url(url):
            logger.debug("url matches skip pattern", extra={"url": url})
            return None, None

        try:
            fetched = await self._fetcher.fetch(url)
        except FetchError as exc:
            failures.append(CrawlFailure(url=url, reason=exc.message))
            metrics.PAGE_FAILURES.labels(reason=exc.kind.value).inc()
            return None, None

        try:
            text = extract_text(fetched.html)
        except (ValueError, RecursionError) as exc:
            failures.append(CrawlFailure(url=url, reason=str(exc) or "extraction failed"))
            metrics.PAGE_FAILURES.labels(reason="extraction").inc()
            return None, None

        if len(text) > self._settings.min_text_length:
            return Page(url=url, text=text), fetched.html
        logger.info(
            "page has insufficient content",
            extra={"url": url, "length": len(text)},
        )
        return None, fetched.html

    def _harvest(
        self,
        html: str,
        page_url: str,
        root_host: str,
        seen: set[str],
        frontier: deque[str],
    ) -> int:
        added = 0
        for link in extract_links(html, page_url):
            if added >= self._settings.links_per_page:
                break
            try:
                parsed = urlparse(link)
                hostname = parsed.hostname
            except ValueError:
                continue
            if parsed.scheme not in ("http", "https") or hostname != root_host:
                continue
            if should_skip_url(link) or link in seen:
                continue
            seen.add(link)
            frontier.append(link)
            added += 1
        return added
