"""Headless Chromium page fetcher built on the Playwright async API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from askit.core.config import BrowserSettings
from askit.crawl.errors import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

_NETWORK_MARKERS: tuple[tuple[str, FetchErrorKind], ...] = (
    ("ERR_NAME_NOT_RESOLVED", FetchErrorKind.DNS),
    ("ERR_CONNECTION_REFUSED", FetchErrorKind.CONNECTION_REFUSED),
    ("ERR_CERT_", FetchErrorKind.TLS),
    ("ERR_SSL_", FetchErrorKind.TLS),
    ("ERR_TIMED_OUT", FetchErrorKind.TIMEOUT),
)


@dataclass(slots=True, frozen=True)
class FetchedPage:
    """Rendered HTML of ``url``; ``final_url`` reflects redirects."""

    url: str
    final_url: str
    html: str


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchedPage:
        ...


def classify_browser_error(exc: BaseException) -> FetchErrorKind:
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return FetchErrorKind.TIMEOUT
    message = str(exc)
    for marker, kind in _NETWORK_MARKERS:
        if marker in message:
            return kind
    return FetchErrorKind.OTHER


class BrowserFetcher:
    """Owns one Chromium instance per process and renders pages on demand.

    The browser is launched on first use (or by :meth:`start`) and relaunched
    when the previous instance has disconnected. Every fetch uses its own
    context and page, closed even when navigation fails.
    """

    def __init__(self, settings: BrowserSettings | None = None) -> None:
        self._settings = settings or BrowserSettings()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        await self._ensure_browser()

    async def stop(self) -> None:
        async with self._lock:
            browser, self._browser = self._browser, None
            playwright, self._playwright = self._playwright, None
            if browser is not None:
                try:
                    await browser.close()
                except PlaywrightError as exc:
                    logger.warning("browser close failed", extra={"error": str(exc)})
            if playwright is not None:
                await playwright.stop()
            logger.info("browser stopped")

    async def fetch(self, url: str) -> FetchedPage:
        settings = self._settings
        try:
            async with self._page() as page:
                response = await page.goto(
                    url,
                    wait_until="networkidle",
                    timeout=settings.navigation_timeout_ms,
                )
                if settings.settle_delay_ms:
                    await page.wait_for_timeout(settings.settle_delay_ms)
                html = await page.content()
                final_url = page.url or url
        except (PlaywrightError, asyncio.TimeoutError) as exc:
            kind = classify_browser_error(exc)
            logger.info(
                "page fetch failed",
                extra={"url": url, "kind": kind.value, "error": str(exc)},
            )
            raise FetchError(kind, url, detail=str(exc)) from exc

        if response is not None and response.status >= 400:
            logger.info(
                "page returned error status",
                extra={"url": url, "status": response.status},
            )
        return FetchedPage(url=url, final_url=final_url, html=html)

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._browser is not None:
                logger.warning("browser disconnected; relaunching")
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._settings.headless,
                args=list(self._settings.launch_args),
            )
            logger.info("browser launched", extra={"headless": self._settings.headless})
            return self._browser

    @asynccontextmanager
    async def _page(self) -> AsyncIterator:
        browser = await self._ensure_browser()
        context: BrowserContext = await browser.new_context(
            user_agent=self._settings.user_agent,
            viewport={
                "width": self._settings.viewport_width,
                "height": self._settings.viewport_height,
            },
        )
        try:
            page = await context.new_page()
            yield page
        finally:
            await context.close()
