"""robots.txt loading for a single crawl."""

from __future__ import annotations

import logging
from urllib.parse import urljoin
from urllib.robotparser import RobotFileParser

import httpx

logger = logging.getLogger(__name__)


class RobotsPolicy:
    """Parsed crawl policy of one site; an empty policy allows everything."""

    def __init__(self, parser: RobotFileParser | None, *, user_agent: str) -> None:
        self._parser = parser
        self._user_agent = user_agent

    @classmethod
    def unrestricted(cls, *, user_agent: str = "*") -> RobotsPolicy:
        return cls(None, user_agent=user_agent)

    @classmethod
    def from_text(cls, text: str, *, user_agent: str, url: str = "") -> RobotsPolicy:
        parser = RobotFileParser(url)
        parser.parse(text.splitlines())
        return cls(parser, user_agent=user_agent)

    @property
    def restricted(self) -> bool:
        return self._parser is not None

    def allows(self, url: str) -> bool:
        if self._parser is None:
            return True
        return self._parser.can_fetch(self._user_agent, url)


class RobotsLoader:
    """Fetch ``/robots.txt`` relative to a root URL.

    Absence of the file, non-200 responses and network failures all yield an
    unrestricted policy; they never fail the crawl.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout
        self._transport = transport

    async def load(self, root_url: str) -> RobotsPolicy:
        robots_url = urljoin(root_url, "/robots.txt")
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            ) as client:
                response = await client.get(robots_url)
        except httpx.HTTPError as exc:
            logger.info(
                "robots.txt unavailable; crawling unrestricted",
                extra={"url": robots_url, "error": str(exc)},
            )
            return RobotsPolicy.unrestricted(user_agent=self._user_agent)

        if response.status_code != 200:
            logger.info(
                "robots.txt not found; crawling unrestricted",
                extra={"url": robots_url, "status": response.status_code},
            )
            return RobotsPolicy.unrestricted(user_agent=self._user_agent)

        return RobotsPolicy.from_text(
            response.text, user_agent=self._user_agent, url=robots_url
        )
