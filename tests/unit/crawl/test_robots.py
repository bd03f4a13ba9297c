from __future__ import annotations

import httpx
import pytest

from askit.crawl.robots import RobotsLoader, RobotsPolicy

pytestmark = pytest.mark.unit


def loader_for(handler) -> RobotsLoader:
    return RobotsLoader(user_agent="Mozilla/5.0", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_loader_parses_robots_file_from_site_root() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text="User-agent: *\nDisallow: /private\n")

    policy = await loader_for(handler).load("https://example.com/docs/start")

    assert requested == ["https://example.com/robots.txt"]
    assert policy.restricted
    assert policy.allows("https://example.com/docs")
    assert not policy.allows("https://example.com/private/page")


@pytest.mark.asyncio
async def test_missing_robots_file_allows_everything() -> None:
    policy = await loader_for(lambda request: httpx.Response(404)).load("https://example.com")

    assert not policy.restricted
    assert policy.allows("https://example.com/private/page")


@pytest.mark.asyncio
async def test_network_failure_allows_everything() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    policy = await loader_for(handler).load("https://example.com")

    assert not policy.restricted


def test_policy_matches_user_agent_groups() -> None:
    policy = RobotsPolicy.from_text(
        "User-agent: askbot\nDisallow: /\n\nUser-agent: *\nDisallow: /tmp\n",
        user_agent="askbot",
    )

    assert not policy.allows("https://example.com/anything")
