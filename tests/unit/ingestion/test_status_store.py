from __future__ import annotations

from collections.abc import AsyncIterator
from fnmatch import fnmatch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from askit.ingestion.models import JobPhase, JobStatus
from askit.ingestion.status import RedisJobStatusStore

pytestmark = pytest.mark.unit


class FakeRedis:
    def __init__(self, *, publish_error: Exception | None = None) -> None:
        self.values: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self.publish_error = publish_error

    async def set(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.values.pop(key, None) is not None else 0

    async def publish(self, channel: str, message: str) -> int:
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((channel, message))
        return 1

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        for key in list(self.values):
            if fnmatch(key, match):
                yield key


def make_status(job_id: str = "job-1", phase: JobPhase = JobPhase.CRAWLING) -> JobStatus:
    return JobStatus(
        job_id=job_id,
        website_url="https://example.com",
        tenant_key="tenant-a",
        phase=phase,
        progress_percent=22,
        message="Completed 1/2 pages",
    )


@pytest.mark.asyncio
async def test_put_stores_snapshot_and_publishes_on_tenant_channel() -> None:
    redis = FakeRedis()
    store = RedisJobStatusStore(redis=redis)  # type: ignore[arg-type]

    await store.put(make_status())

    assert "askit:jobs:job-1" in redis.values
    ((channel, message),) = redis.published
    assert channel == "askit:progress:tenant-a"
    assert JobStatus.model_validate_json(message).progress_percent == 22

    loaded = await store.get("job-1")
    assert loaded is not None
    assert loaded.phase is JobPhase.CRAWLING
    assert loaded.message == "Completed 1/2 pages"


@pytest.mark.asyncio
async def test_publish_failure_does_not_lose_snapshot() -> None:
    redis = FakeRedis(publish_error=RedisConnectionError("down"))
    store = RedisJobStatusStore(redis=redis)  # type: ignore[arg-type]

    await store.put(make_status())

    assert await store.get("job-1") is not None


@pytest.mark.asyncio
async def test_list_and_delete() -> None:
    redis = FakeRedis()
    store = RedisJobStatusStore(redis=redis, prefix="jobs:")  # type: ignore[arg-type]
    await store.put(make_status("a"))
    await store.put(make_status("b", JobPhase.FAILED))
    redis.values["jobs:corrupt"] = "{not json"
    redis.values["other:c"] = make_status("c").model_dump_json()

    statuses = await store.list_statuses()

    assert sorted(status.job_id for status in statuses) == ["a", "b"]
    assert await store.delete("a") is True
    assert await store.delete("a") is False
    assert await store.get("missing") is None
