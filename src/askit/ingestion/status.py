"""Redis-backed job status store and progress stream."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from askit.ingestion.models import JobStatus

logger = logging.getLogger(__name__)


class RedisJobStatusStore:
    """Persist the latest :class:`JobStatus` per job and broadcast every update.

    Snapshots live under ``{prefix}:{job_id}`` as JSON; each write is also
    published on the tenant's progress channel for live listeners.
    """

    def __init__(
        self,
        *,
        redis: Redis,
        prefix: str = "askit:jobs",
        channel_template: str = "askit:progress:{tenant}",
    ) -> None:
        self._redis = redis
        self._prefix = prefix.rstrip(":")
        self._channel_template = channel_template

    def key(self, job_id: str) -> str:
        return f"{self._prefix}:{job_id}"

    def channel(self, tenant_key: str) -> str:
        return self._channel_template.format(tenant=tenant_key)

    async def put(self, status: JobStatus) -> None:
        payload = status.model_dump_json()
        await self._redis.set(self.key(status.job_id), payload)
        try:
            await self._redis.publish(self.channel(status.tenant_key), payload)
        except RedisError:
            logger.exception(
                "failed to publish job progress",
                extra={"job_id": status.job_id},
            )

    async def get(self, job_id: str) -> JobStatus | None:
        raw = await self._redis.get(self.key(job_id))
        if raw is None:
            return None
        return self._parse(raw, key=self.key(job_id))

    async def delete(self, job_id: str) -> bool:
        return bool(await self._redis.delete(self.key(job_id)))

    async def list_statuses(self) -> list[JobStatus]:
        statuses: list[JobStatus] = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:*"):
            raw = await self._redis.get(key)
            if raw is None:
                continue
            status = self._parse(raw, key=key)
            if status is not None:
                statuses.append(status)
        return statuses

    def _parse(self, raw: str | bytes, *, key: object) -> JobStatus | None:
        try:
            return JobStatus.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("discarding unreadable job status", extra={"key": str(key)})
            return None
