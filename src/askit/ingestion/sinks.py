"""Site record sinks notified of ingestion lifecycle changes."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from psycopg2 import pool, sql

from askit.core.config import PostgresSettings
from askit.ingestion.models import IngestSummary

logger = logging.getLogger(__name__)


class SiteRecordSink(Protocol):
    """Domain record of an ingested website, keyed by job id."""

    async def mark_crawling(self, job_id: str) -> None:
        ...

    async def mark_completed(self, job_id: str, summary: IngestSummary) -> None:
        ...

    async def delete(self, job_id: str) -> None:
        ...


class PostgresSiteRecordSink:
    """Update or remove rows of the sites table using a psycopg2 pool."""

    def __init__(
        self,
        settings: PostgresSettings,
        *,
        min_connections: int = 1,
        max_connections: int = 5,
    ) -> None:
        self._table = sql.Identifier(settings.sites_table)
        self._pool = pool.SimpleConnectionPool(
            min_connections,
            max_connections,
            dsn=settings.dsn,
        )

    async def mark_crawling(self, job_id: str) -> None:
        await self._execute(
            sql.SQL(
                """
                UPDATE {table}
                   SET status = %s,
                       updated_at = NOW()
                 WHERE job_id = %s
                """
            ).format(table=self._table),
            ("crawling", job_id),
        )

    async def mark_completed(self, job_id: str, summary: IngestSummary) -> None:
        await self._execute(
            sql.SQL(
                """
                UPDATE {table}
                   SET status = %s,
                       pages_crawled = %s,
                       chunks_attempted = %s,
                       chunks_succeeded = %s,
                       success_rate = %s,
                       updated_at = NOW()
                 WHERE job_id = %s
                """
            ).format(table=self._table),
            (
                "completed",
                summary.pages_crawled,
                summary.chunks_attempted,
                summary.chunks_succeeded,
                summary.success_rate,
                job_id,
            ),
        )

    async def delete(self, job_id: str) -> None:
        await self._execute(
            sql.SQL("DELETE FROM {table} WHERE job_id = %s").format(table=self._table),
            (job_id,),
        )
        logger.info("removed site record of failed job", extra={"job_id": job_id})

    async def close(self) -> None:
        await asyncio.to_thread(self._pool.closeall)

    async def _execute(self, query: sql.Composable, params: tuple[object, ...]) -> None:
        await asyncio.to_thread(self._execute_sync, query, params)

    def _execute_sync(self, query: sql.Composable, params: tuple[object, ...]) -> None:
        connection = self._pool.getconn()
        try:
            with connection.cursor() as cursor:
                cursor.execute(query, params)
            connection.commit()
        finally:
            self._pool.putconn(connection)
