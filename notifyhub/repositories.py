"""Persistence of notifications in Postgres and of jobs in the Redis queue."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Optional, Union

from notifyhub.models import NotificationRequest

logger = logging.getLogger(__name__)

INSERT_QUERY_FILE = "insert_noti.sql"
UPDATE_STATUS_QUERY_FILE = "update_notification_status.sql"


def _rows_affected(result: Any) -> int:
    """Row count from a driver result: an int, or a status tag such as ``UPDATE 1``."""
    if isinstance(result, bool):
        return int(result)
    if isinstance(result, int):
        return result
    if isinstance(result, str):
        parts = result.split()
        if parts and parts[-1].isdigit():
            return int(parts[-1])
    return 0


class NotificationRepo:
    """Stores notification rows.

    ``pool`` is any database pool with an awaitable ``execute(query, *args)``
    that uses positional ``$n`` parameters and returns a row count or a
    command status tag. The SQL statements are read from ``queries_dir``.
    """

    def __init__(self, pool: Any, queries_dir: Union[str, Path]) -> None:
        self._pool = pool
        self._queries_dir = Path(queries_dir)
        self._queries: dict[str, str] = {}

    def _query(self, filename: str) -> str:
        if filename not in self._queries:
            self._queries[filename] = (self._queries_dir / filename).read_text(encoding="utf-8")
        return self._queries[filename]

    async def insert(self, request: NotificationRequest) -> str:
        """Insert a pending notification and return its new id."""
        notification_id = uuid.uuid4()
        statement = self._query(INSERT_QUERY_FILE)
        user_id = uuid.UUID(request.user_id)
        template_id = None if request.template_id is None else uuid.UUID(request.template_id)

        result = await self._pool.execute(
            statement,
            notification_id,
            user_id,
            request.recipient,
            str(request.channel),
            template_id,
            "pending",
        )
        logger.info("Query insert result: %d", _rows_affected(result))
        return str(notification_id)

    async def update_notification_status(self, notification_id: str, status: str) -> int:
        """Set the status of a notification; return the number of rows changed."""
        statement = self._query(UPDATE_STATUS_QUERY_FILE)
        parsed_id = uuid.UUID(notification_id)
        result = await self._pool.execute(statement, status, parsed_id)
        rows = _rows_affected(result)
        logger.info("Rows affected: %d", rows)
        return rows


class RedisRepository:
    """A job queue kept in Redis lists: pushed on the left, popped on the right."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def push_to_queue(self, key: str, value: str) -> None:
        await self.client.lpush(key, value)
        logger.info("Redis push to: %s", key)

    async def pop_from_queue(self, key: str) -> Optional[str]:
        """Pop the oldest job from ``key``; ``None`` when the queue is empty."""
        value = await self.client.rpop(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value