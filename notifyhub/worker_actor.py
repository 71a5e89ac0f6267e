"""Channel workers and the actor that runs them with retry handling."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from redis.exceptions import RedisError

from notifyhub.errors import DeliveryError
from notifyhub.models import NotificationDeQueue

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
FAILED_SUFFIX = "_failed"


class NotificationWorker(ABC):
    """Delivers notifications over one channel."""

    @abstractmethod
    async def send(self, notification: NotificationDeQueue, repo: Any) -> None:
        """Deliver ``notification``; raise DeliveryError when it fails."""


@dataclass
class NotificationMessage:
    """A dequeued notification together with the queue it came from."""

    notification: NotificationDeQueue
    queue_key: str


class NotificationWorkerActor:
    """Runs a NotificationWorker for each message, requeueing failed jobs.

    A failed job goes back onto its queue with an increased retry count;
    after the third failure it is moved to ``<queue>_failed`` and its
    notification is marked ``failed``.
    """

    def __init__(self, worker: NotificationWorker, noti_repo: Any, redis_repo: Any) -> None:
        self._worker = worker
        self._noti_repo = noti_repo
        self._redis_repo = redis_repo
        self._tasks: set[asyncio.Task] = set()

    async def handle(self, message: NotificationMessage) -> None:
        """Process one message to completion."""
        try:
            await self._worker.send(message.notification, self._noti_repo)
        except DeliveryError as exc:
            await self._retry(message, exc)

    async def _retry(self, message: NotificationMessage, error: DeliveryError) -> None:
        logger.error("Send request error: %s", error)
        logger.warning("Putting back to queue...")

        notification = dataclasses.replace(
            message.notification, retry_count=message.notification.retry_count + 1
        )
        logger.warning(
            "Retrying job (attempt %d/%d)...", notification.retry_count, MAX_ATTEMPTS
        )
        value = notification.to_json()

        if notification.retry_count < MAX_ATTEMPTS:
            try:
                await self._redis_repo.push_to_queue(message.queue_key, value)
            except (RedisError, OSError) as exc:
                logger.error("Cannot be put back to queue: %s", exc)
            return

        logger.error("Job failed too many times, moving to failed queue...")
        try:
            await self._redis_repo.push_to_queue(message.queue_key + FAILED_SUFFIX, value)
        except (RedisError, OSError) as exc:
            logger.error("Cannot push to failed queue: %s", exc)

        try:
            rows = await self._noti_repo.update_notification_status(
                notification.notification_id, "failed"
            )
        except Exception:
            logger.error("Update error: %s", error)
        else:
            logger.info("Update row affected: %d", rows)

    def do_send(self, message: NotificationMessage) -> asyncio.Task:
        """Schedule ``message`` for processing without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.handle(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until every scheduled message has been processed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))