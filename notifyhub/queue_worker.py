"""Pulls jobs from the Redis queue and dispatches them to channel workers."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Mapping, Optional

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from notifyhub.errors import DeliveryError
from notifyhub.models import NotificationDeQueue
from notifyhub.worker_actor import FAILED_SUFFIX, NotificationMessage

logger = logging.getLogger(__name__)


class QueueWorker:
    """Consumes the queue named by ``QUEUE_KEY``.

    ``workers`` maps a channel name to an object with ``do_send(message)``.
    Jobs that cannot be parsed go to ``<queue>_failed``; a job for a channel
    without a worker stops the current pass, which ``run`` restarts after
    ``restart_delay`` seconds.
    """

    def __init__(
        self,
        redis_repo: Any,
        noti_repo: Any,
        workers: Mapping[str, Any],
        env: Optional[Mapping[str, str]] = None,
        idle_delay: float = 10.0,
        restart_delay: float = 10.0,
    ) -> None:
        self._redis_repo = redis_repo
        self._noti_repo = noti_repo
        self._workers = dict(workers)
        self._env = env
        self._idle_delay = idle_delay
        self._restart_delay = restart_delay
        self._running = True
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    def _queue_key(self) -> str:
        env = os.environ if self._env is None else self._env
        try:
            return env["QUEUE_KEY"]
        except KeyError as exc:
            logger.error("Env key error: QUEUE_KEY")
            raise DeliveryError("missing_env", exc) from None

    async def _pop(self, queue_key: str) -> Optional[str]:
        try:
            return await self._redis_repo.pop_from_queue(queue_key)
        except (RedisConnectionError, OSError) as exc:
            logger.error("Cannot connect to Redis: %s", exc)
            raise DeliveryError("redis_connection", exc) from exc
        except RedisError as exc:
            logger.error("Queue pop error: %s", exc)
            raise DeliveryError("redis_pop", exc) from exc

    async def process_notifications(self) -> None:
        """Dispatch jobs until stopped; raise DeliveryError on a fatal problem."""
        queue_key = self._queue_key()

        while self._running:
            job = await self._pop(queue_key)
            if job is None:
                logger.warning("Queue is empty, retrying after %s seconds...", self._idle_delay)
                await asyncio.sleep(self._idle_delay)
                continue

            try:
                notification = NotificationDeQueue.from_json(job)
            except ValueError as exc:
                await self._handle_corrupt_job(queue_key, job, exc)
                continue

            worker = self._workers.get(notification.channel)
            if worker is None:
                logger.error("No worker found for channel: %s", notification.channel)
                raise DeliveryError("none_value")
            worker.do_send(NotificationMessage(notification, queue_key))

    async def _handle_corrupt_job(self, queue_key: str, job: str, error: Exception) -> None:
        logger.error("Failed to parse notification: %s", error)
        logger.warning("Value will be pushed to failed queue")
        try:
            await self._redis_repo.push_to_queue(queue_key + FAILED_SUFFIX, job)
        except (RedisError, OSError) as exc:
            logger.error("Cannot push to failed queue: %s", exc)

        try:
            data = json.loads(job)
        except ValueError:
            logger.error("Completely invalid JSON")
            return

        notification_id = data.get("notification_id") if isinstance(data, dict) else None
        if not isinstance(notification_id, str):
            logger.error("Job id not found in corrupted JSON")
            return

        try:
            rows = await self._noti_repo.update_notification_status(notification_id, "failed")
        except Exception:
            logger.error("Update error: %s", error)
        else:
            logger.info("Update row affected: %d", rows)

    async def run(self) -> None:
        """Process the queue, restarting after failures, until stopped."""
        while self._running:
            try:
                await self.process_notifications()
            except DeliveryError as exc:
                logger.error("Worker crashed: %s", exc)
                logger.warning("Restarting worker...")
                await asyncio.sleep(self._restart_delay)
            else:
                logger.warning("Worker stopped")

    def start(self) -> asyncio.Task:
        """Run the worker in the background and return its task."""
        logger.info("Queue Worker started")
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        """Ask the worker to finish after its current step."""
        self._running = False
        logger.info("Queue Worker stopped")