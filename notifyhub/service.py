"""Accepts notification requests: validates, records and enqueues them."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from redis.exceptions import RedisError

from notifyhub.errors import ServiceError
from notifyhub.models import (
    NotificationChannel,
    NotificationEnQueue,
    NotificationRequest,
    NotificationResponse,
)
from notifyhub.payload import validate_payload
from notifyhub.repositories import NotificationRepo, RedisRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Validates a request, stores it as pending and pushes it onto the queue."""

    def __init__(
        self,
        noti_repo: NotificationRepo,
        redis_repo: RedisRepository,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._noti_repo = noti_repo
        self._redis_repo = redis_repo
        self._env = env

    @property
    def _environment(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    async def send(self, request: NotificationRequest) -> NotificationResponse:
        """Queue ``request``; raise ServiceError when it cannot be accepted."""
        if not validate_payload(request.channel, request.payload):
            raise ServiceError(
                "invalid_data_field",
                f"Missing required payload's field for {request.channel} channel",
            )

        recipient_type = None if request.recipient_type is None else str(request.recipient_type)

        if request.channel is NotificationChannel.PUSH and recipient_type is None:
            raise ServiceError("invalid_data_field", "Missing required field 'recipient_type'")
        if request.channel is NotificationChannel.EMAIL and not request.sender:
            raise ServiceError("invalid_data_field", "Missing required field 'sender'")

        try:
            notification_id = await self._noti_repo.insert(request)
        except ValueError:
            raise
        except Exception as exc:
            logger.error("Database insert error: %s", exc)
            raise ServiceError("database", exc) from exc

        job = NotificationEnQueue(
            notification_id=notification_id,
            recipient=request.recipient,
            recipient_type=recipient_type,
            channel=str(request.channel),
            template_id=request.template_id,
            payload=request.payload,
            sender=request.sender,
        )

        try:
            queue_key = self._environment["QUEUE_KEY"]
        except KeyError as exc:
            logger.error("Missing env: QUEUE_KEY")
            raise ServiceError("missing_env", exc) from None

        try:
            await self._redis_repo.push_to_queue(queue_key, job.to_json())
        except (RedisError, OSError) as exc:
            logger.error("Redis push error: %s", exc)
            raise ServiceError("redis_push", exc) from exc

        return NotificationResponse(id=notification_id, status="queued")