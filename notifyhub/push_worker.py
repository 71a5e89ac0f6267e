"""Delivery of push notifications through Firebase Cloud Messaging."""

from __future__ import annotations

import json
import logging
import os
from http import HTTPStatus
from typing import Any, Mapping, Optional

import aiohttp

from notifyhub.errors import DeliveryError
from notifyhub.models import NotificationDeQueue, PushPayload
from notifyhub.worker_actor import NotificationWorker

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"


def build_fcm_message(notification: NotificationDeQueue) -> dict:
    """Build the FCM request body; raise DeliveryError when fields are missing."""
    try:
        payload = PushPayload.from_dict(notification.payload)
    except ValueError as exc:
        logger.error("Invalid data type: %s", exc)
        raise DeliveryError("json_parse", exc) from exc

    if notification.recipient_type is None:
        logger.error("Missing recipient_type")
        raise DeliveryError("json_parse")

    return {
        "message": {
            notification.recipient_type: notification.recipient,
            "notification": {"title": payload.title, "body": payload.body},
        }
    }


class PushWorker(NotificationWorker):
    """Sends push notifications with a bearer token from ``token_manager``.

    ``token_manager`` provides ``get_token()`` returning the current token
    or ``None``, and an awaitable ``update_token()`` that refreshes it.
    """

    def __init__(
        self,
        token_manager: Any,
        session: Optional[aiohttp.ClientSession] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        environment = os.environ if env is None else env
        try:
            project_id = environment["PROJECT_ID"]
        except KeyError:
            raise RuntimeError("PROJECT_ID must be set") from None
        self.url = FCM_SEND_URL.format(project_id=project_id)
        self._token_manager = token_manager
        self._session = session
        self._owns_session = False

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def __aenter__(self) -> "PushWorker":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def _try_send(self, token: str, message: dict) -> int:
        async with self._client().post(
            self.url,
            headers={"Authorization": f"Bearer {token}"},
            data=json.dumps(message),
        ) as response:
            return response.status

    async def send(self, notification: NotificationDeQueue, repo: Any) -> None:
        """Send ``notification`` and mark it ``sent``; raise DeliveryError on failure."""
        message = build_fcm_message(notification)

        for _attempt in range(1):
            token = self._token_manager.get_token()
            if token is None:
                logger.error("Empty token")
                raise DeliveryError("none_value")

            try:
                status = await self._try_send(token, message)
            except aiohttp.ClientError as exc:
                logger.error("Can not send request: %s", exc)
                raise DeliveryError("request", exc) from exc

            if status == HTTPStatus.UNAUTHORIZED:
                logger.warning("Token expired, refreshing token...")
                await self._token_manager.update_token()
                continue
            if 200 <= status < 300:
                try:
                    rows = await repo.update_notification_status(
                        notification.notification_id, "sent"
                    )
                except Exception as exc:
                    logger.error("Update error: %s", exc)
                    raise DeliveryError("database", exc) from exc
                logger.info("Update row affected: %d", rows)
                return
            raise DeliveryError("request_failed")

        logger.error("Can not send request")
        raise DeliveryError("request_failed")