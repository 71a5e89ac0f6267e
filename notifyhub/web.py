"""HTTP interface of the notification service."""

from __future__ import annotations

from aiohttp import web

from notifyhub.errors import ServiceError
from notifyhub.models import NotificationRequest
from notifyhub.service import NotificationService


class NotificationController:
    """Handles ``POST /notification/send``."""

    def __init__(self, service: NotificationService) -> None:
        self._service = service

    def routes(self) -> list:
        return [web.post("/notification/send", self.send)]

    async def send(self, request: web.Request) -> web.Response:
        try:
            data = await request.json()
            notification_request = NotificationRequest.from_dict(data)
        except ValueError as exc:
            return web.Response(status=400, text=f"Json deserialize error: {exc}")

        try:
            response = await self._service.send(notification_request)
        except ServiceError as exc:
            status, body = exc.to_response()
            if body is None:
                return web.Response(status=status)
            return web.json_response(body, status=status)
        return web.json_response(response.to_dict())


def create_app(service: NotificationService) -> web.Application:
    """Build the web application serving ``service``."""
    app = web.Application()
    app.add_routes(NotificationController(service).routes())
    return app