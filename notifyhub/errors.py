"""Errors raised by the notification service and the delivery workers."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Optional

_SERVICE_MESSAGES = {
    "database": "Database query failed",
    "missing_env": "Env must be set",
    "redis_push": "Redis push failed",
    "invalid_data_field": "Invalid data field",
}

_DELIVERY_MESSAGES = {
    "database": "Database query failed",
    "missing_env": "Env must be set",
    "redis_connection": "Redis connect failed",
    "redis_pop": "Redis pop failed",
    "none_value": "None value",
    "json_parse": "Cannot parse this object",
    "request": "Cannot send request",
    "gcp_auth": "Google cloud platform authentication",
    "request_failed": "Request failed",
}


class ServiceError(Exception):
    """Failure while accepting a notification request.

    ``kind`` is one of ``database``, ``missing_env``, ``redis_push`` or
    ``invalid_data_field``; ``cause`` holds the underlying error or message.
    """

    def __init__(self, kind: str, cause: Any = None) -> None:
        try:
            message = _SERVICE_MESSAGES[kind]
        except KeyError:
            raise ValueError(f"unknown service error kind: {kind!r}") from None
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    def __str__(self) -> str:
        return _SERVICE_MESSAGES[self.kind]

    def to_response(self) -> tuple[int, Optional[dict]]:
        """Return the HTTP status and JSON body reported for this error."""
        status = int(HTTPStatus.INTERNAL_SERVER_ERROR)
        if self.kind == "invalid_data_field":
            return status, {"messages": str(self.cause)}
        if self.kind in ("database", "redis_push"):
            return status, {"messages": str(self)}
        return status, None


class DeliveryError(Exception):
    """Failure while delivering a queued notification.

    ``kind`` is one of ``database``, ``missing_env``, ``redis_connection``,
    ``redis_pop``, ``none_value``, ``json_parse``, ``request``, ``gcp_auth``
    or ``request_failed``.
    """

    def __init__(self, kind: str, cause: Any = None) -> None:
        try:
            message = _DELIVERY_MESSAGES[kind]
        except KeyError:
            raise ValueError(f"unknown delivery error kind: {kind!r}") from None
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    def __str__(self) -> str:
        return _DELIVERY_MESSAGES[self.kind]

    def to_response(self) -> tuple[int, str]:
        """Return the HTTP status and plain-text body reported for this error."""
        status = int(HTTPStatus.INTERNAL_SERVER_ERROR)
        if self.kind in ("database", "redis_pop", "gcp_auth"):
            return status, str(self)
        return status, ""