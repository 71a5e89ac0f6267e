"""Validation of notification payloads per channel."""

from __future__ import annotations

from typing import Any

from notifyhub.models import NotificationChannel

_MISSING = object()


def _is_string(payload: dict, key: str, required: bool) -> bool:
    value = payload.get(key, _MISSING)
    if value is _MISSING:
        return not required
    return isinstance(value, str)


def validate_push_payload(payload: Any) -> bool:
    """A push payload needs string ``title`` and ``body`` fields."""
    if not isinstance(payload, dict):
        return False
    return _is_string(payload, "title", True) and _is_string(payload, "body", True)


def validate_email_payload(payload: Any) -> bool:
    """An e-mail payload needs ``subject`` and ``content``; optional fields must be typed."""
    if not isinstance(payload, dict):
        return False
    variables = payload.get("variables", _MISSING)
    return (
        _is_string(payload, "subject", True)
        and _is_string(payload, "content", True)
        and _is_string(payload, "content_type", False)
        and (variables is _MISSING or isinstance(variables, dict))
    )


def validate_payload(channel: NotificationChannel, payload: Any) -> bool:
    """Validate ``payload`` for ``channel``; unsupported channels never validate."""
    if channel is NotificationChannel.PUSH:
        return validate_push_payload(payload)
    if channel is NotificationChannel.EMAIL:
        return validate_email_payload(payload)
    return False