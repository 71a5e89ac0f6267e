"""Data models exchanged over HTTP and through the Redis queue."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

_MISSING = object()


def _mapping(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _required_str(data: dict, key: str) -> str:
    value = data.get(key, _MISSING)
    if value is _MISSING:
        raise ValueError(f"missing field `{key}`")
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _defaulted_str(data: dict, key: str, default: str) -> str:
    if key not in data:
        return default
    return _required_str(data, key)


def _to_json(data: dict) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class NotificationChannel(str, Enum):
    """Delivery channel of a notification."""

    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"

    def __str__(self) -> str:
        return self.value


class PushRecipientType(str, Enum):
    """How a push recipient is addressed."""

    TOKEN = "token"
    TOPIC = "topic"
    CONDITION = "condition"

    def __str__(self) -> str:
        return self.value


def _enum_field(enum_cls, data: dict, key: str, required: bool):
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        if required:
            raise ValueError(f"missing field `{key}`")
        return None
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"unknown variant `{value}` for `{key}`") from None


@dataclass
class NotificationRequest:
    """A request to send one notification."""

    user_id: str
    recipient: str
    channel: NotificationChannel
    payload: Any = None
    recipient_type: Optional[PushRecipientType] = None
    sender: Optional[str] = None
    template_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "NotificationRequest":
        data = _mapping(data, "notification request")
        return cls(
            user_id=_required_str(data, "user_id"),
            recipient=_required_str(data, "recipient"),
            recipient_type=_enum_field(PushRecipientType, data, "recipient_type", False),
            sender=_optional_str(data, "sender"),
            channel=_enum_field(NotificationChannel, data, "channel", True),
            template_id=_optional_str(data, "template_id"),
            payload=data.get("payload"),
        )


@dataclass
class NotificationResponse:
    """Reply to an accepted notification request."""

    id: str
    status: str

    def to_dict(self) -> dict:
        return {"id": self.id, "status": self.status}


@dataclass
class NotificationEnQueue:
    """A job as pushed onto the queue."""

    notification_id: str
    recipient: str
    channel: str
    payload: Any = None
    recipient_type: Optional[str] = None
    sender: Optional[str] = None
    template_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "recipient": self.recipient,
            "recipient_type": self.recipient_type,
            "sender": self.sender,
            "channel": self.channel,
            "template_id": self.template_id,
            "payload": self.payload,
        }

    def to_json(self) -> str:
        return _to_json(self.to_dict())


@dataclass
class NotificationDeQueue:
    """A job as popped from the queue, with its retry count."""

    notification_id: str
    recipient: str
    channel: str
    payload: Any = None
    recipient_type: Optional[str] = None
    sender: Optional[str] = None
    template_id: Optional[str] = None
    retry_count: int = 0

    @classmethod
    def from_json(cls, text: str) -> "NotificationDeQueue":
        """Parse a queued job; raises ValueError when it is malformed."""
        data = _mapping(json.loads(text), "queued notification")
        retry_count = data.get("retry_count", 0)
        if isinstance(retry_count, bool) or not isinstance(retry_count, int):
            raise ValueError("invalid type for `retry_count`: expected an integer")
        if not 0 <= retry_count <= 255:
            raise ValueError(f"`retry_count` out of range: {retry_count}")
        return cls(
            notification_id=_required_str(data, "notification_id"),
            recipient=_required_str(data, "recipient"),
            recipient_type=_optional_str(data, "recipient_type"),
            sender=_optional_str(data, "sender"),
            channel=_required_str(data, "channel"),
            template_id=_optional_str(data, "template_id"),
            payload=data.get("payload"),
            retry_count=retry_count,
        )

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "recipient": self.recipient,
            "recipient_type": self.recipient_type,
            "sender": self.sender,
            "channel": self.channel,
            "template_id": self.template_id,
            "payload": self.payload,
            "retry_count": self.retry_count,
        }

    def to_json(self) -> str:
        return _to_json(self.to_dict())


@dataclass
class PushPayload:
    """Title and body of a push notification."""

    title: str
    body: str

    @classmethod
    def from_dict(cls, data: Any) -> "PushPayload":
        data = _mapping(data, "push payload")
        return cls(title=_required_str(data, "title"), body=_required_str(data, "body"))


@dataclass
class EmailPayload:
    """Subject, content and options of an e-mail notification."""

    subject: str
    content: str
    content_type: str = "text/plain"
    optionals: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "EmailPayload":
        data = _mapping(data, "email payload")
        return cls(
            subject=_required_str(data, "subject"),
            content=_required_str(data, "content"),
            content_type=_defaulted_str(data, "content_type", "text/plain"),
            optionals=data.get("optionals"),
        )


@dataclass
class Attachment:
    """An e-mail attachment; ``mime_type`` is serialised as ``type``."""

    content: str
    filename: str
    mime_type: str
    disposition: str = "attachment"

    @classmethod
    def from_dict(cls, data: Any) -> "Attachment":
        data = _mapping(data, "attachment")
        return cls(
            content=_required_str(data, "content"),
            filename=_required_str(data, "filename"),
            mime_type=_required_str(data, "type"),
            disposition=_defaulted_str(data, "disposition", "attachment"),
        )

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "filename": self.filename,
            "type": self.mime_type,
            "disposition": self.disposition,
        }


@dataclass
class ReplyTo:
    """Reply-to address of an e-mail."""

    email: str
    name: str

    @classmethod
    def from_dict(cls, data: Any) -> "ReplyTo":
        data = _mapping(data, "reply-to")
        return cls(email=_required_str(data, "email"), name=_required_str(data, "name"))

    def to_dict(self) -> dict:
        return {"email": self.email, "name": self.name}