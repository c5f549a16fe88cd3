"""Exceptions and event types for notification delivery."""

import json
from dataclasses import dataclass
from typing import Any


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when a message template is missing or fails to render."""

    pass


class BotDeliveryError(NotificationError):
    """Raised when the bot relay rejects or never receives a message."""

    pass


@dataclass(frozen=True)
class StreamEvent:
    """A named event pushed to live subscribers.

    Attributes:
        name: Event name (``connected`` or ``listings``)
        data: JSON-serializable payload
    """

    name: str
    data: Any

    def to_sse(self) -> str:
        """Encode as a server-sent-events frame."""
        payload = json.dumps(self.data, ensure_ascii=False, default=str)
        return f"event: {self.name}\ndata: {payload}\n\n"
