"""Notification fan-out for newly found listings.

- NotificationFanout: delivers a user's undelivered backlog
- BotNotifyClient: HTTP client for the bot message relay
- LiveStreamRegistry: in-process live subscribers (server-sent events)
- MessageRenderer: Jinja2 rendering of bot message text
"""

from .bot_client import BotNotifyClient
from .models import BotDeliveryError, NotificationError, NotificationTemplateError, StreamEvent
from .service import NotificationFanout, chunked
from .stream import LiveStreamRegistry, StreamSubscription
from .templates import MessageRenderer

__all__ = [
    "NotificationFanout",
    "BotNotifyClient",
    "LiveStreamRegistry",
    "StreamSubscription",
    "StreamEvent",
    "MessageRenderer",
    "NotificationError",
    "NotificationTemplateError",
    "BotDeliveryError",
    "chunked",
]
