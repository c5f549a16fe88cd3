"""Delivery of a user's undelivered listings to the bot and live stream.

Delivery is at-least-once: the backlog is marked delivered only after every
batch reached the bot channel. A failure anywhere leaves the whole backlog
undelivered, and the next successful run sends it again from the start.
"""

import logging
from typing import Iterator, List, Optional, Sequence

from vacancy_scanner.clients.protocols import BotChannel, LiveStream
from vacancy_scanner.config.models import NotificationConfig
from vacancy_scanner.domain.models import ListingRecord
from vacancy_scanner.logging import get_logger
from vacancy_scanner.persistence.database import get_session
from vacancy_scanner.persistence.repositories import ListingRepository

from .models import NotificationError
from .templates import MessageRenderer

logger = get_logger(__name__, component="notification")


def chunked(records: Sequence[ListingRecord], size: int) -> Iterator[List[ListingRecord]]:
    """Split ``records`` into consecutive lists of at most ``size`` items."""
    for start in range(0, len(records), size):
        yield list(records[start:start + size])


class NotificationFanout:
    """Sends the undelivered backlog of a user through both channels."""

    def __init__(
        self,
        bot_channel: BotChannel,
        live_stream: Optional[LiveStream] = None,
        config: Optional[NotificationConfig] = None,
        renderer: Optional[MessageRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.bot_channel = bot_channel
        self.live_stream = live_stream
        self.config = config or NotificationConfig()
        self.renderer = renderer or MessageRenderer()
        self.logger = logger_instance or logger

    def deliver_unsent(self, user_id: int, token: str) -> int:
        """Deliver the user's backlog, oldest first.

        Args:
            user_id: Owner of the backlog
            token: User access token for the bot relay

        Returns:
            Number of listings marked delivered (0 when nothing was sent or
            any batch failed)

        Raises:
            PersistenceError: If the backlog cannot be loaded or marked
        """
        if not self.config.bot_enabled:
            self.logger.debug(
                "Bot channel disabled, backlog left undelivered",
                extra={"event": "notification.skip", "reason": "bot_disabled", "user_id": user_id},
            )
            return 0

        with get_session() as session:
            backlog = ListingRepository(session).find_undelivered(user_id)

        if not backlog:
            return 0

        batches = list(chunked(backlog, self.config.max_items_per_message))

        for number, batch in enumerate(batches, start=1):
            try:
                text = self.renderer.render_batch(batch, number, len(batches), len(backlog))
                sent = self.bot_channel.send_message(user_id, text, token)
            except NotificationError as e:
                self.logger.error(
                    f"Batch {number}/{len(batches)} for user {user_id} failed: {e}",
                    extra={"event": "notification.send.failure", "user_id": user_id},
                )
                return 0

            if not sent:
                self.logger.warning(
                    f"Bot channel rejected batch {number}/{len(batches)}, "
                    f"{len(backlog)} listings stay undelivered",
                    extra={
                        "event": "notification.send.failure",
                        "user_id": user_id,
                        "batch": number,
                        "backlog": len(backlog),
                    },
                )
                return 0

            if self.config.stream_enabled and self.live_stream is not None:
                self.live_stream.publish(user_id, batch)

        with get_session() as session:
            ListingRepository(session).mark_delivered(
                user_id, [record.external_id for record in backlog]
            )

        self.logger.info(
            f"Delivered {len(backlog)} listings to user {user_id} in {len(batches)} messages",
            extra={
                "event": "notification.send.success",
                "user_id": user_id,
                "delivered": len(backlog),
                "batches": len(batches),
            },
        )
        return len(backlog)
