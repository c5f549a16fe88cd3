"""In-process registry of live listing subscribers.

Each subscriber owns a bounded queue. Publishing never blocks: a sink that
is closed or full is dropped, and the client is expected to reconnect.
"""

import queue
import threading
from typing import Dict, Iterator, List, Optional, Sequence

from vacancy_scanner.domain.models import ListingRecord
from vacancy_scanner.logging import get_logger
from vacancy_scanner.utils.timestamps import format_timestamp, utc_now

from .models import StreamEvent

logger = get_logger(__name__, component="stream")

EVENT_CONNECTED = "connected"
EVENT_LISTINGS = "listings"


def listing_payload(record: ListingRecord) -> dict:
    """Public JSON shape of a listing on the live stream."""
    return {
        "id": record.external_id,
        "title": record.title,
        "employer": record.employer,
        "location": record.location,
        "work_format": record.work_format,
        "salary": record.salary,
        "url": record.url,
        "published_at": format_timestamp(record.published_at),
        "status": record.status.value,
    }


class StreamSubscription:
    """One connected client. Obtain through ``LiveStreamRegistry.subscribe``."""

    def __init__(self, registry: "LiveStreamRegistry", user_id: int, maxsize: int):
        self.registry = registry
        self.user_id = user_id
        self._queue: "queue.Queue[StreamEvent]" = queue.Queue(maxsize=maxsize)
        self.closed = False

    def offer(self, event: StreamEvent) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> Optional[StreamEvent]:
        """Next pending event, or None if nothing arrived within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def events(self, poll_interval: float = 15.0) -> Iterator[str]:
        """Yield SSE frames until the subscription is closed.

        A comment frame is emitted after ``poll_interval`` seconds of silence
        to keep intermediaries from dropping the connection.
        """
        while not self.closed:
            event = self.get(timeout=poll_interval)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            yield event.to_sse()

    def close(self) -> None:
        self.closed = True
        self.registry.unsubscribe(self)


class LiveStreamRegistry:
    """Per-user sets of live subscribers."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: Dict[int, List[StreamSubscription]] = {}

    def subscribe(self, user_id: int) -> StreamSubscription:
        """Register a new subscriber and queue its ``connected`` event."""
        subscription = StreamSubscription(self, user_id, self.queue_size)
        subscription.offer(
            StreamEvent(EVENT_CONNECTED, {"timestamp": format_timestamp(utc_now())})
        )
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(subscription)

        logger.info(
            "Live subscriber connected",
            extra={"event": "stream.subscribed", "user_id": user_id},
        )
        return subscription

    def unsubscribe(self, subscription: StreamSubscription) -> None:
        with self._lock:
            sinks = self._subscribers.get(subscription.user_id)
            if not sinks:
                return
            if subscription in sinks:
                sinks.remove(subscription)
            if not sinks:
                del self._subscribers[subscription.user_id]

    def has_subscribers(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._subscribers.get(user_id))

    def subscriber_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(user_id, ()))

    def publish(self, user_id: int, records: Sequence[ListingRecord]) -> int:
        """Push a ``listings`` event to every subscriber of ``user_id``.

        Returns:
            Number of subscribers that accepted the event
        """
        if not records:
            return 0

        with self._lock:
            sinks = list(self._subscribers.get(user_id, ()))
        if not sinks:
            return 0

        event = StreamEvent(EVENT_LISTINGS, [listing_payload(record) for record in records])
        accepted = 0
        for sink in sinks:
            if sink.offer(event):
                accepted += 1
            else:
                logger.warning(
                    "Dropping live subscriber that is closed or not keeping up",
                    extra={"event": "stream.subscriber_dropped", "user_id": user_id},
                )
                sink.closed = True
                self.unsubscribe(sink)

        return accepted
