"""Search orchestration shared by scheduled and manual runs."""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from vacancy_scanner.adapters.base import BaseListingSource
from vacancy_scanner.adapters.exceptions import AdapterError
from vacancy_scanner.clients.protocols import SubscriptionChecker
from vacancy_scanner.domain.models import ListingRecord, SearchRequest, UserSchedule
from vacancy_scanner.logging import get_logger
from vacancy_scanner.logging.context import log_context
from vacancy_scanner.notifications.service import NotificationFanout
from vacancy_scanner.persistence.store import ListingStore
from vacancy_scanner.scheduler.inflight import InFlightSet
from vacancy_scanner.utils.timestamps import utc_now

from .models import EffectiveSearch, SearchInProgressError

logger = get_logger(__name__, component="search")


def split_queries(query: Optional[str]) -> List[str]:
    """Split a comma-separated query into trimmed, non-blank sub-queries."""
    if not query:
        return []
    return [part.strip() for part in query.split(",") if part.strip()]


def split_keywords(exclude_keywords: Optional[str]) -> List[str]:
    """Lowercased exclude keywords from a comma-separated string."""
    return [keyword.lower() for keyword in split_queries(exclude_keywords)]


def filter_excluded(
    records: Iterable[ListingRecord], exclude_keywords: Optional[str]
) -> List[ListingRecord]:
    """Drop records whose title contains any exclude keyword (case-insensitive)."""
    keywords = split_keywords(exclude_keywords)
    if not keywords:
        return list(records)
    return [
        record
        for record in records
        if not any(keyword in record.title.lower() for keyword in keywords)
    ]


class SearchOrchestrator:
    """Fetches, filters and stores listings for one user, then notifies.

    Args:
        source: Listing source adapter
        store: Deduplicating listing store
        fanout: Notification fan-out for the user's backlog
        subscriptions: Subscription checker gating notifications
        preference_service: Loads stored preferences for manual searches
        in_flight: Shared in-flight set; when given, manual searches respect it
    """

    def __init__(
        self,
        source: BaseListingSource,
        store: ListingStore,
        fanout: NotificationFanout,
        subscriptions: SubscriptionChecker,
        preference_service=None,
        in_flight: Optional[InFlightSet] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.store = store
        self.fanout = fanout
        self.subscriptions = subscriptions
        self.preference_service = preference_service
        self.in_flight = in_flight
        self._clock = clock or utc_now

    def run(
        self,
        request: SearchRequest,
        preferences: UserSchedule,
        user_id: int,
        token: str,
    ) -> List[ListingRecord]:
        """Run one search cycle and return the newly stored listings.

        A failing sub-query only shrinks the result. Persistence errors
        propagate to the caller.
        """
        search = EffectiveSearch.merge(request, preferences)
        queries = split_queries(search.query)
        now = self._clock()

        logger.info(
            f"Searching for user {user_id} with {len(queries)} sub-queries",
            extra={"event": "search.started", "user_id": user_id, "queries": queries},
        )

        merged: Dict[str, ListingRecord] = {}
        for query in queries:
            with log_context(query=query):
                try:
                    result = self.source.fetch(
                        query,
                        search.days,
                        search.countries,
                        search.work_types,
                        user_id=user_id,
                        now=now,
                    )
                except AdapterError as e:
                    logger.warning(
                        f"Sub-query '{query}' failed: {e}",
                        extra={"event": "search.query.failed", "error_type": type(e).__name__},
                    )
                    continue

                if result.failed:
                    logger.warning(
                        f"Sub-query '{query}' returned partial results: {result.error}",
                        extra={"event": "search.query.partial", "collected": len(result.records)},
                    )
                for record in result.records:
                    merged.setdefault(record.external_id, record)

        filtered = filter_excluded(merged.values(), search.exclude_keywords)
        new_records = self.store.persist_new(user_id, filtered)

        if search.notify:
            self._notify(user_id, token)

        logger.info(
            f"Search for user {user_id} stored {len(new_records)} new listings",
            extra={
                "event": "search.completed",
                "user_id": user_id,
                "fetched": len(merged),
                "after_exclude": len(filtered),
                "new": len(new_records),
            },
        )
        return new_records

    def search_now(self, request: SearchRequest, token: str, user_id: int) -> List[ListingRecord]:
        """Manual search with the user's stored preferences filled in.

        Raises:
            SearchInProgressError: If a scheduled or manual run for the user
                is already queued or running
        """
        if self.preference_service is None:
            raise RuntimeError("search_now requires a preference service")

        if self.in_flight is not None and not self.in_flight.try_add(user_id):
            logger.info(
                f"Manual search for user {user_id} rejected, run already in progress",
                extra={"event": "search.manual.rejected", "user_id": user_id},
            )
            raise SearchInProgressError(user_id)

        try:
            with log_context(user_id=user_id, trigger="manual"):
                preferences = self.preference_service.get_or_create(user_id)
                return self.run(request, preferences, user_id, token)
        finally:
            if self.in_flight is not None:
                self.in_flight.discard(user_id)

    def _notify(self, user_id: int, token: str) -> None:
        status = self.subscriptions.get_subscription_status(token)
        if not status.active:
            logger.info(
                f"Subscription inactive for user {user_id}, notifications skipped",
                extra={"event": "search.notify.skipped", "reason": "inactive_subscription"},
            )
            return
        self.fanout.deliver_unsent(user_id, token)
