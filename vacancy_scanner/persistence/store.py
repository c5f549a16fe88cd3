"""Deduplicating listing store.

``ListingStore.persist_new`` is the one place the (external_id, user_id)
uniqueness rule is enforced. Callers must not run it concurrently for the
same user; the dispatcher's in-flight set provides that.
"""

from datetime import datetime
from typing import Callable, Iterable, List, Optional

from vacancy_scanner.domain.models import ListingRecord, ListingStatus
from vacancy_scanner.logging import get_logger
from vacancy_scanner.utils.timestamps import utc_now

from .database import get_session
from .repositories import ListingRepository

logger = get_logger(__name__, component="store")


class ListingStore:
    """Persists only listings a user has not seen before."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

    def persist_new(self, user_id: int, candidates: Iterable[ListingRecord]) -> List[ListingRecord]:
        """Insert the candidates the user does not have yet.

        Survivors are stamped with ``loaded_at``, status NEW and
        ``delivered=False`` and inserted in one batch. A candidate id that
        repeats within ``candidates`` is inserted once.

        Args:
            user_id: Owning user
            candidates: Fetched listings (their own user_id is overridden)

        Returns:
            Exactly the inserted records

        Raises:
            PersistenceError: If the lookup or insert fails
        """
        candidates = list(candidates)
        if not candidates:
            return []

        loaded_at = self._clock()

        with get_session() as session:
            repo = ListingRepository(session)
            seen = repo.existing_ids(user_id)

            fresh: List[ListingRecord] = []
            for candidate in candidates:
                if candidate.external_id in seen:
                    continue
                seen.add(candidate.external_id)
                fresh.append(
                    candidate.model_copy(
                        update={
                            "user_id": user_id,
                            "loaded_at": loaded_at,
                            "status": ListingStatus.NEW,
                            "delivered": False,
                        }
                    )
                )

            repo.insert_many(fresh)

        logger.info(
            f"Stored {len(fresh)} new listings of {len(candidates)} candidates",
            extra={
                "event": "store.persisted",
                "user_id": user_id,
                "candidates": len(candidates),
                "inserted": len(fresh),
            },
        )
        return fresh

    def listings_for(self, user_id: int) -> List[ListingRecord]:
        """Every stored listing of a user, newest first."""
        with get_session() as session:
            return ListingRepository(session).find_by_user(user_id)
