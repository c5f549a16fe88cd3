"""Reading and updating per-user search preferences.

Every write recomputes ``next_due_at``: enabled schedules get a fresh
jittered due time, disabled ones get none.
"""

import random
from datetime import datetime
from typing import Callable, Optional

from vacancy_scanner.config.models import PreferenceDefaults
from vacancy_scanner.domain.models import UserSchedule
from vacancy_scanner.logging import get_logger
from vacancy_scanner.persistence.database import get_session
from vacancy_scanner.persistence.repositories import ScheduleRepository
from vacancy_scanner.scheduler.jitter import compute_next_due
from vacancy_scanner.utils.timestamps import utc_now

logger = get_logger(__name__, component="preferences")

EDITABLE_FIELDS = frozenset(
    {
        "search_query",
        "days",
        "exclude_keywords",
        "countries",
        "work_types",
        "notify_enabled",
        "auto_update_enabled",
        "interval_minutes",
    }
)


class PreferenceService:
    """CRUD for UserSchedule preference fields."""

    def __init__(
        self,
        defaults: Optional[PreferenceDefaults] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.defaults = defaults or PreferenceDefaults()
        self._clock = clock or utc_now
        self._rng = rng

    def get(self, user_id: int) -> Optional[UserSchedule]:
        with get_session() as session:
            return ScheduleRepository(session).get(user_id)

    def get_or_create(self, user_id: int) -> UserSchedule:
        """Return the user's preferences, storing defaults on first access."""
        with get_session() as session:
            repo = ScheduleRepository(session)
            schedule = repo.get(user_id)
            if schedule is not None:
                return schedule

            schedule = repo.save(self._default_schedule(user_id))

        logger.info(
            f"Created default preferences for user {user_id}",
            extra={"event": "preferences.created", "user_id": user_id},
        )
        return schedule

    def update_preferences(self, user_id: int, **fields) -> UserSchedule:
        """Apply a partial update and recompute the due time.

        Fields passed as None are left unchanged.

        Raises:
            ValueError: If a field name is not editable
            pydantic.ValidationError: If a value is invalid
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        changes = {name: value for name, value in fields.items() if value is not None}

        with get_session() as session:
            repo = ScheduleRepository(session)
            current = repo.get(user_id) or self._default_schedule(user_id)
            updated = UserSchedule.model_validate({**current.model_dump(), **changes})

            if updated.auto_update_enabled:
                updated.next_due_at = compute_next_due(
                    self._clock(), updated.interval_minutes, self._rng
                )
            else:
                updated.next_due_at = None

            saved = repo.save(updated)

        logger.info(
            f"Preferences updated for user {user_id}",
            extra={
                "event": "preferences.updated",
                "user_id": user_id,
                "fields": sorted(changes),
                "auto_update_enabled": saved.auto_update_enabled,
                "next_due_at": saved.next_due_at.isoformat() if saved.next_due_at else None,
            },
        )
        return saved

    def set_auto_update(
        self, user_id: int, enabled: bool, interval_minutes: Optional[int] = None
    ) -> UserSchedule:
        """Enable or disable auto-update, optionally changing the interval."""
        return self.update_preferences(
            user_id, auto_update_enabled=enabled, interval_minutes=interval_minutes
        )

    def _default_schedule(self, user_id: int) -> UserSchedule:
        return UserSchedule(
            user_id=user_id,
            days=self.defaults.days,
            interval_minutes=self.defaults.interval_minutes,
            notify_enabled=self.defaults.notify_enabled,
        )
