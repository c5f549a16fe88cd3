"""Repositories for the listing store and the per-user schedule table.

Repositories work inside a caller-supplied session, return domain models and
wrap every SQLAlchemy failure in a PersistenceError subclass.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vacancy_scanner.domain.models import ListingRecord, UserSchedule

from .exceptions import DataIntegrityError, PersistenceError
from .schema import ListingModel, UserScheduleModel, _format_datetime

logger = logging.getLogger(__name__)


class ListingRepository:
    """Repository for stored listings keyed by (external_id, user_id)."""

    def __init__(self, session: Session):
        self.session = session

    def existing_ids(
        self, user_id: int, candidate_ids: Optional[Iterable[str]] = None
    ) -> Set[str]:
        """Return the external ids already stored for ``user_id``.

        Args:
            user_id: Owning user
            candidate_ids: Optional ids to restrict the lookup to

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(ListingModel.external_id).where(ListingModel.user_id == user_id)
            if candidate_ids is not None:
                ids = list(candidate_ids)
                if not ids:
                    return set()
                stmt = stmt.where(ListingModel.external_id.in_(ids))
            return set(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error loading listing ids for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load existing listing ids: {e}") from e

    def insert_many(self, records: List[ListingRecord]) -> None:
        """Insert records in one flush.

        Raises:
            DataIntegrityError: If any (external_id, user_id) pair already exists
            PersistenceError: If database error occurs
        """
        if not records:
            return
        try:
            self.session.add_all([ListingModel.from_domain(record) for record in records])
            self.session.flush()

        except IntegrityError as e:
            logger.error(f"Duplicate listing on insert: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to insert listings due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting listings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert listings: {e}") from e

    def find_by_user(self, user_id: int) -> List[ListingRecord]:
        """All listings stored for a user, newest first."""
        try:
            stmt = (
                select(ListingModel)
                .where(ListingModel.user_id == user_id)
                .order_by(ListingModel.published_at.desc(), ListingModel.external_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listings for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listings: {e}") from e

    def find_undelivered(self, user_id: int) -> List[ListingRecord]:
        """Return the user's backlog, oldest publication first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(ListingModel)
                .where(ListingModel.user_id == user_id, ListingModel.delivered.is_(False))
                .order_by(ListingModel.published_at.asc(), ListingModel.external_id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving backlog for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve undelivered listings: {e}") from e

    def mark_delivered(self, user_id: int, external_ids: Iterable[str]) -> int:
        """Flag the given listings as delivered with a single UPDATE.

        Returns:
            Number of rows that changed

        Raises:
            PersistenceError: If database error occurs
        """
        ids = list(external_ids)
        if not ids:
            return 0
        try:
            stmt = (
                update(ListingModel)
                .where(
                    ListingModel.user_id == user_id,
                    ListingModel.external_id.in_(ids),
                    ListingModel.delivered.is_(False),
                )
                .values(delivered=True)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error marking listings delivered for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark listings delivered: {e}") from e


class ScheduleRepository:
    """Repository for per-user preferences and auto-update due times."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[UserSchedule]:
        """Return the user's schedule, or None if the user has none.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(UserScheduleModel, user_id)
            return model.to_domain() if model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving schedule for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve schedule: {e}") from e

    def save(self, schedule: UserSchedule) -> UserSchedule:
        """Insert or fully overwrite a user's schedule.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(UserScheduleModel, schedule.user_id)
            if existing is not None:
                existing.apply(schedule)
                self.session.flush()
                return existing.to_domain()

            model = UserScheduleModel.from_domain(schedule)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error saving schedule {schedule.user_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save schedule: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving schedule {schedule.user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save schedule: {e}") from e

    def find_due(self, now: datetime, limit: int) -> List[UserSchedule]:
        """Return up to ``limit`` enabled schedules due at or before ``now``.

        A schedule with auto-update enabled but no due time yet counts as
        due and is served first; the rest are ordered by due time ascending.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            now_str = _format_datetime(now)
            stmt = (
                select(UserScheduleModel)
                .where(
                    UserScheduleModel.auto_update_enabled.is_(True),
                    (UserScheduleModel.next_due_at.is_(None))
                    | (UserScheduleModel.next_due_at <= now_str),
                )
                .order_by(
                    UserScheduleModel.next_due_at.is_(None).desc(),
                    UserScheduleModel.next_due_at.asc(),
                    UserScheduleModel.user_id.asc(),
                )
                .limit(limit)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error loading due schedules: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load due schedules: {e}") from e

    def reschedule(self, user_id: int, last_run_at: datetime, next_due_at: datetime) -> bool:
        """Write the run timestamps in one UPDATE guarded on auto-update.

        A schedule disabled between load and write is left untouched, so
        ``next_due_at`` stays null for disabled users.

        Returns:
            True if a row was updated

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(UserScheduleModel)
                .where(
                    UserScheduleModel.user_id == user_id,
                    UserScheduleModel.auto_update_enabled.is_(True),
                )
                .values(
                    last_run_at=_format_datetime(last_run_at),
                    next_due_at=_format_datetime(next_due_at),
                )
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Error rescheduling user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to reschedule user: {e}") from e
