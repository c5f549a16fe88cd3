"""ORM models for the ``listings`` and ``user_schedules`` tables.

Timestamps are stored as fixed-width ISO 8601 UTC strings so that string
comparison in SQL matches chronological order. Filter lists (countries,
work types) are stored comma-separated.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from vacancy_scanner.domain.models import ListingRecord, ListingStatus, UserSchedule

logger = logging.getLogger(__name__)

Base = declarative_base()

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class ListingModel(Base):
    """One listing as stored for one user."""

    __tablename__ = "listings"

    external_id = Column(String(64), primary_key=True, nullable=False)
    user_id = Column(BigInteger, primary_key=True, nullable=False, autoincrement=False)

    title = Column(Text, nullable=False)
    employer = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    work_format = Column(String(64), nullable=True)
    salary = Column(String(255), nullable=False)
    url = Column(Text, nullable=True)

    published_at = Column(String(50), nullable=False)
    loaded_at = Column(String(50), nullable=False)

    status = Column(String(16), nullable=False, default=ListingStatus.NEW.value)
    delivered = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_listings_backlog", "user_id", "delivered", "published_at"),
    )

    def to_domain(self) -> ListingRecord:
        return ListingRecord(
            external_id=self.external_id,
            user_id=self.user_id,
            title=self.title,
            employer=self.employer,
            location=self.location,
            work_format=self.work_format,
            salary=self.salary,
            published_at=_parse_datetime(self.published_at),
            url=self.url,
            loaded_at=_parse_datetime(self.loaded_at),
            status=ListingStatus(self.status),
            delivered=bool(self.delivered),
        )

    @classmethod
    def from_domain(cls, record: ListingRecord) -> "ListingModel":
        status = record.status
        return cls(
            external_id=record.external_id,
            user_id=record.user_id,
            title=record.title,
            employer=record.employer,
            location=record.location,
            work_format=record.work_format,
            salary=record.salary,
            published_at=_format_datetime(record.published_at),
            url=record.url,
            loaded_at=_format_datetime(record.loaded_at),
            status=status.value if isinstance(status, ListingStatus) else str(status),
            delivered=record.delivered,
        )


class UserScheduleModel(Base):
    """Search preferences and the auto-update due time of one user."""

    __tablename__ = "user_schedules"

    user_id = Column(BigInteger, primary_key=True, nullable=False, autoincrement=False)

    search_query = Column(Text, nullable=True)
    days = Column(Integer, nullable=False, default=1)
    exclude_keywords = Column(Text, nullable=True)
    countries = Column(Text, nullable=True)
    work_types = Column(Text, nullable=True)

    notify_enabled = Column(Boolean, nullable=False, default=True)
    auto_update_enabled = Column(Boolean, nullable=False, default=False)
    interval_minutes = Column(Integer, nullable=False, default=30)

    last_run_at = Column(String(50), nullable=True)
    next_due_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_user_schedules_due", "auto_update_enabled", "next_due_at"),
    )

    def to_domain(self) -> UserSchedule:
        return UserSchedule(
            user_id=self.user_id,
            search_query=self.search_query,
            days=self.days,
            exclude_keywords=self.exclude_keywords,
            countries=_split_list(self.countries),
            work_types=_split_list(self.work_types),
            notify_enabled=bool(self.notify_enabled),
            auto_update_enabled=bool(self.auto_update_enabled),
            interval_minutes=self.interval_minutes,
            last_run_at=_parse_datetime(self.last_run_at),
            next_due_at=_parse_datetime(self.next_due_at),
        )

    def apply(self, schedule: UserSchedule) -> None:
        """Copy every field of ``schedule`` onto this row."""
        self.search_query = schedule.search_query
        self.days = schedule.days
        self.exclude_keywords = schedule.exclude_keywords
        self.countries = _join_list(schedule.countries)
        self.work_types = _join_list(schedule.work_types)
        self.notify_enabled = schedule.notify_enabled
        self.auto_update_enabled = schedule.auto_update_enabled
        self.interval_minutes = schedule.interval_minutes
        self.last_run_at = _format_datetime(schedule.last_run_at)
        self.next_due_at = _format_datetime(schedule.next_due_at)

    @classmethod
    def from_domain(cls, schedule: UserSchedule) -> "UserScheduleModel":
        model = cls(user_id=schedule.user_id)
        model.apply(schedule)
        return model


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item for item in value.split(",") if item]


def _join_list(values: Optional[List[str]]) -> Optional[str]:
    if not values:
        return None
    return ",".join(values)


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as a sortable ISO 8601 UTC string."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(TIMESTAMP_FORMAT)


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back to an aware UTC datetime."""
    if not dt_str:
        return None
    raw = dt_str.rstrip("Z")
    try:
        dt = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S")
    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create missing tables and indexes (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(
            f"Database schema ready. Tables: {', '.join(tables)}",
            extra={"event": "database.schema.ready"},
        )
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
