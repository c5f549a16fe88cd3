"""Persistence layer: SQLAlchemy engine, repositories and the listing store.

Example usage:
    >>> from vacancy_scanner.persistence import init_database, get_session, ScheduleRepository
    >>> init_database("sqlite:///./data/vacancy_scanner.db")
    >>> with get_session() as session:
    ...     schedule = ScheduleRepository(session).get(42)
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
)
from .repositories import ListingRepository, ScheduleRepository
from .store import ListingStore

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "ListingRepository",
    "ScheduleRepository",
    "ListingStore",
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
]
