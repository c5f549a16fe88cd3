"""Persistence layer exceptions.

Every database failure surfaces as a PersistenceError subclass, so a worker
can treat "the store or schedule table is unavailable" as one condition.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be opened or is not initialized."""

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations, e.g. a duplicate (listing, user) pair."""

    pass
