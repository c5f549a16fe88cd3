"""User preference store backed by the ``user_schedules`` table."""

from .service import EDITABLE_FIELDS, PreferenceService

__all__ = ["PreferenceService", "EDITABLE_FIELDS"]
