"""Domain models for the vacancy scanner."""

from .models import (
    EMPLOYER_PLACEHOLDER,
    SALARY_PLACEHOLDER,
    ListingRecord,
    ListingStatus,
    SearchRequest,
    SubscriptionStatus,
    UserSchedule,
)

__all__ = [
    "ListingRecord",
    "ListingStatus",
    "UserSchedule",
    "SearchRequest",
    "SubscriptionStatus",
    "EMPLOYER_PLACEHOLDER",
    "SALARY_PLACEHOLDER",
]
