"""Core domain models for listings, user schedules and search requests.

This module defines the data structures used throughout the application:
- ListingRecord: one external vacancy as seen by one user
- UserSchedule: a user's search preferences and auto-update schedule
- SearchRequest: ad-hoc search parameters (every field optional)
- SubscriptionStatus: subscription state reported by the auth service
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMPLOYER_PLACEHOLDER = "Unknown employer"
SALARY_PLACEHOLDER = "Not specified"


def _to_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def _normalize_filter_list(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    if isinstance(v, str):
        v = v.split(",")
    seen = []
    for item in v:
        value = str(item).strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


class ListingStatus(str, Enum):
    """Lifecycle status of a stored listing."""

    NEW = "NEW"
    VIEWED = "VIEWED"
    APPLIED = "APPLIED"
    IGNORED = "IGNORED"


class ListingRecord(BaseModel):
    """One external job listing as seen by one user.

    The pair (external_id, user_id) is unique: the same listing is stored
    once per user no matter how often it is fetched again. ``loaded_at``,
    ``status`` and ``delivered`` are stamped by the store at insert time.
    """

    external_id: str = Field(..., description="Listing id at the source")
    user_id: int = Field(..., description="Owning user (Telegram id)")
    title: str = Field(..., description="Vacancy title")
    employer: str = Field(EMPLOYER_PLACEHOLDER, description="Employer name")
    location: Optional[str] = Field(None, description="City or area name")
    work_format: Optional[str] = Field(None, description="Remote / Hybrid / Office label")
    salary: str = Field(SALARY_PLACEHOLDER, description="Free-form salary text")
    published_at: datetime = Field(..., description="Publication time at the source (UTC)")
    url: Optional[str] = Field(None, description="Link to the listing")
    loaded_at: Optional[datetime] = Field(None, description="When this user first stored it (UTC)")
    status: ListingStatus = Field(ListingStatus.NEW, description="Lifecycle status")
    delivered: bool = Field(False, description="Sent through the bot channel")

    @field_validator("external_id", "title")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Reject empty identifiers and titles."""
        if v is None or not str(v).strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return str(v).strip()

    @field_validator("employer", "salary", mode="before")
    @classmethod
    def default_placeholders(cls, v, info):
        """Fall back to the human-readable placeholder when a value is blank."""
        if v is None or not str(v).strip():
            return EMPLOYER_PLACEHOLDER if info.field_name == "employer" else SALARY_PLACEHOLDER
        return str(v).strip()

    @field_validator("published_at", "loaded_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class UserSchedule(BaseModel):
    """Search preferences and auto-update schedule of one user.

    ``next_due_at`` is None exactly when auto-update is disabled; the
    preference service and the dispatcher keep that invariant on every write.
    """

    user_id: int
    search_query: Optional[str] = None
    days: int = Field(1, ge=1)
    exclude_keywords: Optional[str] = None
    countries: List[str] = Field(default_factory=list)
    work_types: List[str] = Field(default_factory=list)
    notify_enabled: bool = True
    auto_update_enabled: bool = False
    interval_minutes: int = Field(30, ge=1)
    last_run_at: Optional[datetime] = None
    next_due_at: Optional[datetime] = None

    @field_validator("countries", "work_types", mode="before")
    @classmethod
    def normalize_filters(cls, v):
        """Accept lists or comma-separated strings; lowercase and dedupe."""
        return _normalize_filter_list(v) or []

    @field_validator("last_run_at", "next_due_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class SearchRequest(BaseModel):
    """Ad-hoc search parameters; omitted fields come from the user's preferences."""

    query: Optional[str] = None
    days: Optional[int] = Field(None, ge=1)
    exclude_keywords: Optional[str] = None
    work_types: Optional[List[str]] = None
    countries: Optional[List[str]] = None
    notify: Optional[bool] = None

    @field_validator("countries", "work_types", mode="before")
    @classmethod
    def normalize_filters(cls, v):
        """Accept lists or comma-separated strings; lowercase and dedupe."""
        return _normalize_filter_list(v)


class SubscriptionStatus(BaseModel):
    """Subscription state as reported by the auth service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    active: bool = False
    expires_at: Optional[date] = Field(None, alias="subscriptionEndDate")
    days_remaining: Optional[int] = Field(None, alias="daysRemaining")

    @field_validator("active", mode="before")
    @classmethod
    def null_is_inactive(cls, v):
        """A missing ``active`` flag means inactive."""
        return bool(v) if v is not None else False
