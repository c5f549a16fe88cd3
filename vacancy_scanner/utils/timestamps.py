"""Timestamp utilities for UTC handling and datetime parsing.

This module provides utilities for working with timestamps in UTC:
- Getting current UTC time and lookback cutoffs
- Parsing ISO 8601 datetime strings as returned by listing sources
- Converting timezone-naive to timezone-aware UTC
- Formatting timestamps for logs and display
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

# hh.ru sends offsets without a colon ("+0300"), which older
# datetime.fromisoformat() releases reject.
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the cutoff instant ``days`` days before ``now`` (UTC)."""
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference - timedelta(days=days)


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to UTC datetime.

    Supports the formats listing sources actually emit:
    - 2025-11-04T12:00:00Z
    - 2025-11-04T12:00:00+03:00
    - 2025-11-04T12:00:00+0300
    - 2025-11-04T12:00:00 (treated as UTC)
    - 2025-11-04

    Args:
        iso_string: ISO 8601 formatted datetime string

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails

    Example:
        >>> dt = parse_iso_datetime("2025-11-04T12:00:00+0300")
        >>> dt.hour
        9
    """
    if not iso_string or not isinstance(iso_string, str) or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    elif "T" in cleaned:
        cleaned = _COMPACT_OFFSET.sub(r"\1:\2", cleaned)

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        try:
            return ensure_utc(datetime.strptime(cleaned, "%Y-%m-%d"))
        except ValueError:
            return None


def format_timestamp(dt: datetime, include_microseconds: bool = False) -> str:
    """Format a datetime as ISO 8601 string in UTC.

    Args:
        dt: Datetime to format
        include_microseconds: Whether to include microseconds in output

    Returns:
        ISO 8601 formatted string with 'Z' suffix

    Example:
        >>> from datetime import datetime, timezone
        >>> dt = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)
        >>> format_timestamp(dt)
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""

    if include_microseconds:
        return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_timestamp_for_log(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for structured logging (None passes through)."""
    if dt is None:
        return None
    return format_timestamp(dt, include_microseconds=False)
