"""Builders for domain objects used across tests."""

from datetime import datetime, timedelta, timezone

from vacancy_scanner.domain.models import ListingRecord, UserSchedule

NOW = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)


def make_listing(external_id="1", user_id=42, hours_ago=1, **overrides) -> ListingRecord:
    """Build a listing published ``hours_ago`` hours before NOW."""
    data = {
        "external_id": external_id,
        "user_id": user_id,
        "title": f"Python developer {external_id}",
        "employer": "Acme",
        "location": "Moscow",
        "work_format": "Remote",
        "salary": "from 100000 RUR",
        "published_at": NOW - timedelta(hours=hours_ago),
        "url": f"https://hh.ru/vacancy/{external_id}",
    }
    data.update(overrides)
    return ListingRecord(**data)


def make_schedule(user_id=42, **overrides) -> UserSchedule:
    """Build an auto-update schedule that is due at NOW."""
    data = {
        "user_id": user_id,
        "search_query": "python",
        "days": 1,
        "auto_update_enabled": True,
        "interval_minutes": 30,
        "next_due_at": NOW,
    }
    data.update(overrides)
    return UserSchedule(**data)
