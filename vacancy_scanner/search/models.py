"""Search parameters after merging a request with stored preferences."""

from dataclasses import dataclass, field
from typing import List, Optional

from vacancy_scanner.domain.models import SearchRequest, UserSchedule


class SearchInProgressError(Exception):
    """A search for this user is already queued or running."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"A search for user {user_id} is already in progress")
        self.user_id = user_id


@dataclass
class EffectiveSearch:
    """Parameters actually used for one orchestrated search."""

    query: str = ""
    days: int = 1
    exclude_keywords: Optional[str] = None
    work_types: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    notify: bool = True

    @classmethod
    def merge(cls, request: SearchRequest, preferences: UserSchedule) -> "EffectiveSearch":
        """Fill every field the request leaves blank from ``preferences``.

        Blank strings and empty lists count as omitted, so a request can only
        narrow or replace a preference, never clear it. ``notify`` can only
        be switched off by a request; ``notify_enabled`` always gates it.
        """
        query = request.query if request.query and request.query.strip() else preferences.search_query
        return cls(
            query=query or "",
            days=request.days if request.days is not None else preferences.days,
            exclude_keywords=request.exclude_keywords or preferences.exclude_keywords,
            work_types=list(request.work_types or preferences.work_types),
            countries=list(request.countries or preferences.countries),
            notify=preferences.notify_enabled and request.notify is not False,
        )
