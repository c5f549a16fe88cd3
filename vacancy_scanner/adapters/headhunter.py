"""hh.ru (HeadHunter) vacancy search adapter."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from vacancy_scanner.domain.models import SALARY_PLACEHOLDER, ListingRecord
from vacancy_scanner.logging import get_logger
from vacancy_scanner.utils.timestamps import days_ago, ensure_utc, parse_iso_datetime, utc_now

from .base import BaseListingSource, FetchResult
from .exceptions import AdapterError, AdapterResponseError

logger = get_logger(__name__, component="adapter")

STOP_EXHAUSTED = "exhausted"
STOP_CUTOFF = "cutoff"
STOP_MAX_PAGES = "max_pages"
STOP_ERROR = "error"


class HeadHunterAdapter(BaseListingSource):
    """Adapter for the public hh.ru ``/vacancies`` search.

    API Details:
        Endpoint: {base_url}/vacancies
        Method: GET
        Authentication: None (public)
        Response: JSON object with ``items``, ``page``, ``pages``, ``found``

    The API returns newest listings first, so a page with nothing inside the
    lookback window ends the pagination.
    """

    ADAPTER_NAME = "headhunter"

    AREA_CODES = {"russia": 113, "belarus": 16, "kazakhstan": 40}
    WORK_FORMAT_CODES = {"remote": "REMOTE", "hybrid": "HYBRID", "office": "ON_SITE"}
    WORK_FORMAT_LABELS = {"REMOTE": "Remote", "HYBRID": "Hybrid", "ON_SITE": "Office"}

    def __init__(
        self,
        base_url: str = "https://api.hh.ru",
        per_page: int = 100,
        max_pages: int = 20,
        timeout: int = 10,
        user_agent: str = "Mozilla/5.0 (compatible; VacancyBot/1.0)",
    ) -> None:
        super().__init__(timeout=timeout, user_agent=user_agent)
        self.base_url = base_url.rstrip("/")
        self.per_page = per_page
        self.max_pages = max_pages

    def fetch(
        self,
        query: str,
        lookback_days: int,
        location_filters: Optional[Sequence[str]] = None,
        work_types: Optional[Sequence[str]] = None,
        *,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> FetchResult:
        """Page through search results until one of the stop conditions holds.

        Stops when the API reports no further pages or returns no items,
        when ``max_pages`` pages were read, or when a page holds nothing
        published at or after the cutoff. A request failure stops paging
        and keeps the records collected so far.
        """
        reference = ensure_utc(now) if now is not None else utc_now()
        cutoff = days_ago(lookback_days, reference)
        url = f"{self.base_url}/vacancies"
        result = FetchResult()

        for page in range(self.max_pages):
            params = self._build_params(query, lookback_days, page, location_filters, work_types)
            try:
                body = self._make_request(url, params=params)
                if not isinstance(body, dict):
                    raise AdapterResponseError(
                        f"Expected JSON object response, got {type(body).__name__}"
                    )
            except AdapterError as e:
                result.error = str(e)
                result.stopped_reason = STOP_ERROR
                logger.warning(
                    "Listing fetch aborted, keeping partial results",
                    extra={
                        "event": "adapter.fetch.partial",
                        "query": query,
                        "page": page,
                        "collected": len(result.records),
                        "error_type": type(e).__name__,
                    },
                )
                break

            items = body.get("items")
            if not isinstance(items, list) or not items:
                if body.get("found"):
                    logger.warning(
                        f"hh.ru reported {body.get('found')} results but returned no items",
                        extra={"event": "adapter.fetch.empty_page", "page": page},
                    )
                result.stopped_reason = STOP_EXHAUSTED
                break

            result.pages_fetched += 1
            has_fresh = self._collect_page(items, cutoff, reference, user_id, result)

            if not has_fresh:
                result.stopped_reason = STOP_CUTOFF
                break

            pages = body.get("pages")
            if isinstance(pages, int) and page + 1 >= pages:
                result.stopped_reason = STOP_EXHAUSTED
                break
        else:
            result.stopped_reason = STOP_MAX_PAGES

        logger.info(
            f"Fetched {len(result.records)} listings from hh.ru",
            extra={
                "event": "adapter.fetch.completed",
                "adapter": self.ADAPTER_NAME,
                "query": query,
                "count": len(result.records),
                "pages": result.pages_fetched,
                "skipped_stale": result.skipped_stale,
                "malformed": result.malformed,
                "stopped_reason": result.stopped_reason,
            },
        )
        return result

    def _build_params(
        self,
        query: str,
        lookback_days: int,
        page: int,
        location_filters: Optional[Sequence[str]],
        work_types: Optional[Sequence[str]],
    ) -> List[Tuple[str, Any]]:
        params: List[Tuple[str, Any]] = [
            ("text", query),
            ("period", lookback_days),
            ("per_page", self.per_page),
            ("page", page),
            ("only_with_salary", "false"),
            ("search_field", "name"),
        ]
        for country in location_filters or ():
            code = self.AREA_CODES.get(country.strip().lower())
            if code is not None:
                params.append(("area", code))
        for work_type in work_types or ():
            code = self.WORK_FORMAT_CODES.get(work_type.strip().lower())
            if code is not None:
                params.append(("work_format", code))
        return params

    def _collect_page(
        self,
        items: List[Any],
        cutoff: datetime,
        fetched_at: datetime,
        user_id: int,
        result: FetchResult,
    ) -> bool:
        """Map one page into ``result``; return True if any item is fresh."""
        has_fresh = False

        for item in items:
            if not isinstance(item, dict):
                result.malformed += 1
                continue

            published = parse_iso_datetime(item.get("published_at"))
            if published is not None and published < cutoff:
                result.skipped_stale += 1
                continue
            has_fresh = True

            try:
                result.records.append(
                    self._transform_item(item, published or fetched_at, user_id)
                )
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                result.malformed += 1
                logger.warning(
                    "Failed to map hh.ru item",
                    extra={
                        "event": "adapter.item.malformed",
                        "item_id": item.get("id"),
                        "error": str(e),
                    },
                )

        return has_fresh

    def _transform_item(
        self, item: Dict[str, Any], published_at: datetime, user_id: int
    ) -> ListingRecord:
        if item.get("id") is None:
            raise KeyError("id")

        employer = item.get("employer") or {}
        area = item.get("area") or {}

        return ListingRecord(
            external_id=str(item["id"]),
            user_id=user_id,
            title=item["name"],
            employer=employer.get("name"),
            location=area.get("name"),
            work_format=self._work_format_label(item),
            salary=self._format_salary(item.get("salary")),
            published_at=published_at,
            url=item.get("alternate_url"),
        )

    def _work_format_label(self, item: Dict[str, Any]) -> Optional[str]:
        """Human-readable work format, falling back to the legacy ``schedule`` field."""
        labels = []
        for entry in item.get("work_format") or []:
            if not isinstance(entry, dict):
                continue
            code = str(entry.get("id") or "")
            label = self.WORK_FORMAT_LABELS.get(code) or (entry.get("name") or "").strip()
            if label and label not in labels:
                labels.append(label)
        if labels:
            return ", ".join(labels)

        schedule = item.get("schedule")
        if isinstance(schedule, dict):
            schedule_id = str(schedule.get("id") or "").lower()
            schedule_name = str(schedule.get("name") or "").lower()
            if schedule_id == "remote" or "удал" in schedule_name:
                return "Remote"
            return "Office"

        return None

    @staticmethod
    def _format_salary(salary: Optional[Dict[str, Any]]) -> str:
        if not isinstance(salary, dict):
            return SALARY_PLACEHOLDER

        low = salary.get("from")
        high = salary.get("to")
        currency = salary.get("currency") or ""

        if low is not None and high is not None:
            text = f"{low} - {high} {currency}"
        elif low is not None:
            text = f"from {low} {currency}"
        elif high is not None:
            text = f"up to {high} {currency}"
        else:
            return SALARY_PLACEHOLDER
        return text.strip()
