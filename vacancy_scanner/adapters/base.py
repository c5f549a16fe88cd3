"""Base class and shared HTTP handling for listing source adapters."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests

from vacancy_scanner.domain.models import ListingRecord
from vacancy_scanner.logging import get_logger

from .exceptions import (
    AdapterConfigurationError,
    AdapterHTTPError,
    AdapterResponseError,
    AdapterTimeoutError,
)

logger = get_logger(__name__, component="adapter")

QueryParams = Union[Dict[str, Any], Sequence[Tuple[str, Any]]]


@dataclass
class FetchResult:
    """Outcome of one paginated fetch.

    ``records`` holds every fresh listing collected before paging stopped,
    even when ``error`` is set.
    """

    records: List[ListingRecord] = field(default_factory=list)
    pages_fetched: int = 0
    skipped_stale: int = 0
    malformed: int = 0
    stopped_reason: str = ""
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class BaseListingSource(ABC):
    """Base class for listing sources.

    Subclasses implement ``fetch``; ``_make_request`` turns every transport
    problem into an AdapterError subclass.

    Attributes:
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for HTTP requests
    """

    def __init__(self, timeout: int = 10, user_agent: str = "VacancyBot/1.0") -> None:
        """Initialize the adapter.

        Raises:
            AdapterConfigurationError: If timeout is outside 1-300 seconds or
                user_agent is empty
        """
        if not 1 <= timeout <= 300:
            raise AdapterConfigurationError(
                f"Timeout must be between 1 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise AdapterConfigurationError("user_agent cannot be empty")

        self.timeout = timeout
        self.user_agent = user_agent.strip()

        self._session = requests.Session()
        self._session.headers.update(
            {"User-Agent": self.user_agent, "Accept": "application/json"}
        )

    @abstractmethod
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
        """Fetch listings published within the last ``lookback_days`` days.

        Implementations never raise on request failures; they stop paging and
        report the error on the returned FetchResult.

        Args:
            query: Search text for one sub-query
            lookback_days: Lookback window; older listings are dropped
            location_filters: Country names to restrict the search to
            work_types: Work-type names (remote, hybrid, office)
            user_id: Owner stamped on every produced record
            now: Reference time for the cutoff (defaults to current UTC)
        """

    def close(self) -> None:
        self._session.close()

    def _make_request(
        self,
        url: str,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body.

        Raises:
            AdapterHTTPError: On 4xx/5xx status or connection failure
            AdapterTimeoutError: On request timeout
            AdapterResponseError: On a body that is not JSON
        """
        try:
            logger.debug(
                f"HTTP GET {url}",
                extra={"event": "adapter.fetch.request", "url": url, "timeout": self.timeout},
            )

            response = self._session.get(url, params=params, headers=headers, timeout=self.timeout)

            if response.status_code >= 400:
                is_retryable = response.status_code >= 500 or response.status_code == 429
                logger.log(
                    logging.WARNING if is_retryable else logging.ERROR,
                    f"HTTP {response.status_code} error from {url}",
                    extra={
                        "event": "adapter.fetch.retryable_error" if is_retryable else "adapter.fetch.error",
                        "status_code": response.status_code,
                        "url": url,
                    },
                )
                raise AdapterHTTPError(
                    f"HTTP {response.status_code}: {response.reason}",
                    status_code=response.status_code,
                    url=url,
                )

            try:
                return response.json()
            except ValueError as e:
                logger.error(
                    f"Failed to parse JSON response from {url}",
                    extra={"event": "adapter.fetch.error", "error_type": "JSONDecodeError", "url": url},
                )
                raise AdapterResponseError(f"Failed to parse JSON response from {url}: {e}") from e

        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={"event": "adapter.fetch.retryable_error", "error_type": "Timeout", "url": url},
            )
            raise AdapterTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {e}",
                extra={"event": "adapter.fetch.error", "error_type": type(e).__name__, "url": url},
            )
            raise AdapterHTTPError(f"Request to {url} failed: {e}", status_code=0, url=url) from e
