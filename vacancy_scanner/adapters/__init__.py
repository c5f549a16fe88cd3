"""Listing source adapters.

Use the factory to build the configured source:
    from vacancy_scanner.adapters import get_source
    source = get_source(app_config.source, app_config.advanced)
    result = source.fetch("python developer", 1, ["russia"], user_id=42)
"""

from .base import BaseListingSource, FetchResult
from .exceptions import (
    AdapterConfigurationError,
    AdapterError,
    AdapterHTTPError,
    AdapterResponseError,
    AdapterTimeoutError,
)
from .factory import get_source
from .headhunter import HeadHunterAdapter

__all__ = [
    "BaseListingSource",
    "FetchResult",
    "get_source",
    "HeadHunterAdapter",
    "AdapterError",
    "AdapterHTTPError",
    "AdapterTimeoutError",
    "AdapterResponseError",
    "AdapterConfigurationError",
]
