"""Factory function for instantiating listing source adapters."""

import logging

from vacancy_scanner.config.models import AdvancedConfig, SourceConfig

from .base import BaseListingSource
from .exceptions import AdapterConfigurationError
from .headhunter import HeadHunterAdapter

logger = logging.getLogger(__name__)

ADAPTERS = {
    "headhunter": HeadHunterAdapter,
}


def get_source(source_config: SourceConfig, advanced_config: AdvancedConfig) -> BaseListingSource:
    """Instantiate the adapter for ``source_config.type``.

    Raises:
        AdapterConfigurationError: If the type is unknown or the adapter
            rejects its settings

    Example:
        >>> source = get_source(SourceConfig(), AdvancedConfig())
        >>> result = source.fetch("python", 1, user_id=42)
    """
    source_type = str(getattr(source_config.type, "value", source_config.type)).lower()
    adapter_class = ADAPTERS.get(source_type)

    if adapter_class is None:
        supported = ", ".join(sorted(ADAPTERS))
        raise AdapterConfigurationError(
            f"Unknown source type: {source_config.type}. Supported types: {supported}"
        )

    logger.debug(
        "Creating listing source",
        extra={"source_type": source_type, "adapter_class": adapter_class.__name__},
    )

    try:
        return adapter_class(
            base_url=source_config.base_url,
            per_page=source_config.per_page,
            max_pages=source_config.max_pages,
            timeout=advanced_config.http_request_timeout,
            user_agent=advanced_config.user_agent,
        )
    except AdapterConfigurationError:
        raise
    except Exception as e:
        raise AdapterConfigurationError(f"Failed to create {source_type} adapter: {e}") from e
