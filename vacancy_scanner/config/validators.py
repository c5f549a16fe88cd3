"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect the raw configuration for settings that are valid but risky.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    scheduler = config_dict.get("scheduler") or {}
    if isinstance(scheduler, dict):
        workers = scheduler.get("worker_count", 1)
        batch_size = scheduler.get("batch_size", 200)
        queue_size = scheduler.get("queue_size", 1000)
        if isinstance(workers, int) and workers > 8:
            warning_messages.append(
                f"worker_count={workers} may trigger listing API rate limits"
            )
        if isinstance(batch_size, int) and isinstance(queue_size, int) and queue_size < batch_size:
            warning_messages.append(
                f"queue_size ({queue_size}) is smaller than batch_size ({batch_size}); "
                "due users beyond the queue capacity wait for the next tick"
            )

    source = config_dict.get("source") or {}
    if isinstance(source, dict):
        max_pages = source.get("max_pages", 20)
        if isinstance(max_pages, int) and max_pages > 20:
            warning_messages.append(
                f"max_pages={max_pages}: hh.ru serves at most 2000 results per query"
            )

    notifications = config_dict.get("notifications") or {}
    if isinstance(notifications, dict):
        if notifications.get("bot_enabled") is False:
            warning_messages.append(
                "Bot channel is disabled; listings will be stored but never marked delivered "
                "and live subscribers receive no batches"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages through Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
