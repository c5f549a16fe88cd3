"""Search orchestration: preferences merge, sub-queries, filtering and persistence."""

from .models import EffectiveSearch, SearchInProgressError
from .orchestrator import SearchOrchestrator, filter_excluded, split_keywords, split_queries

__all__ = [
    "SearchOrchestrator",
    "EffectiveSearch",
    "SearchInProgressError",
    "split_queries",
    "split_keywords",
    "filter_excluded",
]
