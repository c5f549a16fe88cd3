"""Per-user auto-update scheduling: due-user tick, in-flight set, jitter."""

from .inflight import InFlightSet
from .jitter import JITTER_RATIO, compute_next_due
from .service import DispatcherService, DispatchResult

__all__ = [
    "DispatcherService",
    "DispatchResult",
    "InFlightSet",
    "compute_next_due",
    "JITTER_RATIO",
]
