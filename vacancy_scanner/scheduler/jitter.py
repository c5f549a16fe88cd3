"""Next-due computation with bounded random jitter."""

import random
from datetime import datetime, timedelta
from typing import Optional

JITTER_RATIO = 0.2
MIN_INTERVAL_MINUTES = 1


def compute_next_due(
    now: datetime, interval_minutes: int, rng: Optional[random.Random] = None
) -> datetime:
    """Return ``now + I + uniform(0, 0.2 * I)`` minutes, with ``I >= 1``.

    Spreading due times keeps users that share an interval from being polled
    in the same tick.

    Example:
        >>> from datetime import timezone
        >>> base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        >>> 30 <= (compute_next_due(base, 30) - base).total_seconds() / 60 <= 36
        True
    """
    interval = max(MIN_INTERVAL_MINUTES, int(interval_minutes or 0))
    source = rng or random
    jitter = source.uniform(0, interval * JITTER_RATIO)
    return now + timedelta(minutes=interval + jitter)
