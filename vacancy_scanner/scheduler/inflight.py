"""Process-local set of users that are queued or being processed."""

import threading
from typing import Hashable, Set


class InFlightSet:
    """Thread-safe set with an atomic check-and-add.

    Membership means "a run for this user is pending or active"; the
    dispatcher refuses to enqueue a user that is already a member.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._members: Set[Hashable] = set()

    def try_add(self, user_id: Hashable) -> bool:
        """Add ``user_id`` unless present. Returns True if it was added."""
        with self._lock:
            if user_id in self._members:
                return False
            self._members.add(user_id)
            return True

    def discard(self, user_id: Hashable) -> None:
        with self._lock:
            self._members.discard(user_id)

    def __contains__(self, user_id: Hashable) -> bool:
        with self._lock:
            return user_id in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def snapshot(self) -> Set[Hashable]:
        with self._lock:
            return set(self._members)
