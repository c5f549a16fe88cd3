"""Interfaces of the services this scanner depends on.

Any object with matching methods satisfies these protocols; tests pass
``unittest.mock.Mock`` instances or small fakes.
"""

from typing import Optional, Protocol, Sequence

from vacancy_scanner.domain.models import ListingRecord, SubscriptionStatus


class CredentialProvider(Protocol):
    def get_access_token(self, user_id: int) -> Optional[str]:
        """Return a fresh access token for the user, or None if unavailable."""
        ...


class SubscriptionChecker(Protocol):
    def get_subscription_status(self, token: str) -> SubscriptionStatus:
        """Return the subscription state of the token's user."""
        ...


class BotChannel(Protocol):
    def send_message(self, user_id: int, text: str, token: str) -> bool:
        """Send a text to the user's chat; True on success."""
        ...


class LiveStream(Protocol):
    def publish(self, user_id: int, records: Sequence[ListingRecord]) -> int:
        """Push listings to the user's live subscribers."""
        ...

    def has_subscribers(self, user_id: int) -> bool:
        ...

    def subscribe(self, user_id: int):
        """Register a subscriber and return its event sink."""
        ...
