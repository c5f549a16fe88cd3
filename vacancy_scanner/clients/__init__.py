"""Clients for, and interfaces of, the external services the scanner uses."""

from .auth import AuthServiceClient
from .exceptions import AuthServiceError
from .protocols import BotChannel, CredentialProvider, LiveStream, SubscriptionChecker

__all__ = [
    "AuthServiceClient",
    "AuthServiceError",
    "BotChannel",
    "CredentialProvider",
    "LiveStream",
    "SubscriptionChecker",
]
