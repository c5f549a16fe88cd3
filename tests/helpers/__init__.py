"""Test helper utilities for vacancy scanner tests."""

from .builders import NOW, make_listing, make_schedule
from .fakes import FakeBotChannel, FakeListingSource, FakeSubscriptions

__all__ = [
    "NOW",
    "make_listing",
    "make_schedule",
    "FakeBotChannel",
    "FakeListingSource",
    "FakeSubscriptions",
]
