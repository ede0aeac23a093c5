"""Exception hierarchy for price feed and snapshot adapters."""

from __future__ import annotations


class FeedError(Exception):
    """Base exception for all adapter errors."""


class FeedConnectionError(FeedError):
    """Failed to reach the data source during a refresh."""


class PriceFeedConstructionError(FeedError):
    """A price feed adapter could not be built from its configuration."""
