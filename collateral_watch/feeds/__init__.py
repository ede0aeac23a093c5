"""Collaborator adapters — price oracle and position snapshot interfaces."""

from collateral_watch.feeds.base import (
    ContractSession,
    PositionSnapshotProvider,
    PriceOracleAdapter,
    SessionFactory,
)
from collateral_watch.feeds.exceptions import (
    FeedConnectionError,
    FeedError,
    PriceFeedConstructionError,
)
from collateral_watch.feeds.static import (
    ContractRecord,
    PriceFeedRecord,
    PricePoint,
    SnapshotRecord,
    StaticPriceFeed,
    StaticSessionFactory,
    StaticSnapshotProvider,
)

__all__ = [
    "ContractRecord",
    "ContractSession",
    "FeedConnectionError",
    "FeedError",
    "PositionSnapshotProvider",
    "PriceFeedConstructionError",
    "PriceFeedRecord",
    "PricePoint",
    "PriceOracleAdapter",
    "SessionFactory",
    "SnapshotRecord",
    "StaticPriceFeed",
    "StaticSessionFactory",
    "StaticSnapshotProvider",
]
