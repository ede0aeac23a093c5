"""Abstract collaborator interfaces — price oracle, position snapshot, session factory.

The engine never talks to a chain or a price API directly. Concrete adapters
implement these interfaces; ``update()`` is the only place they perform I/O,
and the getters read whatever the last successful refresh cached.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from decimal import Decimal

from collateral_watch.core.types import ContractConfig, Liquidation, Position


class PriceOracleAdapter(abc.ABC):
    """Price feed for one contract's price identifier."""

    @abc.abstractmethod
    async def update(self) -> None:
        """Refresh cached prices from the data source."""

    @abc.abstractmethod
    def get_current_price(self) -> Decimal | None:
        """Latest price, or None when the feed has none yet."""

    @abc.abstractmethod
    async def get_historical_price(self, timestamp: int) -> Decimal | None:
        """Price at ``timestamp``.

        Raises:
            PriceUnavailableError: the timestamp is outside the lookback
                window or no price was recorded for it.
        """

    @abc.abstractmethod
    def get_lookback(self) -> int:
        """Seconds of history the feed retains."""

    @abc.abstractmethod
    def get_last_update_time(self) -> int:
        """Chain timestamp of the last successful update."""


class PositionSnapshotProvider(abc.ABC):
    """Open positions and undisputed liquidations of one financial contract."""

    @abc.abstractmethod
    async def update(self) -> None:
        """Refresh the cached snapshot."""

    @abc.abstractmethod
    def get_positions(self) -> list[Position]:
        """Open sponsor positions."""

    @abc.abstractmethod
    def get_undisputed_liquidations(self) -> list[Liquidation]:
        """Liquidations still open to dispute."""

    @abc.abstractmethod
    async def is_expired_or_shutdown(self) -> bool:
        """Whether the contract has expired or been emergency shut down."""


@dataclass(frozen=True)
class ContractSession:
    """Adapters owned by a single evaluation cycle."""

    snapshot: PositionSnapshotProvider
    price_feed: PriceOracleAdapter


class SessionFactory(abc.ABC):
    """Builds fresh adapters for a contract at the start of every cycle."""

    @abc.abstractmethod
    def create_snapshot_provider(self, config: ContractConfig) -> PositionSnapshotProvider:
        """Build the snapshot provider for ``config``."""

    @abc.abstractmethod
    def create_price_feed(
        self,
        config: ContractConfig,
        lookback: int | None = None,
    ) -> PriceOracleAdapter:
        """Build the price feed for ``config``.

        Raises:
            PriceFeedConstructionError: the feed cannot be built with the
                given lookback (for instance, a historical feed that needs
                an explicit lookback value).
        """
