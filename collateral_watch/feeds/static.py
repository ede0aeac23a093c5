"""In-memory adapters backed by recorded contract state.

Used by the replay runner and the test suite in place of live chain and
price-API adapters. Every adapter serves its recorded data only after
``update()`` has been called, matching how live adapters behave.
"""

from __future__ import annotations

import bisect
from decimal import Decimal

import structlog
from pydantic import BaseModel, Field

from collateral_watch.core.types import ContractConfig, Liquidation, Position
from collateral_watch.feeds.base import (
    PositionSnapshotProvider,
    PriceOracleAdapter,
    SessionFactory,
)
from collateral_watch.feeds.exceptions import (
    FeedConnectionError,
    PriceFeedConstructionError,
)
from collateral_watch.risk.collateral import is_expired_or_shutdown
from collateral_watch.risk.exceptions import PriceUnavailableError

logger = structlog.stdlib.get_logger()


class PricePoint(BaseModel):
    """A single recorded price observation."""

    timestamp: int
    price: Decimal


class PriceFeedRecord(BaseModel):
    """Recorded oracle state for one contract."""

    current_price: Decimal | None = None
    last_update_time: int = 0
    lookback: int = 7200
    history: list[PricePoint] = Field(default_factory=list)
    requires_lookback: bool = False
    fail_update: bool = False


class SnapshotRecord(BaseModel):
    """Recorded on-chain state for one contract."""

    positions: list[Position] = Field(default_factory=list)
    liquidations: list[Liquidation] = Field(default_factory=list)
    expiration_or_shutdown_time: int = 0
    contract_time: int = 0
    fail_update: bool = False


class ContractRecord(BaseModel):
    """Everything the adapters need to replay one contract."""

    snapshot: SnapshotRecord = SnapshotRecord()
    price_feed: PriceFeedRecord = PriceFeedRecord()


class StaticPriceFeed(PriceOracleAdapter):
    """Price feed serving a fixed price history."""

    def __init__(self, record: PriceFeedRecord, lookback: int | None = None) -> None:
        self._record = record
        self._lookback = lookback if lookback is not None else record.lookback
        points = sorted(record.history, key=lambda p: p.timestamp)
        self._timestamps = [p.timestamp for p in points]
        self._prices = [p.price for p in points]
        self._updated = False
        self._update_count = 0

    @property
    def update_count(self) -> int:
        return self._update_count

    async def update(self) -> None:
        self._update_count += 1
        if self._record.fail_update:
            raise FeedConnectionError("price feed update failed")
        self._updated = True

    def get_current_price(self) -> Decimal | None:
        if not self._updated:
            return None
        return self._record.current_price

    async def get_historical_price(self, timestamp: int) -> Decimal | None:
        last_update = self.get_last_update_time()
        if timestamp < last_update - self._lookback or timestamp > last_update:
            raise PriceUnavailableError(
                f"timestamp {timestamp} outside lookback window"
                f" [{last_update - self._lookback}, {last_update}]"
            )
        idx = bisect.bisect_right(self._timestamps, timestamp)
        if idx == 0:
            raise PriceUnavailableError(f"no price recorded at or before {timestamp}")
        return self._prices[idx - 1]

    def get_lookback(self) -> int:
        return self._lookback

    def get_last_update_time(self) -> int:
        if not self._updated:
            return 0
        return self._record.last_update_time


class StaticSnapshotProvider(PositionSnapshotProvider):
    """Snapshot provider serving fixed positions and liquidations."""

    def __init__(self, record: SnapshotRecord) -> None:
        self._record = record
        self._positions: list[Position] = []
        self._liquidations: list[Liquidation] = []
        self._update_count = 0

    @property
    def update_count(self) -> int:
        return self._update_count

    async def update(self) -> None:
        self._update_count += 1
        if self._record.fail_update:
            raise FeedConnectionError("snapshot update failed")
        self._positions = list(self._record.positions)
        self._liquidations = list(self._record.liquidations)

    def get_positions(self) -> list[Position]:
        return list(self._positions)

    def get_undisputed_liquidations(self) -> list[Liquidation]:
        return list(self._liquidations)

    async def is_expired_or_shutdown(self) -> bool:
        return is_expired_or_shutdown(
            self._record.expiration_or_shutdown_time,
            self._record.contract_time,
        )


class StaticSessionFactory(SessionFactory):
    """Builds static adapters from per-contract records.

    Usage::

        factory = StaticSessionFactory({"emp-1": ContractRecord(...)})
        coordinator = FleetCoordinator(contracts, factory)
    """

    def __init__(self, records: dict[str, ContractRecord] | None = None) -> None:
        self._records: dict[str, ContractRecord] = dict(records or {})

    @property
    def records(self) -> dict[str, ContractRecord]:
        """Read-only copy of the recorded state."""
        return dict(self._records)

    def set_record(self, contract_id: str, record: ContractRecord) -> None:
        """Replace the recorded state served for ``contract_id``."""
        self._records[contract_id] = record

    def _record(self, contract_id: str) -> ContractRecord:
        record = self._records.get(contract_id)
        if record is None:
            raise FeedConnectionError(f"no recorded state for contract {contract_id}")
        return record

    def create_snapshot_provider(self, config: ContractConfig) -> PositionSnapshotProvider:
        return StaticSnapshotProvider(self._record(config.contract_id).snapshot)

    def create_price_feed(
        self,
        config: ContractConfig,
        lookback: int | None = None,
    ) -> PriceOracleAdapter:
        record = self._record(config.contract_id).price_feed
        if record.requires_lookback and lookback is None:
            raise PriceFeedConstructionError(
                f"price feed for {config.contract_id} requires a lookback"
            )
        logger.debug(
            "static_price_feed_created",
            contract_id=config.contract_id,
            lookback=lookback,
        )
        return StaticPriceFeed(record, lookback=lookback)
