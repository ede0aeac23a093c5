"""Domain types for position risk evaluation — all amounts use Decimal.

Timestamps and durations are integer seconds of chain time.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContractType(StrEnum):
    """Financial contract template."""

    EXPIRING_MULTI_PARTY = "ExpiringMultiParty"
    PERPETUAL = "Perpetual"


class ClassifierMode(StrEnum):
    """Which classifiers a contract's evaluation cycle runs."""

    LIQUIDATION = "LIQUIDATION"
    DISPUTE = "DISPUTE"
    BOTH = "BOTH"

    @property
    def checks_liquidations(self) -> bool:
        return self in (ClassifierMode.LIQUIDATION, ClassifierMode.BOTH)

    @property
    def checks_disputes(self) -> bool:
        return self in (ClassifierMode.DISPUTE, ClassifierMode.BOTH)


class LiquidationState(StrEnum):
    """On-chain liquidation status."""

    UNINITIALIZED = "UNINITIALIZED"
    PRE_DISPUTE = "PRE_DISPUTE"
    PENDING_DISPUTE = "PENDING_DISPUTE"
    DISPUTE_SUCCEEDED = "DISPUTE_SUCCEEDED"
    DISPUTE_FAILED = "DISPUTE_FAILED"


# ── Snapshot Types ───────────────────────────────────────────────


class Position(BaseModel):
    """One sponsor's open debt position."""

    model_config = ConfigDict(frozen=True)

    sponsor: str
    collateral: Decimal = Field(ge=0)
    tokens_outstanding: Decimal = Field(ge=0)
    pending_withdrawal: Decimal | None = None


class Liquidation(BaseModel):
    """A liquidation already submitted against a position."""

    model_config = ConfigDict(frozen=True)

    id: str
    sponsor: str
    liquidation_time: int
    locked_collateral: Decimal = Field(ge=0)
    tokens_liquidated: Decimal = Field(ge=0)
    state: LiquidationState = LiquidationState.PRE_DISPUTE


class ContractConfig(BaseModel):
    """Validated parameters for one financial contract."""

    model_config = ConfigDict(frozen=True)

    contract_id: str
    contract_type: ContractType
    contract_version: str = "2.0.1"
    collateral_requirement: Decimal = Field(gt=1)
    dispute_buffer_ratio: Decimal = Field(default=Decimal("0.02"), ge=0, lt=1)
    dispute_delay: int = Field(default=0, ge=0)
    cumulative_funding_rate_multiplier: Decimal | None = Field(default=None, ge=0)
    mode: ClassifierMode = ClassifierMode.BOTH
    lookback: int | None = Field(default=None, gt=0)
    net_pending_withdrawals: bool = False

    @model_validator(mode="after")
    def _perpetual_needs_multiplier(self) -> ContractConfig:
        if (
            self.contract_type == ContractType.PERPETUAL
            and self.cumulative_funding_rate_multiplier is None
        ):
            raise ValueError(
                "Perpetual contracts require cumulative_funding_rate_multiplier"
            )
        return self


class PriceFeedState(BaseModel):
    """Oracle session state captured right after a refresh."""

    model_config = ConfigDict(frozen=True)

    current_price: Decimal | None = None
    last_update_time: int
    lookback_window: int = Field(ge=0)

    @property
    def earliest_valid_time(self) -> int:
        """Oldest timestamp the feed can still answer for."""
        return self.last_update_time - self.lookback_window

    def covers(self, timestamp: int) -> bool:
        """Whether a historical lookup at ``timestamp`` is in the window."""
        return self.earliest_valid_time <= timestamp <= self.last_update_time


# ── Findings ─────────────────────────────────────────────────────


class LiquidatablePosition(BaseModel):
    """A position under-collateralized at the current price."""

    model_config = ConfigDict(frozen=True)

    contract_id: str
    position: Position
    price_used: Decimal


class DisputableLiquidation(BaseModel):
    """A liquidation that was sufficiently collateralized at its time."""

    model_config = ConfigDict(frozen=True)

    contract_id: str
    historical_price: Decimal
    scaled_price: Decimal
    liquidation: Liquidation


Finding = LiquidatablePosition | DisputableLiquidation


# ── Cycle Results ────────────────────────────────────────────────


class FailureKind(StrEnum):
    """Why a contract's cycle (or part of it) did not complete."""

    SNAPSHOT_REFRESH_FAILED = "SNAPSHOT_REFRESH_FAILED"
    PRICE_FEED_REFRESH_FAILED = "PRICE_FEED_REFRESH_FAILED"
    PRICE_UNAVAILABLE = "PRICE_UNAVAILABLE"
    UNSUPPORTED_CONTRACT = "UNSUPPORTED_CONTRACT"
    UNEXPECTED = "UNEXPECTED"


class CycleFailure(BaseModel):
    """A failure recorded against a single contract."""

    model_config = ConfigDict(frozen=True)

    contract_id: str
    kind: FailureKind
    reason: str = ""


class ContractCycleResult(BaseModel):
    """Outcome of one evaluation cycle for one contract."""

    contract_id: str
    liquidatable: list[LiquidatablePosition] = Field(default_factory=list)
    disputable: list[DisputableLiquidation] = Field(default_factory=list)
    expired: bool = False
    failures: list[CycleFailure] = Field(default_factory=list)

    @property
    def findings(self) -> list[Finding]:
        return [*self.liquidatable, *self.disputable]

    @property
    def ok(self) -> bool:
        return len(self.failures) == 0

    @property
    def unsupported(self) -> bool:
        return any(f.kind == FailureKind.UNSUPPORTED_CONTRACT for f in self.failures)


class FleetReport(BaseModel):
    """Aggregated results of one coordinator invocation."""

    findings: list[Finding] = Field(default_factory=list)
    failures: list[CycleFailure] = Field(default_factory=list)
    evaluated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def liquidatable(self) -> list[LiquidatablePosition]:
        return [f for f in self.findings if isinstance(f, LiquidatablePosition)]

    @property
    def disputable(self) -> list[DisputableLiquidation]:
        return [f for f in self.findings if isinstance(f, DisputableLiquidation)]
