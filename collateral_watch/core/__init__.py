"""Core module — config, types, logging."""

from collateral_watch.core.config import (
    ContractSettings,
    EngineConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from collateral_watch.core.logging import contract_context, setup_logging
from collateral_watch.core.types import (
    ClassifierMode,
    ContractConfig,
    ContractCycleResult,
    ContractType,
    CycleFailure,
    DisputableLiquidation,
    FailureKind,
    Finding,
    FleetReport,
    LiquidatablePosition,
    Liquidation,
    LiquidationState,
    Position,
    PriceFeedState,
)

__all__ = [
    "ClassifierMode",
    "ContractConfig",
    "ContractCycleResult",
    "ContractSettings",
    "ContractType",
    "CycleFailure",
    "DisputableLiquidation",
    "EngineConfig",
    "FailureKind",
    "Finding",
    "FleetReport",
    "LiquidatablePosition",
    "Liquidation",
    "LiquidationState",
    "Position",
    "PriceFeedState",
    "Settings",
    "contract_context",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
