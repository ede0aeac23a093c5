"""Risk evaluation module — collateral math plus liquidation and dispute classifiers."""

from collateral_watch.risk.collateral import (
    effective_collateral,
    effective_debt,
    is_disputable,
    is_expired_or_shutdown,
    is_undercollateralized,
    position_debt,
    required_collateral,
    scale_price,
)
from collateral_watch.risk.disputes import (
    HistoricalPriceFn,
    classify_disputable,
    evaluate_liquidation,
)
from collateral_watch.risk.exceptions import (
    EngineError,
    PriceFeedRefreshError,
    PriceUnavailableError,
    SnapshotRefreshError,
    UnsupportedContractConfigurationError,
)
from collateral_watch.risk.liquidations import classify_liquidatable

__all__ = [
    "EngineError",
    "HistoricalPriceFn",
    "PriceFeedRefreshError",
    "PriceUnavailableError",
    "SnapshotRefreshError",
    "UnsupportedContractConfigurationError",
    "classify_disputable",
    "classify_liquidatable",
    "effective_collateral",
    "effective_debt",
    "evaluate_liquidation",
    "is_disputable",
    "is_expired_or_shutdown",
    "is_undercollateralized",
    "position_debt",
    "required_collateral",
    "scale_price",
]
