"""Evaluation engine — contract initialization, per-contract cycles, fleet coordination."""

from collateral_watch.engine.cycle import ContractEvaluator
from collateral_watch.engine.fleet import FindingCallback, FleetCoordinator
from collateral_watch.engine.initialization import (
    SUPPORTED_CONTRACT_VERSIONS,
    InitializationResult,
    build_contract_config,
    initialize_contracts,
    open_price_feed,
    open_session,
    supported_versions_from,
)

__all__ = [
    "SUPPORTED_CONTRACT_VERSIONS",
    "ContractEvaluator",
    "FindingCallback",
    "FleetCoordinator",
    "InitializationResult",
    "build_contract_config",
    "initialize_contracts",
    "open_price_feed",
    "open_session",
    "supported_versions_from",
]
