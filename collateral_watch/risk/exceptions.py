"""Risk evaluation exceptions."""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for risk evaluation errors."""


class PriceUnavailableError(EngineError):
    """A current or historical price could not be obtained.

    Also raised for timestamps that precede the feed's lookback window.
    """


class SnapshotRefreshError(EngineError):
    """The position snapshot provider failed to refresh."""


class PriceFeedRefreshError(EngineError):
    """The price oracle adapter failed to refresh."""


class UnsupportedContractConfigurationError(EngineError):
    """Contract type, version or parameters are not supported.

    Fatal for that contract only: it is excluded from all later cycles.
    """

    def __init__(self, contract_id: str, reason: str) -> None:
        super().__init__(f"Contract {contract_id} is not supported: {reason}")
        self.contract_id = contract_id
        self.reason = reason
