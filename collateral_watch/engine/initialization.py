"""Contract initialization — validates settings entries and opens adapter sessions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from collateral_watch.core.config import ContractSettings, SupportedVersion
from collateral_watch.core.types import ClassifierMode, ContractConfig, ContractType
from collateral_watch.feeds.base import (
    ContractSession,
    PriceOracleAdapter,
    SessionFactory,
)
from collateral_watch.feeds.exceptions import PriceFeedConstructionError
from collateral_watch.risk.exceptions import UnsupportedContractConfigurationError

logger = structlog.stdlib.get_logger()

SUPPORTED_CONTRACT_VERSIONS: frozenset[tuple[str, str]] = frozenset({
    (ContractType.EXPIRING_MULTI_PARTY.value, "2.0.1"),
    (ContractType.PERPETUAL.value, "2.0.1"),
})


@dataclass
class InitializationResult:
    """Contracts ready for evaluation and those excluded at startup."""

    ready: list[ContractConfig] = field(default_factory=list)
    excluded: dict[str, str] = field(default_factory=dict)


def supported_versions_from(
    versions: Iterable[SupportedVersion],
) -> frozenset[tuple[str, str]]:
    """Convert settings entries into the (type, version) lookup set."""
    return frozenset((v.contract_type, v.contract_version) for v in versions)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "contract"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def build_contract_config(
    entry: ContractSettings,
    supported: frozenset[tuple[str, str]] = SUPPORTED_CONTRACT_VERSIONS,
) -> ContractConfig:
    """Validate a raw settings entry into a ``ContractConfig``.

    Raises:
        UnsupportedContractConfigurationError: unknown contract type or
            classifier mode, a type/version pair outside ``supported``, or
            parameters that violate the contract invariants.
    """
    contract_id = entry.contract_id
    valid_types = {t.value for t in ContractType}
    if entry.contract_type not in valid_types:
        raise UnsupportedContractConfigurationError(
            contract_id, f"unknown contract type {entry.contract_type!r}",
        )
    if (entry.contract_type, entry.contract_version) not in supported:
        raise UnsupportedContractConfigurationError(
            contract_id,
            f"{entry.contract_type} version {entry.contract_version!r}"
            " is not supported",
        )

    mode = entry.mode.upper()
    if mode not in {m.value for m in ClassifierMode}:
        raise UnsupportedContractConfigurationError(
            contract_id, f"unknown classifier mode {entry.mode!r}",
        )

    try:
        return ContractConfig(
            contract_id=contract_id,
            contract_type=ContractType(entry.contract_type),
            contract_version=entry.contract_version,
            collateral_requirement=entry.collateral_requirement,
            dispute_buffer_ratio=entry.dispute_buffer_ratio,
            dispute_delay=entry.dispute_delay,
            cumulative_funding_rate_multiplier=entry.cumulative_funding_rate_multiplier,
            mode=ClassifierMode(mode),
            lookback=entry.lookback,
            net_pending_withdrawals=entry.net_pending_withdrawals,
        )
    except ValidationError as exc:
        raise UnsupportedContractConfigurationError(
            contract_id, _format_validation_error(exc),
        ) from exc


def initialize_contracts(
    entries: Iterable[ContractSettings],
    supported: frozenset[tuple[str, str]] = SUPPORTED_CONTRACT_VERSIONS,
) -> InitializationResult:
    """Validate every configured contract; bad entries only exclude themselves."""
    result = InitializationResult()
    for entry in entries:
        if entry.contract_id in result.excluded or any(
            c.contract_id == entry.contract_id for c in result.ready
        ):
            logger.warning("contract_duplicate_entry", contract_id=entry.contract_id)
            continue
        try:
            config = build_contract_config(entry, supported)
        except UnsupportedContractConfigurationError as exc:
            result.excluded[entry.contract_id] = exc.reason
            logger.error(
                "contract_configuration_unsupported",
                contract_id=entry.contract_id,
                reason=exc.reason,
            )
            continue
        result.ready.append(config)

    logger.info(
        "contracts_initialized",
        ready=len(result.ready),
        excluded=len(result.excluded),
    )
    return result


def open_price_feed(factory: SessionFactory, config: ContractConfig) -> PriceOracleAdapter:
    """Build a contract's price feed in two explicit steps.

    The feed is first built without a lookback. Historical feeds that need
    one raise ``PriceFeedConstructionError``, in which case construction is
    retried with the contract's configured lookback.

    Raises:
        PriceFeedConstructionError: both attempts failed, or the first
            failed and no lookback is configured.
    """
    try:
        return factory.create_price_feed(config)
    except PriceFeedConstructionError as first_error:
        if config.lookback is None:
            raise PriceFeedConstructionError(
                f"price feed for {config.contract_id} could not be built"
                f" and no lookback is configured: {first_error}"
            ) from first_error
        logger.debug(
            "price_feed_retry_with_lookback",
            contract_id=config.contract_id,
            lookback=config.lookback,
            error=str(first_error),
        )
        try:
            return factory.create_price_feed(config, lookback=config.lookback)
        except PriceFeedConstructionError as second_error:
            raise PriceFeedConstructionError(
                f"price feed for {config.contract_id} could not be built"
                f" without lookback ({first_error}) or with lookback"
                f" {config.lookback} ({second_error})"
            ) from second_error


def open_session(factory: SessionFactory, config: ContractConfig) -> ContractSession:
    """Build fresh adapters for one evaluation cycle."""
    return ContractSession(
        snapshot=factory.create_snapshot_provider(config),
        price_feed=open_price_feed(factory, config),
    )
