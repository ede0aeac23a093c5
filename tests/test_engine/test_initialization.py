"""Tests for contract initialization and two-step price feed construction."""

from __future__ import annotations

from decimal import Decimal

import pytest

from collateral_watch.core.config import ContractSettings, SupportedVersion
from collateral_watch.core.types import ClassifierMode, ContractConfig, ContractType
from collateral_watch.engine.initialization import (
    SUPPORTED_CONTRACT_VERSIONS,
    build_contract_config,
    initialize_contracts,
    open_price_feed,
    open_session,
    supported_versions_from,
)
from collateral_watch.feeds.base import (
    PositionSnapshotProvider,
    PriceOracleAdapter,
    SessionFactory,
)
from collateral_watch.feeds.exceptions import PriceFeedConstructionError
from collateral_watch.feeds.static import (
    ContractRecord,
    PriceFeedRecord,
    StaticPriceFeed,
    StaticSessionFactory,
)
from collateral_watch.risk.exceptions import UnsupportedContractConfigurationError

# ── Helpers ─────────────────────────────────────────────────────


def _entry(**overrides: object) -> ContractSettings:
    defaults: dict[str, object] = {
        "contract_id": "emp-1",
        "contract_type": "ExpiringMultiParty",
        "contract_version": "2.0.1",
        "collateral_requirement": Decimal("1.2"),
    }
    defaults.update(overrides)
    return ContractSettings(**defaults)  # type: ignore[arg-type]


def _config(lookback: int | None = None) -> ContractConfig:
    return ContractConfig(
        contract_id="emp-1",
        contract_type=ContractType.EXPIRING_MULTI_PARTY,
        collateral_requirement=Decimal("1.2"),
        lookback=lookback,
    )


class _AlwaysFailingFactory(SessionFactory):
    def __init__(self) -> None:
        self.attempts: list[int | None] = []

    def create_snapshot_provider(self, config: ContractConfig) -> PositionSnapshotProvider:
        raise AssertionError("not used")

    def create_price_feed(
        self,
        config: ContractConfig,
        lookback: int | None = None,
    ) -> PriceOracleAdapter:
        self.attempts.append(lookback)
        raise PriceFeedConstructionError(f"attempt lookback={lookback}")


# ── build_contract_config ──────────────────────────────────────


class TestBuildContractConfig:
    def test_valid_emp(self) -> None:
        cfg = build_contract_config(_entry())
        assert cfg.contract_type == ContractType.EXPIRING_MULTI_PARTY
        assert cfg.collateral_requirement == Decimal("1.2")
        assert cfg.mode == ClassifierMode.BOTH

    def test_valid_perpetual(self) -> None:
        cfg = build_contract_config(_entry(
            contract_type="Perpetual",
            cumulative_funding_rate_multiplier=Decimal("1.01"),
        ))
        assert cfg.contract_type == ContractType.PERPETUAL

    def test_mode_case_insensitive(self) -> None:
        cfg = build_contract_config(_entry(mode="dispute"))
        assert cfg.mode == ClassifierMode.DISPUTE

    def test_unknown_type(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError) as exc_info:
            build_contract_config(_entry(contract_type="Mystery"))
        assert exc_info.value.contract_id == "emp-1"
        assert "Mystery" in exc_info.value.reason

    def test_unsupported_version(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError):
            build_contract_config(_entry(contract_version="1.2.2"))

    def test_custom_supported_versions(self) -> None:
        supported = frozenset({("ExpiringMultiParty", "1.2.2")})
        cfg = build_contract_config(_entry(contract_version="1.2.2"), supported)
        assert cfg.contract_version == "1.2.2"

    def test_unknown_mode(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError):
            build_contract_config(_entry(mode="SOMETIMES"))

    def test_requirement_not_above_one(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError) as exc_info:
            build_contract_config(_entry(collateral_requirement=Decimal("1")))
        assert "collateral_requirement" in exc_info.value.reason

    def test_buffer_ratio_out_of_range(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError):
            build_contract_config(_entry(dispute_buffer_ratio=Decimal("1.5")))

    def test_negative_delay(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError):
            build_contract_config(_entry(dispute_delay=-5))

    def test_perpetual_without_multiplier(self) -> None:
        with pytest.raises(UnsupportedContractConfigurationError):
            build_contract_config(_entry(contract_type="Perpetual"))


# ── initialize_contracts ───────────────────────────────────────


class TestInitializeContracts:
    def test_bad_entry_only_excludes_itself(self) -> None:
        result = initialize_contracts([
            _entry(contract_id="good-1"),
            _entry(contract_id="bad", contract_version="0.0.1"),
            _entry(contract_id="good-2"),
        ])
        assert [c.contract_id for c in result.ready] == ["good-1", "good-2"]
        assert list(result.excluded) == ["bad"]

    def test_duplicate_entries_ignored(self) -> None:
        result = initialize_contracts([
            _entry(contract_id="emp-1"),
            _entry(contract_id="emp-1", collateral_requirement=Decimal("1.5")),
        ])
        assert len(result.ready) == 1
        assert result.ready[0].collateral_requirement == Decimal("1.2")

    def test_empty(self) -> None:
        result = initialize_contracts([])
        assert result.ready == []
        assert result.excluded == {}

    def test_supported_versions_from_settings(self) -> None:
        supported = supported_versions_from([
            SupportedVersion(contract_type="Perpetual", contract_version="2.0.1"),
        ])
        assert supported == frozenset({("Perpetual", "2.0.1")})

    def test_default_supported_versions(self) -> None:
        assert ("ExpiringMultiParty", "2.0.1") in SUPPORTED_CONTRACT_VERSIONS
        assert ("Perpetual", "2.0.1") in SUPPORTED_CONTRACT_VERSIONS


# ── Price feed construction ────────────────────────────────────


class TestOpenPriceFeed:
    def test_first_attempt_without_lookback(self) -> None:
        factory = StaticSessionFactory({"emp-1": ContractRecord()})
        feed = open_price_feed(factory, _config(lookback=300))
        assert isinstance(feed, StaticPriceFeed)
        # Record lookback is used because no explicit lookback was needed.
        assert feed.get_lookback() == 7200

    def test_retries_with_lookback(self) -> None:
        record = ContractRecord(price_feed=PriceFeedRecord(requires_lookback=True))
        factory = StaticSessionFactory({"emp-1": record})
        feed = open_price_feed(factory, _config(lookback=300))
        assert feed.get_lookback() == 300

    def test_no_lookback_configured(self) -> None:
        record = ContractRecord(price_feed=PriceFeedRecord(requires_lookback=True))
        factory = StaticSessionFactory({"emp-1": record})
        with pytest.raises(PriceFeedConstructionError, match="no lookback"):
            open_price_feed(factory, _config())

    def test_both_attempts_fail(self) -> None:
        factory = _AlwaysFailingFactory()
        with pytest.raises(PriceFeedConstructionError) as exc_info:
            open_price_feed(factory, _config(lookback=300))
        assert factory.attempts == [None, 300]
        message = str(exc_info.value)
        assert "lookback=None" in message
        assert "lookback=300" in message

    def test_open_session(self) -> None:
        factory = StaticSessionFactory({"emp-1": ContractRecord()})
        session = open_session(factory, _config())
        assert session.snapshot is not None
        assert session.price_feed is not None
