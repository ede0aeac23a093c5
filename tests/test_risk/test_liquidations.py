"""Tests for the liquidation eligibility classifier."""

from __future__ import annotations

from decimal import Decimal

from collateral_watch.core.types import ContractConfig, ContractType, Position
from collateral_watch.risk.liquidations import classify_liquidatable


def _cfg(**overrides: object) -> ContractConfig:
    defaults: dict[str, object] = {
        "contract_id": "emp-1",
        "contract_type": ContractType.EXPIRING_MULTI_PARTY,
        "collateral_requirement": Decimal("1.2"),
    }
    defaults.update(overrides)
    return ContractConfig(**defaults)  # type: ignore[arg-type]


def _position(sponsor: str, collateral: str, tokens: str = "100") -> Position:
    return Position(
        sponsor=sponsor,
        collateral=Decimal(collateral),
        tokens_outstanding=Decimal(tokens),
    )


class TestClassifyLiquidatable:
    def test_flags_under_collateralized(self) -> None:
        positions = [_position("0x1", "125"), _position("0x2", "175")]
        found = classify_liquidatable(positions, Decimal("1.3"), _cfg(), False)
        assert [f.position.sponsor for f in found] == ["0x1"]

    def test_pairs_price_and_contract(self) -> None:
        found = classify_liquidatable(
            [_position("0x1", "125")], Decimal("1.3"), _cfg(), False,
        )
        assert found[0].price_used == Decimal("1.3")
        assert found[0].contract_id == "emp-1"

    def test_boundary_position_not_flagged(self) -> None:
        found = classify_liquidatable(
            [_position("0x1", "156")], Decimal("1.3"), _cfg(), False,
        )
        assert found == []

    def test_expired_contract_returns_empty(self) -> None:
        found = classify_liquidatable(
            [_position("0x1", "1")], Decimal("1.3"), _cfg(), True,
        )
        assert found == []

    def test_empty_positions(self) -> None:
        assert classify_liquidatable([], Decimal("1.3"), _cfg(), False) == []

    def test_same_set_for_reordered_input(self) -> None:
        positions = [
            _position("0x1", "125"),
            _position("0x2", "100"),
            _position("0x3", "175"),
        ]
        forward = classify_liquidatable(positions, Decimal("1.3"), _cfg(), False)
        backward = classify_liquidatable(
            list(reversed(positions)), Decimal("1.3"), _cfg(), False,
        )
        assert set(forward) == set(backward)
        assert len(forward) == 2

    def test_perpetual_funding_multiplier(self) -> None:
        cfg = _cfg(
            contract_id="perp-1",
            contract_type=ContractType.PERPETUAL,
            cumulative_funding_rate_multiplier=Decimal("1.1"),
        )
        found = classify_liquidatable(
            [_position("0x1", "125")], Decimal("1"), cfg, False,
        )
        assert len(found) == 1
