"""Tests for the replay runner and scenario loading."""

from __future__ import annotations

from decimal import Decimal

import pytest

from collateral_watch.core.types import (
    DisputableLiquidation,
    FailureKind,
    Finding,
    LiquidatablePosition,
)
from collateral_watch.replay.replay import ReplayRunner
from collateral_watch.replay.types import ReplayResult, Scenario

LIQ_TIME = 1_700_000_000


def _scenario_data(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "name": "emp-mixed",
        "contracts": [
            {
                "contract_id": "emp-1",
                "contract_type": "ExpiringMultiParty",
                "contract_version": "2.0.1",
                "collateral_requirement": "1.2",
            },
            {
                "contract_id": "legacy",
                "contract_type": "ExpiringMultiParty",
                "contract_version": "1.2.0",
                "collateral_requirement": "1.2",
            },
        ],
        "records": {
            "emp-1": {
                "snapshot": {
                    "positions": [
                        {"sponsor": "0xa", "collateral": "125", "tokens_outstanding": "100"},
                        {"sponsor": "0xb", "collateral": "200", "tokens_outstanding": "100"},
                    ],
                    "liquidations": [
                        {
                            "id": "0",
                            "sponsor": "0xc",
                            "liquidation_time": LIQ_TIME,
                            "locked_collateral": "150",
                            "tokens_liquidated": "100",
                        },
                    ],
                },
                "price_feed": {
                    "current_price": "1.3",
                    "last_update_time": LIQ_TIME + 100,
                    "lookback": 7200,
                    "history": [{"timestamp": LIQ_TIME, "price": "1.1"}],
                },
            },
        },
    }
    data.update(overrides)
    return data


class TestScenario:
    def test_from_dict(self) -> None:
        scenario = Scenario.model_validate(_scenario_data())
        assert scenario.name == "emp-mixed"
        assert len(scenario.contracts) == 2
        assert scenario.records["emp-1"].price_feed.current_price == Decimal("1.3")
        assert scenario.triggers == 1

    def test_defaults(self) -> None:
        scenario = Scenario()
        assert scenario.contracts == []
        assert scenario.records == {}
        assert scenario.engine.max_concurrent_cycles == 0

    def test_empty_result(self) -> None:
        result = ReplayResult()
        assert result.last.findings == []
        assert result.total_findings == 0


class TestReplayRunner:
    @pytest.mark.asyncio
    async def test_single_trigger(self) -> None:
        runner = ReplayRunner(Scenario.model_validate(_scenario_data()))
        result = await runner.run()

        assert result.scenario_name == "emp-mixed"
        assert len(result.reports) == 1
        last = result.last
        assert [f.position.sponsor for f in last.liquidatable] == ["0xa"]
        assert [f.liquidation.id for f in last.disputable] == ["0"]
        assert last.skipped == ["legacy"]
        assert "legacy" in result.excluded

    @pytest.mark.asyncio
    async def test_multiple_triggers_identical(self) -> None:
        runner = ReplayRunner(Scenario.model_validate(_scenario_data(triggers=3)))
        result = await runner.run()
        assert len(result.reports) == 3
        assert result.total_findings == 6
        first = set(result.reports[0].findings)
        assert all(set(r.findings) == first for r in result.reports)

    @pytest.mark.asyncio
    async def test_callbacks_receive_findings(self) -> None:
        runner = ReplayRunner(Scenario.model_validate(_scenario_data()))
        received: list[Finding] = []
        runner.on_finding(received.append)
        await runner.run()
        assert sum(isinstance(f, LiquidatablePosition) for f in received) == 1
        assert sum(isinstance(f, DisputableLiquidation) for f in received) == 1
        assert runner.coordinator.snapshot()["findings_emitted"] == 2

    @pytest.mark.asyncio
    async def test_missing_record_reported(self) -> None:
        data = _scenario_data(records={})
        result = await ReplayRunner(Scenario.model_validate(data)).run()
        assert [(f.contract_id, f.kind) for f in result.last.failures] == [
            ("emp-1", FailureKind.SNAPSHOT_REFRESH_FAILED),
        ]
        assert result.last.findings == []
