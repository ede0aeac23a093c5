#!/usr/bin/env python3
"""Evaluate CLI — replay recorded contract state through the fleet coordinator.

Usage:
    python -m scripts.evaluate scenario.json
    python -m scripts.evaluate scenario.json --triggers 2
    python -m scripts.evaluate scenario.json --log-level DEBUG --log-format console

Scenario JSON format::

    {
        "name": "EMP under-collateralized sponsor",
        "contracts": [
            {
                "contract_id": "emp-1",
                "contract_type": "ExpiringMultiParty",
                "contract_version": "2.0.1",
                "collateral_requirement": "1.2",
                "dispute_buffer_ratio": "0.02",
                "dispute_delay": 0,
                "mode": "BOTH"
            }
        ],
        "records": {
            "emp-1": {
                "snapshot": {
                    "positions": [
                        {"sponsor": "0xsponsor1", "collateral": "125",
                         "tokens_outstanding": "100"}
                    ],
                    "liquidations": [
                        {"id": "0", "sponsor": "0xsponsor2",
                         "liquidation_time": 1700000000,
                         "locked_collateral": "150",
                         "tokens_liquidated": "100"}
                    ]
                },
                "price_feed": {
                    "current_price": "1.3",
                    "last_update_time": 1700000100,
                    "lookback": 7200,
                    "history": [{"timestamp": 1700000000, "price": "1.1"}]
                }
            }
        }
    }
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from collateral_watch.core.config import load_settings
from collateral_watch.core.logging import setup_logging
from collateral_watch.core.types import DisputableLiquidation, Finding, LiquidatablePosition
from collateral_watch.replay.replay import ReplayRunner
from collateral_watch.replay.types import Scenario


def load_scenario(path: str) -> Scenario:
    """Load a Scenario from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    return Scenario.model_validate(data)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay recorded contract state through the risk evaluation engine.",
    )
    parser.add_argument(
        "scenario",
        help="Path to scenario JSON file",
    )
    parser.add_argument(
        "--triggers",
        type=int,
        default=None,
        help="Number of coordinator invocations (default: scenario value)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (default: from settings)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=None,
        help="Log renderer override (default: from settings)",
    )
    return parser.parse_args(argv)


def format_finding(finding: Finding) -> str:
    """One human-readable line per finding."""
    if isinstance(finding, LiquidatablePosition):
        pos = finding.position
        return (
            f"  [LIQUIDATABLE] {finding.contract_id} sponsor={pos.sponsor}"
            f" collateral={pos.collateral} tokens={pos.tokens_outstanding}"
            f" price={finding.price_used}"
        )
    if isinstance(finding, DisputableLiquidation):
        liq = finding.liquidation
        return (
            f"  [DISPUTABLE] {finding.contract_id} liquidation={liq.id}"
            f" sponsor={liq.sponsor} locked={liq.locked_collateral}"
            f" price={finding.historical_price} scaled={finding.scaled_price}"
        )
    return f"  [UNKNOWN] {finding!r}"


async def run_evaluation(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(
        level=args.log_level or settings.logging.level,
        fmt=args.log_format or settings.logging.format,
    )

    scenario = load_scenario(args.scenario)
    if "engine" not in scenario.model_fields_set:
        scenario = scenario.model_copy(update={"engine": settings.engine})
    if args.triggers is not None:
        scenario = scenario.model_copy(update={"triggers": args.triggers})

    print(f"Evaluating scenario: {scenario.name}")
    print(f"  Contracts: {len(scenario.contracts)}")
    print(f"  Triggers: {scenario.triggers}")
    print()

    runner = ReplayRunner(scenario)
    result = await runner.run()

    for index, report in enumerate(result.reports):
        print(f"TRIGGER {index}")
        print("-" * 72)
        if len(report.findings) == 0:
            print("  (no findings)")
        for finding in report.findings:
            print(format_finding(finding))
        for failure in report.failures:
            print(f"  [FAILED] {failure.contract_id} {failure.kind.value}: {failure.reason}")
        print()

    if result.excluded:
        print("EXCLUDED CONTRACTS")
        print("-" * 72)
        for contract_id, reason in sorted(result.excluded.items()):
            print(f"  {contract_id}: {reason}")
        print()

    last = result.last
    print(
        f"Evaluation complete: {len(last.liquidatable)} liquidatable,"
        f" {len(last.disputable)} disputable,"
        f" {len(last.failures)} failures"
    )
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    sys.exit(asyncio.run(run_evaluation(args)))


if __name__ == "__main__":
    main()
