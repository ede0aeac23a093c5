"""Replay runner — evaluates a recorded scenario through the real fleet coordinator."""

from __future__ import annotations

import structlog

from collateral_watch.engine.fleet import FindingCallback, FleetCoordinator
from collateral_watch.feeds.static import StaticSessionFactory
from collateral_watch.replay.types import ReplayResult, Scenario

logger = structlog.stdlib.get_logger()


class ReplayRunner:
    """Runs a :class:`Scenario` through a coordinator backed by static adapters.

    Usage::

        runner = ReplayRunner(scenario)
        result = await runner.run()
        print(len(result.last.findings))
    """

    def __init__(self, scenario: Scenario) -> None:
        self._scenario = scenario
        self._factory = StaticSessionFactory(scenario.records)
        self._coordinator = FleetCoordinator.from_settings(
            scenario.contracts,
            self._factory,
            config=scenario.engine,
        )

    @property
    def coordinator(self) -> FleetCoordinator:
        """Access the coordinator for post-run inspection."""
        return self._coordinator

    def on_finding(self, callback: FindingCallback) -> None:
        self._coordinator.on_finding(callback)

    async def run(self) -> ReplayResult:
        """Fire the scenario's triggers in sequence and collect every report."""
        result = ReplayResult(scenario_name=self._scenario.name)
        logger.info(
            "replay_started",
            scenario=self._scenario.name,
            contracts=len(self._scenario.contracts),
            triggers=self._scenario.triggers,
        )
        for block in range(self._scenario.triggers):
            report = await self._coordinator.trigger(block_number=block)
            result.reports.append(report)

        result.excluded = self._coordinator.excluded
        logger.info(
            "replay_finished",
            scenario=self._scenario.name,
            findings=result.total_findings,
        )
        return result
