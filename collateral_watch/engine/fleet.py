"""FleetCoordinator — runs every contract's evaluation cycle once per trigger."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable

import structlog

from collateral_watch.core.config import ContractSettings, EngineConfig
from collateral_watch.core.types import (
    ContractConfig,
    ContractCycleResult,
    CycleFailure,
    FailureKind,
    Finding,
    FleetReport,
)
from collateral_watch.engine.cycle import ContractEvaluator
from collateral_watch.engine.initialization import (
    initialize_contracts,
    supported_versions_from,
)
from collateral_watch.feeds.base import SessionFactory

logger = structlog.stdlib.get_logger()

FindingCallback = Callable[[Finding], Awaitable[None] | None]


class FleetCoordinator:
    """Evaluates the whole fleet of configured contracts concurrently.

    Contracts rejected at initialization, or whose cycle later reports an
    unsupported configuration, are excluded for the coordinator's lifetime.
    That excluded set is the only state carried between invocations.

    Usage::

        coordinator = FleetCoordinator.from_settings(settings.contracts, factory)
        coordinator.on_finding(alert_sink)

        # once per new block
        findings = await coordinator.handle_block(block_number)
    """

    def __init__(
        self,
        contracts: Iterable[ContractConfig],
        factory: SessionFactory,
        config: EngineConfig | None = None,
        excluded: dict[str, str] | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._evaluators: dict[str, ContractEvaluator] = {}
        for contract in contracts:
            self._evaluators[contract.contract_id] = ContractEvaluator(contract, factory)
        self._excluded: dict[str, str] = dict(excluded or {})
        self._callbacks: list[FindingCallback] = []

        # Stats
        self._invocations = 0
        self._findings_emitted = 0
        self._failures_recorded = 0

    @classmethod
    def from_settings(
        cls,
        entries: Iterable[ContractSettings],
        factory: SessionFactory,
        config: EngineConfig | None = None,
    ) -> FleetCoordinator:
        """Validate settings entries and build a coordinator from the survivors."""
        engine_config = config or EngineConfig()
        init = initialize_contracts(
            entries, supported_versions_from(engine_config.supported_versions),
        )
        return cls(init.ready, factory, config=engine_config, excluded=init.excluded)

    # ── Properties ───────────────────────────────────────────────

    @property
    def contract_ids(self) -> list[str]:
        """All contracts known to the coordinator, excluded ones included."""
        return sorted({*self._evaluators, *self._excluded})

    @property
    def active_contract_ids(self) -> list[str]:
        """Contracts evaluated on the next invocation."""
        return [cid for cid in self._evaluators if cid not in self._excluded]

    @property
    def excluded(self) -> dict[str, str]:
        """Read-only copy of permanently excluded contracts and reasons."""
        return dict(self._excluded)

    # ── Callbacks ────────────────────────────────────────────────

    def on_finding(self, callback: FindingCallback) -> None:
        """Register a sink for findings (e.g. an alert formatter)."""
        self._callbacks.append(callback)

    async def _emit(self, finding: Finding) -> None:
        """Dispatch a finding to all registered callbacks."""
        for cb in self._callbacks:
            try:
                result = cb(finding)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(
                    "finding_callback_error",
                    contract_id=finding.contract_id,
                )

    # ── Evaluation ───────────────────────────────────────────────

    def exclude(self, contract_id: str, reason: str) -> bool:
        """Permanently exclude a contract. Returns False if already excluded."""
        if contract_id in self._excluded:
            return False
        self._excluded[contract_id] = reason
        logger.error(
            "contract_excluded",
            contract_id=contract_id,
            reason=reason,
        )
        return True

    async def _run_one(
        self,
        evaluator: ContractEvaluator,
        semaphore: asyncio.Semaphore | None,
    ) -> ContractCycleResult:
        if semaphore is None:
            return await evaluator.run()
        async with semaphore:
            return await evaluator.run()

    async def evaluate(self) -> FleetReport:
        """Run one cycle for every active contract and aggregate the results."""
        started_at = time.time()
        active = self.active_contract_ids
        skipped = sorted(self._excluded)

        semaphore: asyncio.Semaphore | None = None
        if self._config.max_concurrent_cycles > 0:
            semaphore = asyncio.Semaphore(self._config.max_concurrent_cycles)

        outcomes = await asyncio.gather(
            *(self._run_one(self._evaluators[cid], semaphore) for cid in active),
            return_exceptions=True,
        )

        report = FleetReport(skipped=skipped, started_at=started_at)
        for contract_id, outcome in zip(active, outcomes):
            if isinstance(outcome, BaseException):
                # Evaluators record their own failures; this is a last resort.
                logger.error(
                    "contract_cycle_crashed",
                    contract_id=contract_id,
                    error=repr(outcome),
                )
                report.failures.append(CycleFailure(
                    contract_id=contract_id,
                    kind=FailureKind.UNEXPECTED,
                    reason=repr(outcome),
                ))
                continue

            report.evaluated.append(contract_id)
            report.findings.extend(outcome.findings)
            report.failures.extend(outcome.failures)
            if outcome.unsupported:
                reason = next(
                    f.reason for f in outcome.failures
                    if f.kind == FailureKind.UNSUPPORTED_CONTRACT
                )
                self.exclude(contract_id, reason)

        report.finished_at = time.time()
        self._invocations += 1
        self._failures_recorded += len(report.failures)

        logger.info(
            "fleet_cycle_complete",
            evaluated=len(report.evaluated),
            skipped=len(report.skipped),
            liquidatable=len(report.liquidatable),
            disputable=len(report.disputable),
            failures=len(report.failures),
            duration_ms=round((report.finished_at - started_at) * 1000, 2),
        )
        return report

    async def trigger(self, block_number: int | None = None) -> FleetReport:
        """Evaluate the fleet and forward every finding to the callbacks."""
        with structlog.contextvars.bound_contextvars(block_number=block_number):
            report = await self.evaluate()
            for finding in report.findings:
                await self._emit(finding)
            self._findings_emitted += len(report.findings)
        return report

    async def handle_block(self, block_number: int | None = None) -> list[Finding]:
        """Trigger entry point: returns the flattened findings of one invocation."""
        report = await self.trigger(block_number)
        return report.findings

    def snapshot(self) -> dict[str, object]:
        """Return a snapshot of coordinator state."""
        return {
            "contracts": len(self.contract_ids),
            "active_contracts": len(self.active_contract_ids),
            "excluded_contracts": sorted(self._excluded),
            "invocations": self._invocations,
            "findings_emitted": self._findings_emitted,
            "failures_recorded": self._failures_recorded,
            "max_concurrent_cycles": self._config.max_concurrent_cycles,
        }
