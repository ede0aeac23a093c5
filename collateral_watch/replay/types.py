"""Data types for replaying recorded contract state."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

from collateral_watch.core.config import ContractSettings, EngineConfig
from collateral_watch.core.types import FleetReport
from collateral_watch.feeds.static import ContractRecord


class Scenario(BaseModel):
    """Recorded state for a fleet of contracts, replayed offline.

    ``contracts`` uses the same entry format as the settings file, so a
    scenario can be built from a production config plus captured state.
    """

    name: str = "unnamed"
    description: str = ""
    engine: EngineConfig = EngineConfig()
    contracts: list[ContractSettings] = []
    records: dict[str, ContractRecord] = {}
    triggers: int = 1


@dataclass
class ReplayResult:
    """Reports from every trigger of a replay run."""

    scenario_name: str = ""
    reports: list[FleetReport] = field(default_factory=list)
    excluded: dict[str, str] = field(default_factory=dict)

    @property
    def last(self) -> FleetReport:
        """Report of the final trigger (empty when nothing ran)."""
        return self.reports[-1] if self.reports else FleetReport()

    @property
    def total_findings(self) -> int:
        return sum(len(r.findings) for r in self.reports)
