"""Replay framework — evaluate recorded contract state offline."""

from collateral_watch.replay.replay import ReplayRunner
from collateral_watch.replay.types import ReplayResult, Scenario

__all__ = [
    "ReplayResult",
    "ReplayRunner",
    "Scenario",
]
