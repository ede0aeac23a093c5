"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class SupportedVersion(BaseModel):
    """A contract type/version pair the engine knows how to evaluate."""

    contract_type: str
    contract_version: str


class EngineConfig(BaseModel):
    """Fleet coordinator configuration."""

    max_concurrent_cycles: int = 0
    supported_versions: list[SupportedVersion] = [
        SupportedVersion(contract_type="ExpiringMultiParty", contract_version="2.0.1"),
        SupportedVersion(contract_type="Perpetual", contract_version="2.0.1"),
    ]


class ContractSettings(BaseModel):
    """Raw per-contract entry as written in the settings file.

    Fields are loosely typed on purpose: strict validation happens per
    contract at initialization so a single bad entry only excludes itself.
    """

    contract_id: str
    contract_type: str = ""
    contract_version: str = ""
    collateral_requirement: Decimal = Decimal("0")
    dispute_buffer_ratio: Decimal = Decimal("0.02")
    dispute_delay: int = 0
    cumulative_funding_rate_multiplier: Decimal | None = None
    mode: str = "BOTH"
    lookback: int | None = None
    net_pending_withdrawals: bool = False


class Settings(BaseModel):
    """Root settings container."""

    engine: EngineConfig = EngineConfig()
    contracts: list[ContractSettings] = []
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
