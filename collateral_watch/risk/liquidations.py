"""Liquidation eligibility — flags positions below their collateral requirement."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

import structlog

from collateral_watch.core.types import ContractConfig, LiquidatablePosition, Position
from collateral_watch.risk.collateral import is_undercollateralized

logger = structlog.stdlib.get_logger()


def classify_liquidatable(
    positions: Iterable[Position],
    price: Decimal,
    config: ContractConfig,
    expired_or_shutdown: bool,
) -> list[LiquidatablePosition]:
    """Return every under-collateralized position, paired with ``price``.

    Expired or shut-down contracts are never evaluated; that is a normal
    outcome and yields an empty list. Callers must not rely on the output
    order matching the input order.
    """
    if expired_or_shutdown:
        logger.debug("liquidation_check_skipped_expired")
        return []

    flagged = [
        LiquidatablePosition(
            contract_id=config.contract_id,
            position=position,
            price_used=price,
        )
        for position in positions
        if is_undercollateralized(position, price, config)
    ]
    if len(flagged) > 0:
        logger.info(
            "liquidatable_positions_found",
            count=len(flagged),
            price=str(price),
        )
    return flagged
