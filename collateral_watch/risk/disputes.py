"""Dispute eligibility — flags liquidations that the buffered historical price invalidates.

Each liquidation goes through the same fixed sequence of checks:

1. the liquidation time must lie inside the feed's lookback window;
2. a historical price must be available at the liquidation time;
3. the locked collateral must cover the liquidated debt at the buffered
   ("scaled") price;
4. the dispute delay must have elapsed, measured against the feed's last
   update time rather than the wall clock.

A failure on one liquidation never stops the others from being evaluated.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable
from decimal import Decimal

import structlog

from collateral_watch.core.types import (
    ContractConfig,
    DisputableLiquidation,
    Liquidation,
    LiquidationState,
    PriceFeedState,
)
from collateral_watch.risk.collateral import is_disputable, scale_price

logger = structlog.stdlib.get_logger()

HistoricalPriceFn = Callable[[int], Awaitable[Decimal | None] | Decimal | None]


async def _fetch_historical_price(
    get_historical_price: HistoricalPriceFn,
    timestamp: int,
) -> Decimal | None:
    """Call the accessor, awaiting it if needed; errors become ``None``."""
    try:
        result = get_historical_price(timestamp)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        logger.debug(
            "historical_price_unavailable",
            timestamp=timestamp,
            error=str(exc),
        )
        return None
    return result


async def evaluate_liquidation(
    liquidation: Liquidation,
    get_historical_price: HistoricalPriceFn,
    feed_state: PriceFeedState,
    config: ContractConfig,
) -> DisputableLiquidation | None:
    """Run the dispute checks for a single liquidation."""
    if liquidation.state != LiquidationState.PRE_DISPUTE:
        return None

    liquidation_time = liquidation.liquidation_time
    if liquidation_time < feed_state.earliest_valid_time:
        # Price history does not reach back this far.
        return None

    price = await _fetch_historical_price(get_historical_price, liquidation_time)
    if price is None:
        return None

    scaled = scale_price(price, config.dispute_buffer_ratio)
    if not is_disputable(liquidation, scaled, config):
        return None

    if feed_state.last_update_time < liquidation_time + config.dispute_delay:
        logger.debug(
            "dispute_delay_pending",
            liquidation_id=liquidation.id,
            ready_at=liquidation_time + config.dispute_delay,
        )
        return None

    return DisputableLiquidation(
        contract_id=config.contract_id,
        historical_price=price,
        scaled_price=scaled,
        liquidation=liquidation,
    )


async def classify_disputable(
    liquidations: Iterable[Liquidation],
    get_historical_price: HistoricalPriceFn,
    feed_state: PriceFeedState,
    config: ContractConfig,
) -> list[DisputableLiquidation]:
    """Return every undisputed liquidation that is currently disputable."""
    disputable: list[DisputableLiquidation] = []
    for liquidation in liquidations:
        try:
            found = await evaluate_liquidation(
                liquidation, get_historical_price, feed_state, config,
            )
        except Exception:
            logger.exception(
                "liquidation_evaluation_error",
                liquidation_id=liquidation.id,
            )
            continue
        if found is not None:
            disputable.append(found)

    if len(disputable) > 0:
        logger.info(
            "disputable_liquidations_found",
            count=len(disputable),
            ids=[d.liquidation.id for d in disputable],
        )
    return disputable
