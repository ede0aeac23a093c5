"""Pure collateralization math shared by the liquidation and dispute classifiers."""

from __future__ import annotations

from decimal import Context, Decimal

from collateral_watch.core.types import (
    ContractConfig,
    ContractType,
    Liquidation,
    Position,
)
from collateral_watch.risk.exceptions import UnsupportedContractConfigurationError

# Enough digits for products of three uint256-scale fixed-point amounts.
_EXACT = Context(prec=240)

_ONE = Decimal(1)
_ZERO = Decimal(0)


def effective_debt(tokens: Decimal, config: ContractConfig) -> Decimal:
    """Apply the funding-rate multiplier to raw synthetic debt.

    Expiring contracts carry no funding rate, so their debt is the raw
    token amount.

    Raises:
        UnsupportedContractConfigurationError: a perpetual contract has no
            funding-rate multiplier.
    """
    if config.contract_type == ContractType.PERPETUAL:
        multiplier = config.cumulative_funding_rate_multiplier
        if multiplier is None:
            raise UnsupportedContractConfigurationError(
                config.contract_id, "perpetual contract has no funding-rate multiplier",
            )
        return _EXACT.multiply(tokens, multiplier)
    return tokens


def position_debt(position: Position, config: ContractConfig) -> Decimal:
    return effective_debt(position.tokens_outstanding, config)


def required_collateral(
    debt: Decimal,
    price: Decimal,
    collateral_requirement: Decimal,
) -> Decimal:
    """Collateral needed to back ``debt`` at ``price``: debt * price * requirement."""
    return _EXACT.multiply(_EXACT.multiply(debt, price), collateral_requirement)


def effective_collateral(position: Position, config: ContractConfig) -> Decimal:
    """Collateral that counts toward the position's ratio.

    Pending withdrawals only reduce it when the contract opts in through
    ``net_pending_withdrawals``.
    """
    if not config.net_pending_withdrawals or position.pending_withdrawal is None:
        return position.collateral
    return max(_ZERO, _EXACT.subtract(position.collateral, position.pending_withdrawal))


def is_undercollateralized(
    position: Position,
    price: Decimal,
    config: ContractConfig,
) -> bool:
    """True when collateral is strictly below the requirement at ``price``.

    A position sitting exactly on the threshold is not flagged.
    """
    required = required_collateral(
        position_debt(position, config), price, config.collateral_requirement,
    )
    return effective_collateral(position, config) < required


def scale_price(price: Decimal, buffer_ratio: Decimal) -> Decimal:
    """Inflate ``price`` by the dispute safety buffer."""
    return _EXACT.multiply(price, _EXACT.add(_ONE, buffer_ratio))


def is_disputable(
    liquidation: Liquidation,
    scaled_price: Decimal,
    config: ContractConfig,
) -> bool:
    """True when the locked collateral covered the debt at ``scaled_price``."""
    required = required_collateral(
        effective_debt(liquidation.tokens_liquidated, config),
        scaled_price,
        config.collateral_requirement,
    )
    return liquidation.locked_collateral >= required


def is_expired_or_shutdown(
    expiration_or_shutdown_time: int,
    contract_time: int,
) -> bool:
    """Whether a contract has reached expiry (or emergency shutdown).

    A zero terminal timestamp means the contract never expires and has not
    been shut down.
    """
    return expiration_or_shutdown_time > 0 and contract_time >= expiration_or_shutdown_time
