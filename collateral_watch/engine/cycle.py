"""ContractEvaluator — one contract's refresh-then-classify cycle."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import structlog

from collateral_watch.core.logging import contract_context
from collateral_watch.core.types import (
    ContractConfig,
    ContractCycleResult,
    CycleFailure,
    FailureKind,
    PriceFeedState,
)
from collateral_watch.engine.initialization import open_session
from collateral_watch.feeds.base import ContractSession, PriceOracleAdapter, SessionFactory
from collateral_watch.feeds.exceptions import FeedError, PriceFeedConstructionError
from collateral_watch.risk.disputes import classify_disputable
from collateral_watch.risk.exceptions import (
    PriceFeedRefreshError,
    PriceUnavailableError,
    SnapshotRefreshError,
    UnsupportedContractConfigurationError,
)
from collateral_watch.risk.liquidations import classify_liquidatable

logger = structlog.stdlib.get_logger()


class ContractEvaluator:
    """Runs the evaluation cycle for a single financial contract.

    Every call to ``run()`` opens its own adapter session, so overlapping
    cycles for the same contract never share mutable state. ``run()`` never
    raises: failures are recorded on the returned result.

    Usage::

        evaluator = ContractEvaluator(config, factory)
        result = await evaluator.run()
        for finding in result.findings:
            ...
    """

    def __init__(self, config: ContractConfig, factory: SessionFactory) -> None:
        self._config = config
        self._factory = factory

    @property
    def config(self) -> ContractConfig:
        return self._config

    @property
    def contract_id(self) -> str:
        return self._config.contract_id

    async def run(self) -> ContractCycleResult:
        """Refresh the contract's state and classify it."""
        result = ContractCycleResult(contract_id=self.contract_id)
        with contract_context(self.contract_id, mode=self._config.mode.value):
            try:
                session = self._open()
                await self._refresh(session)
                await self._classify(session, result)
            except SnapshotRefreshError as exc:
                self._fail(result, FailureKind.SNAPSHOT_REFRESH_FAILED, exc)
            except PriceFeedRefreshError as exc:
                self._fail(result, FailureKind.PRICE_FEED_REFRESH_FAILED, exc)
            except UnsupportedContractConfigurationError as exc:
                self._fail(result, FailureKind.UNSUPPORTED_CONTRACT, exc)
            except Exception as exc:
                logger.exception("contract_cycle_unexpected_error")
                self._fail(result, FailureKind.UNEXPECTED, exc)
        return result

    def _open(self) -> ContractSession:
        try:
            return open_session(self._factory, self._config)
        except PriceFeedConstructionError as exc:
            # Neither construction attempt accepted this contract's feed config.
            raise UnsupportedContractConfigurationError(
                self.contract_id, f"price feed config is invalid: {exc}",
            ) from exc
        except FeedError as exc:
            raise SnapshotRefreshError(str(exc)) from exc

    async def _refresh(self, session: ContractSession) -> None:
        """Update snapshot and price feed concurrently; either may fail."""
        snapshot_outcome, feed_outcome = await asyncio.gather(
            session.snapshot.update(),
            session.price_feed.update(),
            return_exceptions=True,
        )
        if isinstance(snapshot_outcome, UnsupportedContractConfigurationError):
            raise snapshot_outcome
        if isinstance(feed_outcome, UnsupportedContractConfigurationError):
            raise feed_outcome
        if isinstance(snapshot_outcome, BaseException):
            if isinstance(feed_outcome, BaseException):
                logger.warning("price_feed_refresh_failed", error=str(feed_outcome))
            raise SnapshotRefreshError(str(snapshot_outcome)) from snapshot_outcome
        if isinstance(feed_outcome, BaseException):
            raise PriceFeedRefreshError(str(feed_outcome)) from feed_outcome

    async def _classify(
        self,
        session: ContractSession,
        result: ContractCycleResult,
    ) -> None:
        feed = session.price_feed
        feed_state = PriceFeedState(
            current_price=self._current_price(feed),
            last_update_time=feed.get_last_update_time(),
            lookback_window=feed.get_lookback(),
        )

        if self._config.mode.checks_liquidations:
            # A failure here only costs the liquidation half of the cycle.
            try:
                await self._classify_positions(session, feed_state, result)
            except UnsupportedContractConfigurationError:
                raise
            except Exception as exc:
                logger.exception("liquidation_classification_error")
                self._fail(result, FailureKind.UNEXPECTED, exc)

        if self._config.mode.checks_disputes:
            liquidations = session.snapshot.get_undisputed_liquidations()
            if len(liquidations) > 0:
                result.disputable = await classify_disputable(
                    liquidations,
                    feed.get_historical_price,
                    feed_state,
                    self._config,
                )

    def _current_price(self, feed: PriceOracleAdapter) -> Decimal | None:
        """Current price, or None when the feed cannot provide one."""
        try:
            return feed.get_current_price()
        except PriceUnavailableError as exc:
            logger.warning("current_price_unavailable", error=str(exc))
            return None

    async def _classify_positions(
        self,
        session: ContractSession,
        feed_state: PriceFeedState,
        result: ContractCycleResult,
    ) -> None:
        if await session.snapshot.is_expired_or_shutdown():
            logger.info("contract_expired_or_shutdown")
            result.expired = True
            return

        price = feed_state.current_price
        if price is None:
            # Positions are skipped; dispute checks still run.
            self._fail(
                result,
                FailureKind.PRICE_UNAVAILABLE,
                PriceUnavailableError("current price unavailable"),
            )
            return

        result.liquidatable = classify_liquidatable(
            session.snapshot.get_positions(),
            price,
            self._config,
            expired_or_shutdown=False,
        )

    def _fail(
        self,
        result: ContractCycleResult,
        kind: FailureKind,
        exc: BaseException,
    ) -> None:
        result.failures.append(CycleFailure(
            contract_id=self.contract_id,
            kind=kind,
            reason=str(exc),
        ))
        logger.warning(
            "contract_cycle_failed",
            kind=kind.value,
            reason=str(exc),
        )
