"""
Arbitrage execution state machine.

Drives one candidate through buy, revalidation, bridge and sell:

    IDLE -> BUY_PENDING -> REVALIDATING -> BRIDGE_PENDING -> SELL_PENDING
         -> COMPLETED | ABORTED_BEFORE_BRIDGE | ABORTED_AFTER_BRIDGE

The bridge is only paid for once the sell venue still quotes within
tolerance of the scanned sell price. After the bridge the run always
resolves to COMPLETED or ABORTED_AFTER_BRIDGE (staked), even when the
cycle is abandoned.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from dexarb.config.constants import DEFAULT_BRIDGE_FEE, DEFAULT_SLIPPAGE_TOLERANCE
from dexarb.core.errors import StaleOrMissingQuote
from dexarb.core.types import (
    ArbitrageCandidate,
    ExecutionOutcome,
    ExecutionState,
    OutcomeKind,
    RecheckOracle,
    Settlement,
    StakeReceipt,
    Transit,
    TransitLeg,
)
from dexarb.execution.fallback import StakingFallback
from dexarb.strategy.calculator import ProfitCalculator
from dexarb.utils.math import tolerance_floor
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


@dataclass
class ExecutorConfig:
    """Executor configuration."""

    slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE
    bridge_fee: float = DEFAULT_BRIDGE_FEE


class InvalidTransition(RuntimeError):
    """A state change was attempted from a terminal state."""


class _Run:
    """State path of one candidate's execution."""

    __slots__ = ("candidate", "states", "start_us", "revalidated_price")

    def __init__(self, candidate: ArbitrageCandidate, start_us: int) -> None:
        self.candidate = candidate
        self.states: list[ExecutionState] = [ExecutionState.IDLE]
        self.start_us = start_us
        self.revalidated_price: float | None = None

    @property
    def state(self) -> ExecutionState:
        return self.states[-1]

    def advance(self, state: ExecutionState) -> None:
        if self.state.is_terminal:
            raise InvalidTransition(f"{self.candidate.symbol}: {self.state.value} is terminal")
        logger.debug(f"{self.candidate.symbol}: {self.state.value} -> {state.value}")
        self.states.append(state)


class ArbitrageExecutor:
    """
    Executes one arbitrage candidate at a time.

    Features:
    - Hard abort before the bridge when the edge has evaporated
    - Fail-safe revalidation: query errors count as a missing quote
    - Staking fallback instead of selling at a loss after the bridge
    - Abandon signal honoured only before bridging
    """

    def __init__(
        self,
        oracle: RecheckOracle,
        settlement: Settlement,
        transit: Transit,
        fallback: StakingFallback,
        config: ExecutorConfig | None = None,
        clock: Callable[[], int] = get_timestamp_us,
    ) -> None:
        """
        Initialize executor.

        Args:
            oracle: Price re-validation.
            settlement: Leg side effects.
            transit: Simulated confirmation and bridge latency.
            fallback: Staking fallback for bridged assets.
            config: Executor configuration.
            clock: Microsecond clock.
        """
        self._oracle = oracle
        self._settlement = settlement
        self._transit = transit
        self._fallback = fallback
        self._config = config or ExecutorConfig()
        self._clock = clock

        # Statistics
        self._counts: dict[OutcomeKind, int] = {kind: 0 for kind in OutcomeKind}

    async def execute(
        self,
        candidate: ArbitrageCandidate,
        abandon: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        """
        Run a candidate to exactly one terminal outcome.

        Args:
            candidate: Candidate to execute.
            abandon: Cycle-level signal; once set, an unbridged run stops
                after its current revalidation.

        Returns:
            ExecutionOutcome describing the path taken.
        """
        run = _Run(candidate, self._clock())

        if not candidate.is_actionable:
            logger.info(f"No profit opportunity for {candidate.symbol}.")
            return self._finish(run, OutcomeKind.NO_OPPORTUNITY, "estimated profit not positive")

        if abandon is not None and abandon.is_set():
            return self._abort_before_bridge(run, "cycle abandoned before buy")

        logger.info(
            f"[Arbitrage Found] Buy {candidate.symbol} on {candidate.buy_venue} "
            f"(${candidate.buy_price:.6f}), sell on {candidate.sell_venue} "
            f"(${candidate.sell_price:.6f}). Estimated profit: ${candidate.estimated_profit:.2f}"
        )

        try:
            abort_reason = await self._buy_and_revalidate(run, abandon)
        except Exception as e:
            logger.error(f"Execution error for {candidate.symbol} before bridge: {e}")
            return self._abort_before_bridge(run, f"execution error: {e}")

        if abort_reason:
            return self._abort_before_bridge(run, abort_reason)

        run.advance(ExecutionState.BRIDGE_PENDING)
        return await asyncio.shield(self._bridge_and_settle(run))

    async def _buy_and_revalidate(
        self,
        run: _Run,
        abandon: asyncio.Event | None,
    ) -> str:
        """
        Buy, wait for confirmation, and re-check the sell venue.

        Returns:
            Abort reason, or an empty string if the bridge may proceed.
        """
        candidate = run.candidate

        run.advance(ExecutionState.BUY_PENDING)
        await self._settlement.buy(candidate)
        await self._suspend(TransitLeg.BUY_CONFIRMATION, abandon)

        run.advance(ExecutionState.REVALIDATING)
        price, reason = await self._revalidate(candidate)
        run.revalidated_price = price

        if price is None:
            return reason

        floor = tolerance_floor(candidate.sell_price, self._config.slippage_tolerance)
        if price < floor:
            logger.info(
                f"Price dropped on {candidate.sell_venue} for {candidate.symbol} "
                f"(${price:.6f} < ${floor:.6f}). Canceling arbitrage."
            )
            return f"sell price {price:.6f} below tolerance floor {floor:.6f}"

        if abandon is not None and abandon.is_set():
            return "cycle abandoned before bridge"

        return ""

    async def _bridge_and_settle(self, run: _Run) -> ExecutionOutcome:
        """Bridge, re-check, then sell or stake. Always reaches a terminal state."""
        candidate = run.candidate

        try:
            logger.info(f"Bridging {candidate.symbol} to {candidate.sell_venue}...")
            await self._settlement.bridge(candidate)
            await self._transit.wait(TransitLeg.BRIDGE)
        except Exception as e:
            logger.error(f"Bridge failed for {candidate.symbol}: {e}")
            run.advance(ExecutionState.SELL_PENDING)
            return await self._stake(run, None, f"bridge failed: {e}")

        run.advance(ExecutionState.SELL_PENDING)
        price, reason = await self._revalidate(candidate)
        if price is not None:
            run.revalidated_price = price

        if price is None:
            return await self._stake(run, None, f"no quote after bridge: {reason}")

        floor = tolerance_floor(candidate.buy_price, self._config.slippage_tolerance)
        if price < floor:
            return await self._stake(
                run,
                price,
                f"sell price {price:.6f} below buy tolerance floor {floor:.6f}",
            )

        try:
            await self._settlement.sell(candidate, price)
        except Exception as e:
            logger.error(f"Sell failed for {candidate.symbol}: {e}")
            return await self._stake(run, price, f"sell failed: {e}")

        run.advance(ExecutionState.COMPLETED)
        calculator = ProfitCalculator(candidate.trade_amount, self._config.bridge_fee)
        realized = calculator.estimate_profit(candidate.buy_price, price)

        logger.info(f"Arbitrage completed for {candidate.symbol}: realized ${realized:.2f}")
        return self._finish(run, OutcomeKind.COMPLETED, "", realized_profit=realized)

    async def _stake(
        self,
        run: _Run,
        price: float | None,
        reason: str,
    ) -> ExecutionOutcome:
        """Route the bridged asset to staking and finish as ABORTED_AFTER_BRIDGE."""
        receipt: StakeReceipt | None = None
        try:
            receipt = await self._fallback.stake(run.candidate, price)
        except Exception as e:
            logger.error(f"Staking failed for {run.candidate.symbol}: {e}")
            reason = f"{reason}; staking failed: {e}"

        run.advance(ExecutionState.ABORTED_AFTER_BRIDGE)
        return self._finish(
            run,
            OutcomeKind.ABORTED_AFTER_BRIDGE,
            reason,
            realized_profit=-self._config.bridge_fee,
            stake=receipt,
        )

    async def _revalidate(self, candidate: ArbitrageCandidate) -> tuple[float | None, str]:
        """
        Query the sell venue's current price.

        Returns:
            (price, "") when a fresh quote exists, otherwise (None, reason).
        """
        try:
            price, found = await self._oracle.recheck(candidate.symbol, candidate.sell_venue)
        except Exception as e:
            logger.warning(f"Revalidation failed for {candidate.symbol}: {e}")
            return None, str(StaleOrMissingQuote(candidate.symbol, candidate.sell_venue, str(e)))

        if not found or price <= 0:
            logger.info(
                f"{candidate.symbol} no longer quoted on {candidate.sell_venue}. "
                f"Canceling arbitrage."
            )
            return None, str(StaleOrMissingQuote(candidate.symbol, candidate.sell_venue))

        return price, ""

    async def _suspend(self, leg: TransitLeg, abandon: asyncio.Event | None) -> None:
        """Wait for a transit leg, returning early if the abandon signal fires."""
        if abandon is None:
            await self._transit.wait(leg)
            return

        if abandon.is_set():
            return

        transit_task = asyncio.ensure_future(self._transit.wait(leg))
        abandon_task = asyncio.ensure_future(abandon.wait())
        try:
            done, _ = await asyncio.wait(
                {transit_task, abandon_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (transit_task, abandon_task):
                if not task.done():
                    task.cancel()

        if transit_task in done:
            transit_task.result()

    def _abort_before_bridge(self, run: _Run, reason: str) -> ExecutionOutcome:
        run.advance(ExecutionState.ABORTED_BEFORE_BRIDGE)
        return self._finish(run, OutcomeKind.ABORTED_BEFORE_BRIDGE, reason)

    def _finish(
        self,
        run: _Run,
        kind: OutcomeKind,
        reason: str,
        realized_profit: float = 0.0,
        stake: StakeReceipt | None = None,
    ) -> ExecutionOutcome:
        """Freeze the run into its outcome."""
        self._counts[kind] += 1
        return ExecutionOutcome(
            candidate=run.candidate,
            kind=kind,
            states=tuple(run.states),
            revalidated_price=run.revalidated_price,
            realized_profit=realized_profit,
            reason=reason,
            stake=stake,
            start_timestamp_us=run.start_us,
            end_timestamp_us=self._clock(),
        )

    @property
    def stats(self) -> dict[str, int]:
        """Outcome counts by kind."""
        return {kind.value: count for kind, count in self._counts.items()}

    @property
    def total_executions(self) -> int:
        """Number of candidates that entered the executor."""
        return sum(self._counts.values())
