"""
Main arbitrage engine orchestrator.

Coordinates the price feed, scanner and executors, and owns the
engine lifecycle. Each cycle polls every venue, scans the joined
quotes, and executes the candidates under a concurrency bound.
"""

import asyncio
import logging
import signal
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

from dexarb.config.constants import DEFAULT_VENUE_A, DEFAULT_VENUE_B
from dexarb.config.settings import Settings
from dexarb.core.errors import ArbitrageError
from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.types import (
    ArbitrageCandidate,
    CycleReport,
    ExecutionOutcome,
    LifecycleState,
    PriceSource,
    ScanParams,
    Settlement,
    Transit,
)
from dexarb.execution.executor import ArbitrageExecutor, ExecutorConfig
from dexarb.execution.fallback import StakingFallback
from dexarb.execution.oracle import SnapshotRecheckOracle, SourceRecheckOracle
from dexarb.execution.settlement import DryRunSettlement, SimulatedTransit
from dexarb.market.aggregator import PriceFeedAggregator
from dexarb.market.sources import RestPriceSource, SubgraphPriceSource
from dexarb.simulation.venues import create_simulated_venues
from dexarb.strategy.scanner import OpportunityScanner
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import LatencyTimer, format_duration_us, get_timestamp_us


logger = logging.getLogger(__name__)

RecheckOracleImpl = SnapshotRecheckOracle | SourceRecheckOracle


class ArbitrageEngine:
    """
    Main engine orchestrator.

    Manages:
    - Lifecycle (NOT_STARTED -> RUNNING -> STOPPED, set once each)
    - Poll, scan and execute cycles, on an interval or on demand
    - Bounded concurrent execution with in-flight symbol tracking
    - Cycle deadlines and shutdown via abandon signals
    - Metrics and event publication
    """

    def __init__(
        self,
        settings: Settings,
        sources: Sequence[PriceSource] | None = None,
        settlement: Settlement | None = None,
        transit: Transit | None = None,
        oracle: RecheckOracleImpl | None = None,
        fallback: StakingFallback | None = None,
        event_bus: EventBus | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], int] = get_timestamp_us,
    ) -> None:
        """
        Initialize the engine.

        Collaborators left as None are built from settings in ``setup``.

        Args:
            settings: Application settings.
            sources: Price sources, one per venue.
            settlement: Leg side effects.
            transit: Simulated latency.
            oracle: Re-check oracle.
            fallback: Staking fallback.
            event_bus: Event bus for observers.
            metrics: Metrics collector.
            clock: Microsecond clock.
        """
        self._settings = settings
        self._clock = clock
        self._lifecycle = LifecycleState.NOT_STARTED

        # Components (completed in setup)
        self._sources: list[PriceSource] | None = list(sources) if sources is not None else None
        self._owned_sources: list[Any] = []
        self._settlement = settlement
        self._transit = transit
        self._oracle = oracle
        self._fallback = fallback
        self._aggregator: PriceFeedAggregator | None = None
        self._scanner = OpportunityScanner()
        self._executor: ArbitrageExecutor | None = None

        # Infrastructure
        self._event_bus = event_bus or EventBus()
        self._metrics = metrics or MetricsCollector()

        # Cycle state
        self._scan_params = ScanParams(
            trade_amount=settings.trade_amount,
            bridge_fee=settings.bridge_fee,
            min_profit=settings.min_profit,
        )
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_executions)
        self._cycle_count = 0
        self._in_flight: set[str] = set()
        self._abandon_events: set[asyncio.Event] = set()
        self._cycle_tasks: set[asyncio.Task[CycleReport]] = set()
        self._latest_report: CycleReport | None = None
        self._shutdown_event = asyncio.Event()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _transition(self, expected: LifecycleState, target: LifecycleState) -> bool:
        """Move the lifecycle from expected to target; False if it was elsewhere."""
        if self._lifecycle is not expected:
            return False
        self._lifecycle = target
        logger.debug(f"Engine {expected.value} -> {target.value}")
        return True

    def _build_sources(self) -> list[PriceSource]:
        """Create price sources from settings."""
        settings = self._settings

        if settings.simulate:
            names = list(settings.price_sources) or [DEFAULT_VENUE_A, DEFAULT_VENUE_B]
            logger.info(f"Simulating venues: {', '.join(names)}")
            venues = create_simulated_venues(names)
            self._owned_sources.extend(venues)
            return list(venues)

        sources: list[PriceSource] = []
        for name, url in settings.price_sources.items():
            rest = RestPriceSource(name, url, timeout_s=settings.fetch_timeout_s)
            self._owned_sources.append(rest)
            sources.append(rest)

        if settings.subgraph_url:
            subgraph = SubgraphPriceSource(
                settings.subgraph_venue,
                settings.subgraph_url,
                first=settings.subgraph_first,
                min_liquidity=settings.subgraph_min_liquidity,
                timeout_s=settings.fetch_timeout_s,
            )
            self._owned_sources.append(subgraph)
            sources.append(subgraph)

        return sources

    async def setup(self) -> None:
        """Build every collaborator that was not injected."""
        if self._executor is not None:
            return

        settings = self._settings
        logger.info("Initializing arbitrage engine...")

        if self._sources is None:
            self._sources = self._build_sources()

        self._aggregator = PriceFeedAggregator(self._sources, settings.fetch_timeout_s)

        if self._oracle is None:
            if settings.recheck_mode == "live":
                self._oracle = SourceRecheckOracle(self._sources, settings.quote_max_age_s)
            else:
                self._oracle = SnapshotRecheckOracle(settings.quote_max_age_s)

        if self._settlement is None:
            self._settlement = DryRunSettlement()
        if self._transit is None:
            self._transit = SimulatedTransit(
                buy_confirmation_s=settings.buy_confirmation_delay_s,
                bridge_s=settings.bridge_transit_delay_s,
            )
        if self._fallback is None:
            self._fallback = StakingFallback(settings.staking_pool_address)

        self._executor = ArbitrageExecutor(
            oracle=self._oracle,
            settlement=self._settlement,
            transit=self._transit,
            fallback=self._fallback,
            config=ExecutorConfig(
                slippage_tolerance=settings.slippage_tolerance,
                bridge_fee=settings.bridge_fee,
            ),
            clock=self._clock,
        )

        logger.info(
            f"Engine ready: {len(self._sources)} venues "
            f"({', '.join(self._aggregator.venues)}), "
            f"trade ${settings.trade_amount:.2f}, bridge fee ${settings.bridge_fee:.2f}, "
            f"tolerance {settings.slippage_tolerance:.2%}"
        )

    async def start(self) -> None:
        """
        Start the engine.

        Raises:
            ArbitrageError: If the engine was already started or stopped.
        """
        if not self._transition(LifecycleState.NOT_STARTED, LifecycleState.RUNNING):
            raise ArbitrageError(f"Engine cannot start from {self._lifecycle.value}")

        try:
            await self.setup()
        except Exception:
            self._lifecycle = LifecycleState.STOPPED
            raise

        logger.info("Engine started")

    # =========================================================================
    # Cycles
    # =========================================================================

    async def run_cycle(self) -> CycleReport:
        """
        Run one poll, scan and execute cycle.

        Returns:
            Completed report for the cycle.

        Raises:
            ArbitrageError: If the engine is not running.
        """
        if self._lifecycle is not LifecycleState.RUNNING:
            raise ArbitrageError(f"Engine is {self._lifecycle.value}, cannot run a cycle")

        assert self._aggregator is not None and self._oracle is not None

        self._cycle_count += 1
        report = CycleReport(
            cycle_id=self._cycle_count,
            started_at_us=self._clock(),
            venues=tuple(self._aggregator.venues),
        )

        # Poll
        with LatencyTimer() as timer:
            feed = await self._aggregator.fetch()
        self._metrics.record_latency("fetch", timer.latency_us)

        for venue, error in feed.errors.items():
            report.source_errors[venue] = error.reason
            await self._publish(EventType.SOURCE_FAILED, error)

        report.parse_errors = [str(e) for e in feed.parse_errors]
        if feed.condition is not None:
            report.conditions.append(feed.condition.reason)
        report.joins = list(feed.joins)

        self._oracle.publish(feed.snapshots)

        # Scan
        candidates = self._scanner.scan(feed.quotes, self._scan_params)
        report.candidates = candidates

        dispatch: list[ArbitrageCandidate] = []
        for candidate in candidates:
            await self._publish(EventType.CANDIDATE_FOUND, candidate)
            if candidate.symbol in self._in_flight:
                logger.info(f"Skipping {candidate.symbol}: execution already in flight")
                report.skipped.append(candidate.symbol)
                continue
            self._in_flight.add(candidate.symbol)
            dispatch.append(candidate)

        # Execute
        if dispatch:
            report.outcomes = await self._execute_all(dispatch)

        report.completed_at_us = self._clock()
        self._metrics.record_cycle(report, self._settings.bridge_fee)
        self._latest_report = report

        logger.info(
            f"Cycle #{report.cycle_id}: {len(feed.snapshots)}/{len(report.venues)} venues, "
            f"{len(feed.quotes)} joined, {len(candidates)} candidates, "
            f"{len(report.outcomes)} executed in {format_duration_us(report.duration_us)}"
        )

        await self._publish(EventType.CYCLE_COMPLETE, report)
        return report

    async def _execute_all(self, candidates: list[ArbitrageCandidate]) -> list[ExecutionOutcome]:
        """Execute candidates concurrently until done or the cycle deadline."""
        abandon = asyncio.Event()
        self._abandon_events.add(abandon)
        if self._shutdown_event.is_set():
            abandon.set()

        loop = asyncio.get_running_loop()
        deadline = loop.call_later(self._settings.cycle_deadline_s, abandon.set)

        try:
            return list(
                await asyncio.gather(*(self._execute_one(c, abandon) for c in candidates))
            )
        finally:
            deadline.cancel()
            self._abandon_events.discard(abandon)

    async def _execute_one(
        self,
        candidate: ArbitrageCandidate,
        abandon: asyncio.Event,
    ) -> ExecutionOutcome:
        """Execute one candidate under the concurrency bound."""
        assert self._executor is not None

        try:
            async with self._semaphore:
                outcome = await self._executor.execute(candidate, abandon)
        finally:
            self._in_flight.discard(candidate.symbol)

        await self._publish(EventType.EXECUTION_COMPLETE, outcome)
        return outcome

    async def _publish(self, event_type: EventType, payload: Any) -> None:
        await self._event_bus.publish(
            Event(type=event_type, payload=payload, timestamp_us=self._clock(), source="engine")
        )

    def trigger_cycle(self) -> asyncio.Task[CycleReport]:
        """Start a cycle in its own task so callers are not blocked by executions."""
        task = asyncio.create_task(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task[CycleReport]) -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Cycle failed: {error!r}")

    async def run(self) -> None:
        """Run cycles on the poll interval until shutdown."""
        if self._lifecycle is LifecycleState.NOT_STARTED:
            await self.start()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            logger.info(f"Polling every {self._settings.poll_interval_s}s")

            while not self._shutdown_event.is_set():
                self.trigger_cycle()
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=self._settings.poll_interval_s,
                    )
                except TimeoutError:
                    pass

        except Exception as e:
            logger.error(f"Engine error: {e}")
            raise

        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()

    def request_shutdown(self) -> None:
        """Ask a running ``run()`` loop to stop."""
        self._handle_shutdown()

    async def shutdown(self) -> None:
        """
        Gracefully shut down the engine.

        Unbridged executions are abandoned; bridged ones finish. Sources
        the engine created are closed. Safe to call more than once.
        """
        if self._lifecycle is LifecycleState.STOPPED:
            return

        logger.info("Shutting down engine...")
        self._shutdown_event.set()

        for abandon in list(self._abandon_events):
            abandon.set()

        if self._cycle_tasks:
            logger.info(f"Waiting for {len(self._cycle_tasks)} cycle(s) in flight")
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

        for source in self._owned_sources:
            try:
                await source.close()
            except Exception as e:
                logger.warning(f"Error closing {source.name}: {e}")
        self._owned_sources.clear()

        if not self._transition(LifecycleState.RUNNING, LifecycleState.STOPPED):
            self._transition(LifecycleState.NOT_STARTED, LifecycleState.STOPPED)

        await self._publish(EventType.SHUTDOWN, self._metrics.to_dict())
        logger.info("Engine shutdown complete")

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def lifecycle(self) -> LifecycleState:
        """Current lifecycle state."""
        return self._lifecycle

    @property
    def is_running(self) -> bool:
        """Check if engine is running."""
        return self._lifecycle is LifecycleState.RUNNING

    @property
    def latest_report(self) -> CycleReport | None:
        """Most recently completed cycle."""
        return self._latest_report

    @property
    def in_flight(self) -> set[str]:
        """Symbols currently being executed."""
        return set(self._in_flight)

    @property
    def event_bus(self) -> EventBus:
        """Get event bus."""
        return self._event_bus

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    @property
    def settings(self) -> Settings:
        """Get settings."""
        return self._settings

    def status(self) -> dict[str, object]:
        """Lifecycle, cycle counters and metrics as a dict."""
        return {
            "lifecycle": self._lifecycle.value,
            "cycles": self._cycle_count,
            "cycles_in_flight": len(self._cycle_tasks),
            "in_flight": sorted(self._in_flight),
            "venues": self._aggregator.venues if self._aggregator else [],
            "simulate": self._settings.simulate,
            "metrics": self._metrics.to_dict(),
        }


@asynccontextmanager
async def create_engine(
    settings: Settings,
    **components: Any,
) -> AsyncIterator[ArbitrageEngine]:
    """
    Create, start and shut down an engine.

    Usage:
        async with create_engine(settings) as engine:
            await engine.run_cycle()
    """
    engine = ArbitrageEngine(settings, **components)

    try:
        await engine.start()
        yield engine
    finally:
        await engine.shutdown()
