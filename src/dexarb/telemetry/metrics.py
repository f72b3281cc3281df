"""
Metrics collection for cycle and execution monitoring.

Tracks latencies, counters, and arbitrage outcome statistics
with in-memory rolling windows.
"""

import time
from collections import deque
from dataclasses import dataclass

from dexarb.config.constants import LATENCY_WINDOW_SIZE
from dexarb.core.types import CycleReport, ExecutionOutcome, OutcomeKind


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0


@dataclass
class ArbitrageStats:
    """Cumulative arbitrage statistics."""

    cycles: int = 0
    degraded_cycles: int = 0
    candidates_found: int = 0
    completed: int = 0
    aborted_before_bridge: int = 0
    aborted_after_bridge: int = 0
    no_opportunity: int = 0
    realized_profit: float = 0.0
    bridge_fees_paid: float = 0.0
    staked_positions: int = 0
    best_estimated_profit: float = 0.0

    @property
    def executions(self) -> int:
        """Runs that reached the buy leg."""
        return self.completed + self.aborted_before_bridge + self.aborted_after_bridge

    @property
    def completion_rate(self) -> float:
        """Fraction of runs that sold on the expensive venue."""
        return self.completed / self.executions if self.executions > 0 else 0.0


class MetricsCollector:
    """
    Collects and aggregates engine metrics.

    Features:
    - Rolling window latency tracking
    - Counter-based event tracking
    - Outcome and P&L accumulation
    """

    def __init__(self, latency_window_size: int = LATENCY_WINDOW_SIZE) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep for latency stats.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = {}
        self._stats = ArbitrageStats()
        self._start_time = time.time()

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "fetch", "execution").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_outcome(self, outcome: ExecutionOutcome, bridge_fee: float) -> None:
        """
        Record one execution outcome.

        Args:
            outcome: Terminal outcome.
            bridge_fee: Fee charged when the bridge leg ran.
        """
        stats = self._stats
        if outcome.kind is OutcomeKind.COMPLETED:
            stats.completed += 1
        elif outcome.kind is OutcomeKind.ABORTED_BEFORE_BRIDGE:
            stats.aborted_before_bridge += 1
        elif outcome.kind is OutcomeKind.ABORTED_AFTER_BRIDGE:
            stats.aborted_after_bridge += 1
        else:
            stats.no_opportunity += 1

        if outcome.bridged:
            stats.bridge_fees_paid += bridge_fee
        if outcome.stake is not None:
            stats.staked_positions += 1

        stats.realized_profit += outcome.realized_profit

        if outcome.latency_us > 0:
            self.record_latency("execution", outcome.latency_us)

    def record_cycle(self, report: CycleReport, bridge_fee: float) -> None:
        """
        Record a finished cycle and all of its outcomes.

        Args:
            report: Completed cycle report.
            bridge_fee: Fee charged per bridged run.
        """
        stats = self._stats
        stats.cycles += 1
        if report.source_errors or report.conditions:
            stats.degraded_cycles += 1

        stats.candidates_found += len(report.candidates)
        for candidate in report.candidates:
            if candidate.estimated_profit > stats.best_estimated_profit:
                stats.best_estimated_profit = candidate.estimated_profit

        self.increment_counter("cycles")
        if report.source_errors:
            self.increment_counter("source_failures", len(report.source_errors))
        if report.conditions:
            self.increment_counter("no_joinable_symbols")
        if report.parse_errors:
            self.increment_counter("parse_errors", len(report.parse_errors))
        if report.skipped:
            self.increment_counter("skipped_in_flight", len(report.skipped))

        for outcome in report.outcomes:
            self.record_outcome(outcome, bridge_fee)

        if report.duration_us > 0:
            self.record_latency("cycle", report.duration_us)

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get latency statistics for a metric.

        Args:
            name: Metric name.

        Returns:
            LatencyStats with aggregated values.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_us=sorted_samples[0],
            max_us=sorted_samples[-1],
            avg_us=sum(sorted_samples) / n,
            p50_us=sorted_samples[n // 2],
            p95_us=sorted_samples[int(n * 0.95)],
            p99_us=sorted_samples[int(n * 0.99)] if n > 1 else sorted_samples[-1],
            count=n,
        )

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        """Get latency stats for all metrics."""
        return {name: self.get_latency_stats(name) for name in self._latencies}

    @property
    def stats(self) -> ArbitrageStats:
        """Get arbitrage statistics."""
        return self._stats

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """Export all metrics as a dict."""
        stats = self._stats
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: {
                    "min": s.min_us,
                    "max": s.max_us,
                    "avg": s.avg_us,
                    "p50": s.p50_us,
                    "p99": s.p99_us,
                    "count": s.count,
                }
                for name, s in self.get_all_latency_stats().items()
            },
            "arbitrage": {
                "cycles": stats.cycles,
                "degraded_cycles": stats.degraded_cycles,
                "candidates_found": stats.candidates_found,
                "completed": stats.completed,
                "aborted_before_bridge": stats.aborted_before_bridge,
                "aborted_after_bridge": stats.aborted_after_bridge,
                "no_opportunity": stats.no_opportunity,
                "realized_profit": stats.realized_profit,
                "bridge_fees_paid": stats.bridge_fees_paid,
                "staked_positions": stats.staked_positions,
                "best_estimated_profit": stats.best_estimated_profit,
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._stats = ArbitrageStats()
        self._start_time = time.time()
