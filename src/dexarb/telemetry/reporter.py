"""
CLI reporter for cycle reports.

Renders each CycleReport as a boxed text panel and prints a session
summary from the metrics collector on shutdown.
"""

import sys
from datetime import timedelta
from typing import TextIO

from dexarb import __version__
from dexarb.core.types import CycleReport, OutcomeKind
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import format_duration_us, format_timestamp_us


_OUTCOME_LABELS = {
    OutcomeKind.COMPLETED: "SOLD",
    OutcomeKind.ABORTED_BEFORE_BRIDGE: "ABORT",
    OutcomeKind.ABORTED_AFTER_BRIDGE: "STAKED",
    OutcomeKind.NO_OPPORTUNITY: "SKIP",
}


class CycleReporter:
    """
    Text panel for a single cycle.

    Shows source health, joined symbols, ranked candidates and the
    outcome of every dispatched execution.
    """

    # Box drawing characters
    BOX_TL = "\u2554"  # ╔
    BOX_TR = "\u2557"  # ╗
    BOX_BL = "\u255a"  # ╚
    BOX_BR = "\u255d"  # ╝
    BOX_H = "\u2550"  # ═
    BOX_V = "\u2551"  # ║
    BOX_LT = "\u2560"  # ╠
    BOX_RT = "\u2563"  # ╣
    THIN_V = "\u2502"  # │

    def __init__(
        self,
        metrics: MetricsCollector | None = None,
        width: int = 72,
        output: TextIO | None = None,
        max_rows: int = 10,
    ) -> None:
        """
        Initialize reporter.

        Args:
            metrics: Metrics collector for the session summary.
            width: Panel width in characters.
            output: Output stream (default: stdout).
            max_rows: Candidate and outcome rows shown per section.
        """
        self._metrics = metrics
        self._width = width
        self._output = output or sys.stdout
        self._max_rows = max_rows

    def _format_uptime(self, seconds: float) -> str:
        """Format uptime as HH:MM:SS."""
        td = timedelta(seconds=int(seconds))
        hours, remainder = divmod(int(td.total_seconds()), 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def _pad(self, text: str, width: int) -> str:
        return text.ljust(width)[:width]

    def _line(self, content: str) -> str:
        return f"{self.BOX_V}{self._pad(content, self._width - 2)}{self.BOX_V}"

    def _divider(self) -> str:
        return f"{self.BOX_LT}{self.BOX_H * (self._width - 2)}{self.BOX_RT}"

    def render(self, report: CycleReport) -> str:
        """
        Render one cycle report.

        Returns:
            Formatted panel string.
        """
        lines = [f"{self.BOX_TL}{self.BOX_H * (self._width - 2)}{self.BOX_TR}"]

        header = (
            f"  DEX ARBITRAGE v{__version__} | CYCLE #{report.cycle_id} | "
            f"{format_timestamp_us(report.started_at_us)}"
        )
        lines.append(self._line(header))
        lines.append(self._divider())

        # Sources
        healthy = [v for v in report.venues if v not in report.source_errors]
        lines.append(self._line(f"  Venues: {', '.join(healthy) or '-'}"))
        for venue, reason in report.source_errors.items():
            lines.append(self._line(f"  ! {venue}: {reason}"))
        for condition in report.conditions:
            lines.append(self._line(f"  ! {condition}"))
        if report.parse_errors:
            lines.append(self._line(f"  Parse errors: {len(report.parse_errors)}"))

        joined = sum(1 for j in report.joins if j.joined)
        lines.append(
            self._line(f"  Joined: {joined}  {self.THIN_V}  Dropped: {len(report.joins) - joined}")
        )
        lines.append(self._divider())

        # Candidates
        lines.append(self._line(f"  CANDIDATES ({len(report.candidates)})"))
        for c in report.candidates[: self._max_rows]:
            lines.append(
                self._line(
                    f"  {c.symbol:<10}{c.buy_venue:>12} -> {c.sell_venue:<12}"
                    f"{self.THIN_V} est ${c.estimated_profit:>10.2f}"
                )
            )
        for symbol in report.skipped:
            lines.append(self._line(f"  {symbol:<10}skipped: already in flight"))
        lines.append(self._divider())

        # Outcomes
        lines.append(self._line(f"  OUTCOMES ({len(report.outcomes)})"))
        for o in report.outcomes[: self._max_rows]:
            label = _OUTCOME_LABELS[o.kind]
            lines.append(
                self._line(
                    f"  {o.candidate.symbol:<10}{label:<8}{self.THIN_V} "
                    f"${o.realized_profit:>+10.2f}  {o.reason}"
                )
            )

        footer = f"  Duration: {format_duration_us(report.duration_us)}"
        lines.append(self._divider())
        lines.append(self._line(footer))
        lines.append(f"{self.BOX_BL}{self.BOX_H * (self._width - 2)}{self.BOX_BR}")

        return "\n".join(lines)

    def display(self, report: CycleReport) -> None:
        """Write one cycle panel to the output stream."""
        self._output.write(self.render(report))
        self._output.write("\n")
        self._output.flush()

    def status_line(self) -> str:
        """Single-line running totals for log output."""
        if self._metrics is None:
            return ""

        stats = self._metrics.stats
        return (
            f"Cycles: {stats.cycles} | Candidates: {stats.candidates_found} | "
            f"Sold/Abort/Staked: {stats.completed}/{stats.aborted_before_bridge}/"
            f"{stats.aborted_after_bridge} | PnL: {stats.realized_profit:+.2f}"
        )

    def print_summary(self) -> None:
        """Print a final session summary."""
        if self._metrics is None:
            return

        stats = self._metrics.stats
        uptime = self._format_uptime(self._metrics.uptime_seconds)

        print("\n" + "=" * 50, file=self._output)
        print("  SESSION SUMMARY", file=self._output)
        print("=" * 50, file=self._output)
        print(f"  Uptime: {uptime}", file=self._output)
        print(f"  Cycles: {stats.cycles:,} ({stats.degraded_cycles:,} degraded)", file=self._output)
        print(file=self._output)
        print("  OPPORTUNITIES:", file=self._output)
        print(f"    Found:      {stats.candidates_found:,}", file=self._output)
        print(f"    Best est.:  ${stats.best_estimated_profit:,.2f}", file=self._output)
        print(file=self._output)
        print("  EXECUTION:", file=self._output)
        print(f"    Completed:        {stats.completed:,}", file=self._output)
        print(f"    Aborted (before): {stats.aborted_before_bridge:,}", file=self._output)
        print(f"    Staked (after):   {stats.aborted_after_bridge:,}", file=self._output)
        print(f"    Completion rate:  {stats.completion_rate:.1%}", file=self._output)
        print(file=self._output)
        print("  P&L:", file=self._output)
        print(f"    Realized:     {stats.realized_profit:+.2f} USD", file=self._output)
        print(f"    Bridge fees:  {stats.bridge_fees_paid:.2f} USD", file=self._output)
        print("=" * 50, file=self._output)
