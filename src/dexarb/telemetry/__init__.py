"""Telemetry module for logging, metrics, and reporting."""

from dexarb.telemetry.logger import AsyncLogger, MicrosecondFormatter, setup_logging
from dexarb.telemetry.metrics import ArbitrageStats, LatencyStats, MetricsCollector
from dexarb.telemetry.reporter import CycleReporter


__all__ = [
    "ArbitrageStats",
    "AsyncLogger",
    "CycleReporter",
    "LatencyStats",
    "MetricsCollector",
    "MicrosecondFormatter",
    "setup_logging",
]
