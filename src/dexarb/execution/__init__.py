"""Execution module for the buy, bridge and sell state machine."""

from dexarb.execution.executor import ArbitrageExecutor, ExecutorConfig, InvalidTransition
from dexarb.execution.fallback import StakingFallback
from dexarb.execution.oracle import SnapshotRecheckOracle, SourceRecheckOracle
from dexarb.execution.settlement import DryRunSettlement, LegRecord, SimulatedTransit


__all__ = [
    "ArbitrageExecutor",
    "DryRunSettlement",
    "ExecutorConfig",
    "InvalidTransition",
    "LegRecord",
    "SimulatedTransit",
    "SnapshotRecheckOracle",
    "SourceRecheckOracle",
    "StakingFallback",
]
