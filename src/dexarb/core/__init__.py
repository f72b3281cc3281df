"""Core module containing the engine, event bus, errors, and type definitions."""

from dexarb.core.errors import (
    ArbitrageError,
    ConfigurationError,
    NoJoinableSymbols,
    ParseError,
    SourceUnavailable,
    StaleOrMissingQuote,
)
from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.types import (
    ArbitrageCandidate,
    CycleReport,
    ExecutionOutcome,
    ExecutionState,
    JoinedQuote,
    LifecycleState,
    OutcomeKind,
    PricedAsset,
    PriceSnapshot,
    ScanParams,
)


__all__ = [
    "ArbitrageCandidate",
    "ArbitrageError",
    "ConfigurationError",
    "CycleReport",
    "Event",
    "EventBus",
    "EventType",
    "ExecutionOutcome",
    "ExecutionState",
    "JoinedQuote",
    "LifecycleState",
    "NoJoinableSymbols",
    "OutcomeKind",
    "ParseError",
    "PricedAsset",
    "PriceSnapshot",
    "ScanParams",
    "SourceUnavailable",
    "StaleOrMissingQuote",
]
