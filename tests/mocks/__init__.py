"""Mock implementations for testing."""

from tests.mocks.factories import make_candidate, make_snapshot
from tests.mocks.settlement import (
    InstantTransit,
    RecordingFallback,
    RecordingSettlement,
    ScriptedOracle,
)
from tests.mocks.sources import FailingPriceSource, HangingPriceSource, StaticPriceSource


__all__ = [
    "FailingPriceSource",
    "HangingPriceSource",
    "InstantTransit",
    "RecordingFallback",
    "RecordingSettlement",
    "ScriptedOracle",
    "StaticPriceSource",
    "make_candidate",
    "make_snapshot",
]
