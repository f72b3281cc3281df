"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

import pytest

from dexarb.config.settings import Settings, load_settings
from dexarb.core.types import ArbitrageCandidate
from dexarb.strategy.calculator import ProfitCalculator
from tests.mocks.factories import make_candidate
from tests.mocks.settlement import (
    EventLog,
    InstantTransit,
    RecordingFallback,
    RecordingSettlement,
)


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Simulation settings with no transit delay and no .env lookup."""
    return load_settings(
        _env_file=None,
        simulate=True,
        staking_pool_address="0xpool",
        buy_confirmation_delay_s=0.0,
        bridge_transit_delay_s=0.0,
        poll_interval_s=0.05,
        cycle_deadline_s=5.0,
        fetch_timeout_s=1.0,
    )


# =============================================================================
# Strategy Fixtures
# =============================================================================


@pytest.fixture
def candidate() -> ArbitrageCandidate:
    """SYM bought at 1.00 and sold at 1.20: estimated profit 10."""
    return make_candidate()


@pytest.fixture
def calculator() -> ProfitCalculator:
    """Calculator with the default trade amount and bridge fee."""
    return ProfitCalculator(trade_amount=100.0, bridge_fee=10.0)


# =============================================================================
# Execution Fixtures
# =============================================================================


@pytest.fixture
def event_log() -> EventLog:
    """Ordered log shared by settlement and fallback."""
    return []


@pytest.fixture
def settlement(event_log: EventLog) -> RecordingSettlement:
    """Recording settlement."""
    return RecordingSettlement(event_log)


@pytest.fixture
def fallback(event_log: EventLog) -> RecordingFallback:
    """Recording staking fallback."""
    return RecordingFallback(event_log)


@pytest.fixture
def transit() -> InstantTransit:
    """Transit without delays."""
    return InstantTransit()
