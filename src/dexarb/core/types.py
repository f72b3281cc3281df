"""
Type definitions for the arbitrage engine.

This module contains the dataclasses, enums and Protocol definitions
shared by the feed, strategy and execution layers. Per-cycle values are
frozen so they can be read concurrently by executors without copying.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from dexarb.core.errors import ParseError


# =============================================================================
# Enums
# =============================================================================


class ExecutionState(str, Enum):
    """States of a single candidate's execution."""

    IDLE = "IDLE"
    BUY_PENDING = "BUY_PENDING"
    REVALIDATING = "REVALIDATING"
    BRIDGE_PENDING = "BRIDGE_PENDING"
    SELL_PENDING = "SELL_PENDING"
    COMPLETED = "COMPLETED"
    ABORTED_BEFORE_BRIDGE = "ABORTED_BEFORE_BRIDGE"
    ABORTED_AFTER_BRIDGE = "ABORTED_AFTER_BRIDGE"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is allowed."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        ExecutionState.COMPLETED,
        ExecutionState.ABORTED_BEFORE_BRIDGE,
        ExecutionState.ABORTED_AFTER_BRIDGE,
    }
)


class OutcomeKind(str, Enum):
    """Terminal classification of one candidate's run."""

    COMPLETED = "COMPLETED"
    ABORTED_BEFORE_BRIDGE = "ABORTED_BEFORE_BRIDGE"
    ABORTED_AFTER_BRIDGE = "ABORTED_AFTER_BRIDGE"
    NO_OPPORTUNITY = "NO_OPPORTUNITY"


class LifecycleState(str, Enum):
    """Engine lifecycle."""

    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class TransitLeg(str, Enum):
    """Suspension points that represent simulated network latency."""

    BUY_CONFIRMATION = "BUY_CONFIRMATION"
    BRIDGE = "BRIDGE"


# =============================================================================
# Market Data Types
# =============================================================================


def normalize_symbol(symbol: str) -> str:
    """Canonical join key for a token symbol."""
    return symbol.strip().upper()


@dataclass(slots=True, frozen=True)
class PricedAsset:
    """
    Token price on one venue at one instant.

    Price is in USD and never negative; sources reject negative values
    as parse errors before constructing this.
    """

    symbol: str
    price: float
    address: str = ""


@dataclass(slots=True, frozen=True)
class PriceSnapshot:
    """
    All prices fetched from one venue in one poll.

    Assets are keyed by normalized symbol. Records that failed to parse
    are kept in ``rejected`` so they can be reported with the cycle.
    """

    venue: str
    assets: Mapping[str, PricedAsset]
    fetched_at_us: int
    rejected: tuple[ParseError, ...] = ()

    def price(self, symbol: str) -> float | None:
        """Get price for a symbol, or None if not quoted."""
        asset = self.assets.get(normalize_symbol(symbol))
        return asset.price if asset is not None else None

    def __len__(self) -> int:
        return len(self.assets)


@dataclass(slots=True, frozen=True)
class JoinedQuote:
    """
    Prices of one symbol on the cheapest and most expensive venue.

    Built only from snapshots of the same cycle.
    """

    symbol: str
    price_cheap: float
    price_expensive: float
    cheap_venue: str
    expensive_venue: str


@dataclass(slots=True, frozen=True)
class JoinRecord:
    """Per-symbol join result for the cycle report."""

    symbol: str
    venues: tuple[str, ...]
    joined: bool
    reason: str = ""


# =============================================================================
# Opportunity Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ScanParams:
    """Inputs to opportunity scoring."""

    trade_amount: float
    bridge_fee: float
    min_profit: float = 0.0


@dataclass(slots=True, frozen=True)
class ArbitrageCandidate:
    """
    Buy-low/sell-high opportunity for one symbol.

    estimated_profit = (sell - buy) * trade_amount / buy - bridge_fee
    """

    symbol: str
    buy_venue: str
    sell_venue: str
    buy_price: float
    sell_price: float
    estimated_profit: float
    trade_amount: float

    @property
    def is_actionable(self) -> bool:
        """Check if the candidate is worth dispatching."""
        return self.estimated_profit > 0

    @property
    def quantity(self) -> float:
        """Token quantity bought with trade_amount."""
        return self.trade_amount / self.buy_price if self.buy_price > 0 else 0.0


# =============================================================================
# Execution Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class StakeReceipt:
    """Record of a bridged asset routed to the staking pool."""

    symbol: str
    venue: str
    quantity: float
    pool_address: str
    reference_price: float | None
    timestamp_us: int


@dataclass(slots=True, frozen=True)
class ExecutionOutcome:
    """
    Terminal record of one candidate's run.

    ``states`` is the full path through the state machine, starting at IDLE.
    """

    candidate: ArbitrageCandidate
    kind: OutcomeKind
    states: tuple[ExecutionState, ...]
    revalidated_price: float | None = None
    realized_profit: float = 0.0
    reason: str = ""
    stake: StakeReceipt | None = None
    start_timestamp_us: int = 0
    end_timestamp_us: int = 0

    @property
    def bridged(self) -> bool:
        """Check if the bridge leg was started."""
        return ExecutionState.BRIDGE_PENDING in self.states

    @property
    def final_state(self) -> ExecutionState:
        """Last state reached."""
        return self.states[-1]

    @property
    def latency_us(self) -> int:
        """Wall time of the run."""
        return self.end_timestamp_us - self.start_timestamp_us


@dataclass(slots=True)
class CycleReport:
    """
    Observability record of one poll, scan and execute cycle.

    Mutable while the cycle runs; the engine stops touching it once
    ``completed_at_us`` is set.
    """

    cycle_id: int
    started_at_us: int
    venues: tuple[str, ...] = ()
    source_errors: dict[str, str] = field(default_factory=dict)
    parse_errors: list[str] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)
    joins: list[JoinRecord] = field(default_factory=list)
    candidates: list[ArbitrageCandidate] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    outcomes: list[ExecutionOutcome] = field(default_factory=list)
    completed_at_us: int = 0

    @property
    def duration_us(self) -> int:
        """Cycle wall time, zero while running."""
        if not self.completed_at_us:
            return 0
        return self.completed_at_us - self.started_at_us

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-serializable dict."""
        return {
            "cycle_id": self.cycle_id,
            "started_at_us": self.started_at_us,
            "completed_at_us": self.completed_at_us,
            "venues": list(self.venues),
            "source_errors": dict(self.source_errors),
            "parse_errors": list(self.parse_errors),
            "conditions": list(self.conditions),
            "joins": [
                {
                    "symbol": j.symbol,
                    "venues": list(j.venues),
                    "joined": j.joined,
                    "reason": j.reason,
                }
                for j in self.joins
            ],
            "candidates": [
                {
                    "symbol": c.symbol,
                    "buy_venue": c.buy_venue,
                    "sell_venue": c.sell_venue,
                    "buy_price": c.buy_price,
                    "sell_price": c.sell_price,
                    "estimated_profit": c.estimated_profit,
                    "trade_amount": c.trade_amount,
                }
                for c in self.candidates
            ],
            "skipped": list(self.skipped),
            "outcomes": [
                {
                    "symbol": o.candidate.symbol,
                    "kind": o.kind.value,
                    "states": [s.value for s in o.states],
                    "revalidated_price": o.revalidated_price,
                    "realized_profit": o.realized_profit,
                    "reason": o.reason,
                    "staked": o.stake is not None,
                }
                for o in self.outcomes
            ],
        }


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class PriceSource(Protocol):
    """One venue's price feed."""

    @property
    def name(self) -> str:
        """Venue name."""
        ...

    async def fetch(self) -> PriceSnapshot:
        """
        Fetch a fresh snapshot.

        Raises:
            SourceUnavailable: When the venue cannot be read.
        """
        ...


class RecheckOracle(Protocol):
    """Price re-validation used mid-execution."""

    async def recheck(self, symbol: str, venue: str) -> tuple[float, bool]:
        """Return (price, found) for a symbol on a venue."""
        ...


class Transit(Protocol):
    """Simulated latency at execution suspension points."""

    async def wait(self, leg: TransitLeg) -> None:
        """Suspend for the duration of a transit leg."""
        ...


class Settlement(Protocol):
    """Side effects of the execution legs."""

    async def buy(self, candidate: ArbitrageCandidate) -> None:
        """Submit the buy leg on the cheap venue."""
        ...

    async def bridge(self, candidate: ArbitrageCandidate) -> None:
        """Move the bought asset to the sell venue."""
        ...

    async def sell(self, candidate: ArbitrageCandidate, price: float) -> None:
        """Sell the bridged asset on the expensive venue."""
        ...
