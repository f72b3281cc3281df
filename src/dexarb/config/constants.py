"""
Trading constants and configuration values.

Defaults used by the settings layer and the price sources,
organized by category.
"""

from typing import Final


# =============================================================================
# Venues
# =============================================================================

DEFAULT_VENUE_A: Final[str] = "uniswap"
DEFAULT_VENUE_B: Final[str] = "pancakeswap"
DEFAULT_SUBGRAPH_VENUE: Final[str] = "uniswap-subgraph"


# =============================================================================
# Subgraph Query
# =============================================================================

DEFAULT_SUBGRAPH_FIRST: Final[int] = 1000

SUBGRAPH_TOKENS_QUERY: Final[str] = """
query Tokens($first: Int!) {
  tokens(first: $first) {
    id
    symbol
    name
    derivedETH
    totalLiquidity
  }
  bundle(id: "1") {
    ethPrice
  }
}
"""


# =============================================================================
# Trading Parameters
# =============================================================================

# Notional spent on the buy leg, in USD
DEFAULT_TRADE_AMOUNT: Final[float] = 100.0

# Flat cost of moving the asset between venues, in USD
DEFAULT_BRIDGE_FEE: Final[float] = 10.0

# Maximum fractional price move accepted between scan and execution (1%)
DEFAULT_SLIPPAGE_TOLERANCE: Final[float] = 0.01

# Minimum estimated profit in USD for a candidate to be dispatched
DEFAULT_MIN_PROFIT: Final[float] = 0.0


# =============================================================================
# Simulated Transit
# =============================================================================

DEFAULT_BUY_CONFIRMATION_DELAY: Final[float] = 1.0  # seconds
DEFAULT_BRIDGE_TRANSIT_DELAY: Final[float] = 3.0  # seconds


# =============================================================================
# Scheduling
# =============================================================================

DEFAULT_POLL_INTERVAL: Final[float] = 15.0  # seconds
DEFAULT_CYCLE_DEADLINE: Final[float] = 60.0  # seconds
DEFAULT_FETCH_TIMEOUT: Final[float] = 10.0  # seconds
DEFAULT_QUOTE_MAX_AGE: Final[float] = 30.0  # seconds
DEFAULT_MAX_CONCURRENT_EXECUTIONS: Final[int] = 4


# =============================================================================
# HTTP
# =============================================================================

HTTP_CONNECTION_LIMIT: Final[int] = 20
HTTP_KEEPALIVE_TIMEOUT: Final[float] = 30.0  # seconds
HTTP_USER_AGENT: Final[str] = "dexarb/1.0"


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000

# Rolling window for latency statistics
LATENCY_WINDOW_SIZE: Final[int] = 1000
