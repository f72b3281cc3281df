"""
Simulated DEX venues for demo mode.

Each venue random-walks its own copy of a shared token list, so two
venues quote slightly different prices for the same symbol. Now and then
one token is dislocated far enough to clear the bridge fee, which gives
the executor something to do without any network access.
"""

import logging
import random
from dataclasses import dataclass, field

from dexarb.core.errors import SourceUnavailable
from dexarb.core.types import PricedAsset, PriceSnapshot, normalize_symbol
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


@dataclass
class SimulatedToken:
    """Configuration for a simulated token."""

    symbol: str
    base_price: float
    address: str = ""
    volatility: float = 0.003  # Price change per fetch (0.3%)
    current_price: float = field(init=False)

    def __post_init__(self) -> None:
        self.current_price = self.base_price


DEFAULT_TOKENS: tuple[tuple[str, float, str], ...] = (
    ("WETH", 3500.0, "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
    ("WBTC", 65000.0, "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599"),
    ("UNI", 9.8, "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"),
    ("LINK", 18.5, "0x514910771af9ca656af840dff83e8264ecf986ca"),
    ("AAVE", 105.0, "0x7fc66500c84a76ad7e9c93437bfc5ac33e2ddae9"),
    ("CAKE", 2.6, "0x0e09fabb73bd3ade0a17ecc321fd13a19e81ce82"),
    ("DAI", 1.0, "0x6b175474e89094c44da98b954eedeac495271d0f"),
    ("SUSHI", 1.1, "0x6b3595068778dd592e39a122f4f5a5cf09c90fe2"),
)


class SimulatedVenue:
    """
    PriceSource backed by an in-process random walk.

    Features:
    - Gaussian price steps with mean reversion toward the base price
    - Occasional dislocation of one token (configurable)
    - Optional outage probability to exercise degraded cycles
    """

    def __init__(
        self,
        name: str,
        tokens: list[SimulatedToken] | None = None,
        dislocation_frequency: float = 0.2,
        dislocation_range: tuple[float, float] = (0.12, 0.25),
        fail_rate: float = 0.0,
        seed: int | None = None,
    ) -> None:
        """
        Initialize simulated venue.

        Args:
            name: Venue name.
            tokens: Tokens to quote (default: common ERC-20s).
            dislocation_frequency: Probability of a dislocation per fetch.
            dislocation_range: Min/max fractional price jump of a dislocation.
            fail_rate: Probability that a fetch raises SourceUnavailable.
            seed: Random seed for reproducible runs.
        """
        self._name = name
        if tokens is None:
            tokens = [SimulatedToken(s, p, a) for s, p, a in DEFAULT_TOKENS]
        self._tokens = {normalize_symbol(t.symbol): t for t in tokens}
        self._dislocation_frequency = dislocation_frequency
        self._dislocation_range = dislocation_range
        self._fail_rate = fail_rate
        self._rng = random.Random(seed)

        self._fetch_count = 0
        self._dislocations = 0

    @property
    def name(self) -> str:
        """Venue name."""
        return self._name

    def _step(self, token: SimulatedToken) -> None:
        """Advance one token's price by one random-walk step."""
        shock = self._rng.gauss(0, token.volatility)
        reversion = (token.base_price - token.current_price) * 0.1
        token.current_price = max(token.current_price * (1 + shock) + reversion, 0.0)

    def _maybe_dislocate(self) -> None:
        """Occasionally push one token well above its fair price."""
        if not self._tokens or self._rng.random() > self._dislocation_frequency:
            return

        token = self._rng.choice(list(self._tokens.values()))
        jump = self._rng.uniform(*self._dislocation_range)
        token.current_price *= 1 + jump
        self._dislocations += 1
        logger.debug(f"{self._name}: dislocated {token.symbol} by {jump:.1%}")

    async def fetch(self) -> PriceSnapshot:
        """
        Produce a fresh snapshot.

        Raises:
            SourceUnavailable: With probability ``fail_rate``.
        """
        self._fetch_count += 1

        if self._fail_rate and self._rng.random() < self._fail_rate:
            raise SourceUnavailable(self._name, "simulated outage", status=503)

        for token in self._tokens.values():
            self._step(token)
        self._maybe_dislocate()

        assets = {
            key: PricedAsset(symbol=key, price=round(t.current_price, 8), address=t.address)
            for key, t in self._tokens.items()
        }
        return PriceSnapshot(venue=self._name, assets=assets, fetched_at_us=get_timestamp_us())

    async def close(self) -> None:
        """Nothing to release."""

    def get_current_prices(self) -> dict[str, float]:
        """Get current prices for all tokens."""
        return {key: t.current_price for key, t in self._tokens.items()}

    @property
    def fetch_count(self) -> int:
        """Number of fetches served."""
        return self._fetch_count

    @property
    def dislocations(self) -> int:
        """Number of dislocations injected."""
        return self._dislocations


def create_simulated_venues(
    names: list[str],
    fail_rate: float = 0.0,
    seed: int | None = None,
) -> list[SimulatedVenue]:
    """
    Build one simulated venue per name.

    Args:
        names: Venue names.
        fail_rate: Per-fetch outage probability for every venue.
        seed: Base seed; each venue gets ``seed + index``.

    Returns:
        Venues quoting the default token list.
    """
    return [
        SimulatedVenue(
            name,
            fail_rate=fail_rate,
            seed=None if seed is None else seed + i,
        )
        for i, name in enumerate(names)
    ]
