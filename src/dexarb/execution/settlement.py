"""
Simulated settlement of the execution legs.

Nothing here touches a chain: legs are logged and recorded, and the
confirmation and bridge latencies are modelled by a Transit whose
delays come from configuration.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from dexarb.config.constants import (
    DEFAULT_BRIDGE_TRANSIT_DELAY,
    DEFAULT_BUY_CONFIRMATION_DELAY,
)
from dexarb.core.types import ArbitrageCandidate, TransitLeg
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


class SimulatedTransit:
    """
    Transit that sleeps for a configured delay per leg.

    The sleep function is injectable so tests can run without
    wall-clock delays.
    """

    def __init__(
        self,
        buy_confirmation_s: float = DEFAULT_BUY_CONFIRMATION_DELAY,
        bridge_s: float = DEFAULT_BRIDGE_TRANSIT_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize transit.

        Args:
            buy_confirmation_s: Delay for buy confirmation.
            bridge_s: Delay for bridge transit.
            sleep: Coroutine used to wait.
        """
        self._delays = {
            TransitLeg.BUY_CONFIRMATION: buy_confirmation_s,
            TransitLeg.BRIDGE: bridge_s,
        }
        self._sleep = sleep

    async def wait(self, leg: TransitLeg) -> None:
        """Suspend for the leg's configured delay."""
        delay = self._delays[leg]
        if delay > 0:
            await self._sleep(delay)

    def delay(self, leg: TransitLeg) -> float:
        """Configured delay for a leg."""
        return self._delays[leg]


@dataclass(slots=True, frozen=True)
class LegRecord:
    """One simulated leg."""

    action: str
    symbol: str
    venue: str
    price: float
    quantity: float
    timestamp_us: int


class DryRunSettlement:
    """
    Settlement that only logs and records legs.

    Records are kept in order so callers can inspect what the executor
    actually did.
    """

    def __init__(self, max_records: int = 1000) -> None:
        """
        Initialize settlement.

        Args:
            max_records: Records kept before the oldest are dropped.
        """
        self._max_records = max_records
        self._records: list[LegRecord] = []

    def _record(self, action: str, symbol: str, venue: str, price: float, quantity: float) -> None:
        self._records.append(
            LegRecord(action, symbol, venue, price, quantity, get_timestamp_us())
        )
        if len(self._records) > self._max_records:
            del self._records[: len(self._records) - self._max_records]

    async def buy(self, candidate: ArbitrageCandidate) -> None:
        """Simulate the buy on the cheap venue."""
        logger.info(
            f"[DRY RUN] Buying {candidate.quantity:.6f} {candidate.symbol} "
            f"on {candidate.buy_venue} at ${candidate.buy_price:.6f}"
        )
        self._record(
            "buy", candidate.symbol, candidate.buy_venue, candidate.buy_price, candidate.quantity
        )

    async def bridge(self, candidate: ArbitrageCandidate) -> None:
        """Simulate bridging to the sell venue."""
        logger.info(
            f"[DRY RUN] Bridging {candidate.symbol} "
            f"from {candidate.buy_venue} to {candidate.sell_venue}"
        )
        self._record("bridge", candidate.symbol, candidate.sell_venue, 0.0, candidate.quantity)

    async def sell(self, candidate: ArbitrageCandidate, price: float) -> None:
        """Simulate the sell on the expensive venue."""
        logger.info(
            f"[DRY RUN] Selling {candidate.symbol} on {candidate.sell_venue} "
            f"at updated price: ${price:.6f}"
        )
        self._record("sell", candidate.symbol, candidate.sell_venue, price, candidate.quantity)

    @property
    def records(self) -> list[LegRecord]:
        """Recorded legs, oldest first."""
        return list(self._records)
