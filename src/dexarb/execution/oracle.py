"""
Price re-validation for in-flight executions.

Executors call ``recheck(symbol, venue)`` after the buy confirms and
again after the bridge. A quote that is missing, zero, or older than the
staleness bound is reported as not found rather than returned stale.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType

from dexarb.config.constants import DEFAULT_QUOTE_MAX_AGE
from dexarb.core.types import PriceSnapshot, PriceSource
from dexarb.utils.time import get_timestamp_us, is_stale, seconds_to_us


logger = logging.getLogger(__name__)

NOT_FOUND: tuple[float, bool] = (0.0, False)


def _lookup(
    snapshot: PriceSnapshot | None,
    symbol: str,
    now_us: int,
    max_age_us: int,
) -> tuple[float, bool]:
    """Fresh positive price from a snapshot, or NOT_FOUND."""
    if snapshot is None:
        return NOT_FOUND

    if is_stale(snapshot.fetched_at_us, now_us, max_age_us):
        logger.debug(f"Snapshot for {snapshot.venue} is stale")
        return NOT_FOUND

    price = snapshot.price(symbol)
    if price is None or price <= 0:
        return NOT_FOUND

    return price, True


class SnapshotRecheckOracle:
    """
    Serves re-checks from the most recent cycle's snapshots.

    The snapshot set is replaced wholesale by ``publish``; readers always
    see either the previous or the new set, never a mix.
    """

    def __init__(
        self,
        max_age_s: float = DEFAULT_QUOTE_MAX_AGE,
        clock: Callable[[], int] = get_timestamp_us,
    ) -> None:
        """
        Initialize oracle.

        Args:
            max_age_s: Oldest snapshot age accepted.
            clock: Microsecond clock, injectable for tests.
        """
        self._max_age_us = seconds_to_us(max_age_s)
        self._clock = clock
        self._snapshots: Mapping[str, PriceSnapshot] = MappingProxyType({})

    def publish(self, snapshots: Mapping[str, PriceSnapshot]) -> None:
        """Replace the held snapshots with a new cycle's set."""
        self._snapshots = MappingProxyType(dict(snapshots))

    async def recheck(self, symbol: str, venue: str) -> tuple[float, bool]:
        """Return (price, found) for a symbol on a venue."""
        return _lookup(
            self._snapshots.get(venue),
            symbol,
            self._clock(),
            self._max_age_us,
        )

    @property
    def venues(self) -> list[str]:
        """Venues in the current snapshot set."""
        return list(self._snapshots)


class SourceRecheckOracle:
    """
    Re-checks by querying the venue's price source directly.

    Fetch errors propagate to the executor, which treats them the same
    as a missing quote.
    """

    def __init__(
        self,
        sources: Iterable[PriceSource],
        max_age_s: float = DEFAULT_QUOTE_MAX_AGE,
        clock: Callable[[], int] = get_timestamp_us,
    ) -> None:
        """
        Initialize oracle.

        Args:
            sources: Price sources keyed by their venue name.
            max_age_s: Oldest snapshot age accepted.
            clock: Microsecond clock, injectable for tests.
        """
        self._sources = {s.name: s for s in sources}
        self._max_age_us = seconds_to_us(max_age_s)
        self._clock = clock

    def publish(self, snapshots: Mapping[str, PriceSnapshot]) -> None:
        """Live re-checks keep no cycle state."""

    async def recheck(self, symbol: str, venue: str) -> tuple[float, bool]:
        """Fetch the venue and return (price, found) for a symbol."""
        source = self._sources.get(venue)
        if source is None:
            logger.warning(f"No price source for venue {venue}")
            return NOT_FOUND

        snapshot = await source.fetch()
        return _lookup(snapshot, symbol, self._clock(), self._max_age_us)

    @property
    def venues(self) -> list[str]:
        """Venues that can be re-checked."""
        return list(self._sources)
