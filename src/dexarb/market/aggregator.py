"""
Price feed aggregation across venues.

Fetches every configured source concurrently, contains per-source
failures, and joins the surviving snapshots into per-symbol quotes.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from dexarb.config.constants import DEFAULT_FETCH_TIMEOUT
from dexarb.core.errors import (
    ConfigurationError,
    NoJoinableSymbols,
    ParseError,
    SourceUnavailable,
)
from dexarb.core.types import (
    JoinedQuote,
    JoinRecord,
    PricedAsset,
    PriceSnapshot,
    PriceSource,
    normalize_symbol,
)


logger = logging.getLogger(__name__)


@dataclass
class FeedResult:
    """Outcome of one aggregation pass."""

    snapshots: dict[str, PriceSnapshot] = field(default_factory=dict)
    errors: dict[str, SourceUnavailable] = field(default_factory=dict)
    quotes: list[JoinedQuote] = field(default_factory=list)
    joins: list[JoinRecord] = field(default_factory=list)
    condition: NoJoinableSymbols | None = None

    @property
    def parse_errors(self) -> list[ParseError]:
        """Per-record errors from all successful sources."""
        return [err for snapshot in self.snapshots.values() for err in snapshot.rejected]

    @property
    def is_degraded(self) -> bool:
        """Check if at least one source failed."""
        return bool(self.errors)


def join_snapshots(
    snapshots: dict[str, PriceSnapshot],
) -> tuple[list[JoinedQuote], list[JoinRecord], NoJoinableSymbols | None]:
    """
    Join venue snapshots into per-symbol quotes.

    A symbol is joined only if every venue quotes it with a positive
    price. The cheapest venue becomes the buy side and the most expensive
    other venue the sell side; equal prices resolve to venue name order.

    Returns:
        (quotes sorted by symbol, per-symbol join records, condition)
    """
    venues = sorted(snapshots)

    if len(venues) < 2:
        return [], [], NoJoinableSymbols(
            venues,
            f"{len(venues)} source(s) available, at least 2 required",
        )

    all_symbols: set[str] = set()
    for snapshot in snapshots.values():
        all_symbols.update(snapshot.assets)

    quotes: list[JoinedQuote] = []
    joins: list[JoinRecord] = []

    for symbol in sorted(all_symbols):
        quoted = tuple(v for v in venues if symbol in snapshots[v].assets)

        if len(quoted) < len(venues):
            missing = ", ".join(v for v in venues if v not in quoted)
            joins.append(JoinRecord(symbol, quoted, False, f"missing on {missing}"))
            continue

        prices = [(snapshots[v].assets[symbol].price, v) for v in venues]

        zero = [v for price, v in prices if price <= 0]
        if zero:
            joins.append(JoinRecord(symbol, quoted, False, f"zero price on {', '.join(zero)}"))
            continue

        cheap_price, cheap_venue = min(prices, key=lambda pv: pv[0])
        expensive_price, expensive_venue = max(
            (pv for pv in prices if pv[1] != cheap_venue),
            key=lambda pv: pv[0],
        )

        quotes.append(
            JoinedQuote(
                symbol=symbol,
                price_cheap=cheap_price,
                price_expensive=expensive_price,
                cheap_venue=cheap_venue,
                expensive_venue=expensive_venue,
            )
        )
        joins.append(JoinRecord(symbol, quoted, True))

    condition = None
    if not quotes:
        condition = NoJoinableSymbols(venues, "no symbols quoted on every venue")

    return quotes, joins, condition


def _normalize_snapshot(venue: str, snapshot: PriceSnapshot) -> PriceSnapshot:
    """Re-key a snapshot by normalized symbol under the source's venue name."""
    assets: dict[str, PricedAsset] = {}
    for key, asset in snapshot.assets.items():
        symbol = normalize_symbol(key)
        if not symbol or symbol in assets:
            continue
        assets[symbol] = asset

    return PriceSnapshot(
        venue=venue,
        assets=assets,
        fetched_at_us=snapshot.fetched_at_us,
        rejected=snapshot.rejected,
    )


class PriceFeedAggregator:
    """
    Pulls snapshots from all sources and joins them.

    Features:
    - Concurrent fetch with a per-source timeout
    - Degraded mode: failed sources are reported, not fatal
    - Case-insensitive, whitespace-trimmed symbol join
    """

    def __init__(
        self,
        sources: Sequence[PriceSource],
        fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            sources: Price sources, one per venue.
            fetch_timeout_s: Upper bound on each source's fetch.

        Raises:
            ConfigurationError: If no sources are given or names collide.
        """
        if not sources:
            raise ConfigurationError("No price sources configured")

        names = [s.name for s in sources]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate venue names: {', '.join(duplicates)}")

        self._sources = list(sources)
        self._fetch_timeout = fetch_timeout_s

    async def _fetch_one(self, source: PriceSource) -> PriceSnapshot | SourceUnavailable:
        """Fetch one source, converting any failure into SourceUnavailable."""
        try:
            snapshot = await asyncio.wait_for(source.fetch(), timeout=self._fetch_timeout)
        except SourceUnavailable as e:
            return e
        except TimeoutError:
            return SourceUnavailable(source.name, f"timed out after {self._fetch_timeout}s")
        except Exception as e:
            logger.exception(f"Unexpected error fetching {source.name}")
            return SourceUnavailable(source.name, f"{type(e).__name__}: {e}")

        return _normalize_snapshot(source.name, snapshot)

    async def fetch(self) -> FeedResult:
        """
        Fetch all sources and join the results.

        Returns:
            FeedResult with snapshots, per-source errors, and joined quotes.
        """
        results = await asyncio.gather(*(self._fetch_one(s) for s in self._sources))

        feed = FeedResult()
        for source, result in zip(self._sources, results, strict=True):
            if isinstance(result, SourceUnavailable):
                logger.warning(f"Source unavailable: {result}")
                feed.errors[source.name] = result
            else:
                feed.snapshots[source.name] = result

        feed.quotes, feed.joins, feed.condition = join_snapshots(feed.snapshots)

        if feed.condition:
            logger.info(f"No joinable symbols: {feed.condition.reason}")
        else:
            logger.debug(
                f"Joined {len(feed.quotes)} symbols across {len(feed.snapshots)} venues"
            )

        return feed

    @property
    def sources(self) -> list[PriceSource]:
        """Configured sources."""
        return list(self._sources)

    @property
    def venues(self) -> list[str]:
        """Configured venue names."""
        return [s.name for s in self._sources]
