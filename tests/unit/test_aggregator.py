"""
Unit tests for price feed aggregation.

Tests the symbol join and degraded-mode behaviour of PriceFeedAggregator.
"""

import pytest

from dexarb.core.errors import ConfigurationError, SourceUnavailable
from dexarb.core.types import PricedAsset, PriceSnapshot
from dexarb.market.aggregator import PriceFeedAggregator, join_snapshots
from tests.mocks.factories import make_snapshot
from tests.mocks.sources import FailingPriceSource, HangingPriceSource, StaticPriceSource


class TestJoinSnapshots:
    """Tests for join_snapshots."""

    def test_join_two_venues(self) -> None:
        """Test cheap and expensive sides are assigned by price."""
        quotes, joins, condition = join_snapshots(
            {
                "uniswap": make_snapshot("uniswap", {"SYM": 1.20}),
                "pancakeswap": make_snapshot("pancakeswap", {"SYM": 1.00}),
            }
        )

        assert condition is None
        assert len(quotes) == 1
        assert quotes[0].cheap_venue == "pancakeswap"
        assert quotes[0].expensive_venue == "uniswap"
        assert quotes[0].price_cheap == 1.00
        assert quotes[0].price_expensive == 1.20
        assert joins[0].joined

    def test_symbol_missing_on_one_venue(self) -> None:
        """Test symbols not quoted everywhere are dropped with a reason."""
        quotes, joins, _ = join_snapshots(
            {
                "a": make_snapshot("a", {"SYM": 1.0, "ONLY": 2.0}),
                "b": make_snapshot("b", {"SYM": 1.1}),
            }
        )

        assert [q.symbol for q in quotes] == ["SYM"]
        dropped = {j.symbol: j for j in joins if not j.joined}
        assert dropped["ONLY"].reason == "missing on b"

    def test_zero_price_excludes_symbol(self) -> None:
        """Test a zero price on any venue excludes the symbol."""
        quotes, joins, condition = join_snapshots(
            {
                "a": make_snapshot("a", {"SYM": 0.0}),
                "b": make_snapshot("b", {"SYM": 1.0}),
            }
        )

        assert quotes == []
        assert joins[0].reason == "zero price on a"
        assert condition is not None

    def test_equal_prices_resolve_by_venue_name(self) -> None:
        """Test ties put the first venue name on the buy side."""
        quotes, _, _ = join_snapshots(
            {
                "zeta": make_snapshot("zeta", {"SYM": 1.0}),
                "alpha": make_snapshot("alpha", {"SYM": 1.0}),
            }
        )

        assert quotes[0].cheap_venue == "alpha"
        assert quotes[0].expensive_venue == "zeta"

    def test_three_venues_use_extremes(self) -> None:
        """Test the cheapest and most expensive venues are paired."""
        quotes, _, _ = join_snapshots(
            {
                "a": make_snapshot("a", {"SYM": 1.10}),
                "b": make_snapshot("b", {"SYM": 0.90}),
                "c": make_snapshot("c", {"SYM": 1.30}),
            }
        )

        assert quotes[0].cheap_venue == "b"
        assert quotes[0].expensive_venue == "c"

    def test_single_venue_is_not_joinable(self) -> None:
        """Test one snapshot produces the NoJoinableSymbols condition."""
        quotes, joins, condition = join_snapshots({"a": make_snapshot("a", {"SYM": 1.0})})

        assert quotes == []
        assert joins == []
        assert condition is not None
        assert condition.venues == ["a"]

    def test_no_overlap_is_not_joinable(self) -> None:
        """Test disjoint symbol sets produce the condition."""
        quotes, _, condition = join_snapshots(
            {
                "a": make_snapshot("a", {"AAA": 1.0}),
                "b": make_snapshot("b", {"BBB": 1.0}),
            }
        )

        assert quotes == []
        assert condition is not None
        assert condition.reason == "no symbols quoted on every venue"


class TestPriceFeedAggregator:
    """Tests for PriceFeedAggregator."""

    def test_requires_sources(self) -> None:
        """Test an empty source list is a configuration error."""
        with pytest.raises(ConfigurationError):
            PriceFeedAggregator([])

    def test_rejects_duplicate_names(self) -> None:
        """Test two sources with one name are rejected."""
        with pytest.raises(ConfigurationError, match="Duplicate"):
            PriceFeedAggregator(
                [StaticPriceSource("a", {}), StaticPriceSource("a", {})]
            )

    @pytest.mark.asyncio
    async def test_fetch_joins_all_sources(self) -> None:
        """Test a healthy fetch joins overlapping symbols."""
        aggregator = PriceFeedAggregator(
            [
                StaticPriceSource("uniswap", {"SYM": 1.00, "ETH": 3500.0}),
                StaticPriceSource("pancakeswap", {"SYM": 1.20, "ETH": 3500.0}),
            ]
        )

        feed = await aggregator.fetch()

        assert not feed.is_degraded
        assert feed.condition is None
        assert {q.symbol for q in feed.quotes} == {"SYM", "ETH"}
        assert set(feed.snapshots) == {"uniswap", "pancakeswap"}

    @pytest.mark.asyncio
    async def test_symbols_join_case_insensitively(self) -> None:
        """Test keys are trimmed and upper-cased before joining."""
        aggregator = PriceFeedAggregator(
            [
                StaticPriceSource("a", {" sym ": 1.00}),
                StaticPriceSource("b", {"SYM": 1.20}),
            ]
        )

        feed = await aggregator.fetch()

        assert [q.symbol for q in feed.quotes] == ["SYM"]

    @pytest.mark.asyncio
    async def test_failed_source_with_two_survivors(self) -> None:
        """Test an HTTP 500 venue degrades the cycle but still joins the rest."""
        aggregator = PriceFeedAggregator(
            [
                StaticPriceSource("a", {"SYM": 1.00}),
                FailingPriceSource("broken"),
                StaticPriceSource("b", {"SYM": 1.20}),
            ]
        )

        feed = await aggregator.fetch()

        assert feed.is_degraded
        assert feed.errors["broken"].status == 500
        assert feed.condition is None
        assert [q.symbol for q in feed.quotes] == ["SYM"]

    @pytest.mark.asyncio
    async def test_failed_source_with_one_survivor(self) -> None:
        """Test one survivor yields no quotes and a reported condition."""
        aggregator = PriceFeedAggregator(
            [StaticPriceSource("a", {"SYM": 1.00}), FailingPriceSource("b")]
        )

        feed = await aggregator.fetch()

        assert feed.quotes == []
        assert feed.condition is not None
        assert "b" in feed.errors

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self) -> None:
        """Test a non-SourceUnavailable failure is wrapped, not raised."""
        aggregator = PriceFeedAggregator(
            [
                StaticPriceSource("a", {"SYM": 1.00}),
                FailingPriceSource("b", error=ValueError("boom")),
            ]
        )

        feed = await aggregator.fetch()

        assert isinstance(feed.errors["b"], SourceUnavailable)
        assert "boom" in feed.errors["b"].reason

    @pytest.mark.asyncio
    async def test_fetch_timeout(self) -> None:
        """Test a hanging venue is cut off by the fetch timeout."""
        aggregator = PriceFeedAggregator(
            [StaticPriceSource("a", {"SYM": 1.0}), HangingPriceSource("slow")],
            fetch_timeout_s=0.05,
        )

        feed = await aggregator.fetch()

        assert "timed out" in feed.errors["slow"].reason

    @pytest.mark.asyncio
    async def test_parse_errors_are_collected(self) -> None:
        """Test rejected records surface on the feed result."""
        from dexarb.core.errors import ParseError

        class RejectingSource(StaticPriceSource):
            async def fetch(self) -> PriceSnapshot:
                return PriceSnapshot(
                    venue=self.name,
                    assets={"SYM": PricedAsset("SYM", 1.0)},
                    fetched_at_us=1,
                    rejected=(ParseError(self.name, "BAD", "price", "abc"),),
                )

        aggregator = PriceFeedAggregator(
            [RejectingSource("a", {}), StaticPriceSource("b", {"SYM": 1.1})]
        )

        feed = await aggregator.fetch()

        assert len(feed.parse_errors) == 1
        assert feed.parse_errors[0].symbol == "BAD"
