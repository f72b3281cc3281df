"""
Unit tests for the re-check oracles.

Tests staleness, wholesale replacement, and live lookups.
"""

import pytest

from dexarb.execution.oracle import NOT_FOUND, SnapshotRecheckOracle, SourceRecheckOracle
from tests.mocks.factories import make_snapshot
from tests.mocks.sources import FailingPriceSource, StaticPriceSource


class FakeClock:
    """Settable microsecond clock."""

    def __init__(self, now_us: int = 1_000_000_000) -> None:
        self.now_us = now_us

    def __call__(self) -> int:
        return self.now_us


class TestSnapshotRecheckOracle:
    """Tests for SnapshotRecheckOracle."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def oracle(self, clock: FakeClock) -> SnapshotRecheckOracle:
        return SnapshotRecheckOracle(max_age_s=30.0, clock=clock)

    @pytest.mark.asyncio
    async def test_empty_oracle_finds_nothing(self, oracle: SnapshotRecheckOracle) -> None:
        """Test nothing is found before the first publish."""
        assert await oracle.recheck("SYM", "uniswap") == NOT_FOUND

    @pytest.mark.asyncio
    async def test_fresh_quote_found(
        self,
        oracle: SnapshotRecheckOracle,
        clock: FakeClock,
    ) -> None:
        """Test a fresh positive price is returned."""
        oracle.publish({"uniswap": make_snapshot("uniswap", {"SYM": 1.2}, clock.now_us)})

        assert await oracle.recheck("sym", "uniswap") == (1.2, True)

    @pytest.mark.asyncio
    async def test_stale_quote_not_found(
        self,
        oracle: SnapshotRecheckOracle,
        clock: FakeClock,
    ) -> None:
        """Test a snapshot older than max age is reported missing."""
        oracle.publish({"uniswap": make_snapshot("uniswap", {"SYM": 1.2}, clock.now_us)})
        clock.now_us += 31_000_000

        price, found = await oracle.recheck("SYM", "uniswap")

        assert not found
        assert price == 0.0

    @pytest.mark.asyncio
    async def test_unknown_venue_symbol_and_zero_price(
        self,
        oracle: SnapshotRecheckOracle,
        clock: FakeClock,
    ) -> None:
        """Test every kind of missing quote reports not found."""
        oracle.publish(
            {"uniswap": make_snapshot("uniswap", {"SYM": 1.2, "ZERO": 0.0}, clock.now_us)}
        )

        assert await oracle.recheck("SYM", "pancakeswap") == NOT_FOUND
        assert await oracle.recheck("OTHER", "uniswap") == NOT_FOUND
        assert await oracle.recheck("ZERO", "uniswap") == NOT_FOUND

    @pytest.mark.asyncio
    async def test_publish_replaces_wholesale(
        self,
        oracle: SnapshotRecheckOracle,
        clock: FakeClock,
    ) -> None:
        """Test a new cycle's set fully replaces the previous one."""
        oracle.publish(
            {
                "uniswap": make_snapshot("uniswap", {"SYM": 1.0}, clock.now_us),
                "pancakeswap": make_snapshot("pancakeswap", {"SYM": 1.2}, clock.now_us),
            }
        )
        oracle.publish({"uniswap": make_snapshot("uniswap", {"SYM": 1.1}, clock.now_us)})

        assert oracle.venues == ["uniswap"]
        assert await oracle.recheck("SYM", "uniswap") == (1.1, True)
        assert await oracle.recheck("SYM", "pancakeswap") == NOT_FOUND

    @pytest.mark.asyncio
    async def test_publish_copies_input(
        self,
        oracle: SnapshotRecheckOracle,
        clock: FakeClock,
    ) -> None:
        """Test mutating the published dict afterwards has no effect."""
        snapshots = {"uniswap": make_snapshot("uniswap", {"SYM": 1.0}, clock.now_us)}
        oracle.publish(snapshots)
        snapshots.clear()

        assert await oracle.recheck("SYM", "uniswap") == (1.0, True)


class TestSourceRecheckOracle:
    """Tests for SourceRecheckOracle."""

    @pytest.mark.asyncio
    async def test_live_lookup_fetches_source(self) -> None:
        """Test each re-check queries the venue again."""
        source = StaticPriceSource("pancakeswap", {"SYM": 1.2})
        oracle = SourceRecheckOracle([source])

        assert await oracle.recheck("SYM", "pancakeswap") == (1.2, True)
        source.set_prices({"SYM": 0.9})
        assert await oracle.recheck("SYM", "pancakeswap") == (0.9, True)
        assert source.fetch_count == 2

    @pytest.mark.asyncio
    async def test_unknown_venue(self) -> None:
        """Test an unconfigured venue is not found."""
        oracle = SourceRecheckOracle([StaticPriceSource("a", {"SYM": 1.0})])

        assert await oracle.recheck("SYM", "b") == NOT_FOUND

    @pytest.mark.asyncio
    async def test_fetch_errors_propagate(self) -> None:
        """Test source failures reach the caller."""
        oracle = SourceRecheckOracle([FailingPriceSource("a")])

        with pytest.raises(Exception, match="HTTP 500"):
            await oracle.recheck("SYM", "a")

    def test_publish_is_noop(self) -> None:
        """Test publishing snapshots keeps no state."""
        oracle = SourceRecheckOracle([StaticPriceSource("a", {})])
        oracle.publish({"x": make_snapshot("x", {"SYM": 1.0})})

        assert oracle.venues == ["a"]
