"""
Unit tests for OpportunityScanner.

Tests filtering, ordering and purity of the scan.
"""

import pytest

from dexarb.core.types import JoinedQuote, ScanParams
from dexarb.strategy.scanner import OpportunityScanner


def quote(symbol: str, cheap: float, expensive: float) -> JoinedQuote:
    return JoinedQuote(
        symbol=symbol,
        price_cheap=cheap,
        price_expensive=expensive,
        cheap_venue="uniswap",
        expensive_venue="pancakeswap",
    )


class TestOpportunityScanner:
    """Tests for OpportunityScanner."""

    @pytest.fixture
    def scanner(self) -> OpportunityScanner:
        return OpportunityScanner()

    @pytest.fixture
    def params(self) -> ScanParams:
        return ScanParams(trade_amount=100.0, bridge_fee=10.0)

    def test_reference_opportunity(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """1.00 vs 1.20 gives one actionable candidate with profit 10."""
        candidates = scanner.scan([quote("SYM", 1.00, 1.20)], params)

        assert len(candidates) == 1
        assert candidates[0].symbol == "SYM"
        assert candidates[0].estimated_profit == pytest.approx(10.0)
        assert candidates[0].is_actionable

    def test_identical_prices_yield_nothing(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """No spread means no candidate."""
        assert scanner.scan([quote("SYM", 1.5, 1.5)], params) == []

    def test_spread_below_fee_is_dropped(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """A 5% spread on 100 cannot pay a 10 fee."""
        assert scanner.scan([quote("SYM", 1.00, 1.05)], params) == []

    def test_exact_threshold_is_excluded(self, scanner: OpportunityScanner) -> None:
        """Profit must be strictly greater than min_profit."""
        params = ScanParams(trade_amount=100.0, bridge_fee=0.0, min_profit=25.0)

        candidates = scanner.scan(
            [quote("EQ", 1.00, 1.25), quote("UP", 1.00, 1.50)],
            params,
        )

        assert [c.symbol for c in candidates] == ["UP"]
        assert all(c.estimated_profit > params.min_profit for c in candidates)

    def test_ordering_by_profit_then_symbol(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """Highest profit first; ties ordered by symbol."""
        quotes = [
            quote("BBB", 1.0, 1.3),
            quote("ZZZ", 1.0, 1.5),
            quote("AAA", 1.0, 1.3),
            quote("MMM", 1.0, 1.2),
        ]

        candidates = scanner.scan(quotes, params)

        assert [c.symbol for c in candidates] == ["ZZZ", "AAA", "BBB", "MMM"]
        profits = [c.estimated_profit for c in candidates]
        assert profits == sorted(profits, reverse=True)

    def test_zero_cheap_price_skipped(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """A zero price never produces a candidate."""
        assert scanner.scan([quote("SYM", 0.0, 1.0)], params) == []

    def test_memecoin_prices_are_scored(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """Memecoin-sized prices still use the full profit formula."""
        candidates = scanner.scan([quote("PEPE", 5e-11, 1e-10)], params)

        assert len(candidates) == 1
        assert candidates[0].estimated_profit == pytest.approx(90.0)

    def test_scan_is_pure(
        self,
        scanner: OpportunityScanner,
        params: ScanParams,
    ) -> None:
        """Same input, same output; the input list is untouched."""
        quotes = [quote("B", 1.0, 1.4), quote("A", 1.0, 1.3)]
        before = list(quotes)

        first = scanner.scan(quotes, params)
        second = scanner.scan(quotes, params)

        assert first == second
        assert quotes == before

    def test_best(self, scanner: OpportunityScanner, params: ScanParams) -> None:
        """Test best returns the top candidate or None."""
        assert scanner.best([], params) is None

        best = scanner.best([quote("A", 1.0, 1.3), quote("B", 1.0, 1.6)], params)

        assert best is not None
        assert best.symbol == "B"
