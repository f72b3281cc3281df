"""
Unit tests for ProfitCalculator.

Tests the profit formula, zero-price handling, and candidate building.
"""

import pytest

from dexarb.core.types import JoinedQuote
from dexarb.strategy.calculator import ProfitCalculator


class TestProfitCalculator:
    """Tests for ProfitCalculator."""

    def test_initialization(self) -> None:
        """Test calculator initialization."""
        calc = ProfitCalculator(trade_amount=250.0, bridge_fee=5.0)

        assert calc.trade_amount == 250.0
        assert calc.bridge_fee == 5.0

    def test_estimate_profit_reference_case(self, calculator: ProfitCalculator) -> None:
        """1.00 -> 1.20 with 100 traded and a 10 fee is exactly 10."""
        assert calculator.estimate_profit(1.00, 1.20) == pytest.approx(10.0)

    def test_estimate_profit_identical_prices_costs_the_fee(
        self,
        calculator: ProfitCalculator,
    ) -> None:
        """No spread leaves only the bridge fee."""
        assert calculator.estimate_profit(2.5, 2.5) == pytest.approx(-10.0)

    def test_estimate_profit_scales_with_trade_amount(self) -> None:
        """Gross return is proportional to the notional."""
        small = ProfitCalculator(trade_amount=100.0, bridge_fee=0.0)
        large = ProfitCalculator(trade_amount=1000.0, bridge_fee=0.0)

        assert large.estimate_profit(1.0, 1.05) == pytest.approx(
            10 * small.estimate_profit(1.0, 1.05)
        )

    def test_estimate_profit_zero_buy_price_does_not_divide(
        self,
        calculator: ProfitCalculator,
    ) -> None:
        """A zero buy price yields only the fee, never ZeroDivisionError."""
        assert calculator.estimate_profit(0.0, 1.0) == pytest.approx(-10.0)

    def test_estimate_profit_tiny_prices(self, calculator: ProfitCalculator) -> None:
        """A price below 1e-10 is a real divisor, not a zero."""
        assert calculator.estimate_profit(5e-11, 1e-10) == pytest.approx(90.0)
        assert calculator.estimate_profit(1e-12, 1e-12) == pytest.approx(-10.0)

    def test_candidate_from_quote(self, calculator: ProfitCalculator) -> None:
        """Test the cheap venue becomes the buy side."""
        quote = JoinedQuote(
            symbol="SYM",
            price_cheap=1.00,
            price_expensive=1.20,
            cheap_venue="uniswap",
            expensive_venue="pancakeswap",
        )

        candidate = calculator.candidate_from_quote(quote)

        assert candidate is not None
        assert candidate.buy_venue == "uniswap"
        assert candidate.sell_venue == "pancakeswap"
        assert candidate.buy_price == 1.00
        assert candidate.sell_price == 1.20
        assert candidate.estimated_profit == pytest.approx(10.0)
        assert candidate.quantity == pytest.approx(100.0)
        assert candidate.is_actionable

    def test_candidate_from_quote_zero_price(self, calculator: ProfitCalculator) -> None:
        """Test no candidate is built from a zero cheap price."""
        quote = JoinedQuote("SYM", 0.0, 1.0, "a", "b")

        assert calculator.candidate_from_quote(quote) is None

    def test_break_even_spread(self, calculator: ProfitCalculator) -> None:
        """At the break-even spread the estimate is zero."""
        buy = 2.0
        spread = calculator.break_even_spread(buy)

        assert spread == pytest.approx(0.2)
        assert calculator.estimate_profit(buy, buy + spread) == pytest.approx(0.0, abs=1e-9)
