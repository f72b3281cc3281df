"""
Arbitrage profit calculation.

Computes the estimated USD profit of buying on the cheap venue,
bridging, and selling on the expensive venue.
"""

from dexarb.core.types import ArbitrageCandidate, JoinedQuote
from dexarb.utils.math import safe_divide


class ProfitCalculator:
    """
    Calculates cross-venue arbitrage profit.

    profit = (sell - buy) * trade_amount / buy - bridge_fee

    Direct float operations, no Decimal. A zero buy price yields no
    candidate rather than a division error.
    """

    __slots__ = ("_trade_amount", "_bridge_fee")

    def __init__(self, trade_amount: float, bridge_fee: float) -> None:
        """
        Initialize calculator.

        Args:
            trade_amount: USD notional spent on the buy leg.
            bridge_fee: Flat USD cost of the bridge leg.
        """
        self._trade_amount = trade_amount
        self._bridge_fee = bridge_fee

    def estimate_profit(self, buy_price: float, sell_price: float) -> float:
        """
        Estimate profit for a buy/sell price pair.

        Example:
            >>> round(ProfitCalculator(100, 10).estimate_profit(1.00, 1.20), 9)
            10.0
        """
        gross_return = safe_divide(sell_price - buy_price, buy_price)
        return gross_return * self._trade_amount - self._bridge_fee

    def candidate_from_quote(self, quote: JoinedQuote) -> ArbitrageCandidate | None:
        """
        Build a candidate from a joined quote.

        Returns:
            Candidate buying on the cheap venue, or None if the cheap
            price is not positive.
        """
        if quote.price_cheap <= 0:
            return None

        return ArbitrageCandidate(
            symbol=quote.symbol,
            buy_venue=quote.cheap_venue,
            sell_venue=quote.expensive_venue,
            buy_price=quote.price_cheap,
            sell_price=quote.price_expensive,
            estimated_profit=self.estimate_profit(quote.price_cheap, quote.price_expensive),
            trade_amount=self._trade_amount,
        )

    def break_even_spread(self, buy_price: float) -> float:
        """Absolute spread at which estimated profit is exactly zero."""
        return safe_divide(self._bridge_fee * buy_price, self._trade_amount)

    @property
    def trade_amount(self) -> float:
        """USD notional per trade."""
        return self._trade_amount

    @property
    def bridge_fee(self) -> float:
        """Flat bridge cost."""
        return self._bridge_fee
