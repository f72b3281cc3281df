"""
Opportunity scanning.

Turns the joined quotes of one cycle into an ordered list of
arbitrage candidates. Scanning has no side effects: the same quotes
and parameters always produce the same list.
"""

import logging
from collections.abc import Iterable

from dexarb.core.types import ArbitrageCandidate, JoinedQuote, ScanParams
from dexarb.strategy.calculator import ProfitCalculator


logger = logging.getLogger(__name__)


def _ranking_key(candidate: ArbitrageCandidate) -> tuple[float, str]:
    """Highest profit first, then symbol."""
    return (-candidate.estimated_profit, candidate.symbol)


class OpportunityScanner:
    """
    Scores joined quotes and keeps the profitable ones.

    Features:
    - Buy side is always the cheaper venue
    - Strict threshold: estimated_profit must exceed min_profit
    - Deterministic order: descending profit, ascending symbol on ties
    """

    def scan(
        self,
        joined: Iterable[JoinedQuote],
        params: ScanParams,
    ) -> list[ArbitrageCandidate]:
        """
        Scan joined quotes for candidates.

        Args:
            joined: Quotes of the current cycle.
            params: Trade amount, bridge fee and profit threshold.

        Returns:
            Candidates with estimated_profit > params.min_profit, ranked.
        """
        calculator = ProfitCalculator(params.trade_amount, params.bridge_fee)
        candidates: list[ArbitrageCandidate] = []

        for quote in joined:
            candidate = calculator.candidate_from_quote(quote)
            if candidate is None:
                continue

            if candidate.estimated_profit > params.min_profit:
                candidates.append(candidate)
            else:
                logger.debug(
                    f"No profit opportunity for {quote.symbol}: "
                    f"estimated {candidate.estimated_profit:.4f}"
                )

        candidates.sort(key=_ranking_key)
        return candidates

    def best(
        self,
        joined: Iterable[JoinedQuote],
        params: ScanParams,
    ) -> ArbitrageCandidate | None:
        """Get the single best candidate, if any."""
        candidates = self.scan(joined, params)
        return candidates[0] if candidates else None
