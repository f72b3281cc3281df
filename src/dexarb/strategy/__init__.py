"""Strategy module for opportunity scoring."""

from dexarb.strategy.calculator import ProfitCalculator
from dexarb.strategy.scanner import OpportunityScanner


__all__ = [
    "OpportunityScanner",
    "ProfitCalculator",
]
