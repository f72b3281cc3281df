"""Configuration module for the arbitrage engine."""

from dexarb.config.constants import (
    DEFAULT_BRIDGE_FEE,
    DEFAULT_SLIPPAGE_TOLERANCE,
    DEFAULT_TRADE_AMOUNT,
)
from dexarb.config.settings import Settings, get_settings


__all__ = [
    "DEFAULT_BRIDGE_FEE",
    "DEFAULT_SLIPPAGE_TOLERANCE",
    "DEFAULT_TRADE_AMOUNT",
    "Settings",
    "get_settings",
]
