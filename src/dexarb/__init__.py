"""
Cross-Venue DEX Arbitrage Engine.

Polls token prices from decentralized-exchange price sources, scores
cross-venue spreads, and simulates the buy, bridge and sell sequence
with slippage re-validation before the bridge is paid for.
"""

__version__ = "1.0.0"
__author__ = "Tim"
