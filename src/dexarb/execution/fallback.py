"""
Fallback disposition for bridged assets.

Once an asset has been bridged it cannot be cheaply returned. When the
sell venue's price has fallen too far below the buy price, the asset is
routed to a staking pool instead of being sold at a loss.
"""

import logging
from collections.abc import Callable

from dexarb.core.types import ArbitrageCandidate, StakeReceipt
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


class StakingFallback:
    """
    Routes bridged assets to a staking pool.

    Simulated: produces a receipt and logs it, nothing is signed.
    """

    def __init__(
        self,
        pool_address: str,
        clock: Callable[[], int] = get_timestamp_us,
        max_receipts: int = 1000,
    ) -> None:
        """
        Initialize fallback.

        Args:
            pool_address: Staking pool that receives the asset.
            clock: Microsecond clock.
            max_receipts: Receipts kept before the oldest are dropped.
        """
        self._pool_address = pool_address
        self._clock = clock
        self._max_receipts = max_receipts
        self._receipts: list[StakeReceipt] = []
        self._total_staked = 0

    async def stake(
        self,
        candidate: ArbitrageCandidate,
        reference_price: float | None,
    ) -> StakeReceipt:
        """
        Stake the bridged quantity on the sell venue.

        Args:
            candidate: Candidate whose asset was bridged.
            reference_price: Latest sell-venue price, None if unquoted.

        Returns:
            Receipt for the staking position.
        """
        receipt = StakeReceipt(
            symbol=candidate.symbol,
            venue=candidate.sell_venue,
            quantity=candidate.quantity,
            pool_address=self._pool_address,
            reference_price=reference_price,
            timestamp_us=self._clock(),
        )
        self._receipts.append(receipt)
        self._total_staked += 1
        if len(self._receipts) > self._max_receipts:
            del self._receipts[: len(self._receipts) - self._max_receipts]

        logger.warning(
            f"[DRY RUN] Staking {receipt.quantity:.6f} {candidate.symbol} "
            f"in pool {self._pool_address or '<unset>'} due to price drop on {candidate.sell_venue}"
        )
        return receipt

    @property
    def receipts(self) -> list[StakeReceipt]:
        """Most recent staking receipts, oldest first."""
        return list(self._receipts)

    @property
    def total_staked(self) -> int:
        """Positions staked since creation, including dropped receipts."""
        return self._total_staked

    @property
    def pool_address(self) -> str:
        """Configured staking pool."""
        return self._pool_address
