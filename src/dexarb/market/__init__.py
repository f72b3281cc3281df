"""Market data module for venue price feeds."""

from dexarb.market.aggregator import FeedResult, PriceFeedAggregator, join_snapshots
from dexarb.market.sources import (
    RestPriceSource,
    SubgraphPriceSource,
    parse_price_map,
    parse_subgraph_response,
)


__all__ = [
    "FeedResult",
    "PriceFeedAggregator",
    "RestPriceSource",
    "SubgraphPriceSource",
    "join_snapshots",
    "parse_price_map",
    "parse_subgraph_response",
]
