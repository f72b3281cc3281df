"""
Price sources for decentralized exchanges.

Two wire formats are supported:
- REST endpoints returning a JSON object of symbol -> {symbol, address, price}
- Uniswap-style subgraphs queried over GraphQL, where the USD price of a
  token is derivedETH * bundle.ethPrice

Malformed records are skipped and reported as ParseError; anything that
makes the whole response unusable raises SourceUnavailable.
"""

import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from dexarb.config.constants import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_SUBGRAPH_FIRST,
    SUBGRAPH_TOKENS_QUERY,
)
from dexarb.core.errors import ParseError, SourceUnavailable
from dexarb.core.types import PricedAsset, PriceSnapshot, normalize_symbol
from dexarb.market.client import HttpJsonClient
from dexarb.market.models import SubgraphResponse, SubgraphToken, TokenQuote
from dexarb.utils.math import parse_float
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


def _error_field(error: ValidationError) -> str:
    """Name of the first field that failed validation."""
    errors = error.errors()
    if not errors or not errors[0].get("loc"):
        return "record"
    return str(errors[0]["loc"][0])


def parse_price_map(
    venue: str,
    payload: Any,
    fetched_at_us: int | None = None,
) -> PriceSnapshot:
    """
    Parse a REST price map into a snapshot.

    Args:
        venue: Venue name.
        payload: Decoded JSON body.
        fetched_at_us: Snapshot timestamp (default: now).

    Raises:
        SourceUnavailable: If the body is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise SourceUnavailable(venue, f"expected a JSON object, got {type(payload).__name__}")

    assets: dict[str, PricedAsset] = {}
    rejected: list[ParseError] = []

    for key, record in payload.items():
        if not isinstance(record, dict):
            rejected.append(ParseError(venue, str(key), "record", record))
            continue

        try:
            quote = TokenQuote.model_validate(record)
        except ValidationError as e:
            field = _error_field(e)
            rejected.append(ParseError(venue, str(key), field, record.get(field)))
            continue

        symbol = normalize_symbol(quote.symbol or str(key))
        if not symbol:
            rejected.append(ParseError(venue, str(key), "symbol", quote.symbol))
            continue

        if symbol in assets:
            logger.debug(f"{venue}: duplicate symbol {symbol}, keeping first entry")
            continue

        assets[symbol] = PricedAsset(symbol=symbol, price=quote.price, address=quote.address)

    for error in rejected:
        logger.warning(f"Skipping record: {error}")

    return PriceSnapshot(
        venue=venue,
        assets=assets,
        fetched_at_us=fetched_at_us if fetched_at_us is not None else get_timestamp_us(),
        rejected=tuple(rejected),
    )


def parse_subgraph_response(
    venue: str,
    payload: Any,
    min_liquidity: float = 0.0,
    fetched_at_us: int | None = None,
) -> PriceSnapshot:
    """
    Parse a subgraph tokens/bundle response into a snapshot.

    Tokens sharing a symbol are resolved to the one with the largest
    totalLiquidity.

    Args:
        venue: Venue name.
        payload: Decoded JSON body.
        min_liquidity: Skip tokens below this totalLiquidity.
        fetched_at_us: Snapshot timestamp (default: now).

    Raises:
        SourceUnavailable: On GraphQL errors, a missing bundle, or an
            unparsable ethPrice.
    """
    try:
        response = SubgraphResponse.model_validate(payload)
    except ValidationError as e:
        raise SourceUnavailable(venue, f"malformed GraphQL response: {e}") from e

    if response.errors:
        messages = "; ".join(err.message for err in response.errors)
        raise SourceUnavailable(venue, f"GraphQL errors: {messages}")

    if response.data is None or response.data.bundle is None:
        raise SourceUnavailable(venue, "response has no bundle")

    eth_price = parse_float(response.data.bundle.eth_price)
    if eth_price is None or eth_price <= 0:
        raise SourceUnavailable(venue, f"unparsable ethPrice {response.data.bundle.eth_price!r}")

    assets: dict[str, PricedAsset] = {}
    liquidity: dict[str, float] = {}
    rejected: list[ParseError] = []

    for index, raw in enumerate(response.data.tokens):
        if not isinstance(raw, dict):
            rejected.append(ParseError(venue, f"tokens[{index}]", "token", raw))
            continue

        try:
            token = SubgraphToken.model_validate(raw)
        except ValidationError as e:
            field = _error_field(e)
            rejected.append(ParseError(venue, str(raw.get("symbol", "")), field, raw.get(field)))
            continue

        symbol = normalize_symbol(token.symbol)
        if not symbol:
            rejected.append(ParseError(venue, token.id, "symbol", token.symbol))
            continue

        derived_eth = parse_float(token.derived_eth)
        if derived_eth is None or derived_eth < 0:
            rejected.append(ParseError(venue, symbol, "derivedETH", token.derived_eth))
            continue

        token_liquidity = parse_float(token.total_liquidity) or 0.0
        if token_liquidity < min_liquidity:
            continue

        if symbol in assets and liquidity[symbol] >= token_liquidity:
            continue

        assets[symbol] = PricedAsset(
            symbol=symbol,
            price=derived_eth * eth_price,
            address=token.id,
        )
        liquidity[symbol] = token_liquidity

    for error in rejected:
        logger.warning(f"Skipping token: {error}")

    return PriceSnapshot(
        venue=venue,
        assets=assets,
        fetched_at_us=fetched_at_us if fetched_at_us is not None else get_timestamp_us(),
        rejected=tuple(rejected),
    )


class RestPriceSource(HttpJsonClient):
    """Venue exposing a JSON price map over ``GET``."""

    def __init__(
        self,
        name: str,
        url: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize REST source.

        Args:
            name: Venue name.
            url: Endpoint URL.
            timeout_s: Request timeout.
            session: Optional shared session.
        """
        super().__init__(name, timeout_s=timeout_s, session=session)
        self._name = name
        self._url = url

    @property
    def name(self) -> str:
        """Venue name."""
        return self._name

    async def fetch(self) -> PriceSnapshot:
        """Fetch and parse the price map."""
        payload = await self._request("GET", self._url)
        snapshot = parse_price_map(self._name, payload)
        logger.debug(f"{self._name}: {len(snapshot)} prices, {len(snapshot.rejected)} rejected")
        return snapshot

    def __repr__(self) -> str:
        return f"RestPriceSource({self._name!r}, {self._url!r})"


class SubgraphPriceSource(HttpJsonClient):
    """Venue priced from a Uniswap-style GraphQL subgraph."""

    def __init__(
        self,
        name: str,
        url: str,
        first: int = DEFAULT_SUBGRAPH_FIRST,
        min_liquidity: float = 0.0,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize subgraph source.

        Args:
            name: Venue name.
            url: GraphQL endpoint.
            first: Number of tokens to request.
            min_liquidity: Skip tokens below this totalLiquidity.
            timeout_s: Request timeout.
            session: Optional shared session.
        """
        super().__init__(name, timeout_s=timeout_s, session=session)
        self._name = name
        self._url = url
        self._first = first
        self._min_liquidity = min_liquidity

    @property
    def name(self) -> str:
        """Venue name."""
        return self._name

    async def fetch(self) -> PriceSnapshot:
        """Run the tokens query and derive USD prices."""
        payload = await self._request(
            "POST",
            self._url,
            {"query": SUBGRAPH_TOKENS_QUERY, "variables": {"first": self._first}},
        )
        snapshot = parse_subgraph_response(
            self._name,
            payload,
            min_liquidity=self._min_liquidity,
        )
        logger.debug(f"{self._name}: {len(snapshot)} prices, {len(snapshot.rejected)} rejected")
        return snapshot

    def __repr__(self) -> str:
        return f"SubgraphPriceSource({self._name!r}, {self._url!r})"
