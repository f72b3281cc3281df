"""
Pydantic models for price source responses.

These models provide type-safe parsing of venue payloads. Records are
validated one at a time so a single malformed token never rejects the
whole response.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class TokenQuote(BaseModel):
    """
    One entry of a REST price map.

    Venues disagree on key casing, so both ``price`` and ``Price`` style
    keys are accepted.
    """

    symbol: str = Field(default="", validation_alias=AliasChoices("symbol", "Symbol"))
    address: str = Field(default="", validation_alias=AliasChoices("address", "Address"))
    price: float = Field(
        ge=0.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("price", "Price"),
    )

    model_config = {"populate_by_name": True}


class SubgraphToken(BaseModel):
    """Token entity from a Uniswap-style subgraph."""

    id: str
    symbol: str
    name: str = ""
    derived_eth: str | float | None = Field(default=None, alias="derivedETH")
    total_liquidity: str | float | None = Field(default=None, alias="totalLiquidity")

    model_config = {"populate_by_name": True}


class SubgraphBundle(BaseModel):
    """Bundle entity carrying the ETH/USD price."""

    eth_price: str | float = Field(alias="ethPrice")

    model_config = {"populate_by_name": True}


class SubgraphData(BaseModel):
    """``data`` member of the GraphQL response."""

    tokens: list[Any] = Field(default_factory=list)
    bundle: SubgraphBundle | None = None


class GraphQLError(BaseModel):
    """Single entry of a GraphQL ``errors`` array."""

    message: str


class SubgraphResponse(BaseModel):
    """GraphQL response envelope."""

    data: SubgraphData | None = None
    errors: list[GraphQLError] | None = None
