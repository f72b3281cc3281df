"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation. Endpoint fields that the
engine cannot run without are validated here so that a bad deployment
fails before the first polling cycle.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dexarb.config.constants import (
    DEFAULT_BRIDGE_FEE,
    DEFAULT_BRIDGE_TRANSIT_DELAY,
    DEFAULT_BUY_CONFIRMATION_DELAY,
    DEFAULT_CYCLE_DEADLINE,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_MAX_CONCURRENT_EXECUTIONS,
    DEFAULT_MIN_PROFIT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_QUOTE_MAX_AGE,
    DEFAULT_SLIPPAGE_TOLERANCE,
    DEFAULT_SUBGRAPH_FIRST,
    DEFAULT_SUBGRAPH_VENUE,
    DEFAULT_TRADE_AMOUNT,
)
from dexarb.core.errors import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    ``PRICE_SOURCES`` is a JSON object mapping venue name to endpoint URL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Price Sources
    # =========================================================================

    price_sources: dict[str, str] = Field(
        default_factory=dict,
        description="Venue name -> REST endpoint returning a symbol/price map",
    )

    subgraph_url: str | None = Field(
        default=None,
        description="Optional GraphQL endpoint used as an additional venue",
    )

    subgraph_venue: str = Field(
        default=DEFAULT_SUBGRAPH_VENUE,
        description="Venue name reported for the subgraph source",
    )

    subgraph_first: int = Field(
        default=DEFAULT_SUBGRAPH_FIRST,
        ge=1,
        le=1000,
        description="Number of tokens requested from the subgraph",
    )

    subgraph_min_liquidity: float = Field(
        default=0.0,
        ge=0.0,
        description="Skip subgraph tokens whose totalLiquidity is below this",
    )

    # =========================================================================
    # Trading Configuration
    # =========================================================================

    trade_amount: float = Field(
        default=DEFAULT_TRADE_AMOUNT,
        gt=0.0,
        description="USD notional spent on the buy leg",
    )

    bridge_fee: float = Field(
        default=DEFAULT_BRIDGE_FEE,
        ge=0.0,
        description="Flat USD cost of bridging between venues",
    )

    min_profit: float = Field(
        default=DEFAULT_MIN_PROFIT,
        ge=0.0,
        description="Minimum estimated USD profit to dispatch a candidate",
    )

    slippage_tolerance: float = Field(
        default=DEFAULT_SLIPPAGE_TOLERANCE,
        ge=0.0,
        lt=1.0,
        description="Maximum fractional price move before aborting (0.01 = 1%)",
    )

    staking_pool_address: str = Field(
        default="",
        description="Pool that receives bridged assets when selling would lose money",
    )

    # =========================================================================
    # Simulated Transit
    # =========================================================================

    buy_confirmation_delay_s: float = Field(
        default=DEFAULT_BUY_CONFIRMATION_DELAY,
        ge=0.0,
        description="Simulated confirmation latency of the buy leg",
    )

    bridge_transit_delay_s: float = Field(
        default=DEFAULT_BRIDGE_TRANSIT_DELAY,
        ge=0.0,
        description="Simulated bridge transit time",
    )

    # =========================================================================
    # Revalidation
    # =========================================================================

    quote_max_age_s: float = Field(
        default=DEFAULT_QUOTE_MAX_AGE,
        gt=0.0,
        description="Oldest snapshot age accepted when re-checking a price",
    )

    recheck_mode: Literal["snapshot", "live"] = Field(
        default="snapshot",
        description="Re-check against the cycle snapshot or query the venue again",
    )

    # =========================================================================
    # Scheduling
    # =========================================================================

    poll_interval_s: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        gt=0.0,
        description="Seconds between polling cycles in loop mode",
    )

    cycle_deadline_s: float = Field(
        default=DEFAULT_CYCLE_DEADLINE,
        gt=0.0,
        description="Seconds after which unbridged executions are abandoned",
    )

    fetch_timeout_s: float = Field(
        default=DEFAULT_FETCH_TIMEOUT,
        gt=0.0,
        description="Per-source fetch timeout",
    )

    max_concurrent_executions: int = Field(
        default=DEFAULT_MAX_CONCURRENT_EXECUTIONS,
        ge=1,
        le=32,
        description="Maximum number of candidates executed concurrently",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    simulate: bool = Field(
        default=False,
        description="Use simulated venues instead of configured endpoints",
    )

    run_mode: Literal["loop", "once", "serve"] = Field(
        default="loop",
        description="Interval loop, a single cycle, or the HTTP listener",
    )

    server_host: str = Field(default="0.0.0.0", description="Listener bind host")

    server_port: int = Field(default=8080, ge=1, le=65535, description="Listener port")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(default=None, description="Optional log file")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("price_sources", mode="after")
    @classmethod
    def validate_price_sources(cls, v: dict[str, str]) -> dict[str, str]:
        """Normalize venue names and reject empty endpoints."""
        cleaned: dict[str, str] = {}
        for venue, url in v.items():
            name = venue.strip().lower()
            if not name:
                raise ValueError("Venue name cannot be empty")
            if not url.strip():
                raise ValueError(f"Endpoint for venue '{name}' cannot be empty")
            cleaned[name] = url.strip()
        return cleaned

    @field_validator("subgraph_url", mode="after")
    @classmethod
    def validate_subgraph_url(cls, v: str | None) -> str | None:
        """Treat a blank subgraph URL as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_required_endpoints(self) -> "Settings":
        """Require two venues and a staking pool unless simulating."""
        if self.simulate:
            return self

        if len(self.venue_names) < 2:
            raise ValueError(
                "At least two price sources are required "
                "(PRICE_SOURCES and/or SUBGRAPH_URL)"
            )
        if self.subgraph_url and self.subgraph_venue in self.price_sources:
            raise ValueError(f"Venue '{self.subgraph_venue}' is configured twice")
        if not self.staking_pool_address.strip():
            raise ValueError("STAKING_POOL_ADDRESS is required")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def venue_names(self) -> list[str]:
        """All configured venue names, subgraph included."""
        names = list(self.price_sources)
        if self.subgraph_url:
            names.append(self.subgraph_venue)
        return names


def load_settings(**overrides: object) -> Settings:
    """
    Build settings, converting validation failures to ConfigurationError.

    Args:
        **overrides: Field values taking precedence over the environment.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return load_settings()
