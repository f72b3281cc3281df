"""
Unit tests for Settings.

Tests defaults, validation and the ConfigurationError conversion.
"""

import pytest

from dexarb.config.constants import DEFAULT_BRIDGE_FEE, DEFAULT_TRADE_AMOUNT
from dexarb.config.settings import Settings, load_settings
from dexarb.core.errors import ConfigurationError


def live_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "_env_file": None,
        "price_sources": {"Uniswap ": "https://u.example/prices", "pancakeswap": "https://p.example"},
        "staking_pool_address": "0xpool",
    }
    values.update(overrides)
    return load_settings(**values)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, settings: Settings) -> None:
        """Test trading defaults."""
        assert settings.trade_amount == DEFAULT_TRADE_AMOUNT
        assert settings.bridge_fee == DEFAULT_BRIDGE_FEE
        assert settings.slippage_tolerance == 0.01
        assert settings.recheck_mode == "snapshot"
        assert settings.run_mode == "loop"

    def test_venue_names_are_normalized(self) -> None:
        """Test venue names are trimmed and lower-cased."""
        settings = live_settings()

        assert settings.venue_names == ["uniswap", "pancakeswap"]

    def test_subgraph_counts_as_venue(self) -> None:
        """Test a subgraph plus one REST venue is enough."""
        settings = live_settings(
            price_sources={"pancakeswap": "https://p.example"},
            subgraph_url="https://graph.example/uniswap",
        )

        assert settings.venue_names == ["pancakeswap", "uniswap-subgraph"]

    def test_blank_subgraph_url_is_none(self) -> None:
        """Test an empty SUBGRAPH_URL means no subgraph."""
        assert live_settings(subgraph_url="  ").subgraph_url is None

    def test_single_venue_rejected(self) -> None:
        """Test fewer than two venues is a configuration error."""
        with pytest.raises(ConfigurationError, match="two price sources"):
            live_settings(price_sources={"uniswap": "https://u.example"})

    def test_empty_endpoint_rejected(self) -> None:
        """Test an empty endpoint URL is rejected."""
        with pytest.raises(ConfigurationError, match="cannot be empty"):
            live_settings(price_sources={"uniswap": "", "pancakeswap": "https://p.example"})

    def test_staking_pool_required(self) -> None:
        """Test live mode needs a staking pool."""
        with pytest.raises(ConfigurationError, match="STAKING_POOL_ADDRESS"):
            live_settings(staking_pool_address="")

    def test_duplicate_subgraph_venue_rejected(self) -> None:
        """Test the subgraph cannot reuse a REST venue name."""
        with pytest.raises(ConfigurationError, match="configured twice"):
            live_settings(subgraph_url="https://g.example", subgraph_venue="uniswap")

    def test_simulate_skips_endpoint_checks(self) -> None:
        """Test simulation needs no endpoints."""
        settings = load_settings(_env_file=None, simulate=True)

        assert settings.venue_names == []

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("trade_amount", 0.0),
            ("bridge_fee", -1.0),
            ("slippage_tolerance", 1.0),
            ("max_concurrent_executions", 0),
            ("recheck_mode", "sometimes"),
        ],
    )
    def test_out_of_range_values(self, field: str, value: object) -> None:
        """Test bounds are enforced."""
        with pytest.raises(ConfigurationError):
            load_settings(_env_file=None, simulate=True, **{field: value})

    def test_environment_loading(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from the environment, JSON for the venue map."""
        monkeypatch.setenv("PRICE_SOURCES", '{"uniswap": "https://u", "sushiswap": "https://s"}')
        monkeypatch.setenv("STAKING_POOL_ADDRESS", "0xenv")
        monkeypatch.setenv("BRIDGE_FEE", "2.5")

        settings = load_settings(_env_file=None)

        assert settings.venue_names == ["uniswap", "sushiswap"]
        assert settings.staking_pool_address == "0xenv"
        assert settings.bridge_fee == 2.5
