"""
Error taxonomy for the arbitrage engine.

Only ConfigurationError is fatal. The others are contained where they
occur and reported alongside the successful results of the same cycle.
"""


class ArbitrageError(Exception):
    """Base exception for engine errors."""


class ConfigurationError(ArbitrageError):
    """Invalid or missing configuration discovered at startup."""


class SourceUnavailable(ArbitrageError):
    """A venue's price fetch failed (transport, status code, or payload)."""

    def __init__(self, venue: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"{venue}: {reason}")
        self.venue = venue
        self.reason = reason
        self.status = status


class NoJoinableSymbols(ArbitrageError):
    """Fewer than two sources succeeded, or they share no symbols."""

    def __init__(self, venues: list[str], reason: str) -> None:
        super().__init__(reason)
        self.venues = venues
        self.reason = reason


class StaleOrMissingQuote(ArbitrageError):
    """Revalidation found no fresh price for a symbol on a venue."""

    def __init__(self, symbol: str, venue: str, reason: str = "no fresh quote") -> None:
        super().__init__(f"{symbol}@{venue}: {reason}")
        self.symbol = symbol
        self.venue = venue
        self.reason = reason


class ParseError(ArbitrageError):
    """A single malformed record from a source."""

    def __init__(self, venue: str, symbol: str, field: str, value: object) -> None:
        super().__init__(f"{venue}: cannot parse {field}={value!r} for {symbol or '?'}")
        self.venue = venue
        self.symbol = symbol
        self.field = field
        self.value = value
