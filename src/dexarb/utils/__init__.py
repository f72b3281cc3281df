"""Utility functions for the arbitrage engine."""

from dexarb.utils.math import parse_float, safe_divide, tolerance_floor
from dexarb.utils.time import (
    LatencyTimer,
    format_duration_us,
    format_timestamp_us,
    get_timestamp_us,
    is_stale,
    seconds_to_us,
)


__all__ = [
    "LatencyTimer",
    "format_duration_us",
    "format_timestamp_us",
    "get_timestamp_us",
    "is_stale",
    "parse_float",
    "safe_divide",
    "seconds_to_us",
    "tolerance_floor",
]
