"""
Microsecond clock helpers.

All engine timestamps (snapshot fetch times, execution start/end, cycle
boundaries) are integer Unix microseconds from ``get_timestamp_us``.
"""

import time
from datetime import UTC, datetime


def get_timestamp_us() -> int:
    """Current Unix time in microseconds."""
    return time.time_ns() // 1000


def seconds_to_us(seconds: float) -> int:
    """Convert a duration in seconds to microseconds."""
    return int(seconds * 1_000_000)


def is_stale(fetched_at_us: int, now_us: int, max_age_us: int) -> bool:
    """
    Check whether a snapshot is older than the allowed age.

    A snapshot exactly ``max_age_us`` old is still fresh.

    Example:
        >>> is_stale(0, 30_000_000, 30_000_000)
        False
        >>> is_stale(0, 30_000_001, 30_000_000)
        True
    """
    return now_us - fetched_at_us > max_age_us


def format_timestamp_us(timestamp_us: int, include_date: bool = False) -> str:
    """
    Render a microsecond timestamp in UTC.

    Args:
        timestamp_us: Unix time in microseconds.
        include_date: Prefix the calendar date.

    Example:
        >>> format_timestamp_us(1704067200123456)
        '00:00:00.123456'
        >>> format_timestamp_us(1704067200123456, include_date=True)
        '2024-01-01 00:00:00.123456'
    """
    whole, micros = divmod(timestamp_us, 1_000_000)
    pattern = "%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S"
    return f"{datetime.fromtimestamp(whole, tz=UTC):{pattern}}.{micros:06d}"


def format_duration_us(duration_us: int) -> str:
    """
    Render a duration with a unit suited to its size.

    Example:
        >>> format_duration_us(500)
        '500μs'
        >>> format_duration_us(1500)
        '1.50ms'
        >>> format_duration_us(4_250_000)
        '4.25s'
        >>> format_duration_us(65_000_000)
        '1m05s'
    """
    if duration_us < 1000:
        return f"{duration_us}μs"
    if duration_us < 1_000_000:
        return f"{duration_us / 1000:.2f}ms"
    if duration_us < 60_000_000:
        return f"{duration_us / 1_000_000:.2f}s"
    minutes, seconds = divmod(duration_us // 1_000_000, 60)
    return f"{minutes}m{seconds:02d}s"


class LatencyTimer:
    """
    Measures the wall time of a block, e.g. one aggregator fetch.

    Example:
        >>> with LatencyTimer() as timer:
        ...     pass
        >>> timer.latency_us >= 0
        True
    """

    __slots__ = ("started_us", "latency_us")

    def __init__(self) -> None:
        self.started_us = 0
        self.latency_us = 0

    def __enter__(self) -> "LatencyTimer":
        self.started_us = get_timestamp_us()
        return self

    def __exit__(self, *args: object) -> None:
        self.latency_us = get_timestamp_us() - self.started_us
