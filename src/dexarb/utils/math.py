"""
Mathematical utilities for price calculations.

Guards the profit and tolerance arithmetic against zero prices.
"""


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Only an exact zero is rejected. Token prices far below 1e-10 are
    valid divisors.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if denominator == 0:
        return default
    return numerator / denominator


def tolerance_floor(reference: float, tolerance: float) -> float:
    """
    Lowest price still within tolerance of a reference price.

    Example:
        >>> round(tolerance_floor(1.20, 0.01), 6)
        1.188
    """
    return reference * (1.0 - tolerance)


def parse_float(value: object) -> float | None:
    """
    Parse a numeric field from an API payload.

    Returns:
        The float value, or None if it is missing, unparsable, or not finite.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if result != result or result in (float("inf"), float("-inf")):
        return None
    return result
