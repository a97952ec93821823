"""
Returns calculation utilities.
Pure functions for period-over-period returns and compound annual growth.
"""

import math
import numpy as np
from typing import List


class MetricsError(Exception):
    """Base class for metric calculation failures."""
    pass


class InsufficientDataError(MetricsError):
    """Raised when a series is too short for the requested metric."""
    pass


class InvalidInputError(MetricsError):
    """Raised when prices or horizons are outside the metric's domain."""
    pass


def period_returns(prices: List[float]) -> np.ndarray:
    """
    Calculate simple period-over-period returns.

    Formula: r_i = (P_i - P_{i-1}) / P_{i-1}

    Args:
        prices: List of prices in chronological order

    Returns:
        Numpy array of returns as decimals (length = len(prices) - 1)

    Raises:
        InsufficientDataError: If fewer than 2 prices
        InvalidInputError: If any price is zero, negative or not finite
    """
    if len(prices) < 2:
        raise InsufficientDataError("Insufficient data: need at least 2 prices")

    if any(not math.isfinite(p) for p in prices):
        raise InvalidInputError("Non-finite prices not allowed")

    if any(p <= 0 for p in prices):
        raise InvalidInputError("Zero or negative prices not allowed")

    price_array = np.array(prices, dtype=np.float64)

    return np.diff(price_array) / price_array[:-1]


def compute_cagr(start_price: float, end_price: float, years: float) -> float:
    """
    Calculate compound annual growth rate.

    Formula: CAGR = ((P_end / P_start) ^ (1 / years) - 1) × 100

    Args:
        start_price: First closing price (must be > 0)
        end_price: Last closing price (must be >= 0)
        years: Elapsed years between the two prices (must be > 0)

    Returns:
        CAGR as percentage (10.0 = 10%)

    Raises:
        InvalidInputError: If an input is invalid or not finite, or the
            result overflows
    """
    if not all(math.isfinite(v) for v in (start_price, end_price, years)):
        raise InvalidInputError(
            f"Non-finite input: start={start_price}, end={end_price}, years={years}"
        )

    if start_price <= 0:
        raise InvalidInputError(f"Start price must be positive, got {start_price}")

    if end_price < 0:
        raise InvalidInputError(f"End price must not be negative, got {end_price}")

    if years <= 0:
        raise InvalidInputError(f"Years must be positive, got {years}")

    try:
        growth = (end_price / start_price) ** (1.0 / years)
    except OverflowError:
        growth = math.inf

    if not math.isfinite(growth):
        raise InvalidInputError(
            f"CAGR out of range: {start_price} to {end_price} over {years} years"
        )

    return (growth - 1.0) * 100.0
