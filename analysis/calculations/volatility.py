"""
Volatility calculation utilities.
Pure functions for return dispersion and the return/volatility ratio.
"""

import math
import numpy as np
from typing import List

from analysis.calculations.returns import (
    MetricsError,
    InsufficientDataError,
    InvalidInputError,
    period_returns
)


class ZeroVolatilityError(MetricsError):
    """Raised when a ratio would divide by zero volatility."""
    pass


def compute_volatility(prices: List[float]) -> float:
    """
    Calculate volatility of simple period returns.

    Formula: σ = sqrt(Σ(r_i - mean)² / n) × 100  (population, ddof=0)

    Not annualized: monthly prices give monthly volatility.

    Args:
        prices: List of prices in chronological order

    Returns:
        Volatility as percentage (4.5 = 4.5%)

    Raises:
        InsufficientDataError: If fewer than 2 prices (no returns)
        InvalidInputError: If any price is zero, negative or not finite
    """
    returns = period_returns(prices)

    if len(returns) == 0:
        raise InsufficientDataError("Insufficient data: need at least 1 return")

    std_dev = np.std(returns, ddof=0)

    return float(std_dev) * 100.0


def compute_ratio(cagr: float, volatility: float) -> float:
    """
    Calculate the return/volatility ratio.

    Simplified proxy: CAGR / volatility, no risk-free rate and no
    annualization of the volatility. Not a Sharpe ratio.

    Raises:
        InvalidInputError: If either input is not finite
        ZeroVolatilityError: If volatility is exactly 0
    """
    if not (math.isfinite(cagr) and math.isfinite(volatility)):
        raise InvalidInputError(
            f"Non-finite input: cagr={cagr}, volatility={volatility}"
        )

    if volatility == 0:
        raise ZeroVolatilityError("Volatility is zero: ratio undefined")

    return cagr / volatility
