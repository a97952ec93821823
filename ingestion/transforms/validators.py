"""
Core validators for canonical price points.
Pure functions - no IO, network, or side effects.
"""

import math
from datetime import date
from typing import List

from ingestion.transforms.normalizers import PricePoint


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


def validate_price_point(point: PricePoint) -> None:
    """
    Validate a canonical monthly price point.

    Args:
        point: Normalized observation

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(point.date, date):
        raise ValidationError(f"date must be date, got {type(point.date)}")

    if not isinstance(point.close, (int, float)):
        raise ValidationError(f"close must be numeric, got {type(point.close)}")

    if not math.isfinite(point.close):
        raise ValidationError(f"close must be finite, got {point.close}")

    if point.close <= 0:
        raise ValidationError(f"close must be positive, got {point.close}")


def validate_price_series(series: List[PricePoint]) -> None:
    """
    Validate every point and the ascending, unique date ordering.

    Raises:
        ValidationError: On the first invalid point or ordering violation
    """
    previous = None
    for point in series:
        validate_price_point(point)
        if previous is not None and point.date <= previous.date:
            raise ValidationError(
                f"dates must be strictly ascending: {previous.date} then {point.date}"
            )
        previous = point
