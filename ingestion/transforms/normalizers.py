"""
Normalizers for transforming provider data to canonical shape.
Pure functions - no IO, network, or side effects.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Any, List


CLOSE_FIELD = '4. close'


class NormalizationError(Exception):
    """Raised when a provider row cannot be mapped to canonical shape."""
    pass


@dataclass(frozen=True)
class PricePoint:
    """One monthly observation: period end date and closing price."""
    date: date
    close: float


def normalize_monthly_prices(time_series: Dict[str, Dict[str, Any]]) -> List[PricePoint]:
    """
    Transform an Alpha Vantage monthly time series to a price series.

    Minimal normalization:
    - Date keys to date objects
    - "4. close" strings to floats
    - Deduplication by date (keep last to handle corrections)
    - Chronological ordering (provider returns newest first)

    Args:
        time_series: Mapping of ISO date string to provider row

    Returns:
        List of PricePoint in ascending date order

    Raises:
        NormalizationError: If a date key or close value is malformed
    """
    if not time_series:
        return []

    seen_dates = {}

    for date_str, raw in time_series.items():
        try:
            row_date = date.fromisoformat(str(date_str).strip())
        except ValueError:
            raise NormalizationError(f"Invalid date key: {date_str!r}")

        if not isinstance(raw, dict) or CLOSE_FIELD not in raw:
            raise NormalizationError(f"Missing '{CLOSE_FIELD}' for {date_str}")

        try:
            close = float(raw[CLOSE_FIELD])
        except (TypeError, ValueError):
            raise NormalizationError(
                f"Unparseable close for {date_str}: {raw[CLOSE_FIELD]!r}"
            )

        seen_dates[row_date] = PricePoint(date=row_date, close=close)

    return [seen_dates[d] for d in sorted(seen_dates)]
