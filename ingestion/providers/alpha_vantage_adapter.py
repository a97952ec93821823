"""
Alpha Vantage adapter - fetch monthly price series for one symbol.
Network IO allowed here, but minimal business logic.
"""

import logging
import requests
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ingestion.transforms.normalizers import (
    PricePoint,
    NormalizationError,
    normalize_monthly_prices
)
from ingestion.transforms.validators import ValidationError, validate_price_series

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://www.alphavantage.co/query'
MONTHLY_FUNCTION = 'TIME_SERIES_MONTHLY'
SERIES_KEY = 'Monthly Time Series'

# Alpha Vantage answers HTTP 200 with one of these instead of data
DIAGNOSTIC_KEYS = ('Error Message', 'Note', 'Information')


class FetchStatus(str, Enum):
    """Enumeration of fetch outcomes."""
    SUCCESS = 'success'
    TRANSPORT_FAILURE = 'transport_failure'
    MISSING_DATA = 'missing_data'


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch: a parsed series or a failure reason."""
    symbol: str
    status: FetchStatus
    series: Optional[List[PricePoint]] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @classmethod
    def success(cls, symbol: str, series: List[PricePoint]) -> 'FetchOutcome':
        return cls(symbol=symbol, status=FetchStatus.SUCCESS, series=series)

    @classmethod
    def failure(cls, symbol: str, status: FetchStatus, reason: str) -> 'FetchOutcome':
        return cls(symbol=symbol, status=status, reason=reason)


def fetch_monthly_series(
    symbol: str,
    *,
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 30
) -> FetchOutcome:
    """
    Fetch and parse the monthly time series for a symbol.

    Never raises for per-symbol problems: network errors, bad status codes,
    non-JSON bodies and malformed rows become TRANSPORT_FAILURE; a body
    without the monthly series becomes MISSING_DATA.

    Args:
        symbol: Ticker symbol (e.g., 'SPY')
        api_key: Alpha Vantage API key
        base_url: Query endpoint
        timeout: Request timeout in seconds

    Returns:
        FetchOutcome with the ascending price series on success
    """
    params = {
        'function': MONTHLY_FUNCTION,
        'symbol': symbol,
        'apikey': api_key,
    }

    try:
        response = requests.get(base_url, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        return _failed(symbol, FetchStatus.TRANSPORT_FAILURE, str(e))

    try:
        payload = response.json()
    except ValueError as e:
        return _failed(symbol, FetchStatus.TRANSPORT_FAILURE, f"malformed payload: {e}")

    if not isinstance(payload, dict):
        return _failed(
            symbol,
            FetchStatus.TRANSPORT_FAILURE,
            f"malformed payload: expected JSON object, got {type(payload).__name__}"
        )

    time_series = payload.get(SERIES_KEY)
    if time_series is None:
        return _failed(symbol, FetchStatus.MISSING_DATA, _missing_data_reason(payload))

    if not isinstance(time_series, dict):
        return _failed(
            symbol,
            FetchStatus.TRANSPORT_FAILURE,
            f"malformed payload: '{SERIES_KEY}' is not an object"
        )

    try:
        series = normalize_monthly_prices(time_series)
        validate_price_series(series)
    except (NormalizationError, ValidationError) as e:
        return _failed(symbol, FetchStatus.TRANSPORT_FAILURE, f"malformed payload: {e}")

    logger.debug(f"Fetched {len(series)} monthly closes for {symbol}")
    return FetchOutcome.success(symbol, series)


def _missing_data_reason(payload: dict) -> str:
    """Build the MISSING_DATA reason, including any provider diagnostic."""
    for key in DIAGNOSTIC_KEYS:
        message = payload.get(key)
        if message:
            return f"no data: {message}"
    return "no data"


def _failed(symbol: str, status: FetchStatus, reason: str) -> FetchOutcome:
    logger.warning(f"Error fetching data for {symbol}: {reason}")
    return FetchOutcome.failure(symbol, status, reason)
