"""
Per-symbol ETF analysis.
Fetches a monthly series, applies data-sufficiency checks and
computes CAGR, volatility and the return/volatility ratio.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Callable, Dict, Any, Optional

from analysis.calculations.returns import MetricsError, compute_cagr
from analysis.calculations.volatility import compute_volatility, compute_ratio
from ingestion.providers.alpha_vantage_adapter import FetchOutcome

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12
MIN_OBSERVATIONS = 12
DISPLAY_DECIMALS = 2


class OutcomeStatus(str, Enum):
    """Enumeration of per-symbol analysis outcomes."""
    ANALYZED = 'analyzed'
    SKIPPED = 'skipped'


@dataclass(frozen=True)
class AnalysisResult:
    """Metrics for one instrument, rounded for display."""
    symbol: str
    start_price: float
    end_price: float
    cagr: float
    volatility: float
    ratio: float
    years: float
    data_points: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either an AnalysisResult or the reason the symbol was skipped."""
    symbol: str
    status: OutcomeStatus
    result: Optional[AnalysisResult] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.ANALYZED

    @classmethod
    def analyzed(cls, result: AnalysisResult) -> 'AnalysisOutcome':
        return cls(symbol=result.symbol, status=OutcomeStatus.ANALYZED, result=result)

    @classmethod
    def skipped(cls, symbol: str, reason: str) -> 'AnalysisOutcome':
        return cls(symbol=symbol, status=OutcomeStatus.SKIPPED, reason=reason)


def analyze_etf(
    symbol: str,
    *,
    fetch: Callable[[str], FetchOutcome],
    min_observations: int = MIN_OBSERVATIONS
) -> AnalysisOutcome:
    """
    Analyze one ETF.

    Skips (never raises) when the fetch fails, when fewer than
    ``min_observations`` monthly closes are available, or when a metric is
    undefined (zero volatility, non-positive base price). Skipped symbols
    are excluded from the ranking.

    Numeric fields are rounded to 2 decimals here, and the pipeline sorts
    on the rounded ratio.

    Args:
        symbol: Ticker symbol
        fetch: Callable returning a FetchOutcome for a symbol
        min_observations: Minimum number of monthly closes

    Returns:
        AnalysisOutcome tagged ANALYZED or SKIPPED
    """
    logger.info(f"Analyzing {symbol}...")

    fetched = fetch(symbol)
    if not fetched.ok:
        logger.info(f"No data available for {symbol}: {fetched.reason}")
        return AnalysisOutcome.skipped(symbol, fetched.reason or "no data")

    series = fetched.series or []
    if len(series) < min_observations:
        reason = (
            f"Insufficient data: {len(series)} monthly closes, "
            f"need {min_observations}"
        )
        logger.info(f"{reason} for {symbol}")
        return AnalysisOutcome.skipped(symbol, reason)

    prices = [point.close for point in series]
    start_price = prices[0]
    end_price = prices[-1]
    years = len(prices) / MONTHS_PER_YEAR

    try:
        cagr = compute_cagr(start_price, end_price, years)
        volatility = compute_volatility(prices)
        ratio = compute_ratio(cagr, volatility)
    except MetricsError as e:
        logger.warning(f"Skipping {symbol}: {e}")
        return AnalysisOutcome.skipped(symbol, str(e))

    result = AnalysisResult(
        symbol=symbol,
        start_price=round(start_price, DISPLAY_DECIMALS),
        end_price=round(end_price, DISPLAY_DECIMALS),
        cagr=round(cagr, DISPLAY_DECIMALS),
        volatility=round(volatility, DISPLAY_DECIMALS),
        ratio=round(ratio, DISPLAY_DECIMALS),
        years=round(years, DISPLAY_DECIMALS),
        data_points=len(prices),
    )

    return AnalysisOutcome.analyzed(result)
