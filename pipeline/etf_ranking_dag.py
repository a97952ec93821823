"""
ETF ranking DAG - orchestrates the fetch, analyze and rank pipeline.
Composes: Provider → Analyze → Rank → Report.
"""

import os
import logging
from datetime import datetime
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Any, List, Optional

from dotenv import load_dotenv

from analysis.etf_analyzer import AnalysisResult, analyze_etf, MIN_OBSERVATIONS
from ingestion.providers.alpha_vantage_adapter import (
    FetchOutcome,
    fetch_monthly_series,
    DEFAULT_BASE_URL
)
from ingestion.rate_limiter import FixedDelayRateLimiter, TokenBucketRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_SYMBOLS = ['SPY', 'QQQ', 'VTI']
API_KEY_ENV = 'ALPHA_VANTAGE_API_KEY'
RATE_LIMIT_MODES = ('fixed', 'token_bucket')

# Alpha Vantage free tier
CALLS_PER_MINUTE = 5


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass
class EtfRankingConfig:
    """Configuration for the ETF ranking pipeline."""
    api_key: str
    symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    base_url: str = DEFAULT_BASE_URL
    delay_seconds: float = 12.0
    timeout_seconds: float = 30.0
    min_observations: int = MIN_OBSERVATIONS
    rate_limit_mode: str = 'fixed'

    def __post_init__(self):
        """Validate settings."""
        if not self.api_key or not isinstance(self.api_key, str):
            raise ConfigurationError(
                f"{API_KEY_ENV} is required. Get a free key at "
                "https://www.alphavantage.co/support/#api-key"
            )

        if not self.symbols:
            raise ValueError("symbols must be a non-empty list")

        if any(not s or not isinstance(s, str) for s in self.symbols):
            raise ValueError("every symbol must be a non-empty string")

        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        if self.min_observations < MIN_OBSERVATIONS:
            raise ValueError(f"min_observations must be >= {MIN_OBSERVATIONS}")

        if self.rate_limit_mode not in RATE_LIMIT_MODES:
            raise ValueError(
                f"rate_limit_mode must be one of {', '.join(RATE_LIMIT_MODES)}, "
                f"got {self.rate_limit_mode!r}"
            )

    @classmethod
    def from_env(cls) -> 'EtfRankingConfig':
        """
        Build configuration from environment variables (.env supported).

        Raises:
            ConfigurationError: If the API key is unset or a number is invalid
        """
        load_dotenv()

        kwargs: Dict[str, Any] = {'api_key': os.getenv(API_KEY_ENV, '')}

        base_url = os.getenv('ALPHA_VANTAGE_BASE_URL')
        if base_url:
            kwargs['base_url'] = base_url

        mode = os.getenv('RATE_LIMIT_MODE')
        if mode:
            kwargs['rate_limit_mode'] = mode.strip().lower()

        for env_name, attr in (
            ('REQUESTS_TIMEOUT_S', 'timeout_seconds'),
            ('RATE_LIMIT_DELAY_S', 'delay_seconds'),
        ):
            value = os.getenv(env_name)
            if value:
                try:
                    kwargs[attr] = float(value)
                except ValueError:
                    raise ConfigurationError(f"Invalid {env_name}: {value}. Must be a number.")

        return cls(**kwargs)


def run_etf_ranking(
    config: EtfRankingConfig,
    *,
    rate_limiter=None,
    fetch: Optional[Callable[[str], FetchOutcome]] = None,
    sink: Optional[Callable[[List[AnalysisResult]], None]] = None
) -> Dict[str, Any]:
    """
    Run the complete ETF ranking pipeline.

    Pipeline stages:
    1. For each configured symbol, in order: fetch and analyze
    2. Wait on the rate limiter between symbols (never after the last)
    3. Rank analyzed results by ratio, best first
    4. Hand the ranking to the sink

    Symbols that fail to fetch or analyze are skipped and reported in
    the result; they never fail the run. An empty ranking is a completed
    run. Unexpected exceptions propagate.

    Args:
        config: Pipeline configuration
        rate_limiter: Object with wait(); defaults to build_rate_limiter(config)
        fetch: Callable returning a FetchOutcome; defaults to Alpha Vantage
        sink: Receives the ranked results

    Returns:
        Dictionary with run results and metrics
    """
    if rate_limiter is None:
        rate_limiter = build_rate_limiter(config)

    if fetch is None:
        fetch = partial(
            fetch_monthly_series,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout_seconds
        )

    start_time = datetime.now()
    results: List[AnalysisResult] = []
    skipped: Dict[str, str] = {}

    for index, symbol in enumerate(config.symbols):
        outcome = analyze_etf(
            symbol,
            fetch=fetch,
            min_observations=config.min_observations
        )

        if outcome.ok:
            results.append(outcome.result)
        else:
            skipped[symbol] = outcome.reason

        if index < len(config.symbols) - 1:
            rate_limiter.wait()

    ranked = rank_results(results)

    if sink is not None:
        sink(ranked)

    logger.info(
        f"Ranked {len(ranked)} of {len(config.symbols)} symbols "
        f"({len(skipped)} skipped)"
    )

    return {
        'status': 'completed',
        'results': ranked,
        'skipped': skipped,
        'symbols_requested': len(config.symbols),
        'symbols_analyzed': len(ranked),
        'duration_seconds': (datetime.now() - start_time).total_seconds()
    }


def rank_results(results: List[AnalysisResult]) -> List[AnalysisResult]:
    """
    Sort results by ratio, descending.

    Stable: equal ratios keep their original order.
    """
    return sorted(results, key=lambda r: r.ratio, reverse=True)


def build_rate_limiter(config: EtfRankingConfig):
    """
    Create the rate limiter selected by ``config.rate_limit_mode``.

    'fixed' sleeps delay_seconds between requests. 'token_bucket' allows
    the free tier's 5 calls per minute and only sleeps once a window fills.
    """
    if config.rate_limit_mode == 'token_bucket':
        return TokenBucketRateLimiter(max_calls=CALLS_PER_MINUTE, period=60.0)
    return FixedDelayRateLimiter(config.delay_seconds)
