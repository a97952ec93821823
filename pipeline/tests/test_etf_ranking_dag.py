"""
Tests for ETF ranking DAG - orchestration of fetch, analyze and rank.
Uses stubbed fetches and a recording rate limiter; no network, no sleeping.
"""

import os
import pytest
from datetime import date
from unittest.mock import Mock, patch

from pipeline.etf_ranking_dag import (
    run_etf_ranking,
    rank_results,
    build_rate_limiter,
    EtfRankingConfig,
    ConfigurationError,
    DEFAULT_SYMBOLS
)
from analysis.etf_analyzer import AnalysisResult, AnalysisOutcome
from ingestion.providers.alpha_vantage_adapter import FetchOutcome, FetchStatus
from ingestion.rate_limiter import FixedDelayRateLimiter, TokenBucketRateLimiter
from ingestion.transforms.normalizers import PricePoint


def _result(symbol, ratio):
    return AnalysisResult(
        symbol=symbol, start_price=100.0, end_price=110.0, cagr=10.0,
        volatility=4.0, ratio=ratio, years=1.0, data_points=12
    )


def _series(closes):
    return [
        PricePoint(date=date(2020 + i // 12, i % 12 + 1, 28), close=c)
        for i, c in enumerate(closes)
    ]


class FakeClock:
    """Virtual clock advanced by sleep()."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


# Alternating moves so volatility is never zero
GROWING = [100.0 + 2 * i + (i % 2) for i in range(24)]
SLOW = [100.0 + 0.5 * i + (i % 2) for i in range(24)]


@pytest.fixture
def config():
    return EtfRankingConfig(api_key='test-key', delay_seconds=0)


@pytest.fixture
def limiter():
    return FixedDelayRateLimiter(12, sleep=Mock())


class TestRunEtfRanking:
    """Tests for run_etf_ranking orchestration."""

    def test_run_success(self, config, limiter):
        """Test that every symbol is analyzed and ranked."""
        series = {'SPY': SLOW, 'QQQ': GROWING, 'VTI': SLOW[:12]}
        fetch = Mock(side_effect=lambda s: FetchOutcome.success(s, _series(series[s])))
        sink = Mock()

        result = run_etf_ranking(config, rate_limiter=limiter, fetch=fetch, sink=sink)

        assert result['status'] == 'completed'
        assert result['symbols_requested'] == 3
        assert result['symbols_analyzed'] == 3
        assert result['skipped'] == {}
        assert result['duration_seconds'] is not None

        assert [c.args[0] for c in fetch.call_args_list] == ['SPY', 'QQQ', 'VTI']

        ratios = [r.ratio for r in result['results']]
        assert ratios == sorted(ratios, reverse=True)
        sink.assert_called_once_with(result['results'])

    def test_run_sorts_by_ratio(self, config, limiter):
        """Test ratios 2.5, 1.0, 4.0 for A, B, C rank as C, A, B."""
        ratios = {'A': 2.5, 'B': 1.0, 'C': 4.0}
        config.symbols = ['A', 'B', 'C']

        with patch('pipeline.etf_ranking_dag.analyze_etf') as mock_analyze:
            mock_analyze.side_effect = lambda s, **kw: AnalysisOutcome.analyzed(_result(s, ratios[s]))
            result = run_etf_ranking(config, rate_limiter=limiter, fetch=Mock())

        assert [r.symbol for r in result['results']] == ['C', 'A', 'B']

    def test_run_fetch_failure_does_not_stop_run(self, config, limiter):
        """Test that one failed fetch among three leaves the other two ranked."""
        def fetch(symbol):
            if symbol == 'QQQ':
                return FetchOutcome.failure(symbol, FetchStatus.TRANSPORT_FAILURE, 'timeout')
            return FetchOutcome.success(symbol, _series(GROWING))

        result = run_etf_ranking(config, rate_limiter=limiter, fetch=fetch)

        assert result['status'] == 'completed'
        assert [r.symbol for r in result['results']] == ['SPY', 'VTI']
        assert result['skipped'] == {'QQQ': 'timeout'}

    def test_run_insufficient_data_skipped(self, config, limiter):
        """Test that short series are skipped, not fatal."""
        fetch = Mock(side_effect=lambda s: FetchOutcome.success(s, _series(GROWING[:11])))

        result = run_etf_ranking(config, rate_limiter=limiter, fetch=fetch)

        assert result['status'] == 'completed'
        assert result['results'] == []
        assert set(result['skipped']) == {'SPY', 'QQQ', 'VTI'}

    def test_run_empty_results_still_reported(self, config, limiter):
        """Test that the sink receives an empty ranking."""
        fetch = Mock(return_value=FetchOutcome.failure('X', FetchStatus.MISSING_DATA, 'no data'))
        sink = Mock()

        result = run_etf_ranking(config, rate_limiter=limiter, fetch=fetch, sink=sink)

        assert result['status'] == 'completed'
        assert result['symbols_analyzed'] == 0
        sink.assert_called_once_with([])

    @pytest.mark.parametrize("symbols,expected_waits", [
        (['SPY'], 0),
        (['SPY', 'QQQ'], 1),
        (['SPY', 'QQQ', 'VTI'], 2),
        (['A', 'B', 'C', 'D', 'E'], 4),
    ])
    def test_run_waits_between_symbols(self, config, symbols, expected_waits):
        """Test N-1 waits for N symbols."""
        config.symbols = symbols
        limiter = Mock()
        fetch = Mock(side_effect=lambda s: FetchOutcome.failure(s, FetchStatus.MISSING_DATA, 'no data'))

        run_etf_ranking(config, rate_limiter=limiter, fetch=fetch)

        assert limiter.wait.call_count == expected_waits

    def test_run_waits_after_failed_symbol(self, config):
        """Test that skipped symbols still count toward the request rate."""
        events = []
        limiter = Mock()
        limiter.wait.side_effect = lambda: events.append('wait')

        def fetch(symbol):
            events.append(symbol)
            return FetchOutcome.failure(symbol, FetchStatus.TRANSPORT_FAILURE, 'down')

        run_etf_ranking(config, rate_limiter=limiter, fetch=fetch)

        assert events == ['SPY', 'wait', 'QQQ', 'wait', 'VTI']

    def test_run_default_limiter_uses_config_delay(self, config):
        """Test that the default limiter sleeps for the configured delay."""
        config.delay_seconds = 12
        fetch = Mock(return_value=FetchOutcome.failure('X', FetchStatus.MISSING_DATA, 'no data'))

        with patch('ingestion.rate_limiter.time.sleep') as mock_sleep:
            run_etf_ranking(config, fetch=fetch)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(12)

    @pytest.mark.parametrize("make_limiter", [
        lambda clock: TokenBucketRateLimiter(5, 60, clock=clock, sleep=clock.sleep),
        lambda clock: FixedDelayRateLimiter(12, sleep=clock.sleep),
    ], ids=['token_bucket', 'fixed'])
    def test_run_request_rate_within_free_tier(self, config, make_limiter):
        """Test that six symbols never put more than 5 requests in one minute."""
        clock = FakeClock()
        request_times = []

        def fetch(symbol):
            request_times.append(clock.now)
            return FetchOutcome.failure(symbol, FetchStatus.MISSING_DATA, 'no data')

        config.symbols = ['A', 'B', 'C', 'D', 'E', 'F']
        run_etf_ranking(config, rate_limiter=make_limiter(clock), fetch=fetch)

        assert len(request_times) == 6
        for t in request_times:
            assert len([r for r in request_times if t <= r < t + 60]) <= 5

    @patch('pipeline.etf_ranking_dag.fetch_monthly_series')
    def test_run_default_fetch_uses_config(self, mock_fetch, limiter):
        """Test that the default fetch is bound to the configured endpoint."""
        mock_fetch.return_value = FetchOutcome.failure('SPY', FetchStatus.MISSING_DATA, 'no data')
        config = EtfRankingConfig(
            api_key='secret',
            symbols=['SPY'],
            base_url='http://localhost/query',
            timeout_seconds=5
        )

        run_etf_ranking(config, rate_limiter=limiter)

        mock_fetch.assert_called_once_with(
            'SPY',
            api_key='secret',
            base_url='http://localhost/query',
            timeout=5
        )

    def test_run_unexpected_error_propagates(self, config, limiter):
        """Test that faults outside per-symbol handling are not swallowed."""
        fetch = Mock(side_effect=RuntimeError("bug"))

        with pytest.raises(RuntimeError, match="bug"):
            run_etf_ranking(config, rate_limiter=limiter, fetch=fetch)


class TestRankResults:
    """Tests for rank_results."""

    def test_rank_descending(self):
        ranked = rank_results([_result('A', 2.5), _result('B', 1.0), _result('C', 4.0)])

        assert [r.symbol for r in ranked] == ['C', 'A', 'B']

    def test_rank_stable_on_ties(self):
        """Test that equal ratios keep insertion order."""
        ranked = rank_results([
            _result('A', 1.5), _result('B', 3.0), _result('C', 1.5), _result('D', 3.0)
        ])

        assert [r.symbol for r in ranked] == ['B', 'D', 'A', 'C']

    def test_rank_negative_ratios_last(self):
        ranked = rank_results([_result('LOSS', -0.8), _result('GAIN', 0.3)])

        assert [r.symbol for r in ranked] == ['GAIN', 'LOSS']

    def test_rank_empty(self):
        assert rank_results([]) == []


class TestEtfRankingConfig:
    """Tests for configuration validation and environment loading."""

    def test_defaults(self):
        config = EtfRankingConfig(api_key='k')

        assert config.symbols == ['SPY', 'QQQ', 'VTI']
        assert config.base_url == 'https://www.alphavantage.co/query'
        assert config.delay_seconds == 12.0
        assert config.min_observations == 12

    def test_default_symbols_not_shared(self):
        config = EtfRankingConfig(api_key='k')
        config.symbols.append('IWM')

        assert DEFAULT_SYMBOLS == ['SPY', 'QQQ', 'VTI']

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="ALPHA_VANTAGE_API_KEY"):
            EtfRankingConfig(api_key='')

    @pytest.mark.parametrize("kwargs", [
        {'symbols': []},
        {'symbols': ['SPY', '']},
        {'delay_seconds': -1},
        {'timeout_seconds': 0},
        {'min_observations': 1},
        {'min_observations': 2},
        {'min_observations': 11},
        {'rate_limit_mode': 'leaky'},
    ])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            EtfRankingConfig(api_key='k', **kwargs)

    @patch('pipeline.etf_ranking_dag.load_dotenv')
    @patch.dict(os.environ, {
        'ALPHA_VANTAGE_API_KEY': 'env-key',
        'ALPHA_VANTAGE_BASE_URL': 'http://mock/query',
        'REQUESTS_TIMEOUT_S': '7.5',
        'RATE_LIMIT_DELAY_S': '0',
    }, clear=True)
    def test_from_env(self, mock_load_dotenv):
        config = EtfRankingConfig.from_env()

        mock_load_dotenv.assert_called_once()
        assert config.api_key == 'env-key'
        assert config.base_url == 'http://mock/query'
        assert config.timeout_seconds == 7.5
        assert config.delay_seconds == 0.0

    @patch('pipeline.etf_ranking_dag.load_dotenv')
    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_missing_key_fails_fast(self, mock_load_dotenv):
        with pytest.raises(ConfigurationError):
            EtfRankingConfig.from_env()

    @patch('pipeline.etf_ranking_dag.load_dotenv')
    @patch.dict(os.environ, {'ALPHA_VANTAGE_API_KEY': 'k', 'REQUESTS_TIMEOUT_S': 'soon'}, clear=True)
    def test_from_env_invalid_number(self, mock_load_dotenv):
        with pytest.raises(ConfigurationError, match="REQUESTS_TIMEOUT_S"):
            EtfRankingConfig.from_env()

    @patch('pipeline.etf_ranking_dag.load_dotenv')
    @patch.dict(os.environ, {'ALPHA_VANTAGE_API_KEY': 'k', 'RATE_LIMIT_MODE': 'Token_Bucket'}, clear=True)
    def test_from_env_rate_limit_mode(self, mock_load_dotenv):
        config = EtfRankingConfig.from_env()

        assert config.rate_limit_mode == 'token_bucket'


class TestBuildRateLimiter:
    """Tests for build_rate_limiter."""

    def test_fixed_by_default(self):
        limiter = build_rate_limiter(EtfRankingConfig(api_key='k', delay_seconds=3))

        assert isinstance(limiter, FixedDelayRateLimiter)
        assert limiter.delay_seconds == 3

    def test_token_bucket_free_tier(self):
        limiter = build_rate_limiter(EtfRankingConfig(api_key='k', rate_limit_mode='token_bucket'))

        assert isinstance(limiter, TokenBucketRateLimiter)
        assert limiter.max_calls == 5
        assert limiter.period == 60.0
