"""
Rate limiters for the external price API.
Both expose wait(), called by the pipeline between requests.
"""

import logging
import time
from threading import Lock
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class FixedDelayRateLimiter:
    """
    Suspend for a fixed delay on every wait().

    The pipeline calls wait() between consecutive symbols, so N symbols
    cost N-1 delays. Alpha Vantage's free tier allows 5 requests per
    minute, hence the 12 second default.
    """
    def __init__(
        self,
        delay_seconds: float = 12.0,
        sleep: Optional[Callable[[float], None]] = None
    ) -> None:
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        self.delay_seconds = delay_seconds
        self._sleep = sleep or time.sleep
        self.waits = 0

    def wait(self) -> None:
        """Block for the configured delay."""
        self.waits += 1
        if self.delay_seconds <= 0:
            return
        logger.info(f"Waiting {self.delay_seconds:g}s for API rate limit...")
        self._sleep(self.delay_seconds)


class TokenBucketRateLimiter:
    """
    Allow up to ``max_calls`` requests within ``period`` seconds.

    wait() is called after each request and before the next one, the same
    protocol as FixedDelayRateLimiter. Each call records the request that
    just went out and blocks only while the window is full, so a burst of
    max_calls requests goes through without delay.
    """
    def __init__(
        self,
        max_calls: int = 5,
        period: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None
    ) -> None:
        if max_calls <= 0:
            raise ValueError(f"max_calls must be > 0, got {max_calls}")
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self.max_calls = max_calls
        self.period = period
        self._clock = clock or time.perf_counter
        self._sleep = sleep or time.sleep
        self.lock = Lock()
        # timestamps of recent requests
        self.calls: List[float] = []
        self.waits = 0

    def wait(self) -> None:
        """Record the preceding request, then block until another is allowed."""
        with self.lock:
            self.waits += 1
            now = self._clock()
            self._expire(now)
            self.calls.append(now)
            if len(self.calls) >= self.max_calls:
                delay = self.period - (now - self.calls[0])
                if delay > 0:
                    logger.info(f"Waiting {delay:.1f}s for API rate limit...")
                    self._sleep(delay)
                self._expire(self._clock())

    def _expire(self, now: float) -> None:
        while self.calls and self.calls[0] <= now - self.period:
            self.calls.pop(0)
