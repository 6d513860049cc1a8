"""
Rate Limiter - Global rate limiting for LLM API calls.

Provides thread-safe rate limiting with configurable:
- Requests per minute (RPM)
- Minimum delay between requests

Usage:
    from mission_planner.utils.rate_limiter import global_rate_limiter

    # Wait before making LLM call (blocks if rate limit exceeded)
    global_rate_limiter.wait()
"""

import time
import threading
from typing import Optional, Callable
from collections import deque

from ..config.env_config import EnvConfig
from .logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Thread-safe sliding window rate limiter for LLM API calls.

    Every planner, executor, summarizer and review-agent call goes through
    the same limiter so concurrent review sessions share one budget.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        min_request_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Max requests per minute (0 = unlimited)
            min_request_delay: Minimum seconds between requests (0 = no delay)
            clock: Time source (injectable for tests)
            sleep: Sleep function (injectable for tests)
        """
        self._lock = threading.Lock()
        self._request_times: deque = deque()
        self._last_request_time: float = 0
        self._clock = clock
        self._sleep = sleep

        self.requests_per_minute = requests_per_minute
        self.min_request_delay = min_request_delay

    def configure(
        self,
        requests_per_minute: Optional[int] = None,
        min_request_delay: Optional[float] = None,
    ) -> None:
        """Reconfigure rate limiter settings."""
        with self._lock:
            if requests_per_minute is not None:
                self.requests_per_minute = requests_per_minute
            if min_request_delay is not None:
                self.min_request_delay = min_request_delay

        logger.debug(
            f"[RATE] Rate limiter configured: RPM={self.requests_per_minute}, "
            f"min_delay={self.min_request_delay}s"
        )

    def configure_from_env(self) -> None:
        """Configure rate limiter from LLM_RATE_LIMIT_RPM / LLM_MIN_REQUEST_DELAY."""
        self.configure(
            requests_per_minute=EnvConfig.get_int('LLM_RATE_LIMIT_RPM', 60),
            min_request_delay=EnvConfig.get_float('LLM_MIN_REQUEST_DELAY', 0.0),
        )

    def _cleanup_old_requests(self, current_time: float) -> None:
        """Remove request timestamps outside the 60 second window."""
        cutoff = current_time - 60.0
        while self._request_times and self._request_times[0] <= cutoff:
            self._request_times.popleft()

    def wait(self) -> float:
        """
        Wait until a request can be made within rate limits.

        Returns:
            Wait time in seconds (0 if no wait was needed)
        """
        with self._lock:
            current_time = self._clock()
            total_wait = 0.0

            if self.min_request_delay > 0 and self._last_request_time > 0:
                since_last = current_time - self._last_request_time
                if since_last < self.min_request_delay:
                    total_wait += self.min_request_delay - since_last

            if self.requests_per_minute > 0:
                self._cleanup_old_requests(current_time + total_wait)
                if len(self._request_times) >= self.requests_per_minute:
                    oldest = self._request_times[0]
                    window_wait = oldest + 60.0 - (current_time + total_wait)
                    if window_wait > 0:
                        total_wait += window_wait

            scheduled = current_time + total_wait
            self._request_times.append(scheduled)
            self._last_request_time = scheduled

        if total_wait > 0:
            logger.debug(f"[RATE] Rate limiter: waiting {total_wait:.2f}s")
            self._sleep(total_wait)

        return total_wait

    def get_stats(self) -> dict:
        """Return current rate limiter statistics."""
        with self._lock:
            self._cleanup_old_requests(self._clock())
            return {
                "requests_in_window": len(self._request_times),
                "requests_per_minute": self.requests_per_minute,
                "min_request_delay": self.min_request_delay,
            }

    def reset(self) -> None:
        """Reset rate limiter state (clear all tracked requests)."""
        with self._lock:
            self._request_times.clear()
            self._last_request_time = 0


# Global rate limiter instance - shared across all LLM calls
global_rate_limiter = RateLimiter()
global_rate_limiter.configure_from_env()
