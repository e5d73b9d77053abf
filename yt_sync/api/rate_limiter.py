"""
Provides an adaptive rate limiter to avoid "Too Many Requests" throttling from YouTube.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Dynamically adjusts call rate based on remote feedback (HTTP 429 errors).
    """

    def __init__(
        self, initial_calls_per_second: float = 2.0, max_calls_per_second: float = 4.0
    ):
        """
        Initializes the rate limiter.

        Args:
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The maximum rate to recover to.
        """
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._last_throttle_time = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_throttle(self) -> None:
        """
        Called when the remote reports throttling. Halves the current request rate.
        """
        async with self._lock:
            self._rate = max(0.25, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_throttle_time = time.monotonic()
            log.warning(
                f"[yellow]Throttled by remote. New rate: {self._rate:.2f} calls/s[/yellow]"
            )

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current rate limit before allowing a call to proceed.
        """
        async with self._lock:
            # Gradually recover the rate if no throttling has occurred recently
            if time.monotonic() - self._last_throttle_time > 300:  # 5 minutes
                self._rate = min(self._max_rate, self._rate * 1.005)
                self._min_interval = 1.0 / self._rate

            now = asyncio.get_running_loop().time()
            time_since_last = now - self._last_call_time

            if time_since_last < self._min_interval:
                await asyncio.sleep(self._min_interval - time_since_last)

            self._last_call_time = asyncio.get_running_loop().time()


def is_throttling_error(message: str) -> bool:
    """Recognises yt-dlp error messages caused by rate limiting."""
    lowered = message.lower()
    return "429" in lowered or "too many requests" in lowered
