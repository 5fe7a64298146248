"""
Rate limiter for catalog API calls.

Hey future me – this is deliberately NOT a token bucket anymore. The release check
calls Spotify strictly sequentially (one artist at a time), so all we need is:

SPACING:
- Every catalog call waits until min_interval_seconds have passed since the previous one
- Default 0.2s = the fixed 200ms delay between artist lookups

ADAPTIVE BACKOFF on 429:
- First 429: wait initial_backoff_seconds (1s)
- Next 429: 2s, then 4s, ... capped at max_backoff_seconds (8s)
- Retry-After from Spotify wins when given, but is capped too. We are running inside
  a 45s invocation budget, sleeping Spotify's suggested 5 minutes would just get us killed.
- After a successful call: backoff resets

USAGE:
    limiter = RateLimiter.from_settings(settings.release_check)

    async with limiter:
        releases = await catalog.get_artist_recent_releases(artist_id, token)

    # On RateLimitExceededError:
    await limiter.handle_rate_limit_response(exc.retry_after)

Sleep and clock are injectable so tests can run a whole batch without real waiting.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from tunealert.config import ReleaseCheckSettings

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter.

    Hey future me – defaults match the release check settings. Spotify allows roughly
    180 req/min, 5 req/sec is well below that.
    """

    min_interval_seconds: float = 0.2  # Gap between consecutive calls
    initial_backoff_seconds: float = 1.0  # First 429 wait
    max_backoff_seconds: float = 8.0  # Hard cap, also applied to Retry-After
    backoff_multiplier: float = 2.0  # Exponential backoff factor


@dataclass
class RateLimiter:
    """Sequential call spacing with adaptive 429 backoff.

    Attributes:
        config: Rate limiter configuration
        sleep: Awaitable sleep, asyncio.sleep in production
        clock: Monotonic clock in seconds
        name: Label used in log lines
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    sleep: SleepFunc = asyncio.sleep
    clock: ClockFunc = time.monotonic
    name: str = "default"

    # Internal state (not in __init__ signature)
    _last_call: float | None = field(default=None, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def from_settings(
        cls,
        settings: ReleaseCheckSettings,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = time.monotonic,
    ) -> "RateLimiter":
        """Create the Spotify limiter used by the release check."""
        return cls(
            config=RateLimiterConfig(
                min_interval_seconds=settings.request_delay_seconds,
                initial_backoff_seconds=settings.rate_limit_backoff_seconds,
                max_backoff_seconds=settings.max_rate_limit_backoff_seconds,
            ),
            sleep=sleep,
            clock=clock,
            name="spotify",
        )

    async def acquire(self) -> float:
        """Wait until the next call is allowed.

        Returns:
            Seconds actually waited
        """
        async with self._lock:
            wait_time = 0.0
            if self._last_call is not None:
                elapsed = self.clock() - self._last_call
                wait_time = max(0.0, self.config.min_interval_seconds - elapsed)

            if wait_time > 0:
                logger.debug(f"RateLimiter[{self.name}]: spacing call, waiting {wait_time:.2f}s")
                await self.sleep(wait_time)

            self._last_call = self.clock()
            return wait_time

    async def handle_rate_limit_response(self, retry_after: float | None = None) -> float:
        """Back off after a 429.

        Args:
            retry_after: Retry-After header from the API response (seconds)

        Returns:
            The actual wait time used
        """
        async with self._lock:
            wait_time = float(retry_after) if retry_after is not None else self._current_backoff
            wait_time = min(max(wait_time, 0.0), self.config.max_backoff_seconds)

            logger.warning(
                f"RateLimiter[{self.name}]: 429 Rate Limited! "
                f"Waiting {wait_time:.1f}s (backoff level: {self._current_backoff:.1f}s)"
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )

            # _last_call stays at the rejected call, so the backoff counts toward the spacing
            await self.sleep(wait_time)
            return wait_time

    def reset_backoff(self) -> None:
        """Reset backoff after a successful request."""
        self._current_backoff = self.config.initial_backoff_seconds

    @property
    def current_backoff(self) -> float:
        return self._current_backoff

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        # Success resets the backoff ladder
        if exc_type is None:
            self.reset_backoff()


__all__ = ["RateLimiter", "RateLimiterConfig"]
