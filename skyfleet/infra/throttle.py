"""Token-bucket rate limiting for outbound cloud API calls.

Example:
    from skyfleet.infra.throttle import RateLimiter, throttle

    # 2 calls per second sustained, bursts of up to 100
    limiter = RateLimiter(qps=2, burst=100)

    @throttle(limiter)
    async def create_fleet(): ...

    # Shared limiter across functions
    @throttle(limiter)
    async def describe(): ...
"""

from __future__ import annotations

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable

from loguru import logger


class ThrottleError(Exception):
    """Raised when no token is available and the caller refused to wait."""


class RateLimiter:
    """Shared token bucket controlling a sustained rate and a burst ceiling.

    The bucket starts full. Each call takes one token; tokens refill at
    ``qps`` per second up to ``burst``. Safe to share between tasks.

    Args:
        qps: Sustained calls per second.
        burst: Maximum tokens that can accumulate.
        clock: Monotonic clock, replaceable in tests.
        sleep: Async sleep, replaceable in tests.
    """

    def __init__(
        self,
        qps: float,
        burst: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if qps <= 0 or burst < 1:
            raise ValueError(f"invalid rate limit qps={qps} burst={burst}")
        self._qps = qps
        self._burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._updated) * self._qps)
        self._updated = now

    async def acquire(self, block: bool = True) -> bool:
        """Take one token.

        Args:
            block: If True, wait for a token. If False, return False immediately
                   when none is available.

        Returns:
            True if a token was taken.
        """
        async with self._lock:
            self._refill()
            if self._tokens < 1:
                if not block:
                    return False
                wait_time = (1 - self._tokens) / self._qps
                logger.debug(f"Throttle: waiting {wait_time:.2f}s for a token")
                await self._sleep(wait_time)
                self._refill()
                self._tokens = max(self._tokens, 1.0)
            self._tokens -= 1
            return True

    def __repr__(self) -> str:
        return f"RateLimiter(qps={self._qps}, burst={self._burst})"


def throttle[**P, T](
    limiter: RateLimiter,
    block: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator that takes a token from ``limiter`` before each call.

    Raises:
        ThrottleError: when ``block`` is False and no token is available.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if not await limiter.acquire(block=block):
                raise ThrottleError(f"Rate limit reached for {func.__name__}, {limiter!r}")
            return await func(*args, **kwargs)

        return wrapper

    return decorator
