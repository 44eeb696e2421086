"""Bounded retry policy for eventually consistent reads.

Wraps tenacity so callers describe *how long* to keep trying as a plain
value, and tests can swap the sleep for an instant one.

Example:
    from skyfleet.retry import RetryPolicy

    policy = RetryPolicy(delay=1.0, attempts=6)
    instance = await policy.call(describe, instance_id)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

log = logger.bind(component="retry")


def _log_before_sleep(state: RetryCallState) -> None:
    outcome = state.outcome
    error = outcome.exception() if outcome else None
    log.debug(
        "Attempt {attempt} failed with {error}, retrying",
        attempt=state.attempt_number,
        error=error,
    )


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-delay, fixed-attempt retry.

    Args:
        delay: Seconds between attempts.
        attempts: Total attempts, including the first.
        retry_on: Exception types worth retrying.
        sleep: Async sleep used between attempts.
    """

    delay: float = 1.0
    attempts: int = 6
    retry_on: tuple[type[Exception], ...] = (Exception,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self.sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )

    async def call[T](self, fn: Callable[..., Awaitable[T]], *args: object, **kwargs: object) -> T:
        """Await ``fn`` until it succeeds or attempts run out.

        The last exception is re-raised once attempts are exhausted.
        """
        return await self.retrying()(fn, *args, **kwargs)
