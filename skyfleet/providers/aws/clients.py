"""AWS client factories.

Provides the EC2 client factory the provisioner talks through. Every
coroutine call on a client obtained from the factory first takes a token
from the shared RateLimiter.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import aioboto3

from skyfleet.infra.throttle import RateLimiter, throttle

# =============================================================================
# Rate-limited client
# =============================================================================


class RateLimitedClient:
    """Proxy that throttles every API call of the wrapped aioboto3 client."""

    def __init__(self, client: Any, limiter: RateLimiter) -> None:
        self._client = client
        self._limiter = limiter

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if not callable(attr) or name.startswith("get_") or name in {"can_paginate", "close"}:
            return attr
        return throttle(self._limiter)(attr)


# =============================================================================
# Client factory
# =============================================================================


class EC2ClientFactory:
    """Wrapper for EC2 client factory."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()

    @classmethod
    def from_session(
        cls,
        session: aioboto3.Session,
        region: str,
        limiter: RateLimiter,
    ) -> EC2ClientFactory:
        @asynccontextmanager
        async def factory() -> AsyncIterator[Any]:
            async with session.client("ec2", region_name=region) as client:
                yield RateLimitedClient(client, limiter)

        return cls(factory)
