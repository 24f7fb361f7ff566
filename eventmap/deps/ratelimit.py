from __future__ import annotations

from typing import Callable

from fastapi import Request

from ..core.ratelimit import KeyedSlidingWindowLimiter


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limited(bucket: str) -> Callable[[Request], None]:
    """Build a dependency that charges one attempt to ``bucket`` per request.

    Limiters live on ``app.state.rate_limiters`` keyed by bucket name so each
    protected route has its own budget.
    """

    async def dependency(request: Request) -> None:
        limiter: KeyedSlidingWindowLimiter = request.app.state.rate_limiters[bucket]
        limiter.hit(client_key(request))

    return dependency
