"""Fixed-window request rate limiting.

Two interchangeable limiters are provided: an in-process one with bounded
size and explicit expiry sweeps, and a Redis-backed one whose windows expire
via key TTL. The active limiter lives on ``app.state.rate_limiter``.
"""
import asyncio
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from time import monotonic
from typing import Callable, Protocol

from fastapi import Request, Response
from redis.asyncio import Redis

from ..errors import RateLimitExceededError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of counting one request against a caller's window."""

    allowed: bool
    remaining: int
    retry_after: float


class RateLimiter(Protocol):
    max_requests: int

    async def hit(self, client_id: str) -> RateLimitDecision:
        ...

    async def close(self) -> None:
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Per-process fixed-window limiter.

    Holds at most ``max_clients`` windows; the least recently seen caller is
    evicted first. ``sweep()`` drops expired windows and is run periodically
    by ``run_sweeper``.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        max_clients: int = 10_000,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        if max_requests <= 0 or window_seconds <= 0 or max_clients <= 0:
            raise ValueError("rate limit parameters must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._windows: OrderedDict[str, _Window] = OrderedDict()

    def __len__(self) -> int:
        return len(self._windows)

    async def hit(self, client_id: str) -> RateLimitDecision:
        now = self._clock()
        window = self._windows.get(client_id)

        if window is None or now >= window.reset_at:
            window = _Window(count=0, reset_at=now + self.window_seconds)
            self._windows[client_id] = window
        self._windows.move_to_end(client_id)

        while len(self._windows) > self.max_clients:
            evicted, _ = self._windows.popitem(last=False)
            logger.debug("Evicted rate limit window for %s", evicted)

        if window.count >= self.max_requests:
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after=max(window.reset_at - now, 0.0),
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - window.count,
            retry_after=0.0,
        )

    def sweep(self) -> int:
        """Remove expired windows; returns how many were dropped."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Swept %s expired rate limit windows", len(expired))
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever at a fixed interval; cancel the task to stop."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    async def close(self) -> None:
        self._windows.clear()


class RedisRateLimiter:
    """Fixed-window limiter shared across processes through Redis."""

    KEY_PREFIX = "pulsedeck:ratelimit:"

    def __init__(
        self,
        redis: Redis,
        max_requests: int = 100,
        window_seconds: float = 60.0,
    ) -> None:
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("rate limit parameters must be positive")

        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, client_id: str) -> RateLimitDecision:
        key = f"{self.KEY_PREFIX}{client_id}"
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, math.ceil(self.window_seconds))

        if count > self.max_requests:
            ttl = await self.redis.ttl(key)
            if ttl is None or ttl < 0:
                # Key lost its TTL (e.g. crash between INCR and EXPIRE).
                await self.redis.expire(key, math.ceil(self.window_seconds))
                ttl = math.ceil(self.window_seconds)
            return RateLimitDecision(allowed=False, remaining=0, retry_after=float(ttl))

        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - count,
            retry_after=0.0,
        )

    async def close(self) -> None:
        await self.redis.aclose()


def client_identity(request: Request) -> str:
    """Caller identity used as the rate limit key."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency: count the request, raise when over the limit.

    Allowed responses carry ``X-RateLimit-Limit`` and ``X-RateLimit-Remaining``.

    Raises:
        RateLimitExceededError: Caller exhausted its window
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    client_id = client_identity(request)
    decision = await limiter.hit(client_id)

    if not decision.allowed:
        logger.warning(
            "Rate limit exceeded: client=%s path=%s retry_after=%.1fs",
            client_id,
            request.url.path,
            decision.retry_after,
        )
        raise RateLimitExceededError(client_id, decision.retry_after)

    response.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
