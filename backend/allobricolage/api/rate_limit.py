"""
Fixed-window rate limiting.

The counter store lives on `app.state` (set at startup, or on first use):
Redis when REDIS_URL is set, an in-process dict otherwise. Tests swap it
by overriding `get_rate_limit_store`.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Tuple
from fastapi import Depends, HTTPException, Request, status
from redis import asyncio as aioredis

from allobricolage.database import get_redis

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    @abstractmethod
    async def hit(self, key: str, window_seconds: int) -> int:
        """Count one request against `key` and return the count in the current window."""


class MemoryRateLimitStore(RateLimitStore):
    """Per-process counters. Fine for a single worker and for tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        # key -> (window end, count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_sweep = 0.0

    @property
    def tracked_keys(self) -> int:
        return len(self._windows)

    async def hit(self, key: str, window_seconds: int) -> int:
        now = self.clock()
        if now >= self._next_sweep:
            self._sweep(now)
            self._next_sweep = now + window_seconds

        ends, count = self._windows.get(key, (now + window_seconds, 0))
        if now >= ends:
            ends, count = now + window_seconds, 0
        count += 1
        self._windows[key] = (ends, count)
        return count

    def _sweep(self, now: float) -> None:
        expired = [key for key, (ends, _) in self._windows.items() if now >= ends]
        for key in expired:
            del self._windows[key]


class RedisRateLimitStore(RateLimitStore):
    """Counters shared by every worker through Redis INCR + EXPIRE."""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def hit(self, key: str, window_seconds: int) -> int:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = await pipe.execute()
        return int(count)


def build_rate_limit_store() -> RateLimitStore:
    redis = get_redis()
    return RedisRateLimitStore(redis) if redis is not None else MemoryRateLimitStore()


def get_rate_limit_store(request: Request) -> RateLimitStore:
    store = getattr(request.app.state, "rate_limit_store", None)
    if store is None:
        store = build_rate_limit_store()
        request.app.state.rate_limit_store = store
    return store


class RateLimiter:
    """Route dependency allowing `limit` requests per client per window."""

    def __init__(self, scope: str, limit: int, window_seconds: int = 60):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    async def __call__(
        self,
        request: Request,
        store: RateLimitStore = Depends(get_rate_limit_store),
    ) -> None:
        client = request.client.host if request.client else "anonymous"
        count = await store.hit(f"ratelimit:{self.scope}:{client}", self.window_seconds)
        if count > self.limit:
            logger.warning("Rate limit hit: %s from %s", self.scope, client)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Trop de requêtes, veuillez réessayer plus tard",
                headers={"Retry-After": str(self.window_seconds)},
            )
