"""Redis-backed throttling of follow and unfollow calls."""

from __future__ import annotations

import time
from collections.abc import Callable
from functools import lru_cache
from typing import Protocol, runtime_checkable

from redis.asyncio import Redis

from core import settings


@runtime_checkable
class SupportsRateLimitClient(Protocol):
    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


class FollowRateLimiter:
    """Caps how many follow graph mutations one follower makes per window.

    Follow and unfollow share a single counter per follower, so toggling a
    follow back and forth is throttled like any other mutation.
    """

    def __init__(
        self,
        redis_client: SupportsRateLimitClient,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
        prefix: str = "follow-rate-limit",
    ) -> None:
        self.redis = redis_client
        self.limit = max(limit, 0)
        self.window_seconds = max(window_seconds, 0)
        self.prefix = prefix
        self._clock = clock

    @classmethod
    def from_settings(cls, redis_client: SupportsRateLimitClient) -> FollowRateLimiter:
        return cls(
            redis_client,
            limit=settings.follow_rate_limit_requests,
            window_seconds=settings.follow_rate_limit_window_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self.limit > 0 and self.window_seconds > 0

    def mutation_key(self, follower_id: int) -> str:
        bucket = int(self._clock()) // self.window_seconds
        return f"{self.prefix}:follower:{follower_id}:{bucket}"

    def retry_after_seconds(self) -> int:
        """Seconds until the current window closes."""
        if not self.enabled:
            return 0
        elapsed = int(self._clock()) % self.window_seconds
        return self.window_seconds - elapsed

    async def allow_mutation(self, follower_id: int) -> bool:
        """Count one follow or unfollow by ``follower_id``; False once over the limit."""
        if not self.enabled:
            return True

        key = self.mutation_key(follower_id)
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, self.window_seconds)
        return count <= self.limit


@lru_cache
def get_redis_client() -> SupportsRateLimitClient:
    return Redis.from_url(settings.redis_url, decode_responses=False)


_follow_rate_limiter: FollowRateLimiter | None = None


def get_follow_rate_limiter() -> FollowRateLimiter:
    global _follow_rate_limiter
    if _follow_rate_limiter is None:
        _follow_rate_limiter = FollowRateLimiter.from_settings(get_redis_client())
    return _follow_rate_limiter


def set_follow_rate_limiter(limiter: FollowRateLimiter | None) -> None:
    """Replace the process-wide limiter; None rebuilds it from settings on next use."""
    global _follow_rate_limiter
    _follow_rate_limiter = limiter
