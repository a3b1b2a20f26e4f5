"""Tests for the Redis-backed follow rate limiter."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from core import settings
from services import FollowRateLimiter, set_follow_rate_limiter
from .conftest import _InMemoryRedis, as_user


class _ExpiryRecordingRedis(_InMemoryRedis):
    def __init__(self) -> None:
        super().__init__()
        self.expirations: dict[str, int] = {}

    async def expire(self, key: str, ttl: int) -> None:
        self.expirations[key] = ttl


class _UnavailableRedis:
    async def incr(self, key: str) -> int:
        raise RedisConnectionError("redis down")

    async def expire(self, key: str, ttl: int) -> None:  # pragma: no cover - never reached
        return None


class _ManualClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_follower_is_blocked_after_limit_within_window() -> None:
    redis = _ExpiryRecordingRedis()
    limiter = FollowRateLimiter(redis, limit=2, window_seconds=30, clock=_ManualClock(65.0))

    assert await limiter.allow_mutation(1) is True
    assert await limiter.allow_mutation(1) is True
    assert await limiter.allow_mutation(1) is False
    assert await limiter.allow_mutation(2) is True

    assert redis.expirations == {
        "follow-rate-limit:follower:1:2": 30,
        "follow-rate-limit:follower:2:2": 30,
    }
    assert limiter.retry_after_seconds() == 25


@pytest.mark.asyncio
async def test_counter_resets_in_next_window() -> None:
    clock = _ManualClock(0.0)
    limiter = FollowRateLimiter(_InMemoryRedis(), limit=1, window_seconds=60, clock=clock)

    assert await limiter.allow_mutation(1) is True
    assert await limiter.allow_mutation(1) is False

    clock.now = 60.0
    assert await limiter.allow_mutation(1) is True


@pytest.mark.asyncio
async def test_zero_limit_disables_throttling() -> None:
    limiter = FollowRateLimiter(_InMemoryRedis(), limit=0, window_seconds=30)

    for _ in range(5):
        assert await limiter.allow_mutation(1) is True
    assert limiter.retry_after_seconds() == 0


def test_limiter_reads_follow_settings() -> None:
    limiter = FollowRateLimiter.from_settings(_InMemoryRedis())

    assert limiter.limit == settings.follow_rate_limit_requests
    assert limiter.window_seconds == settings.follow_rate_limit_window_seconds


@pytest.mark.asyncio
async def test_follow_stays_available_when_redis_is_down(async_client: AsyncClient) -> None:
    set_follow_rate_limiter(FollowRateLimiter(_UnavailableRedis(), limit=1, window_seconds=60))

    response = await async_client.post("/api/v1/users/2/follow", headers=as_user(1))

    assert response.status_code == 200
