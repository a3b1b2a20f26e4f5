"""Tests for the following feed endpoint."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from core import settings
from .conftest import FakeContentStore, as_user

BASE = datetime(2026, 2, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_following_feed_returns_followee_content(
    async_client: AsyncClient,
    content_store: FakeContentStore,
):
    await async_client.post("/api/v1/users/2/follow", headers=as_user(1))
    await async_client.post("/api/v1/users/3/follow", headers=as_user(1))
    c1 = content_store.publish(2, at=BASE + timedelta(seconds=10))
    c2 = content_store.publish(3, at=BASE + timedelta(seconds=20))

    response = await async_client.get(
        "/api/v1/feed/following",
        params={"page": 1, "limit": 10},
        headers=as_user(1),
    )

    assert response.status_code == 200
    assert response.headers.get("x-next-page") is None
    body = response.json()
    assert [item["id"] for item in body["items"]] == [c2.id, c1.id]
    assert [item["author_id"] for item in body["items"]] == [3, 2]
    assert body["has_more"] is False
    assert body["warning_count"] == 0
    assert body["cancelled"] is False


@pytest.mark.asyncio
async def test_following_feed_paginates(
    async_client: AsyncClient,
    content_store: FakeContentStore,
):
    await async_client.post("/api/v1/users/2/follow", headers=as_user(1))
    for index in range(12):
        content_store.publish(2, at=BASE - timedelta(minutes=index), content_id=100 + index)

    first = await async_client.get(
        "/api/v1/feed/following",
        params={"limit": 5},
        headers=as_user(1),
    )
    assert first.headers.get("x-next-page") == "2"
    assert [item["id"] for item in first.json()["items"]] == [100, 101, 102, 103, 104]

    third = await async_client.get(
        "/api/v1/feed/following",
        params={"page": 3, "limit": 5},
        headers=as_user(1),
    )
    assert third.headers.get("x-next-page") is None
    assert [item["id"] for item in third.json()["items"]] == [110, 111]
    assert third.json()["has_more"] is False


@pytest.mark.asyncio
async def test_following_feed_reports_degraded_authors(
    async_client: AsyncClient,
    content_store: FakeContentStore,
):
    await async_client.post("/api/v1/users/2/follow", headers=as_user(1))
    await async_client.post("/api/v1/users/3/follow", headers=as_user(1))
    kept = content_store.publish(2, at=BASE)
    content_store.publish(3, at=BASE)
    content_store.failing_authors.add(3)

    response = await async_client.get("/api/v1/feed/following", headers=as_user(1))

    assert response.status_code == 200
    assert response.headers.get("x-feed-warnings") == "1"
    body = response.json()
    assert [item["id"] for item in body["items"]] == [kept.id]
    assert body["failed_author_ids"] == [3]
    assert body["warning_count"] == 1


@pytest.mark.asyncio
async def test_following_feed_empty_and_unauthenticated(async_client: AsyncClient):
    empty = await async_client.get("/api/v1/feed/following", headers=as_user(1))
    assert empty.status_code == 200
    assert empty.json()["items"] == []
    assert empty.json()["has_more"] is False

    anonymous = await async_client.get("/api/v1/feed/following")
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_following_feed_rejects_pages_beyond_limit(
    async_client: AsyncClient,
    content_store: FakeContentStore,
):
    await async_client.post("/api/v1/users/2/follow", headers=as_user(1))
    content_store.publish(2, at=BASE)

    deepest = await async_client.get(
        "/api/v1/feed/following",
        params={"page": settings.feed_max_page},
        headers=as_user(1),
    )
    assert deepest.status_code == 200
    assert deepest.json()["items"] == []

    too_deep = await async_client.get(
        "/api/v1/feed/following",
        params={"page": settings.feed_max_page + 1},
        headers=as_user(1),
    )
    assert too_deep.status_code == 422
    assert content_store.calls == [(2, None)]
