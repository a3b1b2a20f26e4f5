"""FastAPI dependencies wiring sessions, identity and services."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session
from services import ContentStore, get_follow_rate_limiter
from services.auth_context import AuthContext, HeaderAuthContext
from services.follow_edges import FollowEdgeStore
from services.follow_graph import FollowGraphService
from services.follow_stats import FollowStatsService
from services.following_feed import FollowingFeedService

logger = logging.getLogger(__name__)


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_auth_context(request: Request) -> AuthContext:
    return HeaderAuthContext(request)


def get_viewer_id(auth: AuthContext = Depends(get_auth_context)) -> int | None:
    return auth.current_user_id()


def get_current_user_id(viewer_id: int | None = Depends(get_viewer_id)) -> int:
    if viewer_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return viewer_id


def get_content_store(request: Request) -> ContentStore:
    return request.app.state.content_store


def get_edge_store(session: AsyncSession = Depends(get_db)) -> FollowEdgeStore:
    return FollowEdgeStore(session)


def get_follow_graph(edges: FollowEdgeStore = Depends(get_edge_store)) -> FollowGraphService:
    return FollowGraphService(edges)


def get_follow_stats(edges: FollowEdgeStore = Depends(get_edge_store)) -> FollowStatsService:
    return FollowStatsService(edges)


def get_following_feed(
    edges: FollowEdgeStore = Depends(get_edge_store),
    content_store: ContentStore = Depends(get_content_store),
) -> FollowingFeedService:
    return FollowingFeedService(edges, content_store)


async def enforce_follow_rate_limit(
    current_user_id: int = Depends(get_current_user_id),
) -> None:
    limiter = get_follow_rate_limiter()
    try:
        allowed = await limiter.allow_mutation(current_user_id)
    except (RedisError, OSError) as exc:
        # Follow mutations stay available while Redis is down.
        logger.warning(
            "Follow rate limiter unavailable",
            extra={"user_id": current_user_id},
            exc_info=exc,
        )
        return
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too Many Requests",
            headers={"Retry-After": str(limiter.retry_after_seconds())},
        )
