"""Follow graph endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from api.deps import (
    enforce_follow_rate_limit,
    get_current_user_id,
    get_follow_graph,
    get_follow_stats,
    get_viewer_id,
)
from services.follow_edges import FollowPage
from services.follow_graph import FollowGraphService
from services.follow_stats import FollowStatsService
from .pagination import MAX_PAGE_SIZE, set_next_page_headers

router = APIRouter(tags=["follows"])


class FollowMutationResponse(BaseModel):
    detail: str
    state: Literal["none", "following"]


class FollowStatsResponse(BaseModel):
    followers_count: int
    following_count: int
    is_following: bool
    is_followed_by: bool
    is_mutual_follow: bool


class FollowUserResponse(BaseModel):
    user_id: int
    followed_at: datetime


class FollowListResponse(BaseModel):
    items: list[FollowUserResponse]
    has_more: bool
    total: int
    next_cursor: str | None = None

    @classmethod
    def from_page(cls, page: FollowPage) -> FollowListResponse:
        return cls(
            items=[
                FollowUserResponse(user_id=entry.user_id, followed_at=entry.followed_at)
                for entry in page.items
            ],
            has_more=page.has_more,
            total=page.total,
            next_cursor=page.next_cursor,
        )


@router.post(
    "/users/{user_id}/follow",
    response_model=FollowMutationResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(enforce_follow_rate_limit)],
)
async def follow_user(
    user_id: int,
    current_user_id: int = Depends(get_current_user_id),
    graph: FollowGraphService = Depends(get_follow_graph),
) -> FollowMutationResponse:
    created = await graph.follow(current_user_id, user_id)
    return FollowMutationResponse(
        detail="Followed" if created else "Already following",
        state="following",
    )


@router.delete(
    "/users/{user_id}/follow",
    response_model=FollowMutationResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(enforce_follow_rate_limit)],
)
async def unfollow_user(
    user_id: int,
    current_user_id: int = Depends(get_current_user_id),
    graph: FollowGraphService = Depends(get_follow_graph),
) -> FollowMutationResponse:
    removed = await graph.unfollow(current_user_id, user_id)
    return FollowMutationResponse(
        detail="Unfollowed" if removed else "Not following",
        state="none",
    )


@router.get("/users/{user_id}/follow-stats", response_model=FollowStatsResponse)
async def get_follow_stats_for_user(
    user_id: int,
    viewer_id: int | None = Depends(get_viewer_id),
    stats_service: FollowStatsService = Depends(get_follow_stats),
) -> FollowStatsResponse:
    stats = await stats_service.get_stats(user_id, viewer_id)
    return FollowStatsResponse(
        followers_count=stats.followers_count,
        following_count=stats.following_count,
        is_following=stats.is_following,
        is_followed_by=stats.is_followed_by,
        is_mutual_follow=stats.is_mutual_follow,
    )


@router.get("/users/{user_id}/followers", response_model=FollowListResponse)
async def list_followers(
    user_id: int,
    response: Response,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    _current_user_id: int = Depends(get_current_user_id),
    graph: FollowGraphService = Depends(get_follow_graph),
) -> FollowListResponse:
    try:
        result = await graph.list_followers(user_id, page, page_size=limit, cursor=cursor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    set_next_page_headers(
        response,
        page=page,
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )
    return FollowListResponse.from_page(result)


@router.get("/users/{user_id}/following", response_model=FollowListResponse)
async def list_following(
    user_id: int,
    response: Response,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    _current_user_id: int = Depends(get_current_user_id),
    graph: FollowGraphService = Depends(get_follow_graph),
) -> FollowListResponse:
    try:
        result = await graph.list_following(user_id, page, page_size=limit, cursor=cursor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    set_next_page_headers(
        response,
        page=page,
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )
    return FollowListResponse.from_page(result)
