"""Feed-related endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from api.deps import get_current_user_id, get_following_feed
from core import settings
from services import ContentSummary
from services.following_feed import FeedPage, FollowingFeedService
from .pagination import MAX_FEED_PAGE, MAX_PAGE_SIZE, set_next_page_headers

router = APIRouter(prefix="/feed", tags=["feed"])


class FeedItemResponse(BaseModel):
    id: int
    title: str
    body_excerpt: str
    author_id: int
    published_at: datetime | None = None
    created_at: datetime
    view_count: int = 0
    category: str | None = None

    @classmethod
    def from_content(cls, content: ContentSummary) -> FeedItemResponse:
        return cls(
            id=content.id,
            title=content.title,
            body_excerpt=content.body_excerpt,
            author_id=content.author_id,
            published_at=content.published_at,
            created_at=content.created_at,
            view_count=content.view_count,
            category=content.category,
        )


class FeedResponse(BaseModel):
    items: list[FeedItemResponse]
    has_more: bool
    warning_count: int = 0
    failed_author_ids: list[int] = []
    cancelled: bool = False

    @classmethod
    def from_page(cls, page: FeedPage) -> FeedResponse:
        return cls(
            items=[FeedItemResponse.from_content(entry.content) for entry in page.items],
            has_more=page.has_more,
            warning_count=page.warning_count,
            failed_author_ids=page.failed_author_ids,
            cancelled=page.cancelled,
        )


@router.get("/following", response_model=FeedResponse)
async def following_feed(
    response: Response,
    page: Annotated[int, Query(ge=1, le=MAX_FEED_PAGE)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    current_user_id: int = Depends(get_current_user_id),
    feed_service: FollowingFeedService = Depends(get_following_feed),
) -> FeedResponse:
    result = await feed_service.get_feed(
        current_user_id,
        page,
        limit,
        timeout=settings.feed_timeout_seconds,
    )
    set_next_page_headers(response, page=page, has_more=result.has_more)
    if result.warning_count:
        response.headers["X-Feed-Warnings"] = str(result.warning_count)
    return FeedResponse.from_page(result)
