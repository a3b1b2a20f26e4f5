"""Follow/unfollow mutations and follower listings."""

from __future__ import annotations

import logging

from core import settings
from .errors import EdgeAlreadyExists, EdgeNotFound, SelfFollowRejected
from .follow_edges import EdgeCursor, FollowEdgeStore, FollowPage

logger = logging.getLogger(__name__)


class FollowGraphService:
    """Idempotent mutation API over the follow edge store.

    Each (follower, followee) pair is either following or not; ``follow`` and
    ``unfollow`` move the pair into the requested state whatever state it is in.
    Self-follow is the only mutation error callers ever see.
    """

    def __init__(
        self,
        edges: FollowEdgeStore,
        *,
        page_size: int | None = None,
    ) -> None:
        self._edges = edges
        self._page_size = page_size or settings.follow_page_size

    async def follow(self, follower_id: int, followee_id: int) -> bool:
        """Ensure ``follower_id`` follows ``followee_id``.

        Returns True when a new edge was created, False when it already existed.
        """
        if follower_id == followee_id:
            raise SelfFollowRejected(follower_id)
        try:
            await self._edges.insert(follower_id, followee_id)
        except EdgeAlreadyExists:
            logger.info(
                "Follow edge already present",
                extra={"follower_id": follower_id, "followee_id": followee_id},
            )
            return False
        logger.info(
            "Follow edge created",
            extra={"follower_id": follower_id, "followee_id": followee_id},
        )
        return True

    async def unfollow(self, follower_id: int, followee_id: int) -> bool:
        """Ensure ``follower_id`` no longer follows ``followee_id``.

        Returns True when an edge was removed, False when there was none.
        """
        try:
            await self._edges.remove(follower_id, followee_id)
        except EdgeNotFound:
            logger.info(
                "Unfollow requested for absent edge",
                extra={"follower_id": follower_id, "followee_id": followee_id},
            )
            return False
        logger.info(
            "Follow edge removed",
            extra={"follower_id": follower_id, "followee_id": followee_id},
        )
        return True

    async def list_followers(
        self,
        user_id: int,
        page: int = 1,
        *,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> FollowPage:
        return await self._edges.list_followers(
            user_id,
            page=page,
            page_size=self._resolve_page_size(page_size),
            cursor=EdgeCursor.decode(cursor) if cursor else None,
        )

    async def list_following(
        self,
        user_id: int,
        page: int = 1,
        *,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> FollowPage:
        return await self._edges.list_following(
            user_id,
            page=page,
            page_size=self._resolve_page_size(page_size),
            cursor=EdgeCursor.decode(cursor) if cursor else None,
        )

    def _resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self._page_size
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return page_size
