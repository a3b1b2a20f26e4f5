"""Follower/following counters and viewer-relative follow state."""

from __future__ import annotations

from dataclasses import dataclass

from .follow_edges import FollowEdgeStore


@dataclass(frozen=True, slots=True)
class FollowStats:
    followers_count: int
    following_count: int
    is_following: bool = False
    is_followed_by: bool = False

    @property
    def is_mutual_follow(self) -> bool:
        return self.is_following and self.is_followed_by


class FollowStatsService:
    """Computes follow statistics straight from the edge store on every call.

    Nothing is cached between calls, so counts always agree with the edges a
    concurrent follow or unfollow has already committed.
    """

    def __init__(self, edges: FollowEdgeStore) -> None:
        self._edges = edges

    async def get_stats(self, subject_id: int, viewer_id: int | None = None) -> FollowStats:
        followers_count = await self._edges.count_followers(subject_id)
        following_count = await self._edges.count_following(subject_id)

        if viewer_id is None or viewer_id == subject_id:
            return FollowStats(
                followers_count=followers_count,
                following_count=following_count,
            )

        is_following = await self._edges.exists(viewer_id, subject_id)
        is_followed_by = await self._edges.exists(subject_id, viewer_id)
        return FollowStats(
            followers_count=followers_count,
            following_count=following_count,
            is_following=is_following,
            is_followed_by=is_followed_by,
        )
