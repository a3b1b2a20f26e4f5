"""Error taxonomy for the follow graph and feed services."""

from __future__ import annotations


class FollowGraphError(Exception):
    """Base class for follow graph failures."""


class SelfFollowRejected(FollowGraphError):
    """Raised when a user tries to follow themselves."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} cannot follow themselves")
        self.user_id = user_id


class EdgeAlreadyExists(FollowGraphError):
    def __init__(self, follower_id: int, followee_id: int) -> None:
        super().__init__(f"User {follower_id} already follows user {followee_id}")
        self.follower_id = follower_id
        self.followee_id = followee_id


class EdgeNotFound(FollowGraphError):
    def __init__(self, follower_id: int, followee_id: int) -> None:
        super().__init__(f"User {follower_id} does not follow user {followee_id}")
        self.follower_id = follower_id
        self.followee_id = followee_id


class StorageUnavailable(FollowGraphError):
    """Transient storage failure; safe for the caller to retry with backoff."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Storage unavailable during {operation}")
        self.operation = operation


class ContentFetchError(Exception):
    """Raised by content store adapters when an author's content cannot be listed."""

    def __init__(self, author_id: int, reason: str) -> None:
        super().__init__(f"Failed to fetch content for author {author_id}: {reason}")
        self.author_id = author_id
        self.reason = reason


__all__ = [
    "ContentFetchError",
    "EdgeAlreadyExists",
    "EdgeNotFound",
    "FollowGraphError",
    "SelfFollowRejected",
    "StorageUnavailable",
]
