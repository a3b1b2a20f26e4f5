"""Business logic services."""

from .content_store import ContentPage, ContentStore, ContentSummary, HttpContentStore
from .errors import (
    ContentFetchError,
    EdgeAlreadyExists,
    EdgeNotFound,
    FollowGraphError,
    SelfFollowRejected,
    StorageUnavailable,
)
from .rate_limiter import FollowRateLimiter, get_follow_rate_limiter, set_follow_rate_limiter

__all__ = [
    "ContentFetchError",
    "ContentPage",
    "ContentStore",
    "ContentSummary",
    "EdgeAlreadyExists",
    "EdgeNotFound",
    "FollowGraphError",
    "FollowRateLimiter",
    "HttpContentStore",
    "SelfFollowRejected",
    "StorageUnavailable",
    "get_follow_rate_limiter",
    "set_follow_rate_limiter",
]
