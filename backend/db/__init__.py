"""Database helpers."""

from .errors import is_check_violation, is_unique_violation, translate_storage_errors
from .session import AsyncSessionMaker, async_engine, get_session

__all__ = [
    "AsyncSessionMaker",
    "async_engine",
    "get_session",
    "is_check_violation",
    "is_unique_violation",
    "translate_storage_errors",
]
