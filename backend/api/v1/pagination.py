"""Shared pagination constants and response header helpers."""

from fastapi import Response

from core import settings

MAX_PAGE_SIZE = settings.max_page_size
MAX_FEED_PAGE = settings.feed_max_page


def set_next_page_headers(
    response: Response,
    *,
    page: int,
    has_more: bool,
    next_cursor: str | None = None,
) -> None:
    if not has_more:
        return
    response.headers["X-Next-Page"] = str(page + 1)
    if next_cursor:
        response.headers["X-Next-Cursor"] = next_cursor
