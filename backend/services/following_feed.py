"""Fan-out-on-read feed of recent content from followed authors."""

from __future__ import annotations

import asyncio
import heapq
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice
from typing import cast

from core import settings
from models.follow import utcnow
from .content_store import PUBLISHED_STATUS, ContentStore, ContentSummary
from .follow_edges import FollowEdgeStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeedEntry:
    content: ContentSummary
    author_id: int

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.content.sort_timestamp, self.content.id)


def _sort_key(entry: FeedEntry) -> tuple[datetime, int]:
    return entry.sort_key


@dataclass(slots=True)
class FeedPage:
    items: list[FeedEntry] = field(default_factory=list)
    has_more: bool = False
    failed_author_ids: list[int] = field(default_factory=list)
    incomplete_author_ids: list[int] = field(default_factory=list)
    cancelled: bool = False

    @property
    def warning_count(self) -> int:
        return len(self.failed_author_ids)


@dataclass(slots=True)
class _FanOutResult:
    streams: list[list[FeedEntry]] = field(default_factory=list)
    failed_author_ids: list[int] = field(default_factory=list)
    incomplete_author_ids: list[int] = field(default_factory=list)
    cancelled: bool = False


class FollowingFeedService:
    """Builds a viewer's following feed at read time.

    Followees are resolved from the edge store, each author's published content
    is fetched concurrently from the content store, and the per-author streams
    are k-way merged newest first. A failing author is skipped and reported
    instead of failing the whole feed.
    """

    def __init__(
        self,
        edges: FollowEdgeStore,
        content_store: ContentStore,
        *,
        max_fanout: int | None = None,
        page_size: int | None = None,
        fetch_concurrency: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._edges = edges
        self._content_store = content_store
        self._max_fanout = max_fanout or settings.feed_max_fanout
        self._page_size = page_size or settings.feed_page_size
        self._fetch_concurrency = fetch_concurrency or settings.feed_fetch_concurrency
        self._clock = clock

    async def get_feed(
        self,
        viewer_id: int,
        page: int = 1,
        page_size: int | None = None,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> FeedPage:
        if page < 1:
            raise ValueError("page must be >= 1")
        size = self._resolve_page_size(page_size)

        followee_ids = await self._edges.list_followee_ids(viewer_id, limit=self._max_fanout)
        if not followee_ids:
            return FeedPage()

        page_start = (page - 1) * size
        # One extra item per author is enough to tell whether another page exists.
        per_author_needed = page_start + size + 1
        fan_out = await self._fan_out(
            followee_ids,
            per_author_needed=per_author_needed,
            timeout=timeout,
            cancel_event=cancel_event,
        )

        if fan_out.failed_author_ids:
            logger.warning(
                "Following feed served with degraded content store",
                extra={
                    "viewer_id": viewer_id,
                    "failed_author_ids": fan_out.failed_author_ids,
                    "warning_count": len(fan_out.failed_author_ids),
                },
            )
        if fan_out.cancelled:
            logger.info(
                "Following feed fan-out cancelled before completion",
                extra={
                    "viewer_id": viewer_id,
                    "incomplete_author_ids": fan_out.incomplete_author_ids,
                },
            )

        merged = heapq.merge(*fan_out.streams, key=_sort_key, reverse=True)
        window = list(islice(merged, page_start, page_start + size + 1))
        return FeedPage(
            items=window[:size],
            has_more=len(window) > size,
            failed_author_ids=fan_out.failed_author_ids,
            incomplete_author_ids=fan_out.incomplete_author_ids,
            cancelled=fan_out.cancelled,
        )

    async def _fan_out(
        self,
        author_ids: list[int],
        *,
        per_author_needed: int,
        timeout: float | None,
        cancel_event: asyncio.Event | None,
    ) -> _FanOutResult:
        semaphore = asyncio.Semaphore(self._fetch_concurrency)
        now = self._clock()

        async def fetch(author_id: int) -> list[FeedEntry]:
            async with semaphore:
                return await self._fetch_author(author_id, needed=per_author_needed, now=now)

        tasks = {asyncio.create_task(fetch(author_id)): author_id for author_id in author_ids}
        pending: set[asyncio.Task[list[FeedEntry]]] = set(tasks)
        cancel_waiter = asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        result = _FanOutResult()

        try:
            while pending:
                remaining: float | None = None
                if deadline is not None:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        result.cancelled = True
                        break

                waiters: set[asyncio.Future[object]] = set(pending)
                if cancel_waiter is not None:
                    waiters.add(cancel_waiter)
                done, _ = await asyncio.wait(
                    waiters,
                    timeout=remaining,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                for finished in done:
                    if finished is cancel_waiter:
                        continue
                    author_task = cast(asyncio.Task[list[FeedEntry]], finished)
                    pending.discard(author_task)
                    author_id = tasks[author_task]
                    if author_task.cancelled():
                        result.failed_author_ids.append(author_id)
                        continue
                    error = author_task.exception()
                    if error is not None:
                        result.failed_author_ids.append(author_id)
                        logger.warning(
                            "Failed to fetch followee content",
                            extra={"author_id": author_id},
                            exc_info=error,
                        )
                        continue
                    result.streams.append(author_task.result())

                if cancel_waiter is not None and cancel_waiter.done():
                    result.cancelled = True
                    break
                if not done:
                    result.cancelled = True
                    break
        finally:
            for task in pending:
                task.cancel()
            leftovers: list[asyncio.Future[object]] = list(pending)
            if cancel_waiter is not None:
                cancel_waiter.cancel()
                leftovers.append(cancel_waiter)
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)

        if result.cancelled:
            result.incomplete_author_ids = [
                author_id for task, author_id in tasks.items() if task in pending
            ]
        result.failed_author_ids.sort()
        return result

    async def _fetch_author(
        self,
        author_id: int,
        *,
        needed: int,
        now: datetime,
    ) -> list[FeedEntry]:
        entries: list[FeedEntry] = []
        cursor: str | None = None
        seen_cursors: set[str] = set()
        while True:
            page = await self._content_store.list_by_author(
                author_id,
                status=PUBLISHED_STATUS,
                cursor=cursor,
                limit=needed,
            )
            entries.extend(
                FeedEntry(content=item, author_id=author_id)
                for item in page.items
                if _is_visible(item, author_id=author_id, now=now)
            )
            next_cursor = page.next_cursor
            if len(entries) >= needed or not next_cursor or next_cursor in seen_cursors:
                break
            seen_cursors.add(next_cursor)
            cursor = next_cursor

        entries.sort(key=_sort_key, reverse=True)
        return entries[:needed]

    def _resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self._page_size
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return page_size


def _is_visible(item: ContentSummary, *, author_id: int, now: datetime) -> bool:
    if item.author_id != author_id or item.status != PUBLISHED_STATUS:
        return False
    # Scheduled content stays hidden until its publication time.
    return item.published_at is None or item.published_at <= now
