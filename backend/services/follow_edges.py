"""Durable storage of directed follow edges."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, cast

from sqlalchemy import and_, delete, exists, func, insert, or_, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_check_violation, is_unique_violation, translate_storage_errors
from models import Follow
from models.follow import utcnow
from .errors import EdgeAlreadyExists, EdgeNotFound, SelfFollowRejected

SELF_FOLLOW_CONSTRAINT = "ck_follows_no_self_follow"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _lt(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column < value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


@dataclass(frozen=True, slots=True)
class EdgeCursor:
    """Keyset position ``(created_at, user_id)`` of the last row already served."""

    created_at: datetime
    user_id: int

    def encode(self) -> str:
        payload = json.dumps(
            {"t": self.created_at.isoformat(), "u": self.user_id},
            separators=(",", ":"),
        )
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> EdgeCursor:
        padded = token + "=" * (-len(token) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
            return cls(
                created_at=datetime.fromisoformat(payload["t"]),
                user_id=int(payload["u"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError("Invalid pagination cursor") from exc


@dataclass(frozen=True, slots=True)
class FollowListEntry:
    user_id: int
    followed_at: datetime


@dataclass(slots=True)
class FollowPage:
    items: list[FollowListEntry] = field(default_factory=list)
    has_more: bool = False
    total: int = 0

    @property
    def next_cursor(self) -> str | None:
        if not self.has_more or not self.items:
            return None
        last = self.items[-1]
        return EdgeCursor(created_at=last.followed_at, user_id=last.user_id).encode()


class FollowEdgeStore:
    """SQL-backed store for follow edges.

    Uniqueness of ``(follower_id, followee_id)`` is enforced by the table's
    composite primary key. Every mutation is committed before returning.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    async def exists(self, follower_id: int, followee_id: int) -> bool:
        query = select(
            exists().where(
                _eq(Follow.follower_id, follower_id),
                _eq(Follow.followee_id, followee_id),
            )
        )
        with translate_storage_errors("follow edge lookup"):
            result = await self._session.execute(query)
        return bool(result.scalar())

    async def insert(self, follower_id: int, followee_id: int) -> Follow:
        if follower_id == followee_id:
            raise SelfFollowRejected(follower_id)

        edge = Follow(
            follower_id=follower_id,
            followee_id=followee_id,
            created_at=self._clock(),
        )
        try:
            with translate_storage_errors("follow edge insert"):
                await self._session.execute(
                    insert(Follow).values(
                        follower_id=edge.follower_id,
                        followee_id=edge.followee_id,
                        created_at=edge.created_at,
                    )
                )
                await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            if is_check_violation(exc, SELF_FOLLOW_CONSTRAINT):
                raise SelfFollowRejected(follower_id) from exc
            if is_unique_violation(exc):
                raise EdgeAlreadyExists(follower_id, followee_id) from exc
            raise
        return edge

    async def remove(self, follower_id: int, followee_id: int) -> None:
        with translate_storage_errors("follow edge delete"):
            result = await self._session.execute(
                delete(Follow).where(
                    _eq(Follow.follower_id, follower_id),
                    _eq(Follow.followee_id, followee_id),
                )
            )
            await self._session.commit()
        if cast(CursorResult[Any], result).rowcount == 0:
            raise EdgeNotFound(follower_id, followee_id)

    async def count_followers(self, user_id: int) -> int:
        return await self._count(_eq(Follow.followee_id, user_id))

    async def count_following(self, user_id: int) -> int:
        return await self._count(_eq(Follow.follower_id, user_id))

    async def list_followers(
        self,
        user_id: int,
        *,
        page: int = 1,
        page_size: int,
        cursor: EdgeCursor | None = None,
    ) -> FollowPage:
        return await self._list_edges(
            anchor_column=Follow.followee_id,
            counterpart_column=Follow.follower_id,
            user_id=user_id,
            page=page,
            page_size=page_size,
            cursor=cursor,
        )

    async def list_following(
        self,
        user_id: int,
        *,
        page: int = 1,
        page_size: int,
        cursor: EdgeCursor | None = None,
    ) -> FollowPage:
        return await self._list_edges(
            anchor_column=Follow.follower_id,
            counterpart_column=Follow.followee_id,
            user_id=user_id,
            page=page,
            page_size=page_size,
            cursor=cursor,
        )

    async def list_followee_ids(self, user_id: int, *, limit: int) -> list[int]:
        """Return up to ``limit`` followee ids, most recently followed first."""
        followee_column = cast(ColumnElement[int], Follow.followee_id)
        query = (
            select(followee_column)
            .where(_eq(Follow.follower_id, user_id))
            .order_by(_desc(Follow.created_at), _desc(Follow.followee_id))
            .limit(limit)
        )
        with translate_storage_errors("followee lookup"):
            result = await self._session.execute(query)
        return [int(followee_id) for followee_id in result.scalars().all()]

    async def _count(self, predicate: ColumnElement[bool]) -> int:
        query = select(func.count()).select_from(Follow).where(predicate)
        with translate_storage_errors("follow edge count"):
            result = await self._session.execute(query)
        return int(result.scalar_one())

    async def _list_edges(
        self,
        *,
        anchor_column: Any,
        counterpart_column: Any,
        user_id: int,
        page: int,
        page_size: int,
        cursor: EdgeCursor | None,
    ) -> FollowPage:
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        counterpart = cast(ColumnElement[int], counterpart_column)
        created_at = cast(ColumnElement[datetime], Follow.created_at)
        query = (
            select(counterpart, created_at)
            .where(_eq(anchor_column, user_id))
            .order_by(_desc(created_at), _desc(counterpart))
        )
        if cursor is not None:
            query = query.where(
                or_(
                    _lt(created_at, cursor.created_at),
                    and_(
                        _eq(created_at, cursor.created_at),
                        _lt(counterpart, cursor.user_id),
                    ),
                )
            )
        elif page > 1:
            query = query.offset((page - 1) * page_size)
        query = query.limit(page_size + 1)

        with translate_storage_errors("follow edge listing"):
            result = await self._session.execute(query)
        rows = result.all()
        has_more = len(rows) > page_size
        items = [
            FollowListEntry(user_id=int(counterpart_id), followed_at=followed_at)
            for counterpart_id, followed_at in rows[:page_size]
        ]
        total = await self._count(_eq(anchor_column, user_id))
        return FollowPage(items=items, has_more=has_more, total=total)
