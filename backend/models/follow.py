"""Follow relationship model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Index, func
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Follow(SQLModel, table=True):
    """Directed edge meaning ``follower_id`` follows ``followee_id``.

    User ids are owned by the external user directory, so the edge keeps them
    as plain integers without foreign keys.
    """

    __tablename__ = "follows"
    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_no_self_follow"),
        Index("ix_follows_followee_created_at", "followee_id", "created_at"),
        Index("ix_follows_follower_created_at", "follower_id", "created_at"),
    )

    follower_id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False)
    )
    followee_id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
