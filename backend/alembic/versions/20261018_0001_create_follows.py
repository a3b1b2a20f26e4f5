"""Create follows edge table.

The composite primary key is the unique index on (follower_id, followee_id).
Each direction gets its own (user, created_at) index so counts and recency
ordered listings by either column avoid a table scan.
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20261018_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "follows",
        sa.Column("follower_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("followee_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.CheckConstraint(
            "follower_id <> followee_id",
            name="ck_follows_no_self_follow",
        ),
        sa.PrimaryKeyConstraint("follower_id", "followee_id"),
    )
    op.create_index(
        "ix_follows_followee_created_at",
        "follows",
        ["followee_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_follows_follower_created_at",
        "follows",
        ["follower_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_follows_follower_created_at", table_name="follows")
    op.drop_index("ix_follows_followee_created_at", table_name="follows")
    op.drop_table("follows")
