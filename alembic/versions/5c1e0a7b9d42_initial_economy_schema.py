"""Initial economy schema: users, streaks, ledger, achievements, challenges

Revision ID: 5c1e0a7b9d42
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5c1e0a7b9d42"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("is_pro", sa.Boolean(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=True),
        sa.Column("current_streak", sa.Integer(), nullable=True),
        sa.Column("longest_streak", sa.Integer(), nullable=True),
        sa.Column("ink_drops", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "user_streaks",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("current_streak", sa.Integer(), nullable=True),
        sa.Column("current_streak_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_check_in_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=True),
        sa.Column("longest_streak_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("longest_streak_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_check_ins", sa.Integer(), nullable=True),
        sa.Column("streak_restores_used", sa.Integer(), nullable=True),
        sa.Column("can_restore_streak", sa.Boolean(), nullable=True),
        sa.Column("last_break_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("milestones", postgresql.JSONB(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_streaks_current_desc", "user_streaks", ["current_streak"])
    op.create_index("ix_user_streaks_last_check_in", "user_streaks", ["last_check_in_date"])

    op.create_table(
        "ink_drop_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(30), nullable=False),
        sa.Column(
            "sender_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "recipient_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_ink_drop_tx_user_time", "ink_drop_transactions", ["user_id", "timestamp"],
    )
    op.create_index("ix_ink_drop_tx_source", "ink_drop_transactions", ["source"])

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=True),
        sa.Column("unlocked", sa.Boolean(), nullable=True),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
    )
    op.create_index(
        "ix_achievements_user_unlocked", "achievements", ["user_id", "unlocked"],
    )

    op.create_table(
        "daily_challenges",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("challenge_type", sa.String(30), nullable=False),
        sa.Column("target_count", sa.Integer(), nullable=False),
        sa.Column("current_progress", sa.Integer(), nullable=True),
        sa.Column("reward_ink_drops", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("challenge_date", sa.String(10), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "challenge_date", name="uq_daily_challenges_user_date",
        ),
    )
    op.create_index(
        "ix_daily_challenges_user_status", "daily_challenges", ["user_id", "status"],
    )
    op.create_index(
        "ix_daily_challenges_status_expiry", "daily_challenges", ["status", "expires_at"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_notifications_user_read_time", "notifications",
        ["user_id", "read", "created_at"],
    )

    # Collaborator tables (owned by posting/social modules, counted here)
    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("is_trending", sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_books_user", "books", ["user_id"])

    op.create_table(
        "likes",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "book_id", sa.Integer(),
            sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "book_id", name="uq_likes_user_book"),
    )
    op.create_index("ix_likes_book", "likes", ["book_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "book_id", sa.Integer(),
            sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_comments_user", "comments", ["user_id"])


def downgrade() -> None:
    for table in (
        "comments",
        "likes",
        "books",
        "notifications",
        "daily_challenges",
        "achievements",
        "ink_drop_transactions",
        "user_streaks",
        "users",
    ):
        op.drop_table(table)
