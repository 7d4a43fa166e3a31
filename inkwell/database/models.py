"""
inkwell.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables owned by the economy engine:
- users                  — User aggregate with denormalized economy counters
- user_streaks           — One streak record per user (optimistic version)
- ink_drop_transactions  — Append-only Ink Drop ledger
- achievements           — Per-(user, type) achievement progress
- daily_challenges       — Per-(user, UTC day) challenge
- notifications          — Outbox for the notification collaborator

Collaborator tables (written by the posting/social modules, only counted
here for achievement progress):
- books                  — A user's book post / recommendation
- likes                  — A user liking a book post
- comments               — A user commenting on a book post
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Inkwell ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class InkDropSource(enum.StrEnum):
    """Why an Ink Drop ledger entry exists."""
    STREAK_CHECK_IN = "streak_check_in"
    STREAK_RESTORE = "streak_restore"
    CHALLENGE_COMPLETED = "challenge_completed"
    MILESTONE_ACHIEVED = "milestone_achieved"
    REFERRAL_BONUS = "referral_bonus"
    PURCHASE = "purchase"
    TIP_SENT = "tip_sent"
    TIP_RECEIVED = "tip_received"
    ADMIN_GRANT = "admin_grant"


class AchievementType(enum.StrEnum):
    """Fixed achievement catalog keys (definitions in engine.achievements)."""
    FIRST_POST = "FIRST_POST"
    BOOK_LOVER_5 = "BOOK_LOVER_5"
    BOOK_LOVER_10 = "BOOK_LOVER_10"
    BOOK_LOVER_25 = "BOOK_LOVER_25"
    BOOK_LOVER_50 = "BOOK_LOVER_50"
    SOCIAL_BUTTERFLY_10 = "SOCIAL_BUTTERFLY_10"
    SOCIAL_BUTTERFLY_25 = "SOCIAL_BUTTERFLY_25"
    STREAK_3 = "STREAK_3"
    STREAK_7 = "STREAK_7"
    STREAK_30 = "STREAK_30"
    POPULAR_POST_10 = "POPULAR_POST_10"
    POPULAR_POST_50 = "POPULAR_POST_50"
    COMMENTER_10 = "COMMENTER_10"
    COMMENTER_50 = "COMMENTER_50"
    EXPLORER = "EXPLORER"
    TRENDSETTER = "TRENDSETTER"


class ChallengeType(enum.StrEnum):
    READ_POSTS = "read_posts"
    LIKE_POSTS = "like_posts"
    COMMENT = "comment"
    RECOMMEND_BOOK = "recommend_book"


class ChallengeStatus(enum.StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


class NotificationType(enum.StrEnum):
    """Notification kinds this engine emits."""
    ACHIEVEMENT = "ACHIEVEMENT"
    STREAK_MILESTONE = "STREAK_MILESTONE"
    CHALLENGE_COMPLETED = "CHALLENGE_COMPLETED"
    TIP_RECEIVED = "TIP_RECEIVED"


# ---------------------------------------------------------------------------
# Users: the collaborator-owned aggregate, economy counters denormalized
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    is_pro: Mapped[bool] = mapped_column(Boolean, default=False)
    points: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    # Cached ledger balance: always equal to SUM(ink_drop_transactions.amount)
    ink_drops: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    streak: Mapped[UserStreak | None] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    transactions: Mapped[list[InkDropTransaction]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="InkDropTransaction.user_id",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.username!r} drops={self.ink_drops}>"


# ---------------------------------------------------------------------------
# UserStreak: daily check-in state machine, one row per user
# ---------------------------------------------------------------------------
class UserStreak(Base):
    """Streak state for one user.

    ``version`` is SQLAlchemy's optimistic-lock column: an UPDATE issued from
    a stale read matches zero rows and raises ``StaleDataError``, so two
    concurrent check-ins can never both commit.
    """
    __tablename__ = "user_streaks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )

    # Current streak
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    current_streak_start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    last_check_in_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    # History
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak_start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    longest_streak_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_check_ins: Mapped[int] = mapped_column(Integer, default=0)

    # Restoration
    streak_restores_used: Mapped[int] = mapped_column(Integer, default=0)
    can_restore_streak: Mapped[bool] = mapped_column(Boolean, default=False)
    last_break_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # {"day7": {"achieved": bool, "date": iso|None}, ...}
    milestones: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="streak")

    __table_args__ = (
        Index("ix_user_streaks_current_desc", "current_streak"),
        Index("ix_user_streaks_last_check_in", "last_check_in_date"),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<UserStreak user={self.user_id} current={self.current_streak} "
            f"longest={self.longest_streak}>"
        )


# ---------------------------------------------------------------------------
# InkDropTransaction: append-only ledger
# ---------------------------------------------------------------------------
class InkDropTransaction(Base):
    __tablename__ = "ink_drop_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # signed
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    sender_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    recipient_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(
        back_populates="transactions", foreign_keys=[user_id]
    )

    __table_args__ = (
        Index("ix_ink_drop_tx_user_time", "user_id", "timestamp"),
        Index("ix_ink_drop_tx_source", "source"),
    )

    def __repr__(self) -> str:
        return (
            f"<InkDropTransaction id={self.id} user={self.user_id} "
            f"amount={self.amount} source={self.source}>"
        )


# ---------------------------------------------------------------------------
# Achievement: per-user progress against the fixed catalog
# ---------------------------------------------------------------------------
class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0)
    unlocked: Mapped[bool] = mapped_column(Boolean, default=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
        Index("ix_achievements_user_unlocked", "user_id", "unlocked"),
    )

    def __repr__(self) -> str:
        return (
            f"<Achievement user={self.user_id} type={self.type} "
            f"unlocked={self.unlocked}>"
        )


# ---------------------------------------------------------------------------
# DailyChallenge: one per user per UTC day
# ---------------------------------------------------------------------------
class DailyChallenge(Base):
    __tablename__ = "daily_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    challenge_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    current_progress: Mapped[int] = mapped_column(Integer, default=0)
    reward_ink_drops: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChallengeStatus.ACTIVE.value
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    challenge_date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_date", name="uq_daily_challenges_user_date"),
        Index("ix_daily_challenges_user_status", "user_id", "status"),
        Index("ix_daily_challenges_status_expiry", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DailyChallenge user={self.user_id} date={self.challenge_date} "
            f"type={self.challenge_type} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Notification: outbox consumed by the push/notification collaborator
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_user_read_time", "user_id", "read", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type}>"


# ---------------------------------------------------------------------------
# Collaborator tables: counted for achievement progress, never written here
# ---------------------------------------------------------------------------
class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    is_trending: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_books_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Book id={self.id} user={self.user_id} title={self.title!r}>"


class Like(Base):
    __tablename__ = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_likes_user_book"),
        Index("ix_likes_book", "book_id"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_comments_user", "user_id"),
    )
