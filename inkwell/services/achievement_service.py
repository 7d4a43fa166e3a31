"""
inkwell.services.achievement_service — Achievement Progress & Unlocks
======================================================================

Counter-registry implementation of the achievement tracker.  Each
:class:`AchievementType` maps to a counting function ``(session, user_id) →
int`` over the collaborator tables; the unlock path is shared.

Unlocks are exactly-once: an unlocked row short-circuits before any
counting, and the ``(user_id, type)`` unique constraint plus the user row
lock keep two concurrent checks from both paying out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, distinct, func, select
from sqlalchemy.orm import Session, aliased

from inkwell.database.engine import get_session
from inkwell.database.models import (
    Achievement,
    AchievementType,
    Book,
    Comment,
    InkDropSource,
    Like,
    NotificationType,
    User,
)
from inkwell.engine.achievements import (
    ACHIEVEMENT_DEFINITIONS,
    AchievementDefinition,
    calculate_level,
    get_definition,
)
from inkwell.engine.dates import utc_now
from inkwell.services.ink_drop_service import apply_ink_drops, lock_user
from inkwell.services.notification_service import (
    NotificationDispatcher,
    default_notifier,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Progress counters: one query per countable activity
# ---------------------------------------------------------------------------
def _count_posts(session: Session, user_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(Book).where(Book.user_id == user_id)
    ) or 0


def _count_likes_received(session: Session, user_id: int) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Like)
        .join(Book, Like.book_id == Book.id)
        .where(Book.user_id == user_id)
    ) or 0


def _current_streak(session: Session, user_id: int) -> int:
    """Read-only view of the streak mirrored onto the user aggregate."""
    user = session.get(User, user_id)
    return user.current_streak if user else 0


def _max_likes_on_one_post(session: Session, user_id: int) -> int:
    per_post = (
        select(func.count(Like.id).label("likes"))
        .select_from(Book)
        .join(Like, Like.book_id == Book.id)
        .where(Book.user_id == user_id)
        .group_by(Book.id)
        .subquery()
    )
    return session.scalar(select(func.max(per_post.c.likes))) or 0


def _count_comments(session: Session, user_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(Comment).where(Comment.user_id == user_id)
    ) or 0


def _count_distinct_authors_liked(session: Session, user_id: int) -> int:
    liked_book = aliased(Book)
    return session.scalar(
        select(func.count(distinct(liked_book.user_id)))
        .select_from(Like)
        .join(liked_book, Like.book_id == liked_book.id)
        .where(Like.user_id == user_id, liked_book.user_id != user_id)
    ) or 0


def _count_trending_posts(session: Session, user_id: int) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Book)
        .where(Book.user_id == user_id, Book.is_trending.is_(True))
    ) or 0


ProgressCounter = Callable[[Session, int], int]

PROGRESS_COUNTERS: dict[AchievementType, ProgressCounter] = {
    AchievementType.FIRST_POST: _count_posts,
    AchievementType.BOOK_LOVER_5: _count_posts,
    AchievementType.BOOK_LOVER_10: _count_posts,
    AchievementType.BOOK_LOVER_25: _count_posts,
    AchievementType.BOOK_LOVER_50: _count_posts,
    AchievementType.SOCIAL_BUTTERFLY_10: _count_likes_received,
    AchievementType.SOCIAL_BUTTERFLY_25: _count_likes_received,
    AchievementType.STREAK_3: _current_streak,
    AchievementType.STREAK_7: _current_streak,
    AchievementType.STREAK_30: _current_streak,
    AchievementType.POPULAR_POST_10: _max_likes_on_one_post,
    AchievementType.POPULAR_POST_50: _max_likes_on_one_post,
    AchievementType.COMMENTER_10: _count_comments,
    AchievementType.COMMENTER_50: _count_comments,
    AchievementType.EXPLORER: _count_distinct_authors_liked,
    AchievementType.TRENDSETTER: _count_trending_posts,
}


def compute_progress(session: Session, user_id: int, achievement_type: str) -> int:
    """Progress for *achievement_type*; types without a counter report 0."""
    try:
        counter = PROGRESS_COUNTERS.get(AchievementType(achievement_type))
    except ValueError:
        counter = None
    if counter is None:
        return 0
    return counter(session, user_id)


# ---------------------------------------------------------------------------
# Account points & level
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PointsResult:
    new_points: int
    new_level: int
    leveled_up: bool


def award_points(session: Session, user: User, points: int) -> PointsResult:
    """Add *points* to the user and recompute the level from the new total."""
    new_points = (user.points or 0) + points
    new_level = calculate_level(new_points)
    leveled_up = new_level > (user.level or 1)

    user.points = new_points
    user.level = new_level
    if leveled_up:
        logger.info("User %d reached level %d", user.id, new_level)
    return PointsResult(new_points=new_points, new_level=new_level, leveled_up=leveled_up)


# ---------------------------------------------------------------------------
# Achievement check
# ---------------------------------------------------------------------------
@dataclass
class AchievementCheckResult:
    """Outcome of one :func:`check_achievement` call.

    ``status`` is ``"unlocked"``, ``"progress_updated"``,
    ``"already_unlocked"`` or ``"unknown_type"``.
    """

    status: str
    achievement_type: str
    progress: int = 0
    target: int = 0
    definition: AchievementDefinition | None = None
    leveled_up: bool = False

    @property
    def unlocked(self) -> bool:
        return self.status == "unlocked"


def _get_or_create_achievement(
    session: Session, user_id: int, achievement_type: str
) -> Achievement:
    achievement = session.scalar(
        select(Achievement).where(
            Achievement.user_id == user_id,
            Achievement.type == achievement_type,
        )
    )
    if achievement is None:
        achievement = Achievement(
            user_id=user_id, type=achievement_type, progress=0, unlocked=False,
        )
        session.add(achievement)
        session.flush()
    return achievement


def check_achievement_in_session(
    session: Session,
    user: User,
    achievement_type: str,
    *,
    now: datetime | None = None,
    notifier: NotificationDispatcher | None = None,
) -> AchievementCheckResult:
    """Evaluate one achievement inside the caller's transaction.

    The caller must already hold the lock on *user* (see :func:`lock_user`).
    """
    definition = get_definition(achievement_type)
    if definition is None:
        return AchievementCheckResult(status="unknown_type", achievement_type=achievement_type)

    achievement_type = AchievementType(achievement_type)
    achievement = _get_or_create_achievement(session, user.id, achievement_type.value)
    if achievement.unlocked:
        return AchievementCheckResult(
            status="already_unlocked",
            achievement_type=achievement_type,
            progress=achievement.progress,
            target=definition.target,
            definition=definition,
        )

    progress = compute_progress(session, user.id, achievement_type)
    achievement.progress = progress

    if progress < definition.target:
        return AchievementCheckResult(
            status="progress_updated",
            achievement_type=achievement_type,
            progress=progress,
            target=definition.target,
            definition=definition,
        )

    now = now or utc_now()
    achievement.unlocked = True
    achievement.unlocked_at = now

    apply_ink_drops(
        session, user, definition.points, InkDropSource.MILESTONE_ACHIEVED, now=now,
    )
    points = award_points(session, user, definition.points)

    (notifier or default_notifier()).notify(
        session, user.id, NotificationType.ACHIEVEMENT, {
            "achievementType": achievement_type.value,
            "achievementName": definition.name,
            "achievementDescription": definition.description,
            "points": definition.points,
        },
    )
    logger.info(
        "Achievement unlocked: %s (%s) for user %d",
        definition.name, achievement_type, user.id,
    )
    return AchievementCheckResult(
        status="unlocked",
        achievement_type=achievement_type,
        progress=progress,
        target=definition.target,
        definition=definition,
        leveled_up=points.leveled_up,
    )


def check_achievement(
    engine: Engine,
    user_id: int,
    achievement_type: str,
    *,
    now: datetime | None = None,
    notifier: NotificationDispatcher | None = None,
) -> AchievementCheckResult:
    """Recompute progress for one achievement and unlock it if the target is met.

    Called by the posting/social/session collaborators whenever a qualifying
    action happens.  Already-unlocked achievements are a no-op.
    """
    with get_session(engine) as session:
        user = lock_user(session, user_id)
        return check_achievement_in_session(
            session, user, achievement_type, now=now, notifier=notifier,
        )


def list_achievements(engine: Engine, user_id: int) -> list[dict]:
    """Every catalog entry merged with the user's progress and unlock state."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Achievement).where(Achievement.user_id == user_id)
        ).all()
        by_type = {row.type: row for row in rows}

        result = []
        for achievement_type, definition in ACHIEVEMENT_DEFINITIONS.items():
            row = by_type.get(achievement_type.value)
            result.append({
                "type": achievement_type.value,
                "name": definition.name,
                "description": definition.description,
                "points": definition.points,
                "target": definition.target,
                "progress": row.progress if row else 0,
                "unlocked": row.unlocked if row else False,
                "unlockedAt": row.unlocked_at.isoformat() if row and row.unlocked_at else None,
            })
        return result
