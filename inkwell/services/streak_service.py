"""
inkwell.services.streak_service — Daily Check-in State Machine
===============================================================

Owns the per-user :class:`UserStreak` record:

* **Lazy break maintenance** — there is no cron job.  Every entry point
  first runs :func:`apply_break_maintenance`, which zeroes a streak whose
  last check-in is older than yesterday (UTC) and opens the paid restore
  window.  Break detection is therefore a pure function of "now".
* **Check-in** — idempotent per UTC day; advances or restarts the streak,
  pays milestone and base rewards through the ledger, mirrors counters onto
  the user, and re-evaluates STREAK_* achievements at 3/7/30 days.
* **Restore** — exponentially priced (200, 500, 1250, …) return to the
  longest streak.
* **Leaderboard** — global or current-month ranking by effective streak.

Each operation is one transaction holding the user's row lock, and the
streak row is version-checked, so two devices checking in at once cannot
both advance the streak or both get paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import Engine, case, select
from sqlalchemy.orm import Session

from inkwell.database.engine import get_session
from inkwell.database.models import (
    InkDropSource,
    NotificationType,
    User,
    UserStreak,
)
from inkwell.engine.dates import EPOCH, ensure_utc, month_start, start_of_day, utc_now
from inkwell.engine.streaks import (
    STREAK_ACHIEVEMENTS,
    MilestoneReward,
    apply_pro_multiplier,
    calculate_check_in_reward,
    empty_milestones,
    has_checked_in_today,
    is_streak_active,
    milestone_for,
    restore_cost,
)
from inkwell.errors import AlreadyRestoredError, NoBrokenStreakError
from inkwell.services.achievement_service import check_achievement_in_session
from inkwell.services.ink_drop_service import apply_ink_drops, lock_user
from inkwell.services.notification_service import (
    NotificationDispatcher,
    default_notifier,
)

logger = logging.getLogger(__name__)

LEADERBOARD_PERIODS = ("global", "monthly")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass
class CheckInResult:
    streak: UserStreak
    is_first_check_in_today: bool
    ink_drops_earned: int = 0
    milestone_achieved: str | None = None
    achievements_unlocked: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RestoreResult:
    streak: UserStreak
    ink_drops_deducted: int
    balance: int


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    username: str
    streak_count: int


# ---------------------------------------------------------------------------
# Record loading + lazy break maintenance
# ---------------------------------------------------------------------------
def _new_streak(user_id: int, now: datetime) -> UserStreak:
    return UserStreak(
        user_id=user_id,
        current_streak=0,
        current_streak_start_date=now,
        last_check_in_date=EPOCH,
        longest_streak=0,
        longest_streak_start_date=None,
        longest_streak_end_date=None,
        total_check_ins=0,
        streak_restores_used=0,
        can_restore_streak=False,
        milestones=empty_milestones(),
    )


def _mirror_onto_user(user: User, streak: UserStreak) -> None:
    user.current_streak = streak.current_streak
    user.longest_streak = streak.longest_streak


def apply_break_maintenance(streak: UserStreak, user: User, now: datetime) -> bool:
    """Zero a streak that lapsed before yesterday; return True if it broke.

    This is the only place a streak is broken.  It runs at the top of every
    streak entry point, read or write.
    """
    if streak.current_streak <= 0:
        return False
    if is_streak_active(streak.last_check_in_date, now):
        return False

    logger.info(
        "Streak of %d broke for user %d (last check-in %s)",
        streak.current_streak, streak.user_id,
        ensure_utc(streak.last_check_in_date).date(),
    )
    streak.current_streak = 0
    streak.can_restore_streak = True
    streak.last_break_date = now
    _mirror_onto_user(user, streak)
    return True


def load_streak(session: Session, user: User, now: datetime) -> UserStreak:
    """Fetch or create *user*'s streak and apply break maintenance.

    The caller must hold the user's row lock.
    """
    streak = session.scalar(select(UserStreak).where(UserStreak.user_id == user.id))
    if streak is None:
        streak = _new_streak(user.id, now)
        session.add(streak)
        session.flush()
    apply_break_maintenance(streak, user, now)
    return streak


def get_or_create_streak(
    engine: Engine, user_id: int, *, now: datetime | None = None
) -> UserStreak:
    """Current streak snapshot for *user_id* (break maintenance applied)."""
    now = ensure_utc(now or utc_now())
    with get_session(engine) as session:
        user = lock_user(session, user_id)
        return load_streak(session, user, now)


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------
def _extends_longest_run(streak: UserStreak, previous_check_in: datetime) -> bool:
    """True when the record run's last day is the user's previous check-in.

    A restore reopens the record run by moving its end to the restore time.
    """
    if streak.longest_streak_end_date is None:
        return False
    return ensure_utc(streak.longest_streak_end_date) == ensure_utc(previous_check_in)


def _claim_milestone(streak: UserStreak, now: datetime) -> MilestoneReward | None:
    """Mark the milestone for the current streak length achieved, once."""
    milestone = milestone_for(streak.current_streak)
    if milestone is None:
        return None

    milestones = dict(streak.milestones or empty_milestones())
    if milestones.get(milestone.key, {}).get("achieved"):
        return None

    milestones[milestone.key] = {"achieved": True, "date": now.isoformat()}
    streak.milestones = milestones  # reassign so the JSON change is flushed
    return milestone


def check_in(
    engine: Engine,
    user_id: int,
    *,
    is_pro: bool | None = None,
    now: datetime | None = None,
    notifier: NotificationDispatcher | None = None,
) -> CheckInResult:
    """Perform the daily check-in for *user_id*.

    Idempotent per UTC day: a second call on the same day returns
    ``is_first_check_in_today=False`` and changes nothing.  ``is_pro=None``
    reads the flag from the user row.
    """
    now = ensure_utc(now or utc_now())
    notifier = notifier or default_notifier()

    with get_session(engine) as session:
        user = lock_user(session, user_id)
        streak = load_streak(session, user, now)

        if has_checked_in_today(streak.last_check_in_date, now):
            return CheckInResult(streak=streak, is_first_check_in_today=False)

        if is_pro is None:
            is_pro = bool(user.is_pro)

        previous_check_in = streak.last_check_in_date
        if is_streak_active(streak.last_check_in_date, now):
            streak.current_streak += 1
        else:
            streak.current_streak = 1
            streak.current_streak_start_date = now

        streak.last_check_in_date = now
        streak.can_restore_streak = False
        if streak.current_streak > streak.longest_streak:
            # Extending the run that already holds the record keeps its start.
            if not _extends_longest_run(streak, previous_check_in):
                streak.longest_streak_start_date = streak.current_streak_start_date
            streak.longest_streak = streak.current_streak
            streak.longest_streak_end_date = now
        streak.total_check_ins += 1

        result = CheckInResult(streak=streak, is_first_check_in_today=True)

        milestone = _claim_milestone(streak, now)
        if milestone is not None:
            bonus = apply_pro_multiplier(milestone.reward, is_pro)
            apply_ink_drops(session, user, bonus, InkDropSource.MILESTONE_ACHIEVED, now=now)
            result.ink_drops_earned += bonus
            result.milestone_achieved = milestone.badge
            notifier.notify(session, user.id, NotificationType.STREAK_MILESTONE, {
                "day": milestone.day,
                "badge": milestone.badge,
                "inkDrops": bonus,
            })

        base = calculate_check_in_reward(streak.current_streak, is_pro)
        apply_ink_drops(session, user, base, InkDropSource.STREAK_CHECK_IN, now=now)
        result.ink_drops_earned += base

        _mirror_onto_user(user, streak)

        achievement_type = STREAK_ACHIEVEMENTS.get(streak.current_streak)
        if achievement_type is not None:
            check = check_achievement_in_session(
                session, user, achievement_type, now=now, notifier=notifier,
            )
            if check.unlocked:
                result.achievements_unlocked.append(achievement_type.value)

    logger.info(
        "Check-in: user %d streak=%d earned=%d milestone=%s",
        user_id, streak.current_streak, result.ink_drops_earned,
        result.milestone_achieved,
    )
    return result


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------
def restore_streak(
    engine: Engine, user_id: int, *, now: datetime | None = None
) -> RestoreResult:
    """Pay to bring a just-broken streak back to the longest streak.

    Raises
    ------
    AlreadyRestoredError
        No restore window is open (never broken, or already restored).
    NoBrokenStreakError
        The streak is still active.
    InsufficientInkDropsError
        The user cannot afford the restore; nothing changes.
    """
    now = ensure_utc(now or utc_now())

    with get_session(engine) as session:
        user = lock_user(session, user_id)
        streak = load_streak(session, user, now)

        if not streak.can_restore_streak:
            raise AlreadyRestoredError()
        if is_streak_active(streak.last_check_in_date, now):
            raise NoBrokenStreakError()

        cost = restore_cost(streak.streak_restores_used)
        balance = apply_ink_drops(session, user, -cost, InkDropSource.STREAK_RESTORE, now=now)

        streak.current_streak = streak.longest_streak
        streak.current_streak_start_date = now
        streak.last_check_in_date = now
        streak.longest_streak_end_date = now
        streak.can_restore_streak = False
        streak.streak_restores_used += 1
        _mirror_onto_user(user, streak)

    logger.info(
        "Streak restored for user %d to %d (cost %d)",
        user_id, streak.current_streak, cost,
    )
    return RestoreResult(streak=streak, ink_drops_deducted=cost, balance=balance)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
def _leaderboard_query(period: str, now: datetime):
    """Rows ordered by effective streak desc, then insertion order.

    A stored streak whose last check-in is older than yesterday has lapsed
    even if that user hasn't been read since, so it ranks as 0.
    """
    yesterday = start_of_day(now) - timedelta(days=1)
    effective = case(
        (UserStreak.last_check_in_date >= yesterday, UserStreak.current_streak),
        else_=0,
    ).label("effective_streak")

    query = (
        select(UserStreak.user_id, User.username, effective)
        .join(User, User.id == UserStreak.user_id)
        .order_by(effective.desc(), UserStreak.id.asc())
    )
    if period == "monthly":
        query = query.where(UserStreak.last_check_in_date >= month_start(now))
    return query


def get_leaderboard(
    engine: Engine,
    period: str = "global",
    limit: int = 50,
    offset: int = 0,
    *,
    now: datetime | None = None,
) -> list[LeaderboardEntry]:
    """Ranked streaks; ``period`` is ``"global"`` or ``"monthly"``."""
    now = ensure_utc(now or utc_now())
    if period not in LEADERBOARD_PERIODS:
        period = "global"

    with Session(engine) as session:
        rows = session.execute(
            _leaderboard_query(period, now).offset(offset).limit(limit)
        ).all()

    return [
        LeaderboardEntry(
            rank=offset + i + 1,
            user_id=row.user_id,
            username=row.username,
            streak_count=row.effective_streak,
        )
        for i, row in enumerate(rows)
    ]


def get_user_rank(
    engine: Engine,
    user_id: int,
    period: str = "global",
    *,
    now: datetime | None = None,
) -> int | None:
    """1-based leaderboard position of *user_id*, or ``None`` if not ranked."""
    now = ensure_utc(now or utc_now())
    if period not in LEADERBOARD_PERIODS:
        period = "global"

    with Session(engine) as session:
        # First column of each ranked row is the user id
        ranked_ids = session.scalars(_leaderboard_query(period, now)).all()

    try:
        return ranked_ids.index(user_id) + 1
    except ValueError:
        return None
