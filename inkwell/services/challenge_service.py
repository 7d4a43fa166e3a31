"""
inkwell.services.challenge_service — Daily Challenges
======================================================

One challenge per user per UTC day, created lazily on first read.  The
challenge type rotates deterministically from the user id, so every worker
hands the same user the same challenge.

Expiry is lazy as well: any active challenge whose ``expires_at`` has passed
is flipped to ``expired`` the next time the user's challenges are touched,
and an expired challenge is never paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inkwell.database.engine import get_session
from inkwell.database.models import (
    ChallengeStatus,
    ChallengeType,
    DailyChallenge,
    InkDropSource,
    NotificationType,
    User,
)
from inkwell.engine.challenges import (
    CHALLENGE_CATALOG,
    challenge_reward,
    describe_challenge,
    pick_challenge_type,
)
from inkwell.engine.dates import day_key, end_of_day, ensure_utc, utc_now
from inkwell.errors import InvalidChallengeActionError
from inkwell.services.ink_drop_service import apply_ink_drops, lock_user
from inkwell.services.notification_service import (
    NotificationDispatcher,
    default_notifier,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressResult:
    progress_updated: bool
    current_progress: int = 0
    challenge_completed: bool = False
    ink_drops_earned: int = 0


# ---------------------------------------------------------------------------
# Helpers (caller holds the user lock)
# ---------------------------------------------------------------------------
def _expire_stale(session: Session, user_id: int, now: datetime) -> int:
    """Flip the user's past-due active challenges to ``expired``."""
    active = session.scalars(
        select(DailyChallenge).where(
            DailyChallenge.user_id == user_id,
            DailyChallenge.status == ChallengeStatus.ACTIVE.value,
        )
    ).all()

    expired = 0
    for challenge in active:
        if ensure_utc(challenge.expires_at) < now:
            challenge.status = ChallengeStatus.EXPIRED.value
            expired += 1
    if expired:
        logger.debug("Expired %d stale challenge(s) for user %d", expired, user_id)
    return expired


def _find_for_day(session: Session, user_id: int, key: str) -> DailyChallenge | None:
    return session.scalar(
        select(DailyChallenge).where(
            DailyChallenge.user_id == user_id,
            DailyChallenge.challenge_date == key,
        )
    )


def _today_challenge(session: Session, user: User, now: datetime) -> DailyChallenge:
    _expire_stale(session, user.id, now)

    key = day_key(now)
    challenge = _find_for_day(session, user.id, key)
    if challenge is not None:
        return challenge

    challenge_type = pick_challenge_type(user.id)
    challenge = DailyChallenge(
        user_id=user.id,
        challenge_type=challenge_type.value,
        target_count=CHALLENGE_CATALOG[challenge_type].target,
        current_progress=0,
        reward_ink_drops=challenge_reward(challenge_type, bool(user.is_pro)),
        status=ChallengeStatus.ACTIVE.value,
        challenge_date=key,
        expires_at=end_of_day(now),
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(challenge)
            session.flush()
    except IntegrityError:
        # Another request created today's row first; use theirs.
        challenge = _find_for_day(session, user.id, key)
    else:
        logger.info(
            "Daily challenge %s created for user %d (%s)",
            challenge_type, user.id, key,
        )
    return challenge


def challenge_snapshot(challenge: DailyChallenge) -> dict:
    """Client-facing view of a challenge row."""
    return {
        "type": challenge.challenge_type,
        "description": describe_challenge(challenge.challenge_type, challenge.target_count),
        "targetCount": challenge.target_count,
        "currentProgress": challenge.current_progress,
        "rewardInkDrops": challenge.reward_ink_drops,
        "expiresAt": ensure_utc(challenge.expires_at).isoformat(),
        "completed": challenge.status == ChallengeStatus.COMPLETED.value,
        "status": challenge.status,
    }


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------
def get_or_create_today_challenge(
    engine: Engine, user_id: int, *, now: datetime | None = None
) -> DailyChallenge:
    """Today's (UTC) challenge for *user_id*, created on first request."""
    now = ensure_utc(now or utc_now())
    with get_session(engine) as session:
        user = lock_user(session, user_id)
        return _today_challenge(session, user, now)


def track_progress(
    engine: Engine,
    user_id: int,
    action_type: str,
    *,
    now: datetime | None = None,
    notifier: NotificationDispatcher | None = None,
) -> ProgressResult:
    """Count one qualifying action toward today's challenge.

    Progress only moves when today's challenge is active and of the same
    type.  Reaching the target completes it and pays the reward exactly once.
    Actions outside the challenge catalog are a no-op.
    """
    if not action_type or not action_type.strip():
        raise InvalidChallengeActionError("actionType is required")
    try:
        action = ChallengeType(action_type)
    except ValueError:
        logger.debug("Ignoring non-challenge action %r for user %d", action_type, user_id)
        return ProgressResult(progress_updated=False)

    now = ensure_utc(now or utc_now())

    with get_session(engine) as session:
        user = lock_user(session, user_id)
        challenge = _today_challenge(session, user, now)

        if (
            challenge.status != ChallengeStatus.ACTIVE.value
            or challenge.challenge_type != action.value
        ):
            return ProgressResult(
                progress_updated=False, current_progress=challenge.current_progress,
            )

        challenge.current_progress = min(
            challenge.current_progress + 1, challenge.target_count
        )
        if challenge.current_progress < challenge.target_count:
            return ProgressResult(
                progress_updated=True, current_progress=challenge.current_progress,
            )

        challenge.status = ChallengeStatus.COMPLETED.value
        challenge.completed_at = now
        apply_ink_drops(
            session, user, challenge.reward_ink_drops,
            InkDropSource.CHALLENGE_COMPLETED, now=now,
        )
        (notifier or default_notifier()).notify(
            session, user.id, NotificationType.CHALLENGE_COMPLETED, {
                "challengeType": challenge.challenge_type,
                "inkDrops": challenge.reward_ink_drops,
            },
        )
        reward = challenge.reward_ink_drops

    logger.info(
        "Challenge %s completed by user %d (+%d Ink Drops)",
        action, user_id, reward,
    )
    return ProgressResult(
        progress_updated=True,
        current_progress=challenge.current_progress,
        challenge_completed=True,
        ink_drops_earned=reward,
    )
