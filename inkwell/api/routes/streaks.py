"""
inkwell.api.routes.streaks — Check-in, restore & leaderboard
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from inkwell.api.deps import get_config, get_current_user_id, get_engine
from inkwell.config import InkwellConfig
from inkwell.database.engine import run_db
from inkwell.database.models import UserStreak
from inkwell.engine.dates import EPOCH, ensure_utc
from inkwell.engine.streaks import restore_cost
from inkwell.services import streak_service

router = APIRouter(prefix="/streaks", tags=["streaks"])


def _iso(value):
    return ensure_utc(value).isoformat() if value else None


def _streak_dict(streak: UserStreak) -> dict:
    last = streak.last_check_in_date
    return {
        "currentStreak": streak.current_streak,
        "longestStreak": streak.longest_streak,
        # The epoch sentinel means "never checked in"
        "lastCheckIn": None if ensure_utc(last) == EPOCH else _iso(last),
        "canRestore": streak.can_restore_streak,
        "milestones": streak.milestones,
        "totalCheckIns": streak.total_check_ins,
        "currentStreakStartDate": _iso(streak.current_streak_start_date),
        "restoreCost": restore_cost(streak.streak_restores_used),
    }


# ---------------------------------------------------------------------------
# GET /streaks/my-streak
# ---------------------------------------------------------------------------
@router.get("/my-streak")
async def my_streak(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    streak = await run_db(streak_service.get_or_create_streak, engine, user_id)
    return _streak_dict(streak)


# ---------------------------------------------------------------------------
# POST /streaks/check-in
# ---------------------------------------------------------------------------
@router.post("/check-in")
async def check_in(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    result = await run_db(streak_service.check_in, engine, user_id)
    return {
        "success": True,
        "streakCount": result.streak.current_streak,
        "isFirstCheckInToday": result.is_first_check_in_today,
        "inkDropsEarned": result.ink_drops_earned,
        "milestoneAchieved": result.milestone_achieved,
        "achievementsUnlocked": result.achievements_unlocked,
    }


# ---------------------------------------------------------------------------
# POST /streaks/restore
# ---------------------------------------------------------------------------
@router.post("/restore")
async def restore(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    result = await run_db(streak_service.restore_streak, engine, user_id)
    return {
        "success": True,
        "newStreakCount": result.streak.current_streak,
        "inkDropsDeducted": result.ink_drops_deducted,
    }


# ---------------------------------------------------------------------------
# GET /streaks/leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
async def leaderboard(
    period: str = Query("global", pattern="^(global|monthly)$"),
    limit: int = Query(50),
    offset: int = Query(0),
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
    cfg: InkwellConfig = Depends(get_config),
):
    limit = max(1, min(limit, cfg.leaderboard_max_limit))
    offset = max(0, offset)

    entries = await run_db(
        streak_service.get_leaderboard, engine, period, limit, offset,
    )
    rank = await run_db(streak_service.get_user_rank, engine, user_id, period)

    return {
        "leaderboard": [
            {
                "rank": e.rank,
                "userId": str(e.user_id),
                "username": e.username,
                "streakCount": e.streak_count,
                "isCurrentUser": e.user_id == user_id,
            }
            for e in entries
        ],
        "currentUserRank": rank,
    }
