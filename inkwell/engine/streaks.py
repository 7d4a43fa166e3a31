"""
inkwell.engine.streaks — Streak Rules
======================================

Pure calculation for the daily check-in state machine.
No database I/O — the streak service feeds values in and persists results.

Reward schedule:
    base 5 Ink Drops, +5 at ≥7 days, +10 at ≥30, +20 at ≥100, ×1.5 for Pro
Milestones (paid once per streak record):
    7 → 50, 30 → 200, 100 → 1000, 365 → 5000 (×1.5 for Pro)
Restore price:
    200 × 2.5^restores_used, floored
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from inkwell.database.models import AchievementType
from inkwell.engine.dates import days_between

PRO_MULTIPLIER = 1.5
BASE_CHECK_IN_REWARD = 5

# (threshold, bonus): every threshold reached adds its bonus
CHECK_IN_BONUSES: tuple[tuple[int, int], ...] = (
    (7, 5),     # week
    (30, 10),   # month
    (100, 20),  # century
)

RESTORE_BASE_COST = 200
RESTORE_COST_FACTOR = 2.5


@dataclass(frozen=True, slots=True)
class MilestoneReward:
    day: int
    reward: int
    badge: str

    @property
    def key(self) -> str:
        return f"day{self.day}"


MILESTONES: tuple[MilestoneReward, ...] = (
    MilestoneReward(7, 50, "One Week Warrior"),
    MilestoneReward(30, 200, "Monthly Master"),
    MilestoneReward(100, 1000, "Century Streak"),
    MilestoneReward(365, 5000, "Yearly Legend"),
)

# Streak lengths that re-evaluate the matching STREAK_* achievement
STREAK_ACHIEVEMENTS: dict[int, AchievementType] = {
    3: AchievementType.STREAK_3,
    7: AchievementType.STREAK_7,
    30: AchievementType.STREAK_30,
}


def apply_pro_multiplier(amount: int, is_pro: bool) -> int:
    return math.floor(amount * PRO_MULTIPLIER) if is_pro else amount


def calculate_check_in_reward(streak: int, is_pro: bool = False) -> int:
    """Base Ink Drops for a check-in that brings the streak to *streak*."""
    reward = BASE_CHECK_IN_REWARD
    for threshold, bonus in CHECK_IN_BONUSES:
        if streak >= threshold:
            reward += bonus
    return apply_pro_multiplier(reward, is_pro)


def milestone_for(streak: int) -> MilestoneReward | None:
    """The milestone whose day equals *streak* exactly, if any."""
    for milestone in MILESTONES:
        if milestone.day == streak:
            return milestone
    return None


def empty_milestones() -> dict[str, dict]:
    return {m.key: {"achieved": False, "date": None} for m in MILESTONES}


def restore_cost(restores_used: int) -> int:
    """Price of the next restore: 200, 500, 1250, 3125, …"""
    return math.floor(RESTORE_BASE_COST * RESTORE_COST_FACTOR ** restores_used)


# ---------------------------------------------------------------------------
# Day predicates: both compare at UTC day granularity
# ---------------------------------------------------------------------------
def has_checked_in_today(last_check_in: datetime, now: datetime) -> bool:
    return days_between(last_check_in, now) == 0


def is_streak_active(last_check_in: datetime, now: datetime) -> bool:
    """True when the last check-in was today or yesterday (UTC)."""
    return days_between(last_check_in, now) in (0, 1)
