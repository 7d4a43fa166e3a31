"""
inkwell.engine.achievements — Achievement Catalog & Leveling Formula
=====================================================================

The catalog is fixed: every :class:`AchievementType` has exactly one
:class:`AchievementDefinition`.  Progress counting needs the database and
lives in :mod:`inkwell.services.achievement_service`; this module is pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from inkwell.database.models import AchievementType


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    """Static description of one catalog entry.

    ``points`` is paid once on unlock — as Ink Drops into the ledger and as
    account points for leveling.
    """

    name: str
    description: str
    points: int
    target: int


ACHIEVEMENT_DEFINITIONS: dict[AchievementType, AchievementDefinition] = {
    AchievementType.FIRST_POST: AchievementDefinition(
        "First Steps", "Share your first book recommendation", 10, 1),
    AchievementType.BOOK_LOVER_5: AchievementDefinition(
        "Book Lover", "Share 5 book recommendations", 25, 5),
    AchievementType.BOOK_LOVER_10: AchievementDefinition(
        "Bookworm", "Share 10 book recommendations", 50, 10),
    AchievementType.BOOK_LOVER_25: AchievementDefinition(
        "Book Enthusiast", "Share 25 book recommendations", 100, 25),
    AchievementType.BOOK_LOVER_50: AchievementDefinition(
        "Book Master", "Share 50 book recommendations", 250, 50),
    AchievementType.SOCIAL_BUTTERFLY_10: AchievementDefinition(
        "Social Butterfly", "Receive 10 likes on your posts", 30, 10),
    AchievementType.SOCIAL_BUTTERFLY_25: AchievementDefinition(
        "Community Favorite", "Receive 25 likes on your posts", 75, 25),
    AchievementType.STREAK_3: AchievementDefinition(
        "Getting Started", "Maintain a 3-day streak", 15, 3),
    AchievementType.STREAK_7: AchievementDefinition(
        "Week Warrior", "Maintain a 7-day streak", 50, 7),
    AchievementType.STREAK_30: AchievementDefinition(
        "Dedication Master", "Maintain a 30-day streak", 200, 30),
    AchievementType.POPULAR_POST_10: AchievementDefinition(
        "Rising Star", "Get 10 likes on a single post", 40, 10),
    AchievementType.POPULAR_POST_50: AchievementDefinition(
        "Viral Hit", "Get 50 likes on a single post", 150, 50),
    AchievementType.COMMENTER_10: AchievementDefinition(
        "Conversationalist", "Leave 10 comments", 20, 10),
    AchievementType.COMMENTER_50: AchievementDefinition(
        "Discussion Leader", "Leave 50 comments", 75, 50),
    AchievementType.EXPLORER: AchievementDefinition(
        "Explorer", "Like books from 10 different users", 30, 10),
    AchievementType.TRENDSETTER: AchievementDefinition(
        "Trendsetter", "Have a post featured in trending", 100, 1),
}


def get_definition(achievement_type: str) -> AchievementDefinition | None:
    """Look up a catalog entry; unknown type strings return ``None``."""
    try:
        return ACHIEVEMENT_DEFINITIONS.get(AchievementType(achievement_type))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Leveling formula
# ---------------------------------------------------------------------------
def calculate_level(points: int) -> int:
    """Account level for a points total::

        level = floor(sqrt(points / 100)) + 1

    Always recomputed from the total, never patched incrementally.
    """
    return math.floor(math.sqrt(max(points, 0) / 100)) + 1
