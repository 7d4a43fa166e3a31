"""
inkwell.engine.challenges — Daily Challenge Catalog
====================================================

Pure helpers for the daily challenge generator: which challenge a user gets,
what it asks for, and what it pays.
"""

from __future__ import annotations

from dataclasses import dataclass

from inkwell.database.models import ChallengeType
from inkwell.engine.streaks import apply_pro_multiplier


@dataclass(frozen=True, slots=True)
class ChallengeSpec:
    target: int
    reward: int
    description: str  # str.format template taking ``count``


CHALLENGE_CATALOG: dict[ChallengeType, ChallengeSpec] = {
    ChallengeType.READ_POSTS: ChallengeSpec(5, 10, "Read {count} book posts"),
    ChallengeType.LIKE_POSTS: ChallengeSpec(10, 15, "Like {count} book recommendations"),
    ChallengeType.COMMENT: ChallengeSpec(3, 20, "Leave {count} comments"),
    ChallengeType.RECOMMEND_BOOK: ChallengeSpec(1, 50, "Recommend {count} book"),
}

# Rotation order: index is ``stable_hash(user_id) % len(CHALLENGE_TYPES)``
CHALLENGE_TYPES: tuple[ChallengeType, ...] = (
    ChallengeType.READ_POSTS,
    ChallengeType.LIKE_POSTS,
    ChallengeType.COMMENT,
    ChallengeType.RECOMMEND_BOOK,
)


def stable_hash(user_id: int | str) -> int:
    """Sum of the code points of the user id's string form.

    Unlike :func:`hash`, this is identical across processes and restarts.
    """
    return sum(ord(ch) for ch in str(user_id))


def pick_challenge_type(user_id: int | str) -> ChallengeType:
    return CHALLENGE_TYPES[stable_hash(user_id) % len(CHALLENGE_TYPES)]


def challenge_reward(challenge_type: ChallengeType, is_pro: bool = False) -> int:
    return apply_pro_multiplier(CHALLENGE_CATALOG[challenge_type].reward, is_pro)


def describe_challenge(challenge_type: str, count: int) -> str:
    entry = CHALLENGE_CATALOG[ChallengeType(challenge_type)]
    return entry.description.format(count=count)
