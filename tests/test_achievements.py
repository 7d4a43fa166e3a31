"""
tests/test_achievements.py — Achievement Tracker Integration Tests
===================================================================

Covers the enum-keyed progress counter registry, exactly-once unlocks,
the ledger/points payout and the leveling formula.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import NOW, make_user
from inkwell.database.models import (
    Achievement,
    AchievementType,
    Book,
    Comment,
    InkDropTransaction,
    Like,
    Notification,
    User,
)
from inkwell.services import achievement_service, ink_drop_service
from inkwell.services.achievement_service import PROGRESS_COUNTERS, award_points

AUTHOR = 1001


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
@pytest.fixture
def engine(db_engine):
    make_user(db_engine, AUTHOR, "author")
    return db_engine


def _add_books(engine, user_id: int, count: int, *, trending: bool = False) -> list[int]:
    with Session(engine) as session:
        books = [
            Book(user_id=user_id, title=f"Book {i}", is_trending=trending)
            for i in range(count)
        ]
        session.add_all(books)
        session.commit()
        return [b.id for b in books]


def _add_likers(engine, book_ids: list[int], first_id: int = 5000) -> None:
    """One new user per like so the (user, book) pair stays unique."""
    with Session(engine) as session:
        for offset, book_id in enumerate(book_ids):
            liker = first_id + offset
            session.add(User(id=liker, username=f"liker{offset}", ink_drops=0))
            session.flush()
            session.add(Like(user_id=liker, book_id=book_id))
        session.commit()


def _check(engine, achievement_type):
    return achievement_service.check_achievement(engine, AUTHOR, achievement_type, now=NOW)


# ===========================================================================
# Registry
# ===========================================================================
class TestRegistry:
    def test_every_type_has_a_counter(self):
        assert set(PROGRESS_COUNTERS) == set(AchievementType)

    def test_unknown_type_is_noop(self, engine):
        result = _check(engine, "READ_THE_WHOLE_LIBRARY")
        assert result.status == "unknown_type"
        assert result.unlocked is False
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Achievement)) == 0


# ===========================================================================
# Unlock lifecycle
# ===========================================================================
class TestUnlock:
    def test_progress_below_target(self, engine):
        result = _check(engine, AchievementType.FIRST_POST)
        assert result.status == "progress_updated"
        assert (result.progress, result.target) == (0, 1)

    def test_first_post_unlocks_and_pays(self, engine):
        _add_books(engine, AUTHOR, 1)
        result = _check(engine, AchievementType.FIRST_POST)

        assert result.unlocked
        assert result.definition.name == "First Steps"
        assert ink_drop_service.get_ink_drops_balance(engine, AUTHOR) == 10
        with Session(engine) as session:
            user = session.get(User, AUTHOR)
            assert (user.points, user.level) == (10, 1)
            row = session.scalar(select(Achievement).where(Achievement.user_id == AUTHOR))
            assert row.unlocked and row.unlocked_at is not None
            tx = session.scalar(select(InkDropTransaction))
            assert (tx.amount, tx.source) == (10, "milestone_achieved")
            note = session.scalar(select(Notification))
            assert note.type == "ACHIEVEMENT"
            assert note.data["achievementType"] == "FIRST_POST"

    def test_unlock_is_exactly_once(self, engine):
        _add_books(engine, AUTHOR, 2)
        first = _check(engine, AchievementType.FIRST_POST)
        second = _check(engine, AchievementType.FIRST_POST)

        assert first.unlocked
        assert second.status == "already_unlocked"
        assert ink_drop_service.get_ink_drops_balance(engine, AUTHOR) == 10
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Achievement)) == 1

    def test_progress_is_persisted(self, engine):
        _add_books(engine, AUTHOR, 3)
        result = _check(engine, AchievementType.BOOK_LOVER_5)

        assert result.status == "progress_updated"
        with Session(engine) as session:
            row = session.scalar(select(Achievement))
            assert (row.type, row.progress, row.unlocked) == ("BOOK_LOVER_5", 3, False)

    def test_streak_achievement_reads_user_streak(self, engine):
        with Session(engine) as session:
            session.get(User, AUTHOR).current_streak = 3
            session.commit()

        assert _check(engine, AchievementType.STREAK_3).unlocked
        assert _check(engine, AchievementType.STREAK_7).progress == 3
        with Session(engine) as session:
            assert session.get(User, AUTHOR).current_streak == 3


# ===========================================================================
# Counters
# ===========================================================================
class TestCounters:
    def test_likes_received_and_popular_post(self, engine):
        first, second = _add_books(engine, AUTHOR, 2)
        _add_likers(engine, [first] * 6 + [second] * 4)

        assert _check(engine, AchievementType.SOCIAL_BUTTERFLY_10).unlocked
        popular = _check(engine, AchievementType.POPULAR_POST_10)
        assert popular.status == "progress_updated"
        assert popular.progress == 6

    def test_commenter(self, engine):
        (book,) = _add_books(engine, AUTHOR, 1)
        with Session(engine) as session:
            session.add_all(
                Comment(user_id=AUTHOR, book_id=book, text=f"c{i}") for i in range(4)
            )
            session.commit()
        assert _check(engine, AchievementType.COMMENTER_10).progress == 4

    def test_explorer_counts_distinct_other_authors(self, engine):
        own = _add_books(engine, AUTHOR, 1)
        with Session(engine) as session:
            for author_id in (2001, 2002, 2003):
                session.add(User(id=author_id, username=f"a{author_id}", ink_drops=0))
            session.commit()
        other = _add_books(engine, 2001, 2) + _add_books(engine, 2002, 1) + _add_books(engine, 2003, 1)

        with Session(engine) as session:
            session.add_all(Like(user_id=AUTHOR, book_id=b) for b in own + other)
            session.commit()

        assert _check(engine, AchievementType.EXPLORER).progress == 3

    def test_trendsetter(self, engine):
        _add_books(engine, AUTHOR, 2)
        assert _check(engine, AchievementType.TRENDSETTER).progress == 0
        _add_books(engine, AUTHOR, 1, trending=True)
        assert _check(engine, AchievementType.TRENDSETTER).unlocked


# ===========================================================================
# Points & level
# ===========================================================================
class TestAwardPoints:
    def test_level_recomputed_from_total(self, engine):
        with Session(engine) as session:
            user = session.get(User, AUTHOR)
            first = award_points(session, user, 90)
            second = award_points(session, user, 310)

        assert (first.new_points, first.new_level, first.leveled_up) == (90, 1, False)
        assert (second.new_points, second.new_level, second.leveled_up) == (400, 3, True)

    def test_big_unlock_levels_up(self, engine):
        _add_books(engine, AUTHOR, 1, trending=True)
        result = _check(engine, AchievementType.TRENDSETTER)
        assert result.leveled_up is True
        with Session(engine) as session:
            assert session.get(User, AUTHOR).level == 2


class TestListAchievements:
    def test_catalog_merged_with_progress(self, engine):
        _add_books(engine, AUTHOR, 1)
        _check(engine, AchievementType.FIRST_POST)
        _check(engine, AchievementType.BOOK_LOVER_5)

        items = achievement_service.list_achievements(engine, AUTHOR)
        by_type = {item["type"]: item for item in items}

        assert len(items) == len(AchievementType)
        assert by_type["FIRST_POST"]["unlocked"] is True
        assert by_type["FIRST_POST"]["unlockedAt"] is not None
        assert by_type["BOOK_LOVER_5"]["progress"] == 1
        assert by_type["EXPLORER"] == {
            "type": "EXPLORER",
            "name": "Explorer",
            "description": "Like books from 10 different users",
            "points": 30,
            "target": 10,
            "progress": 0,
            "unlocked": False,
            "unlockedAt": None,
        }
