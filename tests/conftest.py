"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of inkwell.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite renders JSONB as TEXT; BigInteger as INTEGER so autoincrement works.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from inkwell.database.engine import init_db  # noqa: E402
from inkwell.database.models import User, UserStreak  # noqa: E402
from inkwell.engine.streaks import empty_milestones  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB and BigInteger (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()

# Fixed "now" for deterministic day arithmetic (a Sunday, midday UTC)
NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Inkwell tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` behind ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------
def make_user(
    engine: Engine,
    user_id: int = 1001,
    username: str = "reader",
    *,
    is_pro: bool = False,
) -> int:
    """Insert a user with a zero balance and return its id."""
    with Session(engine) as session:
        session.add(User(
            id=user_id,
            username=username,
            is_pro=is_pro,
            points=0,
            level=1,
            current_streak=0,
            longest_streak=0,
            ink_drops=0,
        ))
        session.commit()
    return user_id


def seed_streak(
    engine: Engine,
    user_id: int,
    *,
    current: int,
    last_check_in: datetime,
    longest: int | None = None,
    can_restore: bool = False,
    restores_used: int = 0,
) -> None:
    """Insert a streak record directly (mirrors the counters onto the user)."""
    longest = current if longest is None else longest
    with Session(engine) as session:
        session.add(UserStreak(
            user_id=user_id,
            current_streak=current,
            current_streak_start_date=last_check_in,
            last_check_in_date=last_check_in,
            longest_streak=longest,
            total_check_ins=current,
            streak_restores_used=restores_used,
            can_restore_streak=can_restore,
            milestones=empty_milestones(),
        ))
        user = session.get(User, user_id)
        user.current_streak = current
        user.longest_streak = longest
        session.commit()


def make_token(user_id: int) -> str:
    from inkwell.api.auth import issue_token

    return issue_token(user_id)


def auth_header(user_id: int) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def client(db_engine: Engine):
    """FastAPI TestClient wired to the in-memory engine and default config."""
    from fastapi.testclient import TestClient

    from inkwell.api.deps import get_config, get_engine
    from inkwell.api.main import app
    from inkwell.config import default_config

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = default_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
