"""
Inkwell — Reading-Habit Economy Engine
=======================================
Tracks daily reading streaks, converts streak, challenge and achievement
activity into Ink Drops (the platform's virtual currency), and unlocks
achievements as thresholds are crossed.  The rest of the reading platform
(posts, follows, chat, bookshelves) talks to this package through
``check_achievement`` / ``add_ink_drops`` and the REST API.

Package layout::

    inkwell/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # EconomyError taxonomy (code + HTTP status)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, session helper, async bridge
    │   └── models.py      # ORM models (users, streaks, ledger, ...)
    ├── engine/
    │   ├── dates.py       # UTC day normalization helpers
    │   ├── streaks.py     # Check-in rewards, milestones, restore pricing
    │   ├── achievements.py # Achievement catalog + level formula
    │   └── challenges.py  # Daily challenge catalog + stable assignment
    ├── services/
    │   ├── ink_drop_service.py     # Ledger (balance + append-only log)
    │   ├── streak_service.py       # Check-in state machine, restore, leaderboard
    │   ├── achievement_service.py  # Progress counters + exactly-once unlock
    │   ├── challenge_service.py    # Daily challenge lifecycle
    │   ├── notification_service.py # Notification outbox
    │   └── reconciliation_service.py # Ledger drift check
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT auth + DB dependencies
        ├── auth.py        # Token issuance + /auth/me
        └── routes/        # streaks, challenges, currency, achievements
"""

__version__ = "0.1.0"
