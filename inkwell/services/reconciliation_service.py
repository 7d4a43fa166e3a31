"""
inkwell.services.reconciliation_service — Balance Reconciliation
=================================================================

Audit job that validates every cached ``users.ink_drops`` balance against
the append-only ``ink_drop_transactions`` ledger and corrects drift.

How it works:
    1. ``SUM(amount)`` per user from the ledger is the ground truth.
    2. Every user row is compared against it (users with no entries must
       hold 0).
    3. A mismatch overwrites the cached balance with the true sum.
    4. All corrections are logged at WARNING for audit.

The ledger itself is never modified.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select

from inkwell.database.engine import get_session
from inkwell.database.models import InkDropTransaction, User

logger = logging.getLogger(__name__)


def reconcile_balances(engine: Engine, *, fix: bool = True) -> dict:
    """Validate cached balances against the ledger and (optionally) fix drift.

    Returns ``{"checked": N, "corrected": M, "corrections": [...],
    "timestamp": iso}``.  With ``fix=False`` drift is reported only.
    """
    corrections: list[dict] = []

    with get_session(engine) as session:
        truth_q = (
            select(
                InkDropTransaction.user_id,
                func.sum(InkDropTransaction.amount).label("actual"),
            )
            .group_by(InkDropTransaction.user_id)
        )
        truth_map: dict[int, int] = {
            row.user_id: int(row.actual or 0)
            for row in session.execute(truth_q).all()
        }

        users = session.scalars(select(User).order_by(User.id)).all()
        for user in users:
            stored = user.ink_drops or 0
            actual = truth_map.get(user.id, 0)
            if stored == actual:
                continue

            corrections.append({
                "user_id": user.id,
                "stored": stored,
                "actual": actual,
                "diff": actual - stored,
            })
            if fix:
                user.ink_drops = actual

        checked = len(users)

    if corrections:
        logger.warning(
            "Balance reconciliation: %s %d/%d balances: %s",
            "corrected" if fix else "found drift in",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Balance reconciliation: all %d balances match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections) if fix else 0,
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
