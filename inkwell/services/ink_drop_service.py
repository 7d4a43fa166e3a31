"""
inkwell.services.ink_drop_service — Ink Drop Ledger
====================================================

Append-only per-user transaction log plus a cached running balance on
``users.ink_drops``.  Both are written in the same transaction, so the cache
is always exactly the sum of the entries (see
:mod:`inkwell.services.reconciliation_service` for the audit).

Two layers:

* **Session-level primitives** (:func:`lock_user`, :func:`apply_ink_drops`)
  are composed by the streak, challenge and achievement services inside
  their own transaction.
* **Engine-level operations** (:func:`add_ink_drops`, :func:`send_tip`, …)
  open one transaction each and are what routes and collaborators call.

A debit that would take the balance below zero raises
:class:`InsufficientInkDropsError` *before* anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from inkwell.database.engine import get_session
from inkwell.database.models import (
    InkDropSource,
    InkDropTransaction,
    NotificationType,
    User,
)
from inkwell.engine.dates import utc_now
from inkwell.errors import (
    InsufficientInkDropsError,
    InvalidAmountError,
    InvalidTipError,
    UserNotFoundError,
)
from inkwell.services.notification_service import (
    NotificationDispatcher,
    default_notifier,
)

logger = logging.getLogger(__name__)

DEFAULT_TIP_FEE_PERCENT = 25


# ---------------------------------------------------------------------------
# Session-level primitives
# ---------------------------------------------------------------------------
def lock_user(session: Session, user_id: int) -> User:
    """Load the user row with ``SELECT … FOR UPDATE``.

    Every mutating economy operation calls this first, which serializes all
    read-check-mutate-credit sequences for one user across workers.
    """
    user = session.scalar(
        select(User).where(User.id == user_id).with_for_update()
    )
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def apply_ink_drops(
    session: Session,
    user: User,
    amount: int,
    source: InkDropSource | str,
    *,
    sender_id: int | None = None,
    recipient_id: int | None = None,
    now: datetime | None = None,
) -> int:
    """Credit (positive) or debit (negative) *user* and append a ledger entry.

    Returns the new balance.  Raises :class:`InvalidAmountError` for a
    non-integer amount and :class:`InsufficientInkDropsError` if the balance
    would go negative, in both cases with no side effects.
    """
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmountError("Amount must be a whole number of Ink Drops")
    source = InkDropSource(source)
    balance = user.ink_drops or 0
    new_balance = balance + amount

    if new_balance < 0:
        logger.warning(
            "Rejected %s of %d for user %d: balance %d",
            source, amount, user.id, balance,
        )
        raise InsufficientInkDropsError(balance=balance, required=-amount)

    user.ink_drops = new_balance
    session.add(InkDropTransaction(
        user_id=user.id,
        amount=amount,
        source=source.value,
        sender_id=sender_id,
        recipient_id=recipient_id,
        timestamp=now or utc_now(),
    ))
    return new_balance


# ---------------------------------------------------------------------------
# Engine-level operations
# ---------------------------------------------------------------------------
def add_ink_drops(
    engine: Engine,
    user_id: int,
    amount: int,
    source: InkDropSource | str,
) -> int:
    """Atomically apply *amount* to the user's balance; return the new balance."""
    with get_session(engine) as session:
        user = lock_user(session, user_id)
        new_balance = apply_ink_drops(session, user, amount, source)
    logger.info("Ink Drops %+d (%s) for user %d → %d", amount, source, user_id, new_balance)
    return new_balance


def get_ink_drops_balance(engine: Engine, user_id: int) -> int:
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user.ink_drops or 0


def get_transactions(engine: Engine, user_id: int) -> list[InkDropTransaction]:
    """Full ledger history for *user_id*, newest first."""
    with get_session(engine) as session:
        if session.get(User, user_id) is None:
            raise UserNotFoundError(user_id)
        return list(session.scalars(
            select(InkDropTransaction)
            .where(InkDropTransaction.user_id == user_id)
            .order_by(InkDropTransaction.timestamp.desc(), InkDropTransaction.id.desc())
        ).all())


def purchase_ink_drops(engine: Engine, user_id: int, amount: int) -> int:
    """Credit purchased Ink Drops.  Receipt validation happens upstream."""
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmountError()
    return add_ink_drops(engine, user_id, amount, InkDropSource.PURCHASE)


# ---------------------------------------------------------------------------
# Peer tips: debit, credit minus fee, in ONE transaction
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TipResult:
    sender_balance: int
    recipient_balance: int
    service_fee: int
    author_received: int


def split_tip(amount: int, fee_percent: int = DEFAULT_TIP_FEE_PERCENT) -> tuple[int, int]:
    """Return ``(service_fee, author_received)``; the fee is floored."""
    fee = amount * fee_percent // 100
    return fee, amount - fee


def send_tip(
    engine: Engine,
    sender_id: int,
    recipient_id: int,
    amount: int,
    *,
    fee_percent: int = DEFAULT_TIP_FEE_PERCENT,
    notifier: NotificationDispatcher | None = None,
) -> TipResult:
    """Transfer *amount* from sender to recipient, keeping the platform fee.

    Both users are locked in ascending id order (no lock-order deadlocks);
    both ledger entries carry their final ``tip_sent``/``tip_received``
    source and counterpart id from the start.
    """
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidTipError()
    if sender_id == recipient_id:
        raise InvalidTipError("You cannot tip yourself")

    notifier = notifier or default_notifier()
    fee, received = split_tip(amount, fee_percent)
    now = utc_now()

    with get_session(engine) as session:
        locked = {uid: lock_user(session, uid) for uid in sorted((sender_id, recipient_id))}
        sender, recipient = locked[sender_id], locked[recipient_id]

        sender_balance = apply_ink_drops(
            session, sender, -amount, InkDropSource.TIP_SENT,
            recipient_id=recipient_id, now=now,
        )
        recipient_balance = apply_ink_drops(
            session, recipient, received, InkDropSource.TIP_RECEIVED,
            sender_id=sender_id, now=now,
        )
        notifier.notify(session, recipient_id, NotificationType.TIP_RECEIVED, {
            "senderId": sender_id,
            "senderName": sender.username,
            "amount": received,
        })

    logger.info(
        "Tip %d from user %d to user %d (fee %d, received %d)",
        amount, sender_id, recipient_id, fee, received,
    )
    return TipResult(
        sender_balance=sender_balance,
        recipient_balance=recipient_balance,
        service_fee=fee,
        author_received=received,
    )


# ---------------------------------------------------------------------------
# Rewards history: earned (positive) entries grouped by category
# ---------------------------------------------------------------------------
REWARD_CATEGORIES: dict[InkDropSource, str] = {
    InkDropSource.STREAK_CHECK_IN: "streak",
    InkDropSource.CHALLENGE_COMPLETED: "challenge",
    InkDropSource.MILESTONE_ACHIEVED: "milestone",
    InkDropSource.PURCHASE: "purchase",
    InkDropSource.TIP_RECEIVED: "tip",
    InkDropSource.ADMIN_GRANT: "admin",
    InkDropSource.REFERRAL_BONUS: "referral",
}


def describe_reward(source: str, amount: int) -> str:
    match source:
        case InkDropSource.STREAK_CHECK_IN:
            return "Daily streak check-in reward"
        case InkDropSource.CHALLENGE_COMPLETED:
            return "Challenge completed"
        case InkDropSource.MILESTONE_ACHIEVED:
            return "Milestone reached"
        case InkDropSource.PURCHASE:
            return f"Purchased {amount} Ink Drops"
        case InkDropSource.TIP_RECEIVED:
            return "Tip from a reader"
        case InkDropSource.ADMIN_GRANT:
            return "Bonus reward"
        case InkDropSource.REFERRAL_BONUS:
            return "Referral bonus"
        case _:
            return f"Earned {amount} Ink Drops"


def get_rewards_history(engine: Engine, user_id: int) -> dict:
    """Positive ledger entries (newest first) plus per-category totals."""
    rewards = [
        {
            "amount": tx.amount,
            "type": tx.source,
            "description": describe_reward(tx.source, tx.amount),
            "date": tx.timestamp,
        }
        for tx in get_transactions(engine, user_id)
        if tx.amount > 0
    ]

    totals = {category: 0 for category in REWARD_CATEGORIES.values()}
    for reward in rewards:
        category = REWARD_CATEGORIES.get(InkDropSource(reward["type"]))
        if category:
            totals[category] += reward["amount"]

    return {
        "total": sum(r["amount"] for r in rewards),
        "rewards": rewards,
        "totals": totals,
    }
