"""
tests/test_ink_drop_service.py — Ledger Integration Tests
==========================================================
Credits, debits, the non-negative invariant, purchases, atomic tips and
the rewards history.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import make_user
from inkwell.database.models import (
    InkDropSource,
    InkDropTransaction,
    Notification,
    User,
)
from inkwell.errors import (
    InsufficientInkDropsError,
    InvalidAmountError,
    InvalidTipError,
    UserNotFoundError,
)
from inkwell.services import ink_drop_service
from inkwell.services.ink_drop_service import split_tip


@pytest.fixture
def engine(db_engine):
    return db_engine


def _tx_count(engine, user_id: int) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(InkDropTransaction)
            .where(InkDropTransaction.user_id == user_id)
        )


class TestAddInkDrops:
    def test_credit_appends_entry(self, engine):
        uid = make_user(engine)
        balance = ink_drop_service.add_ink_drops(engine, uid, 30, InkDropSource.ADMIN_GRANT)

        assert balance == 30
        txs = ink_drop_service.get_transactions(engine, uid)
        assert [(t.amount, t.source) for t in txs] == [(30, "admin_grant")]

    def test_debit(self, engine):
        uid = make_user(engine)
        ink_drop_service.add_ink_drops(engine, uid, 30, "admin_grant")
        assert ink_drop_service.add_ink_drops(engine, uid, -30, "purchase") == 0

    def test_overdraw_rejected_without_side_effects(self, engine):
        """Balance 30, debit 50 → rejected, balance and ledger unchanged."""
        uid = make_user(engine)
        ink_drop_service.add_ink_drops(engine, uid, 30, InkDropSource.ADMIN_GRANT)

        with pytest.raises(InsufficientInkDropsError) as exc_info:
            ink_drop_service.add_ink_drops(engine, uid, -50, InkDropSource.PURCHASE)

        assert exc_info.value.code == "INSUFFICIENT_INK_DROPS"
        assert exc_info.value.balance == 30
        assert exc_info.value.required == 50
        assert ink_drop_service.get_ink_drops_balance(engine, uid) == 30
        assert _tx_count(engine, uid) == 1

    def test_unknown_user(self, engine):
        with pytest.raises(UserNotFoundError):
            ink_drop_service.add_ink_drops(engine, 777, 10, InkDropSource.ADMIN_GRANT)
        with pytest.raises(UserNotFoundError):
            ink_drop_service.get_ink_drops_balance(engine, 777)

    def test_unknown_source_rejected(self, engine):
        uid = make_user(engine)
        with pytest.raises(ValueError):
            ink_drop_service.add_ink_drops(engine, uid, 10, "lottery")

    @pytest.mark.parametrize("amount", [2.5, "10", True])
    def test_non_integer_amount_rejected(self, engine, amount):
        uid = make_user(engine)
        with pytest.raises(InvalidAmountError):
            ink_drop_service.add_ink_drops(engine, uid, amount, InkDropSource.ADMIN_GRANT)
        assert ink_drop_service.get_ink_drops_balance(engine, uid) == 0
        assert _tx_count(engine, uid) == 0

    def test_history_newest_first(self, engine):
        uid = make_user(engine)
        for amount in (1, 2, 3):
            ink_drop_service.add_ink_drops(engine, uid, amount, InkDropSource.ADMIN_GRANT)
        txs = ink_drop_service.get_transactions(engine, uid)
        assert [t.amount for t in txs] == [3, 2, 1]


class TestPurchase:
    def test_purchase_credits(self, engine):
        uid = make_user(engine)
        assert ink_drop_service.purchase_ink_drops(engine, uid, 500) == 500
        assert ink_drop_service.get_transactions(engine, uid)[0].source == "purchase"

    @pytest.mark.parametrize("amount", [0, -5, True])
    def test_invalid_amount(self, engine, amount):
        uid = make_user(engine)
        with pytest.raises(InvalidAmountError):
            ink_drop_service.purchase_ink_drops(engine, uid, amount)


class TestTip:
    def test_split(self):
        assert split_tip(100) == (25, 75)
        assert split_tip(3) == (0, 3)
        assert split_tip(10, fee_percent=0) == (0, 10)

    def test_tip_moves_funds_minus_fee(self, engine):
        alice = make_user(engine, 1, "alice")
        bob = make_user(engine, 2, "bob")
        ink_drop_service.add_ink_drops(engine, alice, 150, InkDropSource.ADMIN_GRANT)

        result = ink_drop_service.send_tip(engine, alice, bob, 100)

        assert result.sender_balance == 50
        assert result.recipient_balance == 75
        assert result.service_fee == 25
        assert result.author_received == 75

        sent = ink_drop_service.get_transactions(engine, alice)[0]
        assert (sent.amount, sent.source, sent.recipient_id) == (-100, "tip_sent", bob)
        received = ink_drop_service.get_transactions(engine, bob)
        assert len(received) == 1
        assert (received[0].amount, received[0].source, received[0].sender_id) == (
            75, "tip_received", alice,
        )

        with Session(engine) as session:
            note = session.scalar(select(Notification).where(Notification.user_id == bob))
        assert note.type == "TIP_RECEIVED"
        assert note.data["amount"] == 75

    def test_insufficient_sender_rolls_back_everything(self, engine):
        alice = make_user(engine, 1, "alice")
        bob = make_user(engine, 2, "bob")
        ink_drop_service.add_ink_drops(engine, alice, 40, InkDropSource.ADMIN_GRANT)

        with pytest.raises(InsufficientInkDropsError):
            ink_drop_service.send_tip(engine, alice, bob, 100)

        assert ink_drop_service.get_ink_drops_balance(engine, alice) == 40
        assert ink_drop_service.get_ink_drops_balance(engine, bob) == 0
        assert _tx_count(engine, bob) == 0
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Notification)) == 0

    def test_self_tip_rejected(self, engine):
        alice = make_user(engine, 1, "alice")
        with pytest.raises(InvalidTipError):
            ink_drop_service.send_tip(engine, alice, alice, 10)

    def test_non_positive_rejected(self, engine):
        alice = make_user(engine, 1, "alice")
        bob = make_user(engine, 2, "bob")
        with pytest.raises(InvalidTipError):
            ink_drop_service.send_tip(engine, alice, bob, 0)

    def test_missing_recipient(self, engine):
        alice = make_user(engine, 1, "alice")
        ink_drop_service.add_ink_drops(engine, alice, 40, InkDropSource.ADMIN_GRANT)
        with pytest.raises(UserNotFoundError):
            ink_drop_service.send_tip(engine, alice, 99, 10)
        assert ink_drop_service.get_ink_drops_balance(engine, alice) == 40

    def test_custom_fee(self, engine):
        alice = make_user(engine, 1, "alice")
        bob = make_user(engine, 2, "bob")
        ink_drop_service.add_ink_drops(engine, alice, 100, InkDropSource.ADMIN_GRANT)
        result = ink_drop_service.send_tip(engine, alice, bob, 100, fee_percent=10)
        assert result.author_received == 90


class TestRewardsHistory:
    def test_only_positive_entries_with_totals(self, engine):
        alice = make_user(engine, 1, "alice")
        bob = make_user(engine, 2, "bob")
        ink_drop_service.add_ink_drops(engine, alice, 5, InkDropSource.STREAK_CHECK_IN)
        ink_drop_service.purchase_ink_drops(engine, alice, 100)
        ink_drop_service.send_tip(engine, alice, bob, 20)

        history = ink_drop_service.get_rewards_history(engine, alice)

        assert history["total"] == 105
        assert [r["type"] for r in history["rewards"]] == ["purchase", "streak_check_in"]
        assert history["rewards"][0]["description"] == "Purchased 100 Ink Drops"
        assert history["totals"]["streak"] == 5
        assert history["totals"]["purchase"] == 100
        assert history["totals"]["tip"] == 0


class TestBalanceInvariant:
    def test_cached_balance_equals_ledger_sum(self, engine):
        uid = make_user(engine)
        ink_drop_service.add_ink_drops(engine, uid, 100, InkDropSource.ADMIN_GRANT)
        ink_drop_service.add_ink_drops(engine, uid, -40, InkDropSource.STREAK_RESTORE)
        ink_drop_service.purchase_ink_drops(engine, uid, 15)

        with Session(engine) as session:
            total = session.scalar(
                select(func.sum(InkDropTransaction.amount))
                .where(InkDropTransaction.user_id == uid)
            )
            assert session.get(User, uid).ink_drops == total == 75
