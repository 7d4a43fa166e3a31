"""
tests/test_reconciliation.py — Balance Reconciliation
======================================================
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from conftest import make_user
from inkwell.database.models import InkDropSource, User
from inkwell.services import ink_drop_service
from inkwell.services.reconciliation_service import reconcile_balances


def _corrupt(engine, user_id: int, value: int) -> None:
    with Session(engine) as session:
        session.get(User, user_id).ink_drops = value
        session.commit()


class TestReconcileBalances:
    def test_clean_ledger(self, db_engine):
        uid = make_user(db_engine)
        ink_drop_service.add_ink_drops(db_engine, uid, 40, InkDropSource.ADMIN_GRANT)

        report = reconcile_balances(db_engine)

        assert report["checked"] == 1
        assert report["corrected"] == 0
        assert report["corrections"] == []
        assert "timestamp" in report

    def test_drift_is_corrected(self, db_engine, caplog):
        uid = make_user(db_engine)
        ink_drop_service.add_ink_drops(db_engine, uid, 40, InkDropSource.ADMIN_GRANT)
        _corrupt(db_engine, uid, 999)

        with caplog.at_level(logging.WARNING):
            report = reconcile_balances(db_engine)

        assert report["corrected"] == 1
        assert report["corrections"] == [
            {"user_id": uid, "stored": 999, "actual": 40, "diff": -959},
        ]
        assert ink_drop_service.get_ink_drops_balance(db_engine, uid) == 40
        assert "Balance reconciliation" in caplog.text

    def test_user_without_entries_must_hold_zero(self, db_engine):
        uid = make_user(db_engine)
        _corrupt(db_engine, uid, 15)

        report = reconcile_balances(db_engine)

        assert report["corrections"][0]["actual"] == 0
        assert ink_drop_service.get_ink_drops_balance(db_engine, uid) == 0

    def test_report_only(self, db_engine):
        uid = make_user(db_engine)
        _corrupt(db_engine, uid, 15)

        report = reconcile_balances(db_engine, fix=False)

        assert report["corrected"] == 0
        assert len(report["corrections"]) == 1
        assert ink_drop_service.get_ink_drops_balance(db_engine, uid) == 15
