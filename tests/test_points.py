import threading
from datetime import UTC, datetime

import pytest

from backend.app.constants.statuses import ReceiptType
from backend.app.core.errors import InvalidAmount
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.points_receipt import PointsReceipt
from backend.app.models.user import User
from backend.app.services import points as ledger
from backend.app.services.points import (
    create_adjustment,
    create_earned,
    create_spent_for_session,
    delete_by_reference,
    event_reference,
    exists_by_reference,
    get_balances,
    get_current,
    get_total,
    list_receipts,
    session_reference,
)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _users(db):
    admin = User(email="admin@example.com", username="admin", hashed_password="x", is_admin=True)
    learner = User(email="learner@example.com", username="learner", hashed_password="x")
    db.add_all([admin, learner])
    db.commit()
    return admin.id, learner.id


def test_balances_start_at_zero():
    db = SessionLocal()
    try:
        _, learner_id = _users(db)
        assert get_balances(db, learner_id) == {"user_id": learner_id, "total": 0, "current": 0}
    finally:
        db.close()


def test_total_and_current_fold_from_receipts():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=50, reference=event_reference(3))
        create_adjustment(db, user_id=learner_id, issuer_id=admin_id, amount=-10, reason="Correction")
        create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=7, amount=15)

        assert get_total(db, learner_id) == 40
        assert get_current(db, learner_id) == 25
        assert get_current(db, learner_id) <= get_total(db, learner_id)
    finally:
        db.close()


def test_spend_is_stored_negative_and_idempotent():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=30)
        first = create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=7, amount=20)
        second = create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=7, amount=20)
        assert first == second

        spends = db.query(PointsReceipt).filter(PointsReceipt.type == ReceiptType.SPENT.value).all()
        assert len(spends) == 1
        assert spends[0].amount == -20
        assert spends[0].reference == session_reference(7) == "TS-7"
        assert get_current(db, learner_id) == 10
    finally:
        db.close()


def test_spend_may_exceed_balance():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=1, amount=5)
        assert get_current(db, learner_id) == -5
        assert get_total(db, learner_id) == 0
    finally:
        db.close()


def test_non_positive_amounts_are_rejected():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        for amount in (0, -5):
            with pytest.raises(InvalidAmount):
                create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=amount)
            with pytest.raises(InvalidAmount):
                create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=1, amount=amount)
        assert db.query(PointsReceipt).count() == 0
    finally:
        db.close()


def test_delete_by_reference_refunds_spend():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=40)
        before = get_current(db, learner_id)
        create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=12, amount=25)
        assert get_current(db, learner_id) == before - 25

        assert delete_by_reference(db, session_reference(12)) == 1
        assert get_current(db, learner_id) == before
        assert not exists_by_reference(db, session_reference(12))
        assert delete_by_reference(db, session_reference(12)) == 0

        again = create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=12, amount=25)
        assert again is not None
        assert get_current(db, learner_id) == before - 25
    finally:
        db.close()


def test_delete_by_reference_removes_every_match():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        other = User(email="other@example.com", username="other", hashed_password="x")
        db.add(other)
        db.commit()
        reference = event_reference(4)
        create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=10, reference=reference)
        create_earned(db, user_id=other.id, issuer_id=admin_id, amount=10, reference=reference)
        create_earned(db, user_id=learner_id, issuer_id=admin_id, amount=5, reference=event_reference(5))

        assert exists_by_reference(db, reference)
        assert delete_by_reference(db, reference) == 2
        assert get_total(db, learner_id) == 5
        assert get_total(db, other.id) == 0
    finally:
        db.close()


def test_adjustment_can_push_current_negative():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        create_adjustment(db, user_id=learner_id, issuer_id=admin_id, amount=-30, notes="Clawback")
        assert get_balances(db, learner_id) == {"user_id": learner_id, "total": -30, "current": -30}
    finally:
        db.close()


def test_list_receipts_newest_first():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        old = create_earned(
            db, user_id=learner_id, issuer_id=admin_id, amount=5, receipt_date=datetime(2029, 5, 1, tzinfo=UTC)
        )
        new = create_adjustment(
            db, user_id=learner_id, issuer_id=admin_id, amount=3, receipt_date=datetime(2030, 5, 1, tzinfo=UTC)
        )
        assert [receipt.id for receipt in list_receipts(db, learner_id)] == [new, old]
        assert list_receipts(db, admin_id) == []
    finally:
        db.close()


def test_concurrent_spends_for_one_session_record_one_receipt():
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
    finally:
        db.close()

    barrier = threading.Barrier(2)
    receipt_ids = []

    def spend():
        session = SessionLocal()
        try:
            barrier.wait()
            receipt_ids.append(
                create_spent_for_session(session, user_id=learner_id, issuer_id=admin_id, session_id=21, amount=10)
            )
        finally:
            session.close()

    threads = [threading.Thread(target=spend) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(receipt_ids) == 2
    assert receipt_ids[0] == receipt_ids[1]

    db = SessionLocal()
    try:
        assert db.query(PointsReceipt).filter(PointsReceipt.reference == "TS-21").count() == 1
        assert get_current(db, learner_id) == -10
    finally:
        db.close()


def test_spend_losing_insert_race_returns_existing_receipt(monkeypatch):
    db = SessionLocal()
    try:
        admin_id, learner_id = _users(db)
        existing = create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=21, amount=10)

        # The first lookup misses, as if the other writer had not committed yet.
        real_find = ledger._find_by_reference
        calls = []

        def find_after_first_miss(session, reference):
            calls.append(reference)
            if len(calls) == 1:
                return None
            return real_find(session, reference)

        monkeypatch.setattr(ledger, "_find_by_reference", find_after_first_miss)
        again = create_spent_for_session(db, user_id=learner_id, issuer_id=admin_id, session_id=21, amount=10)

        assert again == existing
        assert calls == ["TS-21", "TS-21"]
        assert db.query(PointsReceipt).filter(PointsReceipt.reference == "TS-21").count() == 1
    finally:
        db.close()
