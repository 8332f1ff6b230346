from datetime import date, time
from decimal import Decimal

import pytest

from backend.app.constants.statuses import ReceiptType, SessionStatus
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.points_receipt import PointsReceipt
from backend.app.models.tutoring_session import TutoringSession
from backend.app.models.user import User
from backend.app.schemas.booking import BookingRequest
from backend.app.services.agenda import (
    accept_session,
    cancel_session,
    deny_session,
    get_agenda_counts,
    list_sessions,
    mark_session_paid,
)
from backend.app.services.availability import create_availability_block
from backend.app.services.booking import request_booking
from backend.app.services.points import create_earned, create_spent_for_session, get_current
from backend.app.services.pricing import add_pricing_rule, create_subject

TODAY = date(2030, 1, 1)
DAY = date(2030, 1, 10)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _setup(db, earned=0):
    owner = User(email="tutor@example.com", username="tutor", hashed_password="x", is_admin=True)
    learner = User(email="learner@example.com", username="learner", hashed_password="x")
    db.add_all([owner, learner])
    db.commit()
    subject = create_subject(db, name="Maths")
    add_pricing_rule(
        db,
        subject_id=subject.id,
        owner_id=owner.id,
        hourly_rate=Decimal("100"),
        min_hours=Decimal("1"),
        max_hours=Decimal("3"),
        max_point_discount=Decimal("25"),
    )
    create_availability_block(db, owner_id=owner.id, block_date=DAY, start_time=time(9, 0), duration_minutes=240)
    if earned:
        create_earned(db, user_id=learner.id, issuer_id=owner.id, amount=earned)
    return owner.id, learner.id, subject.id


def _book(db, learner_id, subject_id, start="10:00", discount=20):
    result = request_booking(
        db,
        learner_id,
        BookingRequest(
            subject_id=subject_id,
            session_date=DAY,
            start_time=start,
            duration_minutes=60,
            discount_percent=discount,
        ),
        today=TODAY,
    )
    assert result.ok, result.message
    return result.booking_id


def _spends(db):
    return db.query(PointsReceipt).filter(PointsReceipt.type == ReceiptType.SPENT.value).all()


def test_accept_charges_points_once():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db, earned=50)
        session_id = _book(db, learner_id, subject_id)

        result = accept_session(db, session_id)
        assert result.ok
        assert result.rows == 1
        assert result.points_receipt_id is not None
        assert db.get(TutoringSession, session_id).status == SessionStatus.ACCEPTED.value
        assert get_current(db, learner_id) == 30

        again = accept_session(db, session_id)
        assert not again.ok
        assert again.code == "InvalidTransition"
        assert len(_spends(db)) == 1
        assert get_current(db, learner_id) == 30
    finally:
        db.close()


def test_accept_without_enough_points_is_refused():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db, earned=10)
        session_id = _book(db, learner_id, subject_id)

        result = accept_session(db, session_id)
        assert not result.ok
        assert result.code == "InsufficientPoints"
        db.expire_all()
        assert db.get(TutoringSession, session_id).status == SessionStatus.REQUESTED.value
        assert _spends(db) == []
    finally:
        db.close()


def test_accept_without_discount_writes_no_receipt():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db)
        session_id = _book(db, learner_id, subject_id, discount=0)
        result = accept_session(db, session_id)
        assert result.ok
        assert result.points_receipt_id is None
        assert db.query(PointsReceipt).count() == 0
    finally:
        db.close()


def test_deny_refunds_any_charge():
    db = SessionLocal()
    try:
        owner_id, learner_id, subject_id = _setup(db, earned=50)
        session_id = _book(db, learner_id, subject_id)
        create_spent_for_session(db, user_id=learner_id, issuer_id=owner_id, session_id=session_id, amount=20)
        assert get_current(db, learner_id) == 30

        result = deny_session(db, session_id)
        assert result.ok
        assert result.points_receipts_removed == 1
        db.expire_all()
        assert db.get(TutoringSession, session_id).status == SessionStatus.DENIED.value
        assert get_current(db, learner_id) == 50
    finally:
        db.close()


def test_cancel_accepted_session_restores_points_and_frees_slot():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db, earned=50)
        session_id = _book(db, learner_id, subject_id)
        accept_session(db, session_id)
        assert get_current(db, learner_id) == 30

        result = cancel_session(db, session_id)
        assert result.ok
        assert result.points_receipts_removed == 1
        db.expire_all()
        session = db.get(TutoringSession, session_id)
        assert session.status == SessionStatus.CANCELLED.value
        assert session.cancellation_date is not None
        assert get_current(db, learner_id) == 50

        assert _book(db, learner_id, subject_id) != session_id
    finally:
        db.close()


def test_cancel_and_deny_reject_closed_sessions():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db)
        session_id = _book(db, learner_id, subject_id, discount=0)
        assert cancel_session(db, session_id).ok
        assert cancel_session(db, session_id).code == "InvalidTransition"
        assert deny_session(db, session_id).code == "InvalidTransition"
        assert accept_session(db, 4040).code == "NotFound"
    finally:
        db.close()


def test_mark_paid_only_after_accept():
    db = SessionLocal()
    try:
        _, learner_id, subject_id = _setup(db)
        session_id = _book(db, learner_id, subject_id, discount=0)
        assert mark_session_paid(db, session_id).code == "InvalidTransition"

        accept_session(db, session_id)
        result = mark_session_paid(db, session_id)
        assert result.ok
        db.expire_all()
        session = db.get(TutoringSession, session_id)
        assert session.status == SessionStatus.PAID.value
        assert session.paid_date is not None
    finally:
        db.close()


def test_list_and_count_sessions():
    db = SessionLocal()
    try:
        owner_id, learner_id, subject_id = _setup(db)
        first = _book(db, learner_id, subject_id, start="9:00", discount=0)
        second = _book(db, learner_id, subject_id, start="11:00", discount=0)
        deny_session(db, second)

        assert [s.id for s in list_sessions(db, owner_id=owner_id)] == [first, second]
        assert [s.id for s in list_sessions(db, statuses=[SessionStatus.REQUESTED.value])] == [first]
        assert list_sessions(db, from_date=date(2030, 1, 11)) == []

        counts = get_agenda_counts(db, owner_id=owner_id)
        assert counts["Requested"] == 1
        assert counts["Denied"] == 1
        assert counts["Paid"] == 0
    finally:
        db.close()
