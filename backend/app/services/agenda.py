"""Owner actions on booked sessions and their points side effects."""

import logging
from collections import Counter
from datetime import date
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from backend.app.constants.statuses import SessionStatus
from backend.app.core.time import utc_now
from backend.app.models.tutoring_session import TutoringSession
from backend.app.schemas.agenda import SessionActionResult
from backend.app.services.points import create_spent_for_session, delete_by_reference, get_current, session_reference

logger = logging.getLogger(__name__)


def list_sessions(
    db: Session,
    owner_id: int | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    statuses: Iterable[str] | None = None,
) -> List[TutoringSession]:
    query = db.query(TutoringSession)
    if owner_id is not None:
        query = query.filter(TutoringSession.owner_id == owner_id)
    if from_date is not None:
        query = query.filter(TutoringSession.session_date >= from_date)
    if to_date is not None:
        query = query.filter(TutoringSession.session_date < to_date)
    if statuses is not None:
        query = query.filter(TutoringSession.status.in_(list(statuses)))
    return query.order_by(TutoringSession.session_date, TutoringSession.start_time, TutoringSession.id).all()


def get_agenda_counts(db: Session, owner_id: int | None = None) -> Dict[str, int]:
    counts = Counter(session.status for session in list_sessions(db, owner_id=owner_id))
    return {status.value: counts.get(status.value, 0) for status in SessionStatus}


def _transition(db: Session, session_id: int, allowed_from: Iterable[str], values: dict) -> int:
    return (
        db.query(TutoringSession)
        .filter(TutoringSession.id == session_id, TutoringSession.status.in_(list(allowed_from)))
        .update(values, synchronize_session=False)
    )


def _not_allowed(session_id: int, action: str, session: TutoringSession | None) -> SessionActionResult:
    if session is None:
        return SessionActionResult(
            session_id=session_id, action=action, ok=False, rows=0, code="NotFound", message="Session not found."
        )
    return SessionActionResult(
        session_id=session_id,
        action=action,
        ok=False,
        rows=0,
        code="InvalidTransition",
        message=f"Cannot {action} a session that is {session.status}.",
    )


def accept_session(db: Session, session_id: int) -> SessionActionResult:
    """Requested -> Accepted, charging the session's points once."""
    session = db.get(TutoringSession, session_id)
    if session is None:
        return _not_allowed(session_id, "accept", None)
    user_id, owner_id, points = session.user_id, session.owner_id, session.points_spent

    try:
        rows = _transition(
            db,
            session_id,
            [SessionStatus.REQUESTED.value],
            {TutoringSession.status: SessionStatus.ACCEPTED.value, TutoringSession.updated_at: utc_now()},
        )
        if not rows:
            db.rollback()
            return _not_allowed(session_id, "accept", db.get(TutoringSession, session_id))

        receipt_id = None
        if points > 0:
            current = get_current(db, user_id)
            if current < points:
                db.rollback()
                logger.warning(
                    "Accept session #%s refused: user %s has %s points, needs %s", session_id, user_id, current, points
                )
                return SessionActionResult(
                    session_id=session_id,
                    action="accept",
                    ok=False,
                    rows=0,
                    code="InsufficientPoints",
                    message="Insufficient points for this booking's discount.",
                )
            receipt_id = create_spent_for_session(
                db, user_id=user_id, issuer_id=owner_id, session_id=session_id, amount=points, commit=False
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Accepted session #%s (points receipt %s)", session_id, receipt_id)
    return SessionActionResult(
        session_id=session_id,
        action="accept",
        ok=True,
        rows=rows,
        message="Session accepted.",
        points_receipt_id=receipt_id,
    )


def _close_with_refund(
    db: Session, session_id: int, action: str, allowed_from: Iterable[str], values: dict
) -> SessionActionResult:
    try:
        rows = _transition(db, session_id, allowed_from, values)
        if not rows:
            db.rollback()
            return _not_allowed(session_id, action, db.get(TutoringSession, session_id))
        removed = delete_by_reference(db, session_reference(session_id), commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("%s session #%s -> rows %s, refunded receipts %s", action.capitalize(), session_id, rows, removed)
    return SessionActionResult(
        session_id=session_id,
        action=action,
        ok=True,
        rows=rows,
        message=f"Session {values[TutoringSession.status].lower()}.",
        points_receipts_removed=removed,
    )


def deny_session(db: Session, session_id: int) -> SessionActionResult:
    """Requested -> Denied, refunding any points charged for the session."""
    return _close_with_refund(
        db,
        session_id,
        "deny",
        [SessionStatus.REQUESTED.value],
        {TutoringSession.status: SessionStatus.DENIED.value, TutoringSession.updated_at: utc_now()},
    )


def cancel_session(db: Session, session_id: int) -> SessionActionResult:
    """Requested/Accepted -> Cancelled, refunding any points charged for the session."""
    now = utc_now()
    return _close_with_refund(
        db,
        session_id,
        "cancel",
        [SessionStatus.REQUESTED.value, SessionStatus.ACCEPTED.value],
        {
            TutoringSession.status: SessionStatus.CANCELLED.value,
            TutoringSession.cancellation_date: now,
            TutoringSession.updated_at: now,
        },
    )


def mark_session_paid(db: Session, session_id: int) -> SessionActionResult:
    now = utc_now()
    rows = _transition(
        db,
        session_id,
        [SessionStatus.ACCEPTED.value, SessionStatus.COMPLETED.value],
        {TutoringSession.status: SessionStatus.PAID.value, TutoringSession.paid_date: now, TutoringSession.updated_at: now},
    )
    if not rows:
        db.rollback()
        return _not_allowed(session_id, "pay", db.get(TutoringSession, session_id))
    db.commit()
    logger.info("Marked session #%s paid", session_id)
    return SessionActionResult(session_id=session_id, action="pay", ok=True, rows=rows, message="Session paid.")
