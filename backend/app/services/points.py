"""Points ledger.

Every change to a user's points is one append-only ``PointsReceipt`` row and
balances are always folded from those rows:

- total   = sum of Earned and Adjustment amounts (adjustments may be negative)
- current = total minus the absolute value of every Spent amount

Session spends carry the reference ``TS-{session_id}``. The reference is also
written to ``unique_reference``, whose unique index makes the spend idempotent
even when two requests race. Refunds delete every receipt sharing a reference.
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.constants.statuses import TOTAL_RECEIPT_TYPES, ReceiptType
from backend.app.core.errors import InvalidAmount
from backend.app.models.points_receipt import PointsReceipt

logger = logging.getLogger(__name__)


def session_reference(session_id: int) -> str:
    return f"TS-{session_id}"


def event_reference(event_id: int) -> str:
    return f"EV-{event_id}"


def total_points_expr():
    return func.coalesce(
        func.sum(case((PointsReceipt.type.in_(TOTAL_RECEIPT_TYPES), PointsReceipt.amount), else_=0)), 0
    )


def spent_points_expr():
    return func.coalesce(
        func.sum(case((PointsReceipt.type == ReceiptType.SPENT.value, func.abs(PointsReceipt.amount)), else_=0)), 0
    )


def get_balances(db: Session, user_id: int) -> dict:
    total, spent = (
        db.query(total_points_expr(), spent_points_expr()).filter(PointsReceipt.user_id == user_id).one()
    )
    total = int(total or 0)
    spent = int(spent or 0)
    return {"user_id": user_id, "total": total, "current": total - spent}


def get_total(db: Session, user_id: int) -> int:
    return get_balances(db, user_id)["total"]


def get_current(db: Session, user_id: int) -> int:
    return get_balances(db, user_id)["current"]


def _append(db: Session, receipt: PointsReceipt, commit: bool) -> int:
    db.add(receipt)
    if commit:
        db.commit()
        db.refresh(receipt)
    else:
        db.flush()
    logger.info(
        "Created %s receipt #%s for user %s (amount=%s ref=%s)",
        receipt.type,
        receipt.id,
        receipt.user_id,
        receipt.amount,
        receipt.reference,
    )
    return receipt.id


def create_adjustment(
    db: Session,
    *,
    user_id: int,
    issuer_id: int,
    amount: int,
    reason: str | None = None,
    reference: str | None = None,
    notes: str | None = None,
    receipt_date: datetime | None = None,
) -> int:
    """Append a manual correction; the signed amount may push a user negative."""
    receipt = PointsReceipt(
        user_id=user_id,
        issuer_id=issuer_id,
        type=ReceiptType.ADJUSTMENT.value,
        amount=int(amount),
        reason=reason,
        reference=reference,
        notes=notes,
    )
    if receipt_date is not None:
        receipt.receipt_date = receipt_date
    return _append(db, receipt, commit=True)


def create_earned(
    db: Session,
    *,
    user_id: int,
    issuer_id: int,
    amount: int,
    reason: str | None = None,
    reference: str | None = None,
    receipt_date: datetime | None = None,
) -> int:
    """Award points, e.g. for event attendance under an ``EV-{event_id}`` reference."""
    if amount <= 0:
        raise InvalidAmount()
    receipt = PointsReceipt(
        user_id=user_id,
        issuer_id=issuer_id,
        type=ReceiptType.EARNED.value,
        amount=int(amount),
        reason=reason,
        reference=reference,
    )
    if receipt_date is not None:
        receipt.receipt_date = receipt_date
    return _append(db, receipt, commit=True)


def _find_by_reference(db: Session, reference: str) -> int | None:
    row = (
        db.query(PointsReceipt.id)
        .filter(PointsReceipt.reference == reference)
        .order_by(PointsReceipt.id)
        .first()
    )
    return row.id if row else None


def create_spent_for_session(
    db: Session,
    *,
    user_id: int,
    issuer_id: int,
    session_id: int,
    amount: int,
    commit: bool = True,
) -> int:
    """Charge points against a session at most once.

    A retry returns the id of the receipt already recorded for the session.
    The balance is not checked here; callers compare ``get_current`` first.
    With ``commit=False`` the receipt is only flushed so it joins the
    caller's transaction, and a concurrent duplicate surfaces as IntegrityError.
    """
    if amount <= 0:
        raise InvalidAmount()
    reference = session_reference(session_id)

    existing_id = _find_by_reference(db, reference)
    if existing_id is not None:
        logger.warning("Spend for session %s already recorded as receipt #%s", session_id, existing_id)
        return existing_id

    receipt = PointsReceipt(
        user_id=user_id,
        issuer_id=issuer_id,
        type=ReceiptType.SPENT.value,
        amount=-abs(int(amount)),
        reason="Session request",
        reference=reference,
        unique_reference=reference,
    )
    if not commit:
        return _append(db, receipt, commit=False)
    try:
        return _append(db, receipt, commit=True)
    except IntegrityError:
        db.rollback()
        existing_id = _find_by_reference(db, reference)
        if existing_id is None:
            raise
        logger.warning("Concurrent spend for session %s resolved to receipt #%s", session_id, existing_id)
        return existing_id


def delete_by_reference(db: Session, reference: str, commit: bool = True) -> int:
    """Hard-delete every receipt carrying ``reference``; returns rows removed."""
    rows = db.query(PointsReceipt).filter(PointsReceipt.reference == reference).delete(synchronize_session=False)
    if commit:
        db.commit()
    logger.info("Deleted receipts by reference %s -> rows %s", reference, rows)
    return rows


def exists_by_reference(db: Session, reference: str) -> bool:
    return _find_by_reference(db, reference) is not None


def list_receipts(db: Session, user_id: int) -> List[PointsReceipt]:
    return (
        db.query(PointsReceipt)
        .filter(PointsReceipt.user_id == user_id)
        .order_by(PointsReceipt.receipt_date.desc(), PointsReceipt.id.desc())
        .all()
    )
