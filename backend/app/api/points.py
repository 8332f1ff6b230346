"""Points ledger endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidAmount
from backend.app.core.security import get_current_admin, get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.points import (
    AdjustmentCreate,
    DeleteByReferenceResult,
    EarnedCreate,
    PointsBalance,
    ReceiptCreated,
    ReceiptRead,
    SessionSpendCreate,
)
from backend.app.services import points as ledger

router = APIRouter(prefix="/points", tags=["points"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/me", response_model=PointsBalance)
async def my_balance(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ledger.get_balances(db, current_user.id)


@router.get("/me/ledger", response_model=list[ReceiptRead])
async def my_ledger(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ledger.list_receipts(db, current_user.id)


@router.get("/users/{user_id}", response_model=PointsBalance)
async def user_balance(user_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    _get_user_or_404(db, user_id)
    return ledger.get_balances(db, user_id)


@router.post("/adjustments", response_model=ReceiptCreated, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    adjustment_in: AdjustmentCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    _get_user_or_404(db, adjustment_in.user_id)
    receipt_id = ledger.create_adjustment(
        db,
        user_id=adjustment_in.user_id,
        issuer_id=current_admin.id,
        amount=adjustment_in.amount,
        reason=adjustment_in.reason,
        reference=adjustment_in.reference,
        notes=adjustment_in.notes,
    )
    return {"id": receipt_id}


@router.post("/earned", response_model=ReceiptCreated, status_code=status.HTTP_201_CREATED)
async def create_earned(
    earned_in: EarnedCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    _get_user_or_404(db, earned_in.user_id)
    try:
        receipt_id = ledger.create_earned(
            db,
            user_id=earned_in.user_id,
            issuer_id=current_admin.id,
            amount=earned_in.amount,
            reason=earned_in.reason,
            reference=earned_in.reference,
        )
    except InvalidAmount as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return {"id": receipt_id}


@router.post("/session-spend", response_model=ReceiptCreated, status_code=status.HTTP_201_CREATED)
async def create_session_spend(
    spend_in: SessionSpendCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    _get_user_or_404(db, spend_in.user_id)
    try:
        receipt_id = ledger.create_spent_for_session(
            db,
            user_id=spend_in.user_id,
            issuer_id=current_admin.id,
            session_id=spend_in.session_id,
            amount=spend_in.amount,
        )
    except InvalidAmount as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return {"id": receipt_id}


@router.delete("/by-reference", response_model=DeleteByReferenceResult)
async def delete_by_reference(
    reference: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    rows = ledger.delete_by_reference(db, reference)
    return {"reference": reference, "rows_removed": rows}
