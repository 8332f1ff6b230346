"""Points ledger schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PointsBalance(BaseModel):
    user_id: int
    total: int
    current: int


class AdjustmentCreate(BaseModel):
    user_id: int
    amount: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class EarnedCreate(BaseModel):
    user_id: int
    amount: int
    reason: Optional[str] = None
    reference: Optional[str] = None


class SessionSpendCreate(BaseModel):
    user_id: int
    session_id: int
    amount: int


class ReceiptCreated(BaseModel):
    id: int


class ReceiptRead(BaseModel):
    id: int
    user_id: int
    issuer_id: int
    receipt_date: datetime
    type: str
    amount: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DeleteByReferenceResult(BaseModel):
    reference: str
    rows_removed: int
