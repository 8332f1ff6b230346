"""Admin agenda schemas: availability blocks, sessions, subjects and pricing."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AvailabilityBlockCreate(BaseModel):
    block_date: date
    start_time: time
    duration_minutes: int


class AvailabilityBlockRead(BaseModel):
    id: int
    owner_id: int
    block_date: date
    start_time: time
    end_time: time

    model_config = ConfigDict(from_attributes=True)


class TutoringSessionRead(BaseModel):
    id: int
    user_id: int
    owner_id: int
    subject_id: int
    session_date: date
    start_time: time
    duration_minutes: int
    base_cost: Decimal
    points_spent: int
    status: str
    cancellation_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionActionResult(BaseModel):
    session_id: int
    action: str
    ok: bool
    rows: int
    code: Optional[str] = None
    message: str
    points_receipts_removed: int = 0
    points_receipt_id: Optional[int] = None


class SubjectCreate(BaseModel):
    name: str


class SubjectRead(BaseModel):
    id: int
    name: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PricingRuleCreate(BaseModel):
    hourly_rate: Decimal
    min_hours: Decimal
    max_hours: Decimal
    max_point_discount: Decimal = Decimal("0")


class PricingRuleRead(BaseModel):
    id: int
    subject_id: int
    owner_id: int
    hourly_rate: Decimal
    min_hours: Decimal
    max_hours: Decimal
    max_point_discount: Decimal

    model_config = ConfigDict(from_attributes=True)
