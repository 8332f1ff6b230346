"""Booking, pricing and availability schemas."""

from datetime import date, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubjectListItem(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class SubjectConfig(BaseModel):
    subject_id: int
    subject_name: str
    hourly_rate: Decimal
    min_duration_minutes: int
    max_duration_minutes: int
    duration_step_minutes: int
    max_discount_percent: int
    discount_step_percent: int


class Quote(BaseModel):
    duration_minutes: int
    base_cost: Decimal
    discount_percent_applied: int
    points_to_charge: int
    money_discount: Decimal
    final_cost: Decimal


class TimeOption(BaseModel):
    session_date: date
    start_time: time
    end_time: time


class BlockSlots(BaseModel):
    availability_block_id: int
    owner_id: int
    block_date: date
    block_start: time
    block_end: time
    start_options: list[TimeOption]


class DayAvailability(BaseModel):
    day: int
    slots: list[BlockSlots]


class AvailabilityMonth(BaseModel):
    year: int
    month: int
    duration_minutes: int
    days: list[DayAvailability]


class BookingRequest(BaseModel):
    subject_id: int
    session_date: date
    start_time: str
    duration_minutes: int
    discount_percent: int = 0
    owner_id: Optional[int] = None


class BookingResult(BaseModel):
    ok: bool
    booking_id: Optional[int] = None
    code: Optional[str] = None
    message: str
    quote: Optional[Quote] = Field(default=None)
