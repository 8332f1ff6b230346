"""Learner booking endpoints: subjects, quotes, availability and requests."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.app.core.errors import SubjectNotConfigured, SubjectNotFound
from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.booking import (
    AvailabilityMonth,
    BookingRequest,
    BookingResult,
    Quote,
    SubjectConfig,
    SubjectListItem,
)
from backend.app.services.availability import get_availability_month
from backend.app.services.booking import request_booking
from backend.app.services.pricing import calculate_quote, get_subjects_for_booking, require_subject_config

router = APIRouter(prefix="/booking", tags=["booking"])

_REJECTION_STATUS = {
    SubjectNotFound.code: status.HTTP_404_NOT_FOUND,
    SubjectNotConfigured.code: status.HTTP_400_BAD_REQUEST,
}


def _subject_error(exc: SubjectNotConfigured) -> HTTPException:
    if isinstance(exc, SubjectNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


@router.get("/subjects", response_model=list[SubjectListItem])
async def list_subjects(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_subjects_for_booking(db)


@router.get("/subjects/{subject_id}/config", response_model=SubjectConfig)
async def subject_config(subject_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        return require_subject_config(db, subject_id)
    except SubjectNotConfigured as exc:
        raise _subject_error(exc)


@router.get("/quote", response_model=Quote)
async def quote(
    subject_id: int,
    duration_minutes: int,
    discount_percent: int = 0,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return calculate_quote(db, subject_id, duration_minutes, discount_percent)
    except SubjectNotConfigured as exc:
        raise _subject_error(exc)


@router.get("/availability", response_model=AvailabilityMonth)
async def availability_month(
    subject_id: int,
    duration_minutes: int,
    year: int = Query(..., ge=1, le=9998),
    month: int = Query(..., ge=1, le=12),
    owner_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return get_availability_month(
            db,
            subject_id=subject_id,
            duration_minutes=duration_minutes,
            year=year,
            month=month,
            owner_id=owner_id,
        )
    except SubjectNotConfigured as exc:
        raise _subject_error(exc)


@router.post("/requests", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def create_booking_request(
    booking_in: BookingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = request_booking(db, current_user.id, booking_in)
    if not result.ok:
        code = _REJECTION_STATUS.get(result.code, status.HTTP_409_CONFLICT)
        raise HTTPException(status_code=code, detail=result.model_dump(mode="json"))
    return result
