"""Admin agenda endpoints: availability blocks, session actions, subjects and pricing."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidAvailabilityBlock, InvalidPricingRule, SubjectNotFound
from backend.app.core.security import get_current_admin
from backend.app.db.session import get_db
from backend.app.models.subject import Subject
from backend.app.models.user import User
from backend.app.schemas.agenda import (
    AvailabilityBlockCreate,
    AvailabilityBlockRead,
    PricingRuleCreate,
    PricingRuleRead,
    SessionActionResult,
    SubjectCreate,
    SubjectRead,
    TutoringSessionRead,
)
from backend.app.services import agenda
from backend.app.services.availability import (
    create_availability_block,
    delete_availability_block,
    list_availability_blocks,
)
from backend.app.services.pricing import add_pricing_rule, create_subject, set_subject_active

router = APIRouter(prefix="/admin/agenda", tags=["admin-agenda"])


def _action_response(result: SessionActionResult) -> SessionActionResult:
    if result.ok:
        return result
    code = status.HTTP_404_NOT_FOUND if result.code == "NotFound" else status.HTTP_409_CONFLICT
    raise HTTPException(status_code=code, detail=result.model_dump(mode="json"))


@router.get("/blocks", response_model=list[AvailabilityBlockRead])
async def list_blocks(
    from_date: date | None = None,
    to_date: date | None = None,
    owner_id: int | None = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return list_availability_blocks(db, from_date=from_date, to_date=to_date, owner_id=owner_id)


@router.post("/blocks", response_model=AvailabilityBlockRead, status_code=status.HTTP_201_CREATED)
async def create_block(
    block_in: AvailabilityBlockCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    try:
        return create_availability_block(
            db,
            owner_id=current_admin.id,
            block_date=block_in.block_date,
            start_time=block_in.start_time,
            duration_minutes=block_in.duration_minutes,
        )
    except InvalidAvailabilityBlock as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


@router.delete("/blocks/{block_id}")
async def delete_block(block_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    rows = delete_availability_block(db, block_id)
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Availability block not found")
    return {"status": "deleted", "id": block_id}


@router.get("/sessions", response_model=list[TutoringSessionRead])
async def list_sessions(
    from_date: date | None = None,
    to_date: date | None = None,
    status_filter: str | None = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    statuses = [status_filter] if status_filter else None
    return agenda.list_sessions(
        db, owner_id=current_admin.id, from_date=from_date, to_date=to_date, statuses=statuses
    )


@router.get("/counts")
async def session_counts(db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    return agenda.get_agenda_counts(db, owner_id=current_admin.id)


@router.post("/sessions/{session_id}/accept", response_model=SessionActionResult)
async def accept(session_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    return _action_response(agenda.accept_session(db, session_id))


@router.post("/sessions/{session_id}/deny", response_model=SessionActionResult)
async def deny(session_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    return _action_response(agenda.deny_session(db, session_id))


@router.post("/sessions/{session_id}/cancel", response_model=SessionActionResult)
async def cancel(session_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    return _action_response(agenda.cancel_session(db, session_id))


@router.post("/sessions/{session_id}/pay", response_model=SessionActionResult)
async def mark_paid(session_id: int, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    return _action_response(agenda.mark_session_paid(db, session_id))


@router.post("/subjects", response_model=SubjectRead, status_code=status.HTTP_201_CREATED)
async def add_subject(subject_in: SubjectCreate, db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)):
    if db.query(Subject).filter(Subject.name == subject_in.name.strip()).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Subject already exists")
    return create_subject(db, name=subject_in.name)


@router.patch("/subjects/{subject_id}", response_model=SubjectRead)
async def update_subject(
    subject_id: int,
    is_active: bool,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    subject = set_subject_active(db, subject_id=subject_id, is_active=is_active)
    if subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    return subject


@router.post("/subjects/{subject_id}/pricing", response_model=PricingRuleRead, status_code=status.HTTP_201_CREATED)
async def add_pricing(
    subject_id: int,
    rule_in: PricingRuleCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    try:
        return add_pricing_rule(
            db,
            subject_id=subject_id,
            owner_id=current_admin.id,
            hourly_rate=rule_in.hourly_rate,
            min_hours=rule_in.min_hours,
            max_hours=rule_in.max_hours,
            max_point_discount=rule_in.max_point_discount,
        )
    except SubjectNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    except InvalidPricingRule as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
