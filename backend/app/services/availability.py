"""Availability blocks and the monthly grid of bookable start times."""

import logging
from collections import defaultdict
from datetime import date, time
from typing import Dict, Iterable, Iterator, List, Tuple

from sqlalchemy.orm import Session

from backend.app.constants.statuses import OCCUPYING_STATUSES
from backend.app.core.errors import InvalidAvailabilityBlock
from backend.app.core.settings import get_settings
from backend.app.core.time import (
    add_minutes,
    booking_cutoff_date,
    local_today,
    minutes_since_midnight,
    month_bounds,
)
from backend.app.models.availability_block import AvailabilityBlock
from backend.app.models.tutoring_session import TutoringSession
from backend.app.schemas.booking import AvailabilityMonth, BlockSlots, DayAvailability, TimeOption
from backend.app.services.pricing import clamp_duration, require_subject_config

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]


def list_availability_blocks(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    owner_id: int | None = None,
) -> List[AvailabilityBlock]:
    """List blocks in [from_date, to_date), optionally for one owner."""
    query = db.query(AvailabilityBlock)
    if from_date is not None:
        query = query.filter(AvailabilityBlock.block_date >= from_date)
    if to_date is not None:
        query = query.filter(AvailabilityBlock.block_date < to_date)
    if owner_id is not None:
        query = query.filter(AvailabilityBlock.owner_id == owner_id)
    return query.order_by(AvailabilityBlock.block_date, AvailabilityBlock.start_time, AvailabilityBlock.id).all()


def create_availability_block(
    db: Session, *, owner_id: int, block_date: date, start_time: time, duration_minutes: int
) -> AvailabilityBlock:
    if duration_minutes <= 0:
        raise InvalidAvailabilityBlock("Duration must be positive.")
    try:
        end_time = add_minutes(start_time, duration_minutes)
    except ValueError as exc:
        raise InvalidAvailabilityBlock("Availability block must end on the same day.") from exc

    block = AvailabilityBlock(
        owner_id=owner_id,
        block_date=block_date,
        start_time=start_time.replace(second=0, microsecond=0),
        end_time=end_time,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    logger.info(
        "Created availability block #%s (owner=%s %s %s-%s)",
        block.id,
        owner_id,
        block_date.isoformat(),
        block.start_time,
        block.end_time,
    )
    return block


def delete_availability_block(db: Session, block_id: int) -> int:
    rows = db.query(AvailabilityBlock).filter(AvailabilityBlock.id == block_id).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted availability block #%s -> rows %s", block_id, rows)
    return rows


def get_occupying_sessions(
    db: Session,
    from_date: date,
    to_date: date,
    owner_id: int | None = None,
) -> List[TutoringSession]:
    """Sessions in [from_date, to_date) whose status holds their time slot."""
    query = db.query(TutoringSession).filter(
        TutoringSession.session_date >= from_date,
        TutoringSession.session_date < to_date,
        TutoringSession.status.in_(OCCUPYING_STATUSES),
    )
    if owner_id is not None:
        query = query.filter(TutoringSession.owner_id == owner_id)
    return query.all()


def session_interval(session: TutoringSession) -> Interval:
    start = minutes_since_midnight(session.start_time)
    return start, start + session.duration_minutes


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return start < other_end and end > other_start


def has_conflict(start: int, end: int, busy: Iterable[Interval]) -> bool:
    return any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in busy)


def candidate_starts(block_start: int, block_end: int, duration: int, step: int) -> Iterator[int]:
    candidate = block_start
    while candidate + duration <= block_end:
        yield candidate
        candidate += step


def _minute_to_time(minute: int) -> time:
    return time(minute // 60, minute % 60)


def get_availability_month(
    db: Session,
    *,
    subject_id: int,
    duration_minutes: int,
    year: int,
    month: int,
    owner_id: int | None = None,
    today: date | None = None,
) -> AvailabilityMonth:
    """Build the bookable start times for every availability block in a month.

    Blocks before the booking cutoff are skipped, and blocks without any free
    start time are left out. Reads only.
    """
    settings = get_settings()
    config = require_subject_config(db, subject_id)
    duration = clamp_duration(config, duration_minutes)
    step = settings.availability_grid_step_minutes

    first, next_first = month_bounds(year, month)
    cutoff = booking_cutoff_date(today or local_today(), settings.booking_cutoff_days)

    blocks = list_availability_blocks(db, from_date=first, to_date=next_first, owner_id=owner_id)
    busy: Dict[Tuple[int, date], List[Interval]] = defaultdict(list)
    for session in get_occupying_sessions(db, first, next_first, owner_id=owner_id):
        busy[(session.owner_id, session.session_date)].append(session_interval(session))

    blocks_by_day: Dict[date, List[AvailabilityBlock]] = defaultdict(list)
    for block in blocks:
        if block.block_date < cutoff:
            continue
        blocks_by_day[block.block_date].append(block)

    days: List[DayAvailability] = []
    for day in sorted(blocks_by_day):
        slots: List[BlockSlots] = []
        for block in blocks_by_day[day]:
            block_start = minutes_since_midnight(block.start_time)
            block_end = minutes_since_midnight(block.end_time)
            if block_end - block_start < duration:
                continue
            day_busy = busy.get((block.owner_id, day), [])
            options = [
                TimeOption(
                    session_date=day,
                    start_time=_minute_to_time(start),
                    end_time=_minute_to_time(start + duration),
                )
                for start in candidate_starts(block_start, block_end, duration, step)
                if not has_conflict(start, start + duration, day_busy)
            ]
            if not options:
                continue
            slots.append(
                BlockSlots(
                    availability_block_id=block.id,
                    owner_id=block.owner_id,
                    block_date=day,
                    block_start=block.start_time,
                    block_end=block.end_time,
                    start_options=options,
                )
            )
        if slots:
            days.append(DayAvailability(day=day.day, slots=slots))

    return AvailabilityMonth(year=year, month=month, duration_minutes=duration, days=days)
