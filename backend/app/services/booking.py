"""Booking requests: validate a requested slot and insert the session atomically."""

import logging
import re
from datetime import date, time, timedelta
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.constants.statuses import SessionStatus
from backend.app.core.errors import InvalidTimeFormat, SubjectNotConfigured
from backend.app.core.settings import get_settings
from backend.app.core.time import booking_cutoff_date, local_today, minutes_since_midnight
from backend.app.models.availability_block import AvailabilityBlock
from backend.app.models.booking_lock import BookingLock
from backend.app.models.tutoring_session import TutoringSession
from backend.app.schemas.booking import BookingRequest, BookingResult, Quote, SubjectConfig
from backend.app.services.availability import get_occupying_sessions, has_conflict, session_interval
from backend.app.services.pricing import (
    calculate_session_cost,
    clamp_discount,
    clamp_duration,
    quote_from_config,
    require_subject_config,
)

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")
MINUTES_PER_DAY = 24 * 60


def parse_start_time(value: str) -> time:
    """Parse ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` into a time."""
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise InvalidTimeFormat()
    hour, minute, second = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeFormat()
    return time(hour, minute)


def _rejected(code: str, message: str, quote: Quote | None = None) -> BookingResult:
    logger.warning("Booking rejected: %s (%s)", code, message)
    return BookingResult(ok=False, code=code, message=message, quote=quote)


def _containing_blocks(
    db: Session, session_date: date, start: time, end: time, owner_id: int | None
) -> List[AvailabilityBlock]:
    query = db.query(AvailabilityBlock).filter(
        AvailabilityBlock.block_date == session_date,
        AvailabilityBlock.start_time <= start,
        AvailabilityBlock.end_time >= end,
    )
    if owner_id is not None:
        query = query.filter(AvailabilityBlock.owner_id == owner_id)
    return query.order_by(AvailabilityBlock.start_time, AvailabilityBlock.id).all()


def lock_owner_day(db: Session, owner_id: int, day: date) -> None:
    """Take the write lock for one owner's day inside the current transaction."""
    bumped = (
        db.query(BookingLock)
        .filter(BookingLock.owner_id == owner_id, BookingLock.lock_date == day)
        .update({BookingLock.version: BookingLock.version + 1}, synchronize_session=False)
    )
    if not bumped:
        db.add(BookingLock(owner_id=owner_id, lock_date=day, version=1))
        db.flush()


def _slot_taken(db: Session, owner_id: int, day: date, start_minute: int, end_minute: int) -> bool:
    busy = [session_interval(s) for s in get_occupying_sessions(db, day, day + timedelta(days=1), owner_id=owner_id)]
    return has_conflict(start_minute, end_minute, busy)


def request_booking(
    db: Session,
    user_id: int,
    booking: BookingRequest,
    *,
    owner_id: int | None = None,
    today: date | None = None,
) -> BookingResult:
    """Create a Requested session if the slot is still free.

    Every check is a hard gate and returns a rejected result without writing.
    The conflict re-check and the insert run in one transaction behind the
    owner/day lock, so two requests for the same slot cannot both succeed.
    Points are not charged here; they are spent when the owner accepts.
    """
    settings = get_settings()
    owner_filter = owner_id if owner_id is not None else booking.owner_id

    try:
        config = require_subject_config(db, booking.subject_id)
    except SubjectNotConfigured as exc:
        return _rejected(exc.code, exc.message)

    try:
        start = parse_start_time(booking.start_time)
    except InvalidTimeFormat as exc:
        return _rejected(exc.code, exc.message)

    duration = clamp_duration(config, booking.duration_minutes)
    discount = clamp_discount(config, booking.discount_percent)
    quote = quote_from_config(config, duration, discount)

    cutoff = booking_cutoff_date(today or local_today(), settings.booking_cutoff_days)
    if booking.session_date < cutoff:
        return _rejected(
            "TooSoon",
            f"Selected date must be at least {settings.booking_cutoff_days} days in the future.",
            quote,
        )

    start_minute = minutes_since_midnight(start)
    end_minute = start_minute + duration
    if end_minute >= MINUTES_PER_DAY:
        return _rejected("OutsideAvailability", "Selected time is not within an availability block.", quote)
    end = time(end_minute // 60, end_minute % 60)

    for attempt in range(2):
        try:
            return _commit_booking(
                db, user_id, booking, config, owner_filter, start, end, start_minute, end_minute, quote
            )
        except IntegrityError:
            # Two first bookings for an owner/day raced to create the lock row.
            db.rollback()
            if attempt:
                raise
        except Exception:
            db.rollback()
            raise


def _commit_booking(
    db: Session,
    user_id: int,
    booking: BookingRequest,
    config: SubjectConfig,
    owner_filter: int | None,
    start: time,
    end: time,
    start_minute: int,
    end_minute: int,
    quote: Quote,
) -> BookingResult:
    blocks = _containing_blocks(db, booking.session_date, start, end, owner_filter)
    if not blocks:
        return _rejected("OutsideAvailability", "Selected time is not within an availability block.", quote)

    seen_owners = set()
    for block in blocks:
        if block.owner_id in seen_owners:
            continue
        seen_owners.add(block.owner_id)

        lock_owner_day(db, block.owner_id, booking.session_date)
        if _slot_taken(db, block.owner_id, booking.session_date, start_minute, end_minute):
            continue

        session = TutoringSession(
            user_id=user_id,
            owner_id=block.owner_id,
            subject_id=config.subject_id,
            session_date=booking.session_date,
            start_time=start,
            duration_minutes=quote.duration_minutes,
            # Stored in cents; the quote keeps full precision.
            base_cost=calculate_session_cost(quote.duration_minutes, config.hourly_rate),
            points_spent=quote.points_to_charge,
            status=SessionStatus.REQUESTED.value,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        logger.info(
            "Booking #%s requested by user %s with owner %s on %s %s (%s min, %s pts)",
            session.id,
            user_id,
            session.owner_id,
            booking.session_date.isoformat(),
            start.strftime("%H:%M"),
            quote.duration_minutes,
            quote.points_to_charge,
        )
        return BookingResult(
            ok=True,
            booking_id=session.id,
            message="Request sent to admin for approval.",
            quote=quote,
        )

    db.rollback()
    return _rejected("SlotTaken", "That time is no longer available.", quote)
