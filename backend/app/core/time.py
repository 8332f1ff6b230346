"""Time utilities for timezone-aware UTC datetimes and booking dates."""

from datetime import UTC, date, datetime, time, timedelta


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def local_today() -> date:
    return date.today()


def booking_cutoff_date(today: date, cutoff_days: int) -> date:
    """First date that may still be booked when ``today`` is the current date."""
    return today + timedelta(days=cutoff_days)


def add_minutes(value: time, minutes: int) -> time:
    """Shift a wall-clock time by ``minutes``; raises if the result leaves the day."""
    total = value.hour * 60 + value.minute + minutes
    if total < 0 or total > 24 * 60 - 1:
        raise ValueError("Time shifted outside of the day")
    return time(total // 60, total % 60)


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return [first day of month, first day of next month)."""
    first = date(year, month, 1)
    if month == 12:
        return first, date(year + 1, 1, 1)
    return first, date(year, month + 1, 1)
