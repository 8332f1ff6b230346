"""Leaderboard built from ledger aggregates over a time window."""

from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy import and_
from sqlalchemy.orm import Session

from backend.app.constants.statuses import LeaderboardMode, LeaderboardTimeFilter
from backend.app.core.settings import get_settings
from backend.app.models.points_receipt import PointsReceipt
from backend.app.models.user import User
from backend.app.schemas.leaderboard import LeaderboardPage, LeaderboardRow
from backend.app.services.points import spent_points_expr, total_points_expr


def compute_window(time_filter: LeaderboardTimeFilter, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """Map a time filter to a half-open UTC window; None means unbounded."""
    now = now or datetime.now(timezone.utc)
    first_this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if time_filter == LeaderboardTimeFilter.THIS_MONTH:
        return first_this_month, None
    if time_filter == LeaderboardTimeFilter.LAST_30_DAYS:
        return now - timedelta(days=30), None
    if time_filter == LeaderboardTimeFilter.LAST_MONTH:
        last_month_end = first_this_month - timedelta(days=1)
        return last_month_end.replace(day=1), first_this_month
    return None, None


def rank_users(
    db: Session,
    mode: LeaderboardMode,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
    current_username: str | None = None,
) -> List[LeaderboardRow]:
    """Rank every learner, including those without receipts in the window.

    Sorted by metric descending then username (case-insensitive). Tied metrics
    share a rank equal to the position of the first row in the tie.
    """
    receipt_filter = [PointsReceipt.user_id == User.id]
    if window_start is not None:
        receipt_filter.append(PointsReceipt.receipt_date >= window_start)
    if window_end is not None:
        receipt_filter.append(PointsReceipt.receipt_date < window_end)

    results = (
        db.query(User.id, User.username, total_points_expr().label("points_total"), spent_points_expr().label("spent"))
        .outerjoin(PointsReceipt, and_(*receipt_filter))
        .filter(User.is_admin.is_(False))
        .group_by(User.id, User.username)
        .all()
    )

    unranked = []
    for user_id, username, points_total, spent in results:
        points_total = int(points_total or 0)
        metric = points_total if mode == LeaderboardMode.TOTAL else points_total - int(spent or 0)
        unranked.append((user_id, username, metric))
    unranked.sort(key=lambda row: (-row[2], row[1].casefold()))

    rows: List[LeaderboardRow] = []
    rank = 0
    last_metric = None
    for index, (user_id, username, metric) in enumerate(unranked):
        if index == 0 or metric != last_metric:
            rank = index + 1
            last_metric = metric
        rows.append(
            LeaderboardRow(
                user_id=user_id,
                username=username,
                metric=metric,
                rank=rank,
                is_current_user=bool(current_username) and username.casefold() == current_username.casefold(),
            )
        )
    return rows


def get_leaderboard_page(
    db: Session,
    *,
    mode: LeaderboardMode,
    time_filter: LeaderboardTimeFilter = LeaderboardTimeFilter.ALL_TIME,
    page: int = 1,
    page_size: int | None = None,
    current_username: str | None = None,
    now: datetime | None = None,
) -> LeaderboardPage:
    window_start, window_end = compute_window(time_filter, now)
    rows = rank_users(db, mode, window_start, window_end, current_username=current_username)

    if page < 1:
        page = 1
    if page_size is None or page_size < 1:
        page_size = get_settings().leaderboard_default_page_size

    total = len(rows)
    offset = (page - 1) * page_size
    page_rows = rows[offset : offset + page_size]
    return LeaderboardPage(
        mode=mode,
        time_filter=time_filter,
        page=page,
        page_size=page_size,
        rows=page_rows,
        total_rows=total,
        showing_from=offset + 1 if page_rows else 0,
        showing_to=offset + len(page_rows) if page_rows else 0,
    )
