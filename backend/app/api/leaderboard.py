from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.constants.statuses import LeaderboardMode, LeaderboardTimeFilter
from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.leaderboard import LeaderboardPage
from backend.app.services.leaderboard import get_leaderboard_page

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardPage)
async def leaderboard(
    mode: LeaderboardMode = LeaderboardMode.CURRENT,
    time: LeaderboardTimeFilter = LeaderboardTimeFilter.ALL_TIME,
    page: int = 1,
    page_size: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_leaderboard_page(
        db,
        mode=mode,
        time_filter=time,
        page=page,
        page_size=page_size,
        current_username=current_user.username,
    )
