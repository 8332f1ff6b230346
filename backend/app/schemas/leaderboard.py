from pydantic import BaseModel

from backend.app.constants.statuses import LeaderboardMode, LeaderboardTimeFilter


class LeaderboardRow(BaseModel):
    user_id: int
    username: str
    metric: int
    rank: int
    is_current_user: bool = False


class LeaderboardPage(BaseModel):
    mode: LeaderboardMode
    time_filter: LeaderboardTimeFilter
    page: int
    page_size: int
    rows: list[LeaderboardRow]
    total_rows: int
    showing_from: int
    showing_to: int
