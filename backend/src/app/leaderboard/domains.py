import datetime
from typing import Optional

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    id: str
    name: Optional[str] = None
    email: str = ''
    value: int = 0
    # Latest ledger write for this user inside the window
    reported_at: Optional[datetime.datetime] = None


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry]
    metric: str
    period: str
    scope: str
