"""
Schemas para el leaderboard.
"""
import enum
from pydantic import BaseModel
from typing import Optional, List


class LeaderboardPeriod(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    ALL_TIME = "ALL_TIME"


class LeaderboardEntry(BaseModel):
    """Schema de entrada en el leaderboard."""

    rank: int
    user_id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    xp: int
    level: int
    completed_challenges: int


class LeaderboardResponse(BaseModel):
    """Schema de respuesta del leaderboard."""

    period: LeaderboardPeriod
    leaderboard: List[LeaderboardEntry]
    total: int


class UserRankResponse(BaseModel):
    """Posición de un usuario en el leaderboard."""

    user_id: str
    xp: int
    rank: int
    period: LeaderboardPeriod


class TopUser(BaseModel):
    username: str
    xp: int
    level: int


class LeaderboardStats(BaseModel):
    """Estadísticas globales."""

    total_users: int
    total_challenges: int
    total_xp: int
    average_xp: int
    top_user: Optional[TopUser] = None
