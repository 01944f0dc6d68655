"""
Endpoints de la API v1.
"""
from app.api.v1.endpoints import (
    auth,
    users,
    challenges,
    levels,
    categories,
    leaderboard,
    events,
)

__all__ = [
    "auth",
    "users",
    "challenges",
    "levels",
    "categories",
    "leaderboard",
    "events",
]
