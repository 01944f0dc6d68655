"""
Endpoints del leaderboard.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_admin_user, get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.leaderboard import (
    LeaderboardPeriod,
    LeaderboardResponse,
    LeaderboardStats,
    UserRankResponse,
)
from app.services import leaderboard_service
from app.services.broadcast_service import (
    Broadcaster,
    Events,
    get_broadcaster,
    leaderboard_room,
)

router = APIRouter()


@router.get("", response_model=ApiResponse[LeaderboardResponse])
def get_leaderboard(
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL_TIME),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Obtener el leaderboard.

    Periodos: DAILY, WEEKLY, MONTHLY, ALL_TIME.
    Los periodos filtran por fecha de registro del usuario.
    """
    return ApiResponse(data=leaderboard_service.get_leaderboard(db, period=period, limit=limit))


@router.get("/me", response_model=ApiResponse[UserRankResponse])
def get_my_rank(
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL_TIME),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Obtener mi posición en el leaderboard."""
    return ApiResponse(data=leaderboard_service.get_user_rank(db, current_user.id, period=period))


@router.get("/stats", response_model=ApiResponse[LeaderboardStats])
def get_leaderboard_stats(db: Session = Depends(get_db)):
    """Estadísticas globales de usuarios y retos."""
    return ApiResponse(data=leaderboard_service.get_leaderboard_stats(db))


@router.post("/update-ranks", response_model=ApiResponse[dict])
def update_ranks(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """
    Recalcular la posición guardada de todos los usuarios.
    Solo administradores.
    """
    updated = leaderboard_service.update_ranks(db)
    broadcaster.publish(
        leaderboard_room(LeaderboardPeriod.ALL_TIME.value),
        Events.LEADERBOARD_UPDATE,
        {"updated": updated},
    )
    return ApiResponse(data={"updated": updated}, message="Ranking actualizado")
