"""
Servicio de leaderboard.
Ranking de usuarios por XP, posición individual y estadísticas globales.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.core.exceptions import ErrorCode, NotFoundException
from app.crud.challenge import challenge as crud_challenge
from app.crud.user import user as crud_user
from app.db.base import utcnow
from app.models.progress import ChallengeProgress, ProgressStatus
from app.models.user import User
from app.schemas.leaderboard import (
    LeaderboardEntry,
    LeaderboardPeriod,
    LeaderboardResponse,
    LeaderboardStats,
    TopUser,
    UserRankResponse,
)

logger = logging.getLogger(__name__)


def period_start(period: LeaderboardPeriod, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Inicio del periodo del leaderboard.

    El periodo filtra por fecha de registro del usuario. Las semanas
    empiezan el domingo. ALL_TIME no tiene inicio.
    """
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == LeaderboardPeriod.DAILY:
        return start_of_day
    if period == LeaderboardPeriod.WEEKLY:
        days_since_sunday = (start_of_day.weekday() + 1) % 7
        return start_of_day - timedelta(days=days_since_sunday)
    if period == LeaderboardPeriod.MONTHLY:
        return start_of_day.replace(day=1)
    return None


def _active_users_query(db: Session, period: LeaderboardPeriod, now: Optional[datetime] = None):
    query = db.query(User).filter(User.is_active == True)
    start = period_start(period, now)
    if start is not None:
        query = query.filter(User.created_at >= start)
    return query


def get_leaderboard(
    db: Session,
    period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
    limit: int = 50,
    now: Optional[datetime] = None,
) -> LeaderboardResponse:
    """
    Obtener el leaderboard de un periodo.

    Args:
        db: Sesión de base de datos
        period: DAILY | WEEKLY | MONTHLY | ALL_TIME
        limit: Cantidad de usuarios a mostrar

    Returns:
        Usuarios activos ordenados por XP con su posición y retos completados
    """
    users = (
        _active_users_query(db, period, now)
        .order_by(desc(User.xp), User.created_at)
        .limit(limit)
        .all()
    )

    completed_counts = dict(
        db.query(ChallengeProgress.user_id, func.count(ChallengeProgress.id))
        .filter(
            ChallengeProgress.status == ProgressStatus.COMPLETED,
            ChallengeProgress.user_id.in_([u.id for u in users])
        )
        .group_by(ChallengeProgress.user_id)
        .all()
    ) if users else {}

    entries = [
        LeaderboardEntry(
            rank=idx,
            user_id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            avatar=user.avatar,
            xp=user.xp,
            level=user.level,
            completed_challenges=completed_counts.get(user.id, 0),
        )
        for idx, user in enumerate(users, start=1)
    ]

    return LeaderboardResponse(period=period, leaderboard=entries, total=len(entries))


def update_ranks(db: Session) -> int:
    """
    Recalcular la columna rank de todos los usuarios activos (admin).

    Returns:
        Cantidad de usuarios actualizados
    """
    users = crud_user.get_active_by_xp(db)
    for idx, user in enumerate(users, start=1):
        user.rank = idx
    db.commit()

    logger.info(f"Ranking actualizado para {len(users)} usuarios")
    return len(users)


def get_user_rank(
    db: Session,
    user_id: str,
    period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
    now: Optional[datetime] = None,
) -> UserRankResponse:
    """
    Posición de un usuario: 1 + cantidad de usuarios activos con más XP.

    Raises:
        NotFoundException: Si el usuario no existe
    """
    user = crud_user.get(db, id=user_id)
    if not user:
        raise NotFoundException("Usuario no encontrado", ErrorCode.USER_NOT_FOUND)

    higher_xp_count = _active_users_query(db, period, now).filter(User.xp > user.xp).count()

    return UserRankResponse(user_id=user.id, xp=user.xp, rank=higher_xp_count + 1, period=period)


def get_leaderboard_stats(db: Session) -> LeaderboardStats:
    """Estadísticas globales de usuarios activos y retos."""
    total_users = db.query(User).filter(User.is_active == True).count()
    total_xp = db.query(func.coalesce(func.sum(User.xp), 0)).filter(User.is_active == True).scalar()
    top = crud_user.get_active_by_xp(db, limit=1)

    return LeaderboardStats(
        total_users=total_users,
        total_challenges=crud_challenge.count_active(db),
        total_xp=total_xp,
        average_xp=round(total_xp / total_users) if total_users else 0,
        top_user=TopUser(username=top[0].username, xp=top[0].xp, level=top[0].level) if top else None,
    )
