"""
Servicio de administración de retos.
Crea, lista, actualiza y elimina retos con sus etapas.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple, List
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, ErrorCode, NotFoundException
from app.crud.challenge import challenge as crud_challenge
from app.crud.progress import challenge_progress as crud_progress
from app.db.base import utcnow
from app.models.challenge import Challenge
from app.models.progress import ChallengeProgress
from app.schemas.challenge import ChallengeCreate, ChallengeUpdate

logger = logging.getLogger(__name__)


def create_challenge(db: Session, challenge_in: ChallengeCreate, now: Optional[datetime] = None) -> Challenge:
    """
    Crear un reto con sus etapas (admin).

    Args:
        db: Sesión de base de datos
        challenge_in: Datos del reto

    Returns:
        Reto creado

    Raises:
        BusinessRuleException: Si las fechas son inválidas
    """
    now = now or utcnow()

    if challenge_in.start_date >= challenge_in.end_date:
        raise BusinessRuleException(
            "La fecha de fin debe ser posterior a la de inicio", ErrorCode.INVALID_DATE_RANGE
        )

    if challenge_in.start_date < now:
        raise BusinessRuleException(
            "La fecha de inicio no puede estar en el pasado", ErrorCode.INVALID_DATE_RANGE
        )

    challenge = crud_challenge.create_with_stages(db, obj_in=challenge_in)
    logger.info(f"Reto creado: {challenge.id} ({len(challenge.stages)} etapas)")
    return challenge


def get_challenges(
    db: Session,
    *,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Challenge], int]:
    """Listar retos con filtros y paginación."""
    return crud_challenge.get_filtered(
        db,
        category=category,
        difficulty=difficulty,
        status=status,
        limit=limit,
        offset=offset,
    )


def get_challenge(db: Session, challenge_id: str) -> Challenge:
    """
    Obtener un reto con sus etapas.

    Raises:
        NotFoundException: Si el reto no existe
    """
    challenge = crud_challenge.get_with_stages(db, challenge_id=challenge_id)
    if not challenge:
        raise NotFoundException("Reto no encontrado", ErrorCode.CHALLENGE_NOT_FOUND)
    return challenge


def get_user_progress(db: Session, challenge_id: str, user_id: str) -> Optional[ChallengeProgress]:
    """Progreso del usuario en el reto, si está inscrito."""
    return crud_progress.get_by_user_and_challenge(db, user_id=user_id, challenge_id=challenge_id)


def update_challenge(db: Session, challenge_id: str, challenge_in: ChallengeUpdate) -> Challenge:
    """
    Actualizar un reto (admin). Si se envían etapas, reemplazan a las anteriores.

    Raises:
        NotFoundException: Si el reto no existe
        BusinessRuleException: Si las fechas resultantes son inválidas
    """
    challenge = get_challenge(db, challenge_id)

    start_date = challenge_in.start_date or challenge.start_date
    end_date = challenge_in.end_date or challenge.end_date
    if start_date >= end_date:
        raise BusinessRuleException(
            "La fecha de fin debe ser posterior a la de inicio", ErrorCode.INVALID_DATE_RANGE
        )

    challenge = crud_challenge.update_with_stages(db, db_obj=challenge, obj_in=challenge_in)
    logger.info(f"Reto actualizado: {challenge.id}")
    return challenge


def delete_challenge(db: Session, challenge_id: str) -> None:
    """
    Eliminar un reto con sus etapas e inscripciones (admin).

    Raises:
        NotFoundException: Si el reto no existe
    """
    challenge = get_challenge(db, challenge_id)
    db.delete(challenge)
    db.commit()
    logger.info(f"Reto eliminado: {challenge_id}")
