"""
Servicio de niveles.

Política única de nivel: el nivel de un usuario es el número de la banda
activa de mayor número cuyo rango [min_xp, max_xp] contiene su XP. Sin
bandas configuradas el nivel es 1. La recompensa por completar retos, el
recálculo masivo y el perfil usan calculate_level.
"""
import logging
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, ErrorCode, NotFoundException
from app.crud.challenge import challenge as crud_challenge
from app.crud.level import level as crud_level
from app.models.level import Level
from app.models.user import User
from app.schemas.level import LevelCreate, LevelUpdate
from app.schemas.user import LevelInfo

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 1

# (número, nombre, min_xp, max_xp)
DEFAULT_LEVEL_BANDS: List[Tuple[int, str, int, Optional[int]]] = [
    (1, "Novice Explorer", 0, 499),
    (2, "Adventurer", 500, 999),
    (3, "Seeker", 1000, 1999),
    (4, "Pathfinder", 2000, 2999),
    (5, "Veteran", 3000, 4499),
    (6, "Champion", 4500, 6499),
    (7, "Master", 6500, 8999),
    (8, "Elite", 9000, 11999),
    (9, "Legend", 12000, 15999),
    (10, "Mythic", 16000, None),
]


def get_level_for_xp(db: Session, xp: int) -> Optional[Level]:
    """
    Obtener la banda de nivel que corresponde a una cantidad de XP.

    Args:
        db: Sesión de base de datos
        xp: Puntos de experiencia

    Returns:
        Banda activa de mayor número que contiene xp, o None
    """
    return crud_level.get_for_xp(db, xp=xp)


def calculate_level(db: Session, xp: int) -> int:
    """
    Calcular el nivel de un usuario a partir de su XP.

    Args:
        db: Sesión de base de datos
        xp: Puntos de experiencia

    Returns:
        Número de nivel (1 si no hay banda que contenga xp)
    """
    level = get_level_for_xp(db, xp)
    return level.number if level else DEFAULT_LEVEL


def get_level_info(db: Session, xp: int) -> LevelInfo:
    """Banda actual y XP que falta para la siguiente."""
    level = get_level_for_xp(db, xp)
    if level is None:
        return LevelInfo(number=DEFAULT_LEVEL)

    xp_to_next = None
    if level.max_xp is not None:
        xp_to_next = level.max_xp + 1 - xp

    return LevelInfo(
        number=level.number,
        name=level.name,
        min_xp=level.min_xp,
        max_xp=level.max_xp,
        xp_to_next_level=xp_to_next,
    )


def get_levels(db: Session, include_inactive: bool = False) -> List[Level]:
    return crud_level.get_all(db, include_inactive=include_inactive)


def get_level_by_number(db: Session, number: int) -> Level:
    level = crud_level.get_by_number(db, number=number)
    if not level:
        raise NotFoundException("Nivel no encontrado", ErrorCode.LEVEL_NOT_FOUND)
    return level


def get_level_by_id(db: Session, level_id: str) -> Level:
    level = crud_level.get(db, id=level_id)
    if not level:
        raise NotFoundException("Nivel no encontrado", ErrorCode.LEVEL_NOT_FOUND)
    return level


def _validate_band(
    db: Session, min_xp: int, max_xp: Optional[int], exclude_id: Optional[str] = None
) -> None:
    if max_xp is not None and max_xp <= min_xp:
        raise BusinessRuleException("Max XP debe ser mayor que Min XP", ErrorCode.INVALID_XP_RANGE)

    overlapping = crud_level.find_overlapping(db, min_xp=min_xp, max_xp=max_xp, exclude_id=exclude_id)
    if overlapping:
        raise BusinessRuleException(
            f"El rango de XP se solapa con el nivel {overlapping.number}",
            ErrorCode.LEVEL_XP_OVERLAP
        )


def create_level(db: Session, level_in: LevelCreate) -> Level:
    """
    Crear una banda de nivel (admin).

    Raises:
        BusinessRuleException: Número repetido, rango inválido o solapado
    """
    if crud_level.get_by_number(db, number=level_in.number):
        raise BusinessRuleException(
            f"El nivel {level_in.number} ya existe", ErrorCode.LEVEL_ALREADY_EXISTS
        )

    _validate_band(db, level_in.min_xp, level_in.max_xp)

    level = crud_level.create(db, obj_in=level_in)
    logger.info(f"Nivel {level.number} creado [{level.min_xp}, {level.max_xp}]")
    return level


def update_level(db: Session, level_id: str, level_in: LevelUpdate) -> Level:
    """Actualizar una banda de nivel (admin)."""
    level = get_level_by_id(db, level_id)

    if level_in.number is not None and level_in.number != level.number:
        if crud_level.get_by_number(db, number=level_in.number):
            raise BusinessRuleException(
                f"El nivel {level_in.number} ya existe", ErrorCode.LEVEL_ALREADY_EXISTS
            )

    changes = level_in.model_dump(exclude_unset=True)
    min_xp = changes.get("min_xp", level.min_xp)
    max_xp = changes["max_xp"] if "max_xp" in changes else level.max_xp

    _validate_band(db, min_xp, max_xp, exclude_id=level.id)

    return crud_level.update(db, db_obj=level, obj_in=changes)


def delete_level(db: Session, level_id: str) -> None:
    """
    Eliminar una banda de nivel (admin).

    Raises:
        BusinessRuleException: Si algún reto requiere ese nivel
    """
    level = get_level_by_id(db, level_id)

    if crud_challenge.count_by_required_level(db, level_number=level.number) > 0:
        raise BusinessRuleException(
            "No se puede eliminar un nivel usado por retos", ErrorCode.LEVEL_IN_USE
        )

    crud_level.delete(db, db_obj=level)
    logger.info(f"Nivel {level.number} eliminado")


def recalculate_all_user_levels(db: Session) -> Tuple[int, int]:
    """
    Recalcular el nivel de todos los usuarios con la política de bandas.

    Returns:
        Tupla (usuarios procesados, usuarios cuyo nivel cambió)
    """
    users = db.query(User).all()

    updated = 0
    for user in users:
        new_level = calculate_level(db, user.xp)
        if new_level != user.level:
            user.level = new_level
            updated += 1

    db.commit()
    logger.info(f"Niveles recalculados: {updated}/{len(users)} usuarios actualizados")
    return len(users), updated


def seed_default_levels(db: Session) -> int:
    """
    Crear las bandas por defecto si la tabla de niveles está vacía.

    Returns:
        Cantidad de bandas creadas
    """
    if crud_level.get_all(db, include_inactive=True):
        return 0

    for number, name, min_xp, max_xp in DEFAULT_LEVEL_BANDS:
        db.add(Level(number=number, name=name, min_xp=min_xp, max_xp=max_xp, is_active=True))
    db.commit()

    logger.info(f"{len(DEFAULT_LEVEL_BANDS)} niveles por defecto creados")
    return len(DEFAULT_LEVEL_BANDS)
