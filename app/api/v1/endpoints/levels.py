"""
Endpoints de niveles (bandas de XP).
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from app.core.deps import get_db, get_current_admin_user
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.level import (
    LevelCreate,
    LevelResponse,
    LevelUpdate,
    RecalculateLevelsResponse,
)
from app.services import level_service

router = APIRouter()


@router.get("", response_model=ApiResponse[List[LevelResponse]])
def get_levels(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db)
):
    """Obtener las bandas de nivel ordenadas por número."""
    levels = level_service.get_levels(db, include_inactive=include_inactive)
    return ApiResponse(data=[LevelResponse.model_validate(level) for level in levels])


@router.post("/recalculate", response_model=ApiResponse[RecalculateLevelsResponse])
def recalculate_levels(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Recalcular el nivel de todos los usuarios con las bandas actuales.
    Solo administradores.
    """
    processed, updated = level_service.recalculate_all_user_levels(db)
    return ApiResponse(
        data=RecalculateLevelsResponse(processed=processed, updated=updated),
        message=f"{updated} usuarios actualizados"
    )


@router.get("/{number}", response_model=ApiResponse[LevelResponse])
def get_level(
    number: int,
    db: Session = Depends(get_db)
):
    """Obtener una banda por número de nivel."""
    level = level_service.get_level_by_number(db, number)
    return ApiResponse(data=LevelResponse.model_validate(level))


@router.post("", response_model=ApiResponse[LevelResponse], status_code=status.HTTP_201_CREATED)
def create_level(
    level_in: LevelCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Crear una banda de nivel. Los rangos de XP no pueden solaparse.
    Solo administradores.
    """
    level = level_service.create_level(db, level_in)
    return ApiResponse(data=LevelResponse.model_validate(level), message="Nivel creado")


@router.put("/{level_id}", response_model=ApiResponse[LevelResponse])
def update_level(
    level_id: str,
    level_in: LevelUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Actualizar una banda de nivel.
    Solo administradores.
    """
    level = level_service.update_level(db, level_id, level_in)
    return ApiResponse(data=LevelResponse.model_validate(level), message="Nivel actualizado")


@router.delete("/{level_id}", response_model=ApiResponse[None])
def delete_level(
    level_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Eliminar una banda de nivel que ningún reto requiera.
    Solo administradores.
    """
    level_service.delete_level(db, level_id)
    return ApiResponse(message="Nivel eliminado")
