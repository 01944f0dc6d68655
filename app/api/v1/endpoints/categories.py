"""
Endpoints de categorias de retos (catalogo).
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from app.core.deps import get_db, get_current_admin_user
from app.models.user import User
from app.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from app.schemas.common import ApiResponse
from app.services import category_service

router = APIRouter()


# ================================================================
# ENDPOINTS PUBLICOS
# ================================================================

@router.get("", response_model=ApiResponse[List[CategoryResponse]])
def get_categories(
    include_inactive: bool = Query(False, description="Incluir categorias inactivas"),
    db: Session = Depends(get_db)
):
    """
    Obtener lista de categorias ordenadas por nombre.
    Por defecto solo devuelve categorias activas.
    """
    categories = category_service.get_categories(db, include_inactive=include_inactive)
    return ApiResponse(data=[CategoryResponse.model_validate(c) for c in categories])


@router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
def get_category(
    category_id: str,
    db: Session = Depends(get_db)
):
    """Obtener una categoria por ID."""
    category = category_service.get_category(db, category_id)
    return ApiResponse(data=CategoryResponse.model_validate(category))


# ================================================================
# ENDPOINTS ADMIN
# ================================================================

@router.post("", response_model=ApiResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Crear nueva categoria.
    Solo administradores.
    """
    category = category_service.create_category(db, category_in)
    return ApiResponse(data=CategoryResponse.model_validate(category), message="Categoria creada")


@router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
def update_category(
    category_id: str,
    category_in: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Actualizar una categoria.
    Solo administradores.
    """
    category = category_service.update_category(db, category_id, category_in)
    return ApiResponse(data=CategoryResponse.model_validate(category), message="Categoria actualizada")


@router.delete("/{category_id}", response_model=ApiResponse[CategoryResponse])
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Eliminar una categoria.
    Si hay retos que la usan, se desactiva en lugar de eliminarse.
    Solo administradores.
    """
    category = category_service.delete_category(db, category_id)
    if category is not None:
        return ApiResponse(
            data=CategoryResponse.model_validate(category),
            message="Categoria desactivada porque hay retos que la usan"
        )
    return ApiResponse(message="Categoria eliminada")


@router.patch("/{category_id}/toggle", response_model=ApiResponse[CategoryResponse])
def toggle_category_status(
    category_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Activar o desactivar una categoria.
    Solo administradores.
    """
    category = category_service.toggle_category_status(db, category_id)
    return ApiResponse(data=CategoryResponse.model_validate(category))
