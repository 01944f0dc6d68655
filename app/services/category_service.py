"""
Servicio de categorías de retos.
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, ErrorCode, NotFoundException
from app.crud.category import category as crud_category
from app.crud.challenge import challenge as crud_challenge
from app.models.category import Category
from app.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def create_category(db: Session, category_in: CategoryCreate) -> Category:
    """
    Crear categoría (admin).

    Raises:
        BusinessRuleException: Si ya existe una categoría con el mismo nombre
    """
    if crud_category.get_by_name(db, name=category_in.name):
        raise BusinessRuleException(
            "Ya existe una categoría con ese nombre", ErrorCode.CATEGORY_ALREADY_EXISTS
        )

    return crud_category.create(db, obj_in={
        "name": category_in.name.strip(),
        "description": _clean(category_in.description),
        "icon": _clean(category_in.icon),
        "color": _clean(category_in.color),
    })


def get_categories(db: Session, include_inactive: bool = False) -> List[Category]:
    return crud_category.get_all(db, include_inactive=include_inactive)


def get_category(db: Session, category_id: str) -> Category:
    category = crud_category.get(db, id=category_id)
    if not category:
        raise NotFoundException("Categoría no encontrada", ErrorCode.CATEGORY_NOT_FOUND)
    return category


def update_category(db: Session, category_id: str, category_in: CategoryUpdate) -> Category:
    """Actualizar categoría (admin)."""
    category = get_category(db, category_id)

    changes = category_in.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        del changes["name"]

    if "name" in changes:
        if crud_category.get_by_name(db, name=changes["name"], exclude_id=category.id):
            raise BusinessRuleException(
                "Ya existe una categoría con ese nombre", ErrorCode.CATEGORY_ALREADY_EXISTS
            )
        changes["name"] = changes["name"].strip()

    for field in ("description", "icon", "color"):
        if field in changes:
            changes[field] = _clean(changes[field])

    return crud_category.update(db, db_obj=category, obj_in=changes)


def delete_category(db: Session, category_id: str) -> Optional[Category]:
    """
    Eliminar categoría (admin).

    Si algún reto la usa se desactiva en lugar de eliminarse.

    Returns:
        La categoría desactivada, o None si se eliminó
    """
    category = get_category(db, category_id)

    if crud_challenge.count_by_category(db, category=category.name) > 0:
        category = crud_category.update(db, db_obj=category, obj_in={"is_active": False})
        logger.info(f"Categoría {category.name} desactivada (en uso)")
        return category

    crud_category.delete(db, db_obj=category)
    logger.info(f"Categoría {category.name} eliminada")
    return None


def toggle_category_status(db: Session, category_id: str) -> Category:
    """Activar/desactivar categoría (admin)."""
    category = get_category(db, category_id)
    return crud_category.update(db, db_obj=category, obj_in={"is_active": not category.is_active})
