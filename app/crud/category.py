"""
CRUD para categorías de retos.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from app.crud.base import CRUDBase
from app.models.category import Category


class CRUDCategory(CRUDBase[Category]):
    """CRUD específico para categorías."""

    def get_all(self, db: Session, *, include_inactive: bool = False) -> List[Category]:
        """Obtener categorías ordenadas por nombre."""
        query = db.query(Category)
        if not include_inactive:
            query = query.filter(Category.is_active == True)
        return query.order_by(Category.name).all()

    def get_by_name(
        self, db: Session, *, name: str, exclude_id: Optional[str] = None
    ) -> Optional[Category]:
        """Buscar categoría por nombre sin distinguir mayúsculas."""
        query = db.query(Category).filter(func.lower(Category.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first()


# Instancia global del CRUD
category = CRUDCategory(Category)
