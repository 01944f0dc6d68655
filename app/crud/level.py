"""
CRUD para niveles (bandas de XP).
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, or_
from app.crud.base import CRUDBase
from app.models.level import Level


class CRUDLevel(CRUDBase[Level]):
    """CRUD específico para niveles."""

    def get_all(self, db: Session, *, include_inactive: bool = False) -> List[Level]:
        """Obtener niveles ordenados por número."""
        query = db.query(Level)
        if not include_inactive:
            query = query.filter(Level.is_active == True)
        return query.order_by(Level.number).all()

    def get_by_number(self, db: Session, *, number: int) -> Optional[Level]:
        return db.query(Level).filter(Level.number == number).first()

    def get_for_xp(self, db: Session, *, xp: int) -> Optional[Level]:
        """
        Banda activa de mayor número que contiene la cantidad de XP.
        """
        return (
            db.query(Level)
            .filter(
                Level.is_active == True,
                Level.min_xp <= xp,
                or_(Level.max_xp >= xp, Level.max_xp.is_(None))
            )
            .order_by(desc(Level.number))
            .first()
        )

    def find_overlapping(
        self,
        db: Session,
        *,
        min_xp: int,
        max_xp: Optional[int],
        exclude_id: Optional[str] = None
    ) -> Optional[Level]:
        """
        Buscar otra banda cuyo rango [min_xp, max_xp] se solape con el dado.
        max_xp None equivale a infinito.
        """
        query = db.query(Level).filter(or_(Level.max_xp.is_(None), Level.max_xp >= min_xp))
        if max_xp is not None:
            query = query.filter(Level.min_xp <= max_xp)
        if exclude_id is not None:
            query = query.filter(Level.id != exclude_id)
        return query.order_by(Level.number).first()


# Instancia global del CRUD
level = CRUDLevel(Level)
