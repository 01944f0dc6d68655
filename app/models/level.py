"""
Modelo ORM para Niveles (bandas de XP).
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from app.db.base import Base, generate_uuid, utcnow


class Level(Base):
    """
    Banda de XP configurada por el administrador.

    max_xp NULL significa banda abierta (último nivel).
    """

    __tablename__ = "levels"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    number = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(50), nullable=False)
    min_xp = Column(Integer, nullable=False)
    max_xp = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint('number >= 1', name='check_level_number_positive'),
        CheckConstraint('min_xp >= 0', name='check_level_min_xp_positive'),
    )

    def __repr__(self):
        return f"<Level {self.number} {self.name} [{self.min_xp}, {self.max_xp}]>"
