"""
Modelo ORM para Categorías de retos.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime
from app.db.base import Base, generate_uuid, utcnow


class Category(Base):
    """Modelo de Categorías de retos."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(20))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Category {self.name}>"
