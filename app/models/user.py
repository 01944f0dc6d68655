"""
Modelo ORM para Usuarios.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base, generate_uuid, utcnow


class User(Base):
    """
    Modelo de Usuarios del sistema.

    Los usuarios nunca se eliminan; se desactivan con is_active=False.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    avatar = Column(String(500))

    # Gamificación
    xp = Column(Integer, nullable=False, default=0, index=True)
    level = Column(Integer, nullable=False, default=1)
    rank = Column(Integer)

    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Constraints
    __table_args__ = (
        CheckConstraint('xp >= 0', name='check_xp_positive'),
        CheckConstraint('level >= 1', name='check_level_positive'),
    )

    # Relationships
    challenge_progress = relationship("ChallengeProgress", back_populates="user")

    def __repr__(self):
        return f"<User {self.username} xp={self.xp} level={self.level}>"
