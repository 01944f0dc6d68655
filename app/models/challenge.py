"""
Modelos ORM para Retos y sus Etapas.
"""
import enum
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey,
    CheckConstraint, Enum, func, select,
)
from sqlalchemy.orm import column_property, relationship
from app.db.base import Base, generate_uuid, utcnow
from app.models.progress import ChallengeProgress


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Challenge(Base):
    """Modelo de Retos/Challenges."""

    __tablename__ = "challenges"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    difficulty = Column(Enum(Difficulty, name="difficulty"), nullable=False)
    xp_reward = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    required_level = Column(Integer, nullable=False, default=1)
    max_participants = Column(Integer)
    image_url = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Cantidad de inscripciones, calculada en la misma consulta del reto
    participants_count = column_property(
        select(func.count(ChallengeProgress.id))
        .where(ChallengeProgress.challenge_id == id)
        .correlate_except(ChallengeProgress)
        .scalar_subquery()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint('xp_reward > 0', name='check_xp_reward_positive'),
        CheckConstraint('required_level >= 1', name='check_required_level_positive'),
        CheckConstraint('start_date < end_date', name='check_challenge_dates'),
    )

    # Relationships
    stages = relationship(
        "Stage",
        back_populates="challenge",
        cascade="all, delete-orphan",
        order_by="Stage.order",
    )
    progress = relationship("ChallengeProgress", back_populates="challenge", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Challenge {self.title} ({self.difficulty})>"


class Stage(Base):
    """
    Etapa (checkpoint) dentro de un reto.

    Si qr_code está definido la etapa solo se completa escaneando un QR.
    """

    __tablename__ = "stages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    challenge_id = Column(String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    radius = Column(Integer, nullable=False, default=50)  # metros
    qr_code = Column(String(500))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint('"order" >= 1', name='check_stage_order_positive'),
    )

    # Relationships
    challenge = relationship("Challenge", back_populates="stages")

    def __repr__(self):
        return f"<Stage {self.order} of challenge={self.challenge_id}>"

    @property
    def requires_qr(self) -> bool:
        return bool(self.qr_code)
