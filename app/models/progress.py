"""
Modelos ORM para el progreso de los usuarios en retos y etapas.
"""
import enum
from sqlalchemy import Column, String, Text, DateTime, Float, ForeignKey, UniqueConstraint, Enum
from sqlalchemy.orm import relationship
from app.db.base import Base, generate_uuid, utcnow


class ProgressStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class StageStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class SubmissionType(str, enum.Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    LOCATION = "LOCATION"
    QR_CODE = "QR_CODE"


class ChallengeProgress(Base):
    """Inscripción de un usuario en un reto (una por par usuario/reto)."""

    __tablename__ = "challenge_progress"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge_id = Column(String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(ProgressStatus, name="progress_status"), nullable=False, default=ProgressStatus.ACTIVE, index=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint('user_id', 'challenge_id', name='uq_challenge_progress_user_challenge'),
    )

    # Relationships
    user = relationship("User", back_populates="challenge_progress")
    challenge = relationship("Challenge", back_populates="progress")
    stages = relationship("StageProgress", back_populates="challenge_progress", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ChallengeProgress user={self.user_id} challenge={self.challenge_id} status={self.status}>"


class StageProgress(Base):
    """Registro de envío/completado de una etapa dentro de un ChallengeProgress."""

    __tablename__ = "stage_progress"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    challenge_progress_id = Column(
        String(36), ForeignKey("challenge_progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage_id = Column(String(36), ForeignKey("stages.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(StageStatus, name="stage_status"), nullable=False, default=StageStatus.PENDING)
    submission_type = Column(Enum(SubmissionType, name="submission_type"))
    content = Column(Text)
    # Coordenadas enviadas (informativas)
    latitude = Column(Float)
    longitude = Column(Float)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('challenge_progress_id', 'stage_id', name='uq_stage_progress_progress_stage'),
    )

    # Relationships
    challenge_progress = relationship("ChallengeProgress", back_populates="stages")
    stage = relationship("Stage")

    def __repr__(self):
        return f"<StageProgress progress={self.challenge_progress_id} stage={self.stage_id} status={self.status}>"
