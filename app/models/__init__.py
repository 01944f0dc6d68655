"""
Módulo de modelos ORM.
Importa todos los modelos para que SQLAlchemy los reconozca.
"""
from app.db.base import Base

# Usuarios
from app.models.user import User

# Catálogos
from app.models.category import Category
from app.models.level import Level

# Retos
from app.models.challenge import Challenge, Stage, Difficulty

# Progreso
from app.models.progress import (
    ChallengeProgress,
    StageProgress,
    ProgressStatus,
    StageStatus,
    SubmissionType,
)

__all__ = [
    "Base",
    # Usuarios
    "User",
    # Catálogos
    "Category",
    "Level",
    # Retos
    "Challenge",
    "Stage",
    "Difficulty",
    # Progreso
    "ChallengeProgress",
    "StageProgress",
    "ProgressStatus",
    "StageStatus",
    "SubmissionType",
]
