"""
Schemas para retos/challenges y sus etapas.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone

from app.models.challenge import Difficulty
from app.schemas.common import PaginationMeta


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Las fechas se guardan en UTC sin tzinfo."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class StageCreate(BaseModel):
    """Schema para crear una etapa dentro de un reto."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    order: int = Field(..., ge=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius: int = Field(50, ge=1, le=1000)
    qr_code: Optional[str] = None


class ChallengeCreate(BaseModel):
    """Schema para crear challenge (admin)."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: str = Field(..., min_length=1)
    difficulty: Difficulty
    xp_reward: int = Field(..., gt=0)
    start_date: datetime
    end_date: datetime
    required_level: int = Field(1, ge=1)
    max_participants: Optional[int] = Field(None, gt=0)
    image_url: Optional[str] = None
    stages: List[StageCreate] = Field(..., min_length=1)

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)


class ChallengeUpdate(BaseModel):
    """
    Schema para actualizar challenge (admin).

    Si se envían etapas, reemplazan por completo a las existentes.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[str] = Field(None, min_length=1)
    difficulty: Optional[Difficulty] = None
    xp_reward: Optional[int] = Field(None, gt=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    required_level: Optional[int] = Field(None, ge=1)
    max_participants: Optional[int] = Field(None, gt=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    stages: Optional[List[StageCreate]] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)


class StageResponse(BaseModel):
    """Schema de respuesta de etapa."""

    id: str
    challenge_id: str
    title: str
    description: str
    order: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: int
    requires_qr: bool

    model_config = {"from_attributes": True}


class ChallengeResponse(BaseModel):
    """Schema de respuesta de challenge."""

    id: str
    title: str
    description: str
    category: str
    difficulty: Difficulty
    xp_reward: int
    start_date: datetime
    end_date: datetime
    required_level: int
    max_participants: Optional[int] = None
    image_url: Optional[str] = None
    is_active: bool
    participants_count: int = 0
    stages: List[StageResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class ChallengeListResponse(BaseModel):
    """Listado paginado de retos."""

    challenges: List[ChallengeResponse]
    pagination: PaginationMeta
