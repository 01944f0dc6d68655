"""
Schemas para inscripción y envío de etapas.
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.progress import ProgressStatus, StageStatus, SubmissionType
from app.schemas.challenge import ChallengeResponse


class JoinChallengeRequest(BaseModel):
    """Schema para inscribirse en un reto."""

    challenge_id: str = Field(..., min_length=1)


class StageSubmission(BaseModel):
    """
    Prueba de completado de una etapa.

    Las coordenadas se guardan tal cual; solo se validan contra el radio
    de la etapa si REQUIRE_LOCATION_PROXIMITY está activo.
    """

    stage_id: str = Field(..., min_length=1)
    submission_type: SubmissionType
    content: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class StageProgressResponse(BaseModel):
    """Schema de respuesta de progreso de etapa."""

    id: str
    challenge_progress_id: str
    stage_id: str
    status: StageStatus
    submission_type: Optional[SubmissionType] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ChallengeProgressResponse(BaseModel):
    """Schema de respuesta de inscripción con reto y etapas."""

    id: str
    user_id: str
    challenge_id: str
    status: ProgressStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    challenge: ChallengeResponse
    stages: List[StageProgressResponse] = []

    model_config = {"from_attributes": True}


class ChallengeDetailResponse(ChallengeResponse):
    """Detalle de reto con el progreso del usuario autenticado (si existe)."""

    user_progress: Optional[ChallengeProgressResponse] = None
