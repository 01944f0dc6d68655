"""
Schemas para niveles (bandas de XP).
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class LevelCreate(BaseModel):
    """Schema para crear nivel (admin)."""

    number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=50)
    min_xp: int = Field(..., ge=0)
    max_xp: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class LevelUpdate(BaseModel):
    """Schema para actualizar nivel (admin)."""

    number: Optional[int] = Field(None, ge=1)
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    min_xp: Optional[int] = Field(None, ge=0)
    max_xp: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class LevelResponse(BaseModel):
    """Schema de respuesta de nivel."""

    id: str
    number: int
    name: str
    min_xp: int
    max_xp: Optional[int] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RecalculateLevelsResponse(BaseModel):
    """Resultado del recálculo masivo de niveles."""

    processed: int
    updated: int
