"""
Schemas para usuarios.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    """Schema de respuesta de usuario."""

    id: str
    email: EmailStr
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None

    # Gamificación
    xp: int
    level: int
    rank: Optional[int] = None

    is_admin: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Schema para actualizar el perfil propio. Solo se aplican los campos enviados."""

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar: Optional[str] = Field(None, max_length=500)


class LevelInfo(BaseModel):
    """Banda de nivel actual y siguiente umbral del usuario."""

    number: int
    name: Optional[str] = None
    min_xp: Optional[int] = None
    max_xp: Optional[int] = None
    xp_to_next_level: Optional[int] = None


class UserProfileResponse(UserResponse):
    """Perfil del usuario autenticado con estadísticas de progreso."""

    level_info: LevelInfo
    active_challenges: int = 0
    completed_challenges: int = 0
