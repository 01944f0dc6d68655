"""
Schemas para autenticación.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional

from app.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Schema para solicitud de login."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class RegisterRequest(BaseModel):
    """Schema para registro de nuevo usuario."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    password: str = Field(..., min_length=8, max_length=100)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class TokenResponse(BaseModel):
    """Schema de respuesta de tokens JWT."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # segundos
    user: UserResponse


class PasswordChangeRequest(BaseModel):
    """Schema para cambio de contraseña."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
