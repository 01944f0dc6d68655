"""
Endpoints de autenticación.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db
from app.models.user import User
from app.schemas.auth import RegisterRequest, LoginRequest, PasswordChangeRequest, TokenResponse
from app.schemas.common import ApiResponse
from app.schemas.user import UserResponse, UserUpdate
from app.services import auth_service

router = APIRouter()


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=status.HTTP_201_CREATED)
def register(
    user_in: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Registrar nuevo usuario.

    Requiere:
    - Email válido y único
    - Username único (letras, números y guion bajo)
    - Contraseña de al menos 8 caracteres

    Retorna el token de acceso y el usuario creado (0 XP, nivel 1).
    """
    token = auth_service.register_user(db, user_in)
    return ApiResponse(data=token, message="Usuario registrado exitosamente")


@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Autenticar usuario y obtener token de acceso.
    """
    token = auth_service.login_user(db, login_data)
    return ApiResponse(data=token, message="Login exitoso")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
def refresh_token(
    current_user: User = Depends(get_current_user)
):
    """
    Renovar el access token.

    Requiere un token vigente; retorna uno nuevo con la vigencia completa.
    """
    token = auth_service.refresh_token(current_user)
    return ApiResponse(data=token, message="Token renovado")


@router.put("/profile", response_model=ApiResponse[UserResponse])
def update_profile(
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Actualizar el perfil del usuario actual.

    Campos actualizables:
    - first_name
    - last_name
    - avatar
    """
    user = auth_service.update_profile(db, current_user, user_update)
    return ApiResponse(data=UserResponse.model_validate(user), message="Perfil actualizado exitosamente")


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    password_change: PasswordChangeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Cambiar la contraseña del usuario actual.

    Requiere la contraseña actual; la nueva debe tener al menos 8 caracteres.
    """
    auth_service.change_password(db, current_user, password_change)
    return ApiResponse(message="Contraseña actualizada exitosamente")
