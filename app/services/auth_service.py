"""
Servicio de autenticación.
Maneja registro, login, renovación de token y datos de la cuenta.
"""
import logging
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    BusinessRuleException,
    ErrorCode,
    UnauthorizedException,
)
from app.core.security import create_access_token, verify_password
from app.crud.user import user as crud_user
from app.models.user import User
from app.schemas.auth import LoginRequest, PasswordChangeRequest, RegisterRequest, TokenResponse
from app.schemas.user import UserResponse, UserUpdate

logger = logging.getLogger(__name__)


def _token_for(user: User) -> TokenResponse:
    access_token = create_access_token(data={"sub": str(user.id)})
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


def register_user(db: Session, user_in: RegisterRequest) -> TokenResponse:
    """
    Registrar nuevo usuario y devolver su token de acceso.

    Args:
        db: Sesión de base de datos
        user_in: Datos de registro

    Returns:
        Token de acceso y datos del usuario creado

    Raises:
        BusinessRuleException: Si el email o el username ya están en uso
    """
    if crud_user.get_by_email(db, email=user_in.email):
        raise BusinessRuleException("El email ya está registrado", ErrorCode.EMAIL_ALREADY_REGISTERED)

    if crud_user.get_by_username(db, username=user_in.username):
        raise BusinessRuleException("El nombre de usuario ya está en uso", ErrorCode.USERNAME_TAKEN)

    user = crud_user.create_with_password(
        db,
        email=user_in.email,
        username=user_in.username,
        password=user_in.password,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
    )

    logger.info(f"Usuario registrado: {user.username}")
    return _token_for(user)


def login_user(db: Session, login_data: LoginRequest) -> TokenResponse:
    """
    Autenticar usuario y generar token.

    Raises:
        UnauthorizedException: Si las credenciales son inválidas o la cuenta está desactivada
    """
    user = crud_user.authenticate(db, email=login_data.email, password=login_data.password)

    if not user:
        raise UnauthorizedException("Email o contraseña incorrectos", ErrorCode.INVALID_CREDENTIALS)

    if not user.is_active:
        raise UnauthorizedException("Cuenta desactivada", ErrorCode.ACCOUNT_DISABLED)

    return _token_for(user)


def refresh_token(user: User) -> TokenResponse:
    """
    Emitir un nuevo access token para el usuario autenticado.

    El token vigente debe ser válido; no hay refresh tokens persistidos.
    """
    return _token_for(user)


def update_profile(db: Session, user: User, user_in: UserUpdate) -> User:
    """
    Actualizar nombre, apellido y avatar del usuario.

    Solo se modifican los campos enviados en la solicitud.
    """
    updated = crud_user.update(db, db_obj=user, obj_in=user_in)
    logger.info(f"Perfil actualizado: {updated.username}")
    return updated


def change_password(db: Session, user: User, password_in: PasswordChangeRequest) -> None:
    """
    Cambiar la contraseña del usuario.

    Raises:
        BusinessRuleException: Si la contraseña actual no coincide
    """
    if not verify_password(password_in.current_password, user.password_hash):
        raise BusinessRuleException("La contraseña actual es incorrecta", ErrorCode.INVALID_CREDENTIALS)

    crud_user.set_password(db, db_obj=user, password=password_in.new_password)
    logger.info(f"Contraseña cambiada: {user.username}")
