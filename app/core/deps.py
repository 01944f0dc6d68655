"""
Dependencias comunes de FastAPI.
"""
from typing import Generator, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError

from app.config import get_settings
from app.db.session import SessionLocal
from app.core.security import get_token_subject
from app.core.exceptions import (
    ErrorCode,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from app.models.user import User
from app.services.broadcast_service import Broadcaster, get_broadcaster
from app.services.progression_service import ChallengeProgressionEngine

security = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    """
    Dependencia que proporciona una sesión de base de datos.

    Yields:
        Session: Sesión de SQLAlchemy
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _user_id_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None:
        raise UnauthorizedException("Token de acceso requerido")

    try:
        return get_token_subject(credentials.credentials)
    except JWTError:
        raise UnauthorizedException("No se pudieron validar las credenciales")


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Obtener el ID del usuario actual desde el JWT.

    Args:
        credentials: Credenciales HTTP Bearer

    Returns:
        ID del usuario

    Raises:
        UnauthorizedException: Si el token falta o es inválido
    """
    return _user_id_from_credentials(credentials)


async def get_current_user(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
) -> User:
    """
    Obtener el usuario actual completo desde la base de datos.

    Raises:
        NotFoundException: Si el usuario no existe
        UnauthorizedException: Si la cuenta está desactivada
    """
    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise NotFoundException("Usuario no encontrado", ErrorCode.USER_NOT_FOUND)

    if not user.is_active:
        raise UnauthorizedException("Cuenta desactivada", ErrorCode.ACCOUNT_DISABLED)

    return user


async def get_optional_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[User]:
    """
    Obtener el usuario actual si se envió un token válido.

    Útil para endpoints públicos que enriquecen la respuesta
    cuando el usuario está autenticado.
    """
    if credentials is None:
        return None

    try:
        user_id = _user_id_from_credentials(credentials)
    except UnauthorizedException:
        return None

    return db.query(User).filter(User.id == user_id, User.is_active == True).first()


async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Verificar que el usuario actual sea administrador.

    Raises:
        ForbiddenException: Si el usuario no es administrador
    """
    if not current_user.is_admin:
        raise ForbiddenException("No tiene permisos de administrador")

    return current_user


def get_progression_engine(
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> ChallengeProgressionEngine:
    """
    Construir el motor de progresión para la petición actual.

    La sesión y el broadcaster se inyectan; la verificación de
    proximidad GPS se toma de la configuración.
    """
    settings = get_settings()
    return ChallengeProgressionEngine(
        db,
        broadcaster=broadcaster,
        require_location_proximity=settings.REQUIRE_LOCATION_PROXIMITY,
    )
