"""
Seguridad: hash de contraseñas con bcrypt y access tokens JWT.

Los tokens llevan el ID del usuario en "sub" y type="access".
"""
from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.config import settings
from app.db.base import utcnow

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Firmar un access token.

    Args:
        data: Claims del token; debe incluir "sub" con el ID del usuario
        expires_delta: Vigencia; por defecto ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Token JWT firmado con SECRET_KEY
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": utcnow() + lifetime, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_token_subject(token: str) -> str:
    """
    Validar un access token y obtener el ID del usuario.

    Raises:
        JWTError: Firma inválida, token expirado, tipo distinto de access o sin "sub"
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

    subject = payload.get("sub")
    if not subject or payload.get("type") != ACCESS_TOKEN_TYPE:
        raise JWTError("El token no es un access token válido")

    return subject
