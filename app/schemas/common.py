"""
Schemas comunes reutilizables.
"""
from pydantic import BaseModel
from typing import Generic, TypeVar, Optional


T = TypeVar('T')


class ApiResponse(BaseModel, Generic[T]):
    """
    Envoltorio uniforme de todas las respuestas de la API.

    Las respuestas exitosas llevan data/message; las de error
    llevan error (mensaje legible) y code (código estable).
    """

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None


class PaginationMeta(BaseModel):
    """Metadatos de paginación por offset."""

    total: int
    limit: int
    offset: int
    has_more: bool = False


def fail(error: str, code: Optional[str] = None) -> dict:
    """Construir el cuerpo de una respuesta de error."""
    return {"success": False, "error": error, "code": code}
