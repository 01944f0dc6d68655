"""
Base declarativa de SQLAlchemy y utilidades comunes de los modelos.
Todos los modelos heredan de esta clase base.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base


def utcnow() -> datetime:
    """
    Fecha y hora actual en UTC, sin tzinfo.

    Todas las columnas DateTime guardan UTC naive para que las
    comparaciones funcionen igual en PostgreSQL y SQLite.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_uuid() -> str:
    """Generar un identificador UUID4 como string."""
    return str(uuid.uuid4())


# Base declarativa de SQLAlchemy
Base = declarative_base()
