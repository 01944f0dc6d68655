"""
Servicio de inicialización de la aplicación.
Crea tablas y datos iniciales necesarios al arrancar.
"""
import logging
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.user import User
from app.services.level_service import seed_default_levels

logger = logging.getLogger(__name__)


def init_admin_user(db: Session) -> bool:
    """
    Crear usuario administrador inicial si no existe.

    Usa las variables de entorno ADMIN_EMAIL, ADMIN_USERNAME y ADMIN_PASSWORD.

    Returns:
        True si se creó el usuario, False si ya existía o no está configurado
    """
    settings = get_settings()

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_EMAIL o ADMIN_PASSWORD no configurados")
        return False

    existing_admin = db.query(User).filter(User.email == settings.ADMIN_EMAIL.lower()).first()
    if existing_admin:
        logger.info(f"Usuario administrador ya existe: {settings.ADMIN_EMAIL}")
        return False

    admin_user = User(
        email=settings.ADMIN_EMAIL.lower(),
        username=settings.ADMIN_USERNAME,
        password_hash=get_password_hash(settings.ADMIN_PASSWORD),
        first_name="Administrador",
        is_admin=True,
        is_active=True,
    )
    db.add(admin_user)
    db.commit()

    logger.info(f"Usuario administrador creado: {settings.ADMIN_EMAIL}")
    logger.warning("Cambia la contraseña del administrador después del primer login")
    return True


def run_initialization() -> None:
    """
    Ejecutar todas las tareas de inicialización.
    Llamar desde el evento startup de FastAPI.
    """
    settings = get_settings()
    logger.info("Ejecutando inicialización...")

    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()
    try:
        if settings.SEED_DEFAULT_LEVELS:
            seed_default_levels(db)
        init_admin_user(db)
    except Exception:
        db.rollback()
        logger.exception("Error durante la inicialización")
        raise
    finally:
        db.close()
