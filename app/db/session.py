"""
Engine y fábrica de sesiones SQLAlchemy (Singleton).

SQLite se usa en desarrollo y tests; PostgreSQL en producción.
"""
from sqlalchemy import create_engine, event, Engine
from sqlalchemy.orm import sessionmaker
from typing import Any, Dict, Optional
from app.config import get_settings


def _engine_options(database_url: str, debug: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {"pool_pre_ping": True, "echo": debug}
    if database_url.startswith("sqlite"):
        # El engine se comparte entre los hilos del servidor
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_recycle=3600, pool_size=5, max_overflow=10)
    return options


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """
    Activar las claves foráneas (y ON DELETE CASCADE) en cada conexión SQLite.
    """
    @event.listens_for(engine, "connect")
    def _set_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseConnection:
    """
    Singleton que crea el engine y el sessionmaker una única vez por proceso.
    """
    _instance: Optional['DatabaseConnection'] = None
    _engine: Optional[Engine] = None
    _session_factory: Optional[sessionmaker] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DatabaseConnection, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if self._engine is not None:
            return

        settings = get_settings()
        self._engine = create_engine(
            settings.DATABASE_URL,
            **_engine_options(settings.DATABASE_URL, settings.DEBUG)
        )
        if settings.DATABASE_URL.startswith("sqlite"):
            enable_sqlite_foreign_keys(self._engine)
        # autoflush=False: el motor de progresión controla cuándo se escribe
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        return self._session_factory


_db = DatabaseConnection()

engine = _db.engine
SessionLocal = _db.session_factory
