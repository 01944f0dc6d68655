"""
Fixtures compartidas de la suite de tests de ChallengeQuest.

Cada test usa una base SQLite en memoria nueva; la app de FastAPI se
prueba con TestClient sobreescribiendo la dependencia get_db.
"""
import os
from datetime import timedelta

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_challengequest.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.deps import get_db
from app.core.security import create_access_token
from app.crud.user import user as crud_user
from app.db.base import Base, utcnow
from app.db.session import enable_sqlite_foreign_keys
from app.main import app
from app.models.challenge import Challenge, Difficulty, Stage
from app.services.broadcast_service import Broadcaster, get_broadcaster
from app.services.level_service import seed_default_levels

TEST_PASSWORD = "password123"


@pytest.fixture
def engine():
    """Engine SQLite en memoria, con claves foráneas, compartido por todas las conexiones del test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def client(db, broadcaster):
    """TestClient con la sesión de test y un broadcaster aislado."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def levels(db):
    """Bandas de nivel por defecto (500 XP -> nivel 2)."""
    seed_default_levels(db)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(xp: int = 0, level: int = 1, is_admin: bool = False, is_active: bool = True, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        user = crud_user.create_with_password(
            db,
            email=kwargs.get("email", f"user{n}@example.com"),
            username=kwargs.get("username", f"user{n}"),
            password=TEST_PASSWORD,
            first_name=kwargs.get("first_name"),
            last_name=kwargs.get("last_name"),
            is_admin=is_admin,
        )
        user.xp = xp
        user.level = level
        user.is_active = is_active
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def password():
    return TEST_PASSWORD


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(is_admin=True, username="admin", email="admin@example.com")


def _headers_for(user) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Cabeceras Bearer para cualquier usuario."""
    return _headers_for


@pytest.fixture
def auth_headers(user):
    return _headers_for(user)


@pytest.fixture
def admin_headers(admin):
    return _headers_for(admin)


@pytest.fixture
def make_challenge(db):
    """
    Crear un reto en curso. Por defecto dos etapas sin QR.

    stages: lista de dicts con los campos de cada etapa (qr_code, latitude, ...)
    """
    def _make_challenge(
        stages=None,
        xp_reward: int = 500,
        required_level: int = 1,
        max_participants=None,
        is_active: bool = True,
        start_date=None,
        end_date=None,
        category: str = "Aventura",
    ):
        now = utcnow()
        challenge = Challenge(
            title="Ruta del centro",
            description="Recorre los puntos del centro histórico",
            category=category,
            difficulty=Difficulty.EASY,
            xp_reward=xp_reward,
            start_date=start_date or now - timedelta(days=1),
            end_date=end_date or now + timedelta(days=7),
            required_level=required_level,
            max_participants=max_participants,
            is_active=is_active,
        )
        stage_specs = stages if stages is not None else [{}, {}]
        challenge.stages = [
            Stage(
                title=f"Etapa {idx}",
                description=f"Descripción de la etapa {idx}",
                order=idx,
                **fields
            )
            for idx, fields in enumerate(stage_specs, start=1)
        ]
        db.add(challenge)
        db.commit()
        db.refresh(challenge)
        return challenge

    return _make_challenge


@pytest.fixture
def challenge(make_challenge):
    return make_challenge()
