"""
Router principal de la API v1.
Incluye todos los endpoints de la aplicación.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    users,
    challenges,
    levels,
    categories,
    leaderboard,
    events,
)

api_router = APIRouter()

# ============================================================================
# AUTENTICACIÓN
# ============================================================================
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Autenticación"]
)

# ============================================================================
# USUARIOS
# ============================================================================
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Usuarios"]
)

# ============================================================================
# RETOS
# ============================================================================
api_router.include_router(
    challenges.router,
    prefix="/challenges",
    tags=["Retos"]
)

# ============================================================================
# GAMIFICACIÓN
# ============================================================================
api_router.include_router(
    levels.router,
    prefix="/levels",
    tags=["Gamificación"]
)

api_router.include_router(
    leaderboard.router,
    prefix="/leaderboard",
    tags=["Gamificación"]
)

# ============================================================================
# CATÁLOGOS
# ============================================================================
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["Catálogos"]
)

# ============================================================================
# TIEMPO REAL
# ============================================================================
api_router.include_router(
    events.router,
    prefix="/events",
    tags=["Tiempo real"]
)
