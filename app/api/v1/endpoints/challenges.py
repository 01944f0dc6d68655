"""
Endpoints de retos: catálogo, administración, inscripción y envío de etapas.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.deps import (
    get_db,
    get_current_admin_user,
    get_current_user,
    get_optional_user,
    get_progression_engine,
)
from app.models.progress import ProgressStatus
from app.models.user import User
from app.schemas.challenge import (
    ChallengeCreate,
    ChallengeListResponse,
    ChallengeResponse,
    ChallengeUpdate,
)
from app.schemas.common import ApiResponse, PaginationMeta
from app.schemas.progress import (
    ChallengeDetailResponse,
    ChallengeProgressResponse,
    JoinChallengeRequest,
    StageProgressResponse,
    StageSubmission,
)
from app.services import challenge_service
from app.services.progression_service import ChallengeProgressionEngine

router = APIRouter()


# ================================================================
# PARTICIPACIÓN
# ================================================================

@router.post("/join", response_model=ApiResponse[ChallengeProgressResponse], status_code=status.HTTP_201_CREATED)
def join_challenge(
    join_in: JoinChallengeRequest,
    current_user: User = Depends(get_current_user),
    engine: ChallengeProgressionEngine = Depends(get_progression_engine)
):
    """
    Inscribirse en un reto.

    El reto debe estar activo y en curso, el usuario debe tener el nivel
    requerido, no estar inscrito y el reto no debe estar completo.
    """
    progress = engine.join_challenge(current_user.id, join_in.challenge_id)
    return ApiResponse(
        data=ChallengeProgressResponse.model_validate(progress),
        message="Inscripción exitosa"
    )


@router.post("/submit-stage", response_model=ApiResponse[StageProgressResponse])
def submit_stage(
    submission: StageSubmission,
    current_user: User = Depends(get_current_user),
    engine: ChallengeProgressionEngine = Depends(get_progression_engine)
):
    """
    Enviar la prueba de completado de una etapa.

    Las etapas con código QR solo aceptan envíos QR_CODE con contenido.
    Al completar la última etapa se otorga el XP del reto.
    """
    stage_progress = engine.submit_stage(current_user.id, submission)
    return ApiResponse(
        data=StageProgressResponse.model_validate(stage_progress),
        message="Etapa completada"
    )


@router.get("/user/my-challenges", response_model=ApiResponse[List[ChallengeProgressResponse]])
def get_my_challenges(
    status_filter: Optional[ProgressStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    engine: ChallengeProgressionEngine = Depends(get_progression_engine)
):
    """
    Obtener mis inscripciones, más recientes primero.
    Filtro opcional por estado: ACTIVE, COMPLETED, ABANDONED.
    """
    progress_list = engine.get_user_challenges(current_user.id, status=status_filter)
    return ApiResponse(
        data=[ChallengeProgressResponse.model_validate(p) for p in progress_list]
    )


# ================================================================
# CATÁLOGO
# ================================================================

@router.get("", response_model=ApiResponse[ChallengeListResponse])
def get_challenges(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(active|upcoming|completed|all)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """
    Listar retos, más recientes primero.

    Filtros:
    - category: nombre de categoría
    - difficulty: EASY, MEDIUM, HARD
    - status: active (en curso), upcoming (por comenzar), completed (finalizados)
    """
    challenges, total = challenge_service.get_challenges(
        db,
        category=category,
        difficulty=difficulty,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(
        data=ChallengeListResponse(
            challenges=[ChallengeResponse.model_validate(c) for c in challenges],
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(challenges) < total,
            ),
        )
    )


@router.get("/{challenge_id}", response_model=ApiResponse[ChallengeDetailResponse])
def get_challenge(
    challenge_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Obtener detalle de un reto con sus etapas.
    Si el usuario está autenticado incluye su progreso.
    """
    challenge = challenge_service.get_challenge(db, challenge_id)
    detail = ChallengeDetailResponse.model_validate(challenge)

    if current_user is not None:
        progress = challenge_service.get_user_progress(db, challenge_id, current_user.id)
        if progress is not None:
            detail.user_progress = ChallengeProgressResponse.model_validate(progress)

    return ApiResponse(data=detail)


# ================================================================
# ADMINISTRACIÓN
# ================================================================

@router.post("", response_model=ApiResponse[ChallengeResponse], status_code=status.HTTP_201_CREATED)
def create_challenge(
    challenge_in: ChallengeCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Crear un reto con sus etapas.
    Solo administradores.
    """
    challenge = challenge_service.create_challenge(db, challenge_in)
    return ApiResponse(data=ChallengeResponse.model_validate(challenge), message="Reto creado")


@router.put("/{challenge_id}", response_model=ApiResponse[ChallengeResponse])
def update_challenge(
    challenge_id: str,
    challenge_in: ChallengeUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Actualizar un reto. Si se envían etapas, reemplazan a las existentes.
    Solo administradores.
    """
    challenge = challenge_service.update_challenge(db, challenge_id, challenge_in)
    return ApiResponse(data=ChallengeResponse.model_validate(challenge), message="Reto actualizado")


@router.delete("/{challenge_id}", response_model=ApiResponse[None])
def delete_challenge(
    challenge_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
):
    """
    Eliminar un reto con sus etapas e inscripciones.
    Solo administradores.
    """
    challenge_service.delete_challenge(db, challenge_id)
    return ApiResponse(message="Reto eliminado")
