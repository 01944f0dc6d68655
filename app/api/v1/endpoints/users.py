"""
Endpoints de usuarios.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.crud.progress import challenge_progress as crud_progress
from app.models.progress import ProgressStatus
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.user import UserProfileResponse, UserResponse
from app.services import level_service

router = APIRouter()


@router.get("/me", response_model=ApiResponse[UserProfileResponse])
def get_my_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Obtener el perfil del usuario autenticado.

    Incluye la banda de nivel actual, el XP que falta para la siguiente
    y la cantidad de retos activos y completados.
    """
    profile = UserProfileResponse(
        **UserResponse.model_validate(current_user).model_dump(),
        level_info=level_service.get_level_info(db, current_user.xp),
        active_challenges=crud_progress.count_by_user_and_status(
            db, user_id=current_user.id, status=ProgressStatus.ACTIVE
        ),
        completed_challenges=crud_progress.count_by_user_and_status(
            db, user_id=current_user.id, status=ProgressStatus.COMPLETED
        ),
    )
    return ApiResponse(data=profile)
