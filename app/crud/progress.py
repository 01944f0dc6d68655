"""
CRUD para el progreso de usuarios en retos y etapas.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc, update
from app.crud.base import CRUDBase
from app.models.challenge import Challenge, Stage
from app.models.progress import ChallengeProgress, StageProgress, ProgressStatus, StageStatus


class CRUDChallengeProgress(CRUDBase[ChallengeProgress]):
    """CRUD específico para inscripciones y progreso de etapas."""

    def get_by_user_and_challenge(
        self, db: Session, *, user_id: str, challenge_id: str, for_update: bool = False
    ) -> Optional[ChallengeProgress]:
        """
        Obtener la inscripción de un usuario en un reto.

        Args:
            db: Sesión de base de datos
            user_id: ID del usuario
            challenge_id: ID del reto
            for_update: Bloquear la fila hasta el fin de la transacción
                (SELECT ... FOR UPDATE; sin efecto en SQLite)

        Returns:
            Inscripción o None
        """
        query = db.query(ChallengeProgress).filter(
            ChallengeProgress.user_id == user_id,
            ChallengeProgress.challenge_id == challenge_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_user_challenges(
        self, db: Session, *, user_id: str, status: Optional[ProgressStatus] = None
    ) -> List[ChallengeProgress]:
        """
        Obtener todas las inscripciones de un usuario, más recientes primero,
        con el reto, sus etapas y el progreso de cada etapa.
        """
        query = (
            db.query(ChallengeProgress)
            .options(
                selectinload(ChallengeProgress.challenge).selectinload(Challenge.stages),
                selectinload(ChallengeProgress.stages).selectinload(StageProgress.stage),
            )
            .filter(ChallengeProgress.user_id == user_id)
        )
        if status is not None:
            query = query.filter(ChallengeProgress.status == status)

        return query.order_by(desc(ChallengeProgress.started_at), ChallengeProgress.id).all()

    def count_by_user_and_status(self, db: Session, *, user_id: str, status: ProgressStatus) -> int:
        return (
            db.query(ChallengeProgress)
            .filter(ChallengeProgress.user_id == user_id, ChallengeProgress.status == status)
            .count()
        )

    def get_stage_progress(
        self, db: Session, *, challenge_progress_id: str, stage_id: str
    ) -> Optional[StageProgress]:
        """Obtener el registro de una etapa dentro de una inscripción."""
        return (
            db.query(StageProgress)
            .filter(
                StageProgress.challenge_progress_id == challenge_progress_id,
                StageProgress.stage_id == stage_id
            )
            .first()
        )

    def count_completed_stages(
        self, db: Session, *, challenge_progress_id: str, challenge_id: str
    ) -> int:
        """
        Cantidad de etapas COMPLETED de la inscripción entre las etapas
        actuales del reto. Los registros de etapas reemplazadas no cuentan.
        """
        return (
            db.query(StageProgress)
            .join(Stage, Stage.id == StageProgress.stage_id)
            .filter(
                StageProgress.challenge_progress_id == challenge_progress_id,
                StageProgress.status == StageStatus.COMPLETED,
                Stage.challenge_id == challenge_id
            )
            .count()
        )

    def mark_completed_if_active(
        self, db: Session, *, challenge_progress_id: str, completed_at: datetime
    ) -> bool:
        """
        Pasar la inscripción de ACTIVE a COMPLETED (compare-and-swap).

        No confirma la transacción. Retorna True solo para la transacción
        que efectivamente hizo la transición.
        """
        result = db.execute(
            update(ChallengeProgress)
            .where(
                ChallengeProgress.id == challenge_progress_id,
                ChallengeProgress.status == ProgressStatus.ACTIVE
            )
            .values(status=ProgressStatus.COMPLETED, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


# Instancia global del CRUD
challenge_progress = CRUDChallengeProgress(ChallengeProgress)
