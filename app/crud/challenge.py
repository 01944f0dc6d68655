"""
CRUD para retos/challenges y etapas.
"""
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc
from app.crud.base import CRUDBase
from app.db.base import utcnow
from app.models.challenge import Challenge, Stage, Difficulty
from app.models.progress import ChallengeProgress
from app.schemas.challenge import ChallengeCreate, ChallengeUpdate, StageCreate


class CRUDChallenge(CRUDBase[Challenge]):
    """CRUD específico para retos."""

    def get_with_stages(self, db: Session, *, challenge_id: str) -> Optional[Challenge]:
        """Obtener reto con sus etapas ordenadas."""
        return (
            db.query(Challenge)
            .options(selectinload(Challenge.stages))
            .filter(Challenge.id == challenge_id)
            .first()
        )

    def get_filtered(
        self,
        db: Session,
        *,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Challenge], int]:
        """
        Obtener retos filtrados y paginados.

        Args:
            db: Sesión de base de datos
            category: Nombre de categoría ('all' o None para no filtrar)
            difficulty: EASY | MEDIUM | HARD (insensible a mayúsculas)
            status: active | upcoming | completed | all
            limit: Límite de registros
            offset: Registros a saltar

        Returns:
            Tupla (retos, total)
        """
        now = now or utcnow()
        query = db.query(Challenge)

        if category and category != "all":
            query = query.filter(Challenge.category == category)

        if difficulty and difficulty != "all":
            normalized = difficulty.upper()
            if normalized in Difficulty.__members__:
                query = query.filter(Challenge.difficulty == Difficulty[normalized])

        if status == "active":
            query = query.filter(
                Challenge.is_active == True,
                Challenge.start_date <= now,
                Challenge.end_date >= now,
            )
        elif status == "upcoming":
            query = query.filter(Challenge.is_active == True, Challenge.start_date > now)
        elif status == "completed":
            query = query.filter(Challenge.end_date < now)

        total = query.count()
        challenges = (
            query
            .options(selectinload(Challenge.stages))
            .order_by(desc(Challenge.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return challenges, total

    def create_with_stages(self, db: Session, *, obj_in: ChallengeCreate) -> Challenge:
        """
        Crear reto junto con sus etapas en una sola transacción.
        """
        data = obj_in.model_dump(exclude={"stages"})
        challenge = Challenge(**data)
        challenge.stages = [self._build_stage(stage) for stage in obj_in.stages]
        db.add(challenge)
        db.commit()
        db.refresh(challenge)
        return challenge

    def update_with_stages(
        self, db: Session, *, db_obj: Challenge, obj_in: ChallengeUpdate
    ) -> Challenge:
        """
        Actualizar reto. Si se envían etapas, reemplazan a las anteriores.
        """
        update_data = obj_in.model_dump(exclude_unset=True, exclude={"stages"})
        for field, value in update_data.items():
            setattr(db_obj, field, value)

        if obj_in.stages:
            db_obj.stages = [self._build_stage(stage) for stage in obj_in.stages]

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def count_participants(self, db: Session, *, challenge_id: str) -> int:
        """Cantidad de inscripciones en el reto."""
        return (
            db.query(ChallengeProgress)
            .filter(ChallengeProgress.challenge_id == challenge_id)
            .count()
        )

    def count_by_category(self, db: Session, *, category: str) -> int:
        return db.query(Challenge).filter(Challenge.category == category).count()

    def count_by_required_level(self, db: Session, *, level_number: int) -> int:
        return db.query(Challenge).filter(Challenge.required_level == level_number).count()

    def count_active(self, db: Session) -> int:
        return db.query(Challenge).filter(Challenge.is_active == True).count()

    # ------------------------------------------------------------------
    # Etapas
    # ------------------------------------------------------------------

    def get_stage(self, db: Session, *, stage_id: str) -> Optional[Stage]:
        """Obtener etapa con su reto padre."""
        return (
            db.query(Stage)
            .options(selectinload(Stage.challenge))
            .filter(Stage.id == stage_id)
            .first()
        )

    def count_stages(self, db: Session, *, challenge_id: str) -> int:
        """Cantidad total de etapas del reto."""
        return db.query(Stage).filter(Stage.challenge_id == challenge_id).count()

    @staticmethod
    def _build_stage(stage_in: StageCreate) -> Stage:
        return Stage(**stage_in.model_dump())


# Instancia global del CRUD
challenge = CRUDChallenge(Challenge)
