"""
Motor de progresión de retos.

Maneja el ciclo de vida de la participación de un usuario en un reto:
inscripción, envío de etapas, detección de reto completado y otorgamiento
de XP con recálculo de nivel.
"""
import logging
from datetime import datetime
from math import asin, cos, radians, sin, sqrt
from typing import Callable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    BusinessRuleException,
    ChallengeQuestException,
    ErrorCode,
    NotFoundException,
)
from app.crud.challenge import challenge as crud_challenge
from app.crud.progress import challenge_progress as crud_progress
from app.crud.user import user as crud_user
from app.db.base import utcnow
from app.models.challenge import Challenge, Stage
from app.models.progress import (
    ChallengeProgress,
    ProgressStatus,
    StageProgress,
    StageStatus,
    SubmissionType,
)
from app.models.user import User
from app.schemas.progress import StageSubmission
from app.services import level_service
from app.services.broadcast_service import (
    Broadcaster,
    Events,
    challenge_room,
    leaderboard_room,
    user_room,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371e3


def distance_in_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distancia haversine entre dos puntos.

    Returns:
        Distancia en metros
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))

    return EARTH_RADIUS_METERS * c


class ChallengeProgressionEngine:
    """
    Reglas de avance de un usuario dentro de un reto multi-etapa.

    La sesión de base de datos se inyecta en el constructor. Cada operación
    de escritura se ejecuta como una única transacción: si algo falla se hace
    rollback y no queda estado parcial.
    """

    def __init__(
        self,
        db: Session,
        *,
        broadcaster: Optional[Broadcaster] = None,
        require_location_proximity: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            db: Sesión de base de datos
            broadcaster: Difusión de eventos en tiempo real (opcional)
            require_location_proximity: Exigir que las coordenadas enviadas
                estén dentro del radio de la etapa
            clock: Fuente de la hora actual (UTC naive)
        """
        self.db = db
        self.broadcaster = broadcaster
        self.require_location_proximity = require_location_proximity
        self.clock = clock

    # ------------------------------------------------------------------
    # Inscripción
    # ------------------------------------------------------------------

    def join_challenge(self, user_id: str, challenge_id: str) -> ChallengeProgress:
        """
        Inscribir a un usuario en un reto.

        Validaciones, en orden:
        el reto existe, está activo, la fecha actual está dentro de
        [start_date, end_date], el nivel del usuario alcanza required_level,
        el usuario no está inscrito y hay cupo.

        El control de cupo es best-effort: bajo inscripciones concurrentes
        puede admitir algún participante de más.

        Returns:
            Inscripción creada (status ACTIVE) con el reto y sus etapas

        Raises:
            NotFoundException: Reto o usuario inexistente
            BusinessRuleException: Alguna regla de inscripción no se cumple
        """
        try:
            progress = self._join(user_id, challenge_id)
        except ChallengeQuestException as exc:
            self.db.rollback()
            logger.info(f"Inscripción rechazada ({exc.code.value}): usuario {user_id}, reto {challenge_id}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Usuario {user_id} inscrito en reto {challenge_id}")
        self._publish(
            challenge_room(challenge_id),
            Events.CHALLENGE_JOINED,
            {"user_id": user_id, "challenge_id": challenge_id},
        )
        return progress

    def _join(self, user_id: str, challenge_id: str) -> ChallengeProgress:
        challenge = crud_challenge.get_with_stages(self.db, challenge_id=challenge_id)
        if not challenge:
            raise NotFoundException("Reto no encontrado", ErrorCode.CHALLENGE_NOT_FOUND)

        if not challenge.is_active:
            raise BusinessRuleException("El reto no está activo", ErrorCode.CHALLENGE_INACTIVE)

        now = self.clock()
        if now < challenge.start_date:
            raise BusinessRuleException("El reto aún no ha comenzado", ErrorCode.CHALLENGE_NOT_STARTED)
        if now > challenge.end_date:
            raise BusinessRuleException("El reto ha finalizado", ErrorCode.CHALLENGE_ENDED)

        user = crud_user.get(self.db, id=user_id)
        if not user:
            raise NotFoundException("Usuario no encontrado", ErrorCode.USER_NOT_FOUND)

        if user.level < challenge.required_level:
            raise BusinessRuleException(
                f"Se requiere nivel {challenge.required_level} para participar en este reto",
                ErrorCode.LEVEL_TOO_LOW
            )

        existing = crud_progress.get_by_user_and_challenge(
            self.db, user_id=user_id, challenge_id=challenge_id
        )
        if existing:
            raise BusinessRuleException("Ya estás inscrito en este reto", ErrorCode.ALREADY_JOINED)

        if challenge.max_participants:
            participants = crud_challenge.count_participants(self.db, challenge_id=challenge_id)
            if participants >= challenge.max_participants:
                raise BusinessRuleException("El reto está completo", ErrorCode.CHALLENGE_FULL)

        progress = ChallengeProgress(
            user_id=user_id,
            challenge_id=challenge_id,
            status=ProgressStatus.ACTIVE,
            started_at=now,
        )
        self.db.add(progress)

        try:
            self.db.commit()
        except IntegrityError:
            # Inscripción concurrente del mismo usuario
            self.db.rollback()
            raise BusinessRuleException("Ya estás inscrito en este reto", ErrorCode.ALREADY_JOINED)

        self.db.refresh(progress)
        return progress

    # ------------------------------------------------------------------
    # Envío de etapas
    # ------------------------------------------------------------------

    def submit_stage(self, user_id: str, submission: StageSubmission) -> StageProgress:
        """
        Registrar la prueba de completado de una etapa.

        Si con esta etapa quedan completadas todas las del reto, la inscripción
        pasa a COMPLETED, se suma xp_reward al usuario y se recalcula su nivel.
        Todo ocurre en la misma transacción y la transición ACTIVE -> COMPLETED
        es un compare-and-swap, por lo que la recompensa se otorga una sola vez.

        Returns:
            Registro de la etapa (COMPLETED)

        Raises:
            NotFoundException: Etapa inexistente
            BusinessRuleException: No inscrito, inscripción no activa, etapa ya
                completada, tipo de prueba incorrecto o fuera de rango
        """
        try:
            stage_progress, stage, completed = self._submit(user_id, submission)
        except ChallengeQuestException as exc:
            self.db.rollback()
            logger.info(f"Envío rechazado ({exc.code.value}): usuario {user_id}, etapa {submission.stage_id}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self._publish(
            user_room(user_id),
            Events.STAGE_COMPLETED,
            {"stage_id": stage.id, "challenge_id": stage.challenge_id},
        )
        if completed:
            self._publish(
                user_room(user_id),
                Events.CHALLENGE_COMPLETED,
                {"challenge_id": stage.challenge_id, "xp_reward": stage.challenge.xp_reward},
            )
            self._publish(
                leaderboard_room("ALL_TIME"),
                Events.LEADERBOARD_UPDATE,
                {"user_id": user_id},
            )
        return stage_progress

    def _submit(self, user_id: str, submission: StageSubmission):
        stage = crud_challenge.get_stage(self.db, stage_id=submission.stage_id)
        if not stage:
            raise NotFoundException("Etapa no encontrada", ErrorCode.STAGE_NOT_FOUND)

        progress = crud_progress.get_by_user_and_challenge(
            self.db, user_id=user_id, challenge_id=stage.challenge_id, for_update=True
        )
        if not progress:
            raise BusinessRuleException("No estás inscrito en este reto", ErrorCode.NOT_JOINED)

        if progress.status != ProgressStatus.ACTIVE:
            raise BusinessRuleException("La inscripción en el reto no está activa", ErrorCode.PROGRESS_NOT_ACTIVE)

        stage_progress = crud_progress.get_stage_progress(
            self.db, challenge_progress_id=progress.id, stage_id=stage.id
        )
        if stage_progress and stage_progress.status == StageStatus.COMPLETED:
            raise BusinessRuleException("La etapa ya fue completada", ErrorCode.STAGE_ALREADY_COMPLETED)

        self._validate_proof(stage, submission)

        if self.require_location_proximity:
            self._validate_location(stage, submission)

        now = self.clock()
        if stage_progress is None:
            stage_progress = StageProgress(challenge_progress_id=progress.id, stage_id=stage.id)
            self.db.add(stage_progress)

        stage_progress.status = StageStatus.COMPLETED
        stage_progress.completed_at = now
        stage_progress.submission_type = submission.submission_type
        stage_progress.content = submission.content
        stage_progress.latitude = submission.latitude
        stage_progress.longitude = submission.longitude

        try:
            self.db.flush()
        except IntegrityError:
            # Otro envío de la misma etapa ganó la carrera
            raise BusinessRuleException("La etapa ya fue completada", ErrorCode.STAGE_ALREADY_COMPLETED)

        completed = self._complete_if_finished(progress, stage.challenge, now)

        self.db.commit()
        self.db.refresh(stage_progress)

        logger.info(
            f"Usuario {user_id} completó etapa {stage.order} del reto {stage.challenge_id}"
        )
        return stage_progress, stage, completed

    def _validate_proof(self, stage: Stage, submission: StageSubmission) -> None:
        """Una etapa con QR solo acepta QR_CODE con contenido; una sin QR no acepta QR_CODE."""
        is_qr_submission = submission.submission_type == SubmissionType.QR_CODE

        if stage.requires_qr:
            if not is_qr_submission:
                raise BusinessRuleException(
                    "Esta etapa requiere escanear un código QR", ErrorCode.QR_CODE_REQUIRED
                )
            if not submission.content or not submission.content.strip():
                raise BusinessRuleException(
                    "Debes enviar el contenido del código QR", ErrorCode.QR_CONTENT_REQUIRED
                )
        elif is_qr_submission:
            raise BusinessRuleException(
                "Esta etapa no requiere código QR", ErrorCode.QR_CODE_NOT_EXPECTED
            )

    def _validate_location(self, stage: Stage, submission: StageSubmission) -> None:
        if stage.latitude is None or stage.longitude is None:
            return

        if submission.latitude is None or submission.longitude is None:
            raise BusinessRuleException(
                "Debes enviar tu ubicación para completar esta etapa", ErrorCode.LOCATION_OUT_OF_RANGE
            )

        distance = distance_in_meters(
            submission.latitude, submission.longitude, stage.latitude, stage.longitude
        )
        if distance > stage.radius:
            raise BusinessRuleException(
                f"Debes estar a menos de {stage.radius}m de la ubicación de la etapa",
                ErrorCode.LOCATION_OUT_OF_RANGE
            )

    # ------------------------------------------------------------------
    # Completado y recompensa
    # ------------------------------------------------------------------

    def _complete_if_finished(
        self, progress: ChallengeProgress, challenge: Challenge, now: datetime
    ) -> bool:
        """
        Completar la inscripción y otorgar la recompensa si todas las etapas
        están completadas. No confirma la transacción.

        Returns:
            True si esta llamada completó el reto y otorgó la recompensa
        """
        completed_stages = crud_progress.count_completed_stages(
            self.db, challenge_progress_id=progress.id, challenge_id=challenge.id
        )
        total_stages = crud_challenge.count_stages(self.db, challenge_id=challenge.id)

        if completed_stages != total_stages:
            return False

        if not crud_progress.mark_completed_if_active(
            self.db, challenge_progress_id=progress.id, completed_at=now
        ):
            return False

        self._award_xp(progress.user_id, challenge.xp_reward)

        logger.info(
            f"Usuario {progress.user_id} completó el reto {challenge.id} (+{challenge.xp_reward} XP)"
        )
        return True

    def _award_xp(self, user_id: str, xp_reward: int) -> None:
        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(xp=User.xp + xp_reward)
            .execution_options(synchronize_session=False)
        )

        new_xp = self.db.query(User.xp).filter(User.id == user_id).scalar()
        new_level = level_service.calculate_level(self.db, new_xp)

        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(level=new_level)
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get_user_challenges(
        self, user_id: str, status: Optional[ProgressStatus] = None
    ) -> List[ChallengeProgress]:
        """
        Obtener las inscripciones del usuario (más recientes primero),
        opcionalmente filtradas por estado. No modifica nada.
        """
        return crud_progress.get_user_challenges(self.db, user_id=user_id, status=status)

    def _publish(self, room: str, event: str, payload: dict) -> None:
        if self.broadcaster is not None:
            self.broadcaster.publish(room, event, payload)
