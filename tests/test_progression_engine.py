"""
Tests del motor de progresión: inscripción, envío de etapas y recompensa.
"""
from datetime import timedelta

import pytest

from app.core.exceptions import BusinessRuleException, ErrorCode, NotFoundException
from app.crud.challenge import challenge as crud_challenge
from app.crud.progress import challenge_progress as crud_progress
from app.db.base import utcnow
from app.models.progress import ChallengeProgress, ProgressStatus, StageProgress, StageStatus, SubmissionType
from app.schemas.challenge import ChallengeUpdate, StageCreate
from app.schemas.progress import StageSubmission
from app.services.broadcast_service import Events, challenge_room, leaderboard_room, user_room
from app.services.progression_service import ChallengeProgressionEngine, distance_in_meters


@pytest.fixture
def engine_factory(db, broadcaster):
    def _factory(**kwargs):
        return ChallengeProgressionEngine(db, broadcaster=broadcaster, **kwargs)
    return _factory


@pytest.fixture
def progression(engine_factory):
    return engine_factory()


def text_submission(stage, content="Llegué al punto"):
    return StageSubmission(stage_id=stage.id, submission_type=SubmissionType.TEXT, content=content)


def qr_submission(stage, content="QR-123"):
    return StageSubmission(stage_id=stage.id, submission_type=SubmissionType.QR_CODE, content=content)


def progress_count(db, user_id, challenge_id):
    return (
        db.query(ChallengeProgress)
        .filter(ChallengeProgress.user_id == user_id, ChallengeProgress.challenge_id == challenge_id)
        .count()
    )


# ================================================================
# INSCRIPCIÓN
# ================================================================

class TestJoinChallenge:

    def test_join_creates_active_progress(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)

        assert progress.status == ProgressStatus.ACTIVE
        assert progress.started_at is not None
        assert progress.completed_at is None
        assert [s.order for s in progress.challenge.stages] == [1, 2]
        assert progress_count(db, user.id, challenge.id) == 1

    def test_join_does_not_award_xp(self, db, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)
        db.refresh(user)

        assert user.xp == 0
        assert user.level == 1

    def test_missing_challenge(self, progression, user):
        with pytest.raises(NotFoundException) as exc:
            progression.join_challenge(user.id, "does-not-exist")
        assert exc.value.code == ErrorCode.CHALLENGE_NOT_FOUND

    def test_inactive_challenge_blocks_join(self, db, progression, user, make_challenge):
        challenge = make_challenge(is_active=False)

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(user.id, challenge.id)

        assert exc.value.code == ErrorCode.CHALLENGE_INACTIVE
        assert progress_count(db, user.id, challenge.id) == 0

    def test_not_started_blocks_join(self, db, progression, user, make_challenge):
        now = utcnow()
        challenge = make_challenge(start_date=now + timedelta(days=1), end_date=now + timedelta(days=5))

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(user.id, challenge.id)

        assert exc.value.code == ErrorCode.CHALLENGE_NOT_STARTED
        assert progress_count(db, user.id, challenge.id) == 0

    def test_ended_blocks_join(self, db, engine_factory, user, challenge):
        later = challenge.end_date + timedelta(seconds=1)
        progression = engine_factory(clock=lambda: later)

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(user.id, challenge.id)

        assert exc.value.code == ErrorCode.CHALLENGE_ENDED
        assert progress_count(db, user.id, challenge.id) == 0

    def test_window_bounds_are_inclusive(self, engine_factory, make_user, challenge):
        first, second = make_user(), make_user()

        at_start = engine_factory(clock=lambda: challenge.start_date)
        at_end = engine_factory(clock=lambda: challenge.end_date)

        assert at_start.join_challenge(first.id, challenge.id).status == ProgressStatus.ACTIVE
        assert at_end.join_challenge(second.id, challenge.id).status == ProgressStatus.ACTIVE

    def test_level_too_low_blocks_join(self, db, progression, make_user, make_challenge):
        user = make_user(level=2)
        challenge = make_challenge(required_level=3)

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(user.id, challenge.id)

        assert exc.value.code == ErrorCode.LEVEL_TOO_LOW
        assert progress_count(db, user.id, challenge.id) == 0

    def test_required_level_reached_allows_join(self, progression, make_user, make_challenge):
        user = make_user(level=3)
        challenge = make_challenge(required_level=3)

        assert progression.join_challenge(user.id, challenge.id).status == ProgressStatus.ACTIVE

    def test_second_join_is_rejected(self, db, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(user.id, challenge.id)

        assert exc.value.code == ErrorCode.ALREADY_JOINED
        assert progress_count(db, user.id, challenge.id) == 1

    def test_full_challenge_blocks_join(self, db, progression, make_user, make_challenge):
        challenge = make_challenge(max_participants=1)
        first, second = make_user(), make_user()

        progression.join_challenge(first.id, challenge.id)

        with pytest.raises(BusinessRuleException) as exc:
            progression.join_challenge(second.id, challenge.id)

        assert exc.value.code == ErrorCode.CHALLENGE_FULL
        assert progress_count(db, second.id, challenge.id) == 0

    def test_join_publishes_event(self, progression, broadcaster, user, challenge):
        received = []
        broadcaster.subscribe(challenge_room(challenge.id), lambda room, event, payload: received.append(event))

        progression.join_challenge(user.id, challenge.id)

        assert received == [Events.CHALLENGE_JOINED]

    def test_failed_join_publishes_nothing(self, progression, broadcaster, user, make_challenge):
        challenge = make_challenge(is_active=False)
        received = []
        broadcaster.subscribe(challenge_room(challenge.id), lambda room, event, payload: received.append(event))

        with pytest.raises(BusinessRuleException):
            progression.join_challenge(user.id, challenge.id)

        assert received == []


# ================================================================
# ENVÍO DE ETAPAS
# ================================================================

class TestSubmitStage:

    def test_missing_stage(self, progression, user):
        submission = StageSubmission(stage_id="nope", submission_type=SubmissionType.TEXT)

        with pytest.raises(NotFoundException) as exc:
            progression.submit_stage(user.id, submission)

        assert exc.value.code == ErrorCode.STAGE_NOT_FOUND

    def test_not_joined(self, progression, user, challenge):
        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        assert exc.value.code == ErrorCode.NOT_JOINED

    def test_abandoned_progress_rejects_submissions(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        progress.status = ProgressStatus.ABANDONED
        db.commit()

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        assert exc.value.code == ErrorCode.PROGRESS_NOT_ACTIVE

    def test_first_stage_keeps_progress_active(self, db, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)

        stage_progress = progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        assert stage_progress.status == StageStatus.COMPLETED
        assert stage_progress.completed_at is not None
        assert stage_progress.content == "Llegué al punto"

        progress = crud_progress.get_by_user_and_challenge(db, user_id=user.id, challenge_id=challenge.id)
        db.refresh(user)
        assert progress.status == ProgressStatus.ACTIVE
        assert progress.completed_at is None
        assert user.xp == 0

    def test_coordinates_are_recorded(self, progression, user, make_challenge):
        challenge = make_challenge(stages=[{"latitude": 40.4168, "longitude": -3.7038}])
        progression.join_challenge(user.id, challenge.id)

        submission = StageSubmission(
            stage_id=challenge.stages[0].id,
            submission_type=SubmissionType.LOCATION,
            latitude=41.0,
            longitude=2.0,
        )
        stage_progress = progression.submit_stage(user.id, submission)

        assert stage_progress.latitude == 41.0
        assert stage_progress.longitude == 2.0

    def test_completed_stage_is_terminal(self, db, progression, user, make_challenge):
        challenge = make_challenge(stages=[{}, {}, {}])
        progression.join_challenge(user.id, challenge.id)
        stage = challenge.stages[0]

        first = progression.submit_stage(user.id, text_submission(stage))
        completed_at = first.completed_at

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, text_submission(stage, content="otra vez"))

        assert exc.value.code == ErrorCode.STAGE_ALREADY_COMPLETED
        db.refresh(first)
        assert first.completed_at == completed_at
        assert first.content == "Llegué al punto"
        assert db.query(StageProgress).count() == 1

    def test_pending_stage_progress_is_upserted(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        stage = challenge.stages[0]
        db.add(StageProgress(challenge_progress_id=progress.id, stage_id=stage.id, status=StageStatus.PENDING))
        db.commit()

        stage_progress = progression.submit_stage(user.id, text_submission(stage))

        assert stage_progress.status == StageStatus.COMPLETED
        assert db.query(StageProgress).count() == 1


class TestProofTypeRules:

    @pytest.fixture
    def qr_challenge(self, make_challenge):
        return make_challenge(stages=[{"qr_code": "QR-123"}, {}])

    @pytest.mark.parametrize("submission_type", [
        SubmissionType.TEXT, SubmissionType.IMAGE, SubmissionType.LOCATION,
    ])
    def test_qr_stage_rejects_other_types(self, progression, user, qr_challenge, submission_type):
        progression.join_challenge(user.id, qr_challenge.id)
        submission = StageSubmission(
            stage_id=qr_challenge.stages[0].id, submission_type=submission_type, content="QR-123"
        )

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, submission)

        assert exc.value.code == ErrorCode.QR_CODE_REQUIRED

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_qr_stage_rejects_empty_content(self, progression, user, qr_challenge, content):
        progression.join_challenge(user.id, qr_challenge.id)

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, qr_submission(qr_challenge.stages[0], content=content))

        assert exc.value.code == ErrorCode.QR_CONTENT_REQUIRED

    def test_qr_stage_accepts_qr_with_content(self, progression, user, qr_challenge):
        progression.join_challenge(user.id, qr_challenge.id)

        stage_progress = progression.submit_stage(user.id, qr_submission(qr_challenge.stages[0]))

        assert stage_progress.status == StageStatus.COMPLETED
        assert stage_progress.submission_type == SubmissionType.QR_CODE

    def test_plain_stage_rejects_qr(self, db, progression, user, qr_challenge):
        progression.join_challenge(user.id, qr_challenge.id)

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, qr_submission(qr_challenge.stages[1]))

        assert exc.value.code == ErrorCode.QR_CODE_NOT_EXPECTED
        assert db.query(StageProgress).count() == 0


class TestLocationProximity:

    @pytest.fixture
    def located_challenge(self, make_challenge):
        return make_challenge(stages=[{"latitude": 40.4168, "longitude": -3.7038, "radius": 100}])

    def test_far_submission_accepted_when_disabled(self, progression, user, located_challenge):
        progression.join_challenge(user.id, located_challenge.id)
        submission = StageSubmission(
            stage_id=located_challenge.stages[0].id,
            submission_type=SubmissionType.LOCATION,
            latitude=41.3874,
            longitude=2.1686,
        )

        assert progression.submit_stage(user.id, submission).status == StageStatus.COMPLETED

    def test_far_submission_rejected_when_enabled(self, engine_factory, user, located_challenge):
        progression = engine_factory(require_location_proximity=True)
        progression.join_challenge(user.id, located_challenge.id)
        submission = StageSubmission(
            stage_id=located_challenge.stages[0].id,
            submission_type=SubmissionType.LOCATION,
            latitude=41.3874,
            longitude=2.1686,
        )

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, submission)

        assert exc.value.code == ErrorCode.LOCATION_OUT_OF_RANGE

    def test_missing_coordinates_rejected_when_enabled(self, engine_factory, user, located_challenge):
        progression = engine_factory(require_location_proximity=True)
        progression.join_challenge(user.id, located_challenge.id)

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, text_submission(located_challenge.stages[0]))

        assert exc.value.code == ErrorCode.LOCATION_OUT_OF_RANGE

    def test_near_submission_accepted_when_enabled(self, engine_factory, user, located_challenge):
        progression = engine_factory(require_location_proximity=True)
        progression.join_challenge(user.id, located_challenge.id)
        submission = StageSubmission(
            stage_id=located_challenge.stages[0].id,
            submission_type=SubmissionType.LOCATION,
            latitude=40.4170,
            longitude=-3.7040,
        )

        assert progression.submit_stage(user.id, submission).status == StageStatus.COMPLETED

    def test_distance_in_meters(self):
        assert distance_in_meters(40.4168, -3.7038, 40.4168, -3.7038) == pytest.approx(0)
        # Madrid - Barcelona ~505 km
        assert distance_in_meters(40.4168, -3.7038, 41.3874, 2.1686) == pytest.approx(505_000, rel=0.02)


# ================================================================
# COMPLETADO Y RECOMPENSA
# ================================================================

class TestCompletionReward:

    def test_two_stage_scenario(self, db, progression, levels, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        assert progress.status == ProgressStatus.ACTIVE

        first, second = challenge.stages

        progression.submit_stage(user.id, text_submission(first))
        db.refresh(user)
        assert user.xp == 0
        assert crud_progress.get(db, id=progress.id).status == ProgressStatus.ACTIVE

        stage_progress = progression.submit_stage(user.id, text_submission(second))
        assert stage_progress.status == StageStatus.COMPLETED

        progress = crud_progress.get(db, id=progress.id)
        db.refresh(progress)
        db.refresh(user)
        assert progress.status == ProgressStatus.COMPLETED
        assert progress.completed_at is not None
        assert user.xp == 500
        assert user.level == 2

    def test_level_defaults_to_one_without_bands(self, db, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)
        for stage in challenge.stages:
            progression.submit_stage(user.id, text_submission(stage))

        db.refresh(user)
        assert user.xp == 500
        assert user.level == 1

    def test_reward_adds_exactly_xp_reward(self, db, progression, levels, make_user, make_challenge):
        user = make_user(xp=900, level=2)
        challenge = make_challenge(stages=[{}, {}, {}], xp_reward=150)
        progression.join_challenge(user.id, challenge.id)

        for stage in challenge.stages[:-1]:
            progression.submit_stage(user.id, text_submission(stage))
            db.refresh(user)
            assert user.xp == 900

        progression.submit_stage(user.id, text_submission(challenge.stages[-1]))
        db.refresh(user)
        assert user.xp == 1050
        assert user.level == 3

    def test_replaced_stages_must_all_be_completed(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        crud_challenge.update_with_stages(db, db_obj=challenge, obj_in=ChallengeUpdate(stages=[
            StageCreate(title="Mirador", description="Sube al mirador", order=1),
            StageCreate(title="Puente", description="Cruza el puente", order=2),
        ]))
        new_first, new_second = challenge.stages

        # El progreso de las etapas reemplazadas se borra en cascada
        assert db.query(StageProgress).filter(StageProgress.challenge_progress_id == progress.id).count() == 0

        progression.submit_stage(user.id, text_submission(new_first))

        progress = crud_progress.get(db, id=progress.id)
        db.refresh(progress)
        db.refresh(user)
        assert progress.status == ProgressStatus.ACTIVE
        assert user.xp == 0

        progression.submit_stage(user.id, text_submission(new_second))

        db.refresh(progress)
        db.refresh(user)
        assert progress.status == ProgressStatus.COMPLETED
        assert user.xp == 500

    def test_completed_count_ignores_stages_of_other_challenges(self, db, progression, user, make_challenge):
        challenge = make_challenge()
        other = make_challenge(stages=[{}])
        progress = progression.join_challenge(user.id, challenge.id)
        db.add(StageProgress(
            challenge_progress_id=progress.id,
            stage_id=other.stages[0].id,
            status=StageStatus.COMPLETED,
        ))
        db.commit()

        assert crud_progress.count_completed_stages(
            db, challenge_progress_id=progress.id, challenge_id=challenge.id
        ) == 0

    def test_completed_progress_rejects_further_submissions(self, db, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)
        for stage in challenge.stages:
            progression.submit_stage(user.id, text_submission(stage))

        with pytest.raises(BusinessRuleException) as exc:
            progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        assert exc.value.code == ErrorCode.PROGRESS_NOT_ACTIVE
        db.refresh(user)
        assert user.xp == 500

    def test_completion_compare_and_swap_awards_once(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        for stage in challenge.stages:
            progression.submit_stage(user.id, text_submission(stage))

        # Un segundo envío concurrente de la última etapa llega a la
        # evaluación de completado cuando la inscripción ya es COMPLETED
        progress = crud_progress.get(db, id=progress.id)
        completed_again = progression._complete_if_finished(progress, progress.challenge, utcnow())
        db.commit()

        db.refresh(user)
        assert completed_again is False
        assert user.xp == 500

    def test_mark_completed_if_active_succeeds_once(self, db, progression, user, challenge):
        progress = progression.join_challenge(user.id, challenge.id)
        now = utcnow()

        assert crud_progress.mark_completed_if_active(db, challenge_progress_id=progress.id, completed_at=now)
        assert not crud_progress.mark_completed_if_active(db, challenge_progress_id=progress.id, completed_at=now)

    def test_completion_publishes_events(self, progression, broadcaster, user, challenge):
        user_events, leaderboard_events = [], []
        broadcaster.subscribe(user_room(user.id), lambda room, event, payload: user_events.append(event))
        broadcaster.subscribe(
            leaderboard_room("ALL_TIME"), lambda room, event, payload: leaderboard_events.append(event)
        )

        progression.join_challenge(user.id, challenge.id)
        for stage in challenge.stages:
            progression.submit_stage(user.id, text_submission(stage))

        assert user_events == [Events.STAGE_COMPLETED, Events.STAGE_COMPLETED, Events.CHALLENGE_COMPLETED]
        assert leaderboard_events == [Events.LEADERBOARD_UPDATE]


# ================================================================
# CONSULTAS
# ================================================================

class TestGetUserChallenges:

    def test_returns_progress_with_challenge_and_stages(self, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)
        progression.submit_stage(user.id, text_submission(challenge.stages[0]))

        result = progression.get_user_challenges(user.id)

        assert len(result) == 1
        assert result[0].challenge.id == challenge.id
        assert len(result[0].stages) == 1

    def test_ordered_by_start_desc_and_filtered(self, make_challenge, engine_factory, db, user):
        older, newer = make_challenge(), make_challenge()
        base = utcnow()
        engine_factory(clock=lambda: base - timedelta(hours=2)).join_challenge(user.id, older.id)
        engine_factory(clock=lambda: base - timedelta(hours=1)).join_challenge(user.id, newer.id)

        progression = engine_factory()
        assert [p.challenge_id for p in progression.get_user_challenges(user.id)] == [newer.id, older.id]

        for stage in older.stages:
            progression.submit_stage(user.id, text_submission(stage))

        completed = progression.get_user_challenges(user.id, status=ProgressStatus.COMPLETED)
        active = progression.get_user_challenges(user.id, status=ProgressStatus.ACTIVE)
        assert [p.challenge_id for p in completed] == [older.id]
        assert [p.challenge_id for p in active] == [newer.id]

    def test_read_is_idempotent(self, progression, user, challenge):
        progression.join_challenge(user.id, challenge.id)

        first = [(p.id, p.status, p.started_at) for p in progression.get_user_challenges(user.id)]
        second = [(p.id, p.status, p.started_at) for p in progression.get_user_challenges(user.id)]

        assert first == second
