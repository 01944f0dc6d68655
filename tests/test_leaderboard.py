"""
Tests del leaderboard (servicio y endpoints).
"""
from datetime import datetime, timedelta

import pytest

from app.core.exceptions import NotFoundException
from app.db.base import utcnow
from app.models.progress import ChallengeProgress, ProgressStatus
from app.schemas.leaderboard import LeaderboardPeriod
from app.services import leaderboard_service

API = "/api/v1/leaderboard"


@pytest.fixture
def ranked_users(db, make_user):
    gold = make_user(xp=3000, level=5, username="gold")
    silver = make_user(xp=1500, level=3, username="silver")
    bronze = make_user(xp=200, username="bronze")
    make_user(xp=9999, username="ghost", is_active=False)
    return gold, silver, bronze


def test_leaderboard_orders_active_users_by_xp(db, ranked_users):
    board = leaderboard_service.get_leaderboard(db)

    assert [e.username for e in board.leaderboard] == ["gold", "silver", "bronze"]
    assert [e.rank for e in board.leaderboard] == [1, 2, 3]
    assert board.total == 3


def test_leaderboard_counts_completed_challenges(db, ranked_users, challenge):
    gold = ranked_users[0]
    db.add(ChallengeProgress(
        user_id=gold.id,
        challenge_id=challenge.id,
        status=ProgressStatus.COMPLETED,
        started_at=datetime(2024, 1, 1),
        completed_at=datetime(2024, 1, 2),
    ))
    db.commit()

    board = leaderboard_service.get_leaderboard(db, limit=2)

    assert [e.completed_challenges for e in board.leaderboard] == [1, 0]


@pytest.mark.parametrize("period,expected", [
    (LeaderboardPeriod.DAILY, datetime(2024, 5, 15)),
    (LeaderboardPeriod.WEEKLY, datetime(2024, 5, 12)),
    (LeaderboardPeriod.MONTHLY, datetime(2024, 5, 1)),
    (LeaderboardPeriod.ALL_TIME, None),
])
def test_period_start(period, expected):
    # miércoles
    now = datetime(2024, 5, 15, 18, 30)

    assert leaderboard_service.period_start(period, now) == expected


def test_period_filters_by_registration_date(db, ranked_users):
    gold = ranked_users[0]
    gold.created_at = utcnow() - timedelta(days=40)
    db.commit()

    board = leaderboard_service.get_leaderboard(db, period=LeaderboardPeriod.DAILY)

    assert "gold" not in [e.username for e in board.leaderboard]


def test_update_ranks(db, ranked_users):
    gold, silver, bronze = ranked_users

    assert leaderboard_service.update_ranks(db) == 3

    db.refresh(gold)
    db.refresh(bronze)
    assert gold.rank == 1
    assert bronze.rank == 3


def test_user_rank(db, ranked_users):
    silver = ranked_users[1]

    assert leaderboard_service.get_user_rank(db, silver.id).rank == 2

    with pytest.raises(NotFoundException):
        leaderboard_service.get_user_rank(db, "missing")


def test_stats(db, ranked_users, challenge):
    stats = leaderboard_service.get_leaderboard_stats(db)

    assert stats.total_users == 3
    assert stats.total_xp == 4700
    assert stats.average_xp == 1567
    assert stats.total_challenges == 1
    assert stats.top_user.username == "gold"


def test_stats_without_users(db):
    stats = leaderboard_service.get_leaderboard_stats(db)

    assert stats.total_users == 0
    assert stats.average_xp == 0
    assert stats.top_user is None


# ================================================================
# ENDPOINTS
# ================================================================

def test_leaderboard_endpoint(client, ranked_users):
    response = client.get(API, params={"period": "ALL_TIME", "limit": 2})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "ALL_TIME"
    assert [e["username"] for e in data["leaderboard"]] == ["gold", "silver"]


def test_invalid_period_is_validation_error(client):
    response = client.get(API, params={"period": "YEARLY"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_my_rank_endpoint(client, headers_for, ranked_users):
    bronze = ranked_users[2]

    response = client.get(f"{API}/me", headers=headers_for(bronze))

    assert response.json()["data"]["rank"] == 3


def test_update_ranks_endpoint_publishes(client, broadcaster, admin_headers, ranked_users):
    received = []
    broadcaster.subscribe("leaderboard:ALL_TIME", lambda room, event, payload: received.append(payload))

    response = client.post(f"{API}/update-ranks", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"updated": 4}
    assert received == [{"updated": 4}]
