"""Tests for routine API endpoints."""

from unittest.mock import patch

import pytest
from deepdiff import DeepDiff
from sqlalchemy.exc import OperationalError

from conftest import make_anthropic_response
from repository import RoutineRepository
from routines import add_exercise_to_routine
from typedefs import Exercise, Routine

SQUAT = {
    "id": "52r52",
    "name": "barbell squat",
    "body_part": "upper legs",
    "target": "quadriceps",
    "equipment": "barbell",
    "difficulty": "expert",
}


@pytest.fixture
def leg_day(db_session, test_user) -> Routine:
    routine = add_exercise_to_routine(
        Routine(name="Leg Day", description="Squats"),
        Exercise(**SQUAT),
    )
    RoutineRepository(db_session).upsert(test_user.id, routine)
    return routine


@pytest.fixture
def arm_day(db_session, test_user) -> Routine:
    routine = Routine(name="Arm Day", is_favorite=True)
    RoutineRepository(db_session).upsert(test_user.id, routine)
    return routine


def test_create_routine(client):
    response = client.post("/api/v1/routines", json={"name": "Push"})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Push"
    assert data["exercises"] == []
    assert data["is_favorite"] is False
    assert data["last_performed"] is None
    assert data["estimated_xp"] == 0
    assert data["warnings"] == []


def test_list_routines(client, leg_day, arm_day):
    response = client.get("/api/v1/routines")

    assert response.status_code == 200
    assert sorted(r["name"] for r in response.json()) == ["Arm Day", "Leg Day"]


def test_get_routine_includes_estimated_xp(client, leg_day):
    response = client.get(f"/api/v1/routines/{leg_day.id}")

    assert response.status_code == 200
    # 3 default target sets x 10 x expert multiplier
    assert response.json()["estimated_xp"] == 90


def test_get_routine_not_found(client):
    response = client.get("/api/v1/routines/nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Routine not found"


def test_update_routine_partial(client, leg_day):
    response = client.patch(
        f"/api/v1/routines/{leg_day.id}", json={"name": "Leg Day 2"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Leg Day 2"
    assert data["description"] == "Squats"


def test_delete_routine(client, leg_day, db_session, test_user):
    response = client.delete(f"/api/v1/routines/{leg_day.id}")

    assert response.status_code == 204
    assert RoutineRepository(db_session).get(test_user.id, leg_day.id) is None


def test_delete_missing_routine(client):
    assert client.delete("/api/v1/routines/nope").status_code == 404


def test_favorite_is_exclusive(client, leg_day, arm_day):
    response = client.post(f"/api/v1/routines/{leg_day.id}/favorite")

    assert response.status_code == 200
    assert response.json()["is_favorite"] is True

    routines = client.get("/api/v1/routines").json()
    assert {r["name"]: r["is_favorite"] for r in routines} == {
        "Leg Day": True,
        "Arm Day": False,
    }


def test_favorite_unknown_routine(client, leg_day):
    response = client.post("/api/v1/routines/nope/favorite")

    assert response.status_code == 404
    assert response.json()["kind"] == "routine_not_found"


def test_unfavorite(client, arm_day):
    response = client.delete(f"/api/v1/routines/{arm_day.id}/favorite")

    assert response.status_code == 200
    assert response.json()["is_favorite"] is False


def test_fork_routine(client, leg_day):
    response = client.post(f"/api/v1/routines/{leg_day.id}/fork")

    assert response.status_code == 201
    data = response.json()
    assert data["id"] != leg_day.id
    assert data["name"] == "Leg Day (Copy)"
    assert data["exercises"][0]["id"] != leg_day.exercises[0].id
    assert len(client.get("/api/v1/routines").json()) == 2


def test_add_exercise_to_routine(client, leg_day):
    response = client.post(
        f"/api/v1/routines/{leg_day.id}/exercises",
        json={
            "exercise": {"id": "curl", "name": "dumbbell curl", "difficulty": "beginner"},
            "targets": {"sets": 4, "reps": "12", "weight": "12.5"},
        },
    )

    assert response.status_code == 200
    added = response.json()["exercises"][-1]
    expected = {
        "target_sets": 4,
        "target_reps": "12",
        "target_weight": "12.5",
        "set_logs": [],
    }
    actual = {key: added[key] for key in expected}
    diff = DeepDiff(expected, actual)
    assert not diff, f"Added exercise does not match\n\n{diff.pretty()}"
    assert response.json()["estimated_xp"] == 90 + 40


def test_add_exercise_rejects_zero_sets(client, leg_day):
    response = client.post(
        f"/api/v1/routines/{leg_day.id}/exercises",
        json={"exercise": SQUAT, "targets": {"sets": 0}},
    )
    assert response.status_code == 422


def test_update_exercise_targets(client, leg_day):
    exercise_id = leg_day.exercises[0].id
    response = client.patch(
        f"/api/v1/routines/{leg_day.id}/exercises/{exercise_id}",
        json={"sets": 5, "reps": "5", "weight": "120"},
    )

    assert response.status_code == 200
    assert response.json()["exercises"][0]["target_sets"] == 5


def test_update_unknown_exercise(client, leg_day):
    response = client.patch(
        f"/api/v1/routines/{leg_day.id}/exercises/missing", json={"sets": 2}
    )

    assert response.status_code == 404
    assert response.json()["kind"] == "exercise_not_found"


def test_remove_exercise(client, leg_day):
    exercise_id = leg_day.exercises[0].id
    response = client.delete(f"/api/v1/routines/{leg_day.id}/exercises/{exercise_id}")

    assert response.status_code == 200
    assert response.json()["exercises"] == []


def test_estimated_xp_endpoint(client, leg_day):
    response = client.get(f"/api/v1/routines/{leg_day.id}/estimated-xp")

    assert response.json() == {"routine_id": leg_day.id, "estimated_xp": 90}


def test_add_to_active_routine(client, leg_day, arm_day):
    response = client.post(
        "/api/v1/routines/active/exercises", json={"exercise": SQUAT}
    )

    assert response.status_code == 200
    assert response.json()["id"] == arm_day.id
    assert response.json()["exercises"][0]["exercise"]["name"] == "barbell squat"


def test_add_to_active_routine_without_favorite(client, leg_day):
    response = client.post(
        "/api/v1/routines/active/exercises", json={"exercise": SQUAT}
    )

    assert response.status_code == 422
    data = response.json()
    assert data["kind"] == "no_active_routine"
    assert data["detail"] == "No active mission selected. Select an active mission first."


def test_generate_routine(client, mock_anthropic_client):
    mock_anthropic_client.messages.create.side_effect = None
    mock_anthropic_client.messages.create.return_value = make_anthropic_response(
        {
            "name": "Quick Legs",
            "exercises": [{"name": "Leg Press", "target_sets": 4}],
        }
    )

    response = client.post("/api/v1/routines/generate", json={"prompt": "legs"})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Quick Legs"
    assert data["description"] == "AI Generated Protocol"
    assert data["is_favorite"] is False
    assert data["exercises"][0]["exercise"]["id"] == "fb_leg_press"


def test_generate_routine_failure(client):
    response = client.post("/api/v1/routines/generate", json={"prompt": "legs"})

    assert response.status_code == 502
    assert client.get("/api/v1/routines").json() == []


def test_save_failure_is_reported(client, db_session):
    with patch.object(
        db_session,
        "commit",
        side_effect=OperationalError("COMMIT", {}, Exception("disk full")),
    ):
        response = client.post("/api/v1/routines", json={"name": "Unsaved"})

    assert response.status_code == 201
    assert response.json()["name"] == "Unsaved"
    assert response.json()["warnings"] == ["Routine changes could not be saved"]
