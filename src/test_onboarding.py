"""Tests for profile and onboarding endpoints."""

import pytest

from catalog import FALLBACK_EXERCISES
from conftest import make_anthropic_response
from onboarding import calibrate_stat, fallback_routine
from repository import ProfileRepository, RoutineRepository
from typedefs import Routine, UserProfile


@pytest.fixture
def saved_profile(db_session, test_user) -> UserProfile:
    profile = UserProfile(
        name="Sung",
        email=test_user.email,
        level=5,
        current_xp=300,
        xp_required=2074,
        onboarding_complete=True,
    )
    ProfileRepository(db_session).upsert(test_user.id, profile)
    return profile


def test_calibrate_stat_clamps():
    profile = UserProfile()

    assert calibrate_stat(profile, "Chest", 500).stats[0].value == 120
    assert calibrate_stat(profile, "legs", -5).stats[2].value == 0
    assert calibrate_stat(profile, "Arms", 75).stats[3].value == 75


def test_calibrate_unknown_stat():
    with pytest.raises(KeyError):
        calibrate_stat(UserProfile(), "Neck", 10)


def test_fallback_routine_uses_first_five_exercises():
    routine = fallback_routine(FALLBACK_EXERCISES)

    assert routine.is_favorite
    assert [ex.exercise.id for ex in routine.exercises] == [
        ex.id for ex in FALLBACK_EXERCISES[:5]
    ]
    assert all(ex.target_sets == 3 for ex in routine.exercises)


def test_get_profile_for_new_user(client, test_user):
    response = client.get("/api/v1/profile")

    assert response.status_code == 200
    data = response.json()
    assert data["onboarding_complete"] is False
    assert data["email"] == test_user.email
    assert data["name"] == "Operative"
    assert data["level"] == 1
    assert data["xp_required"] == 1000
    assert [(s["label"], s["value"], s["full_mark"]) for s in data["stats"]] == [
        ("Chest", 70, 120),
        ("Back", 65, 120),
        ("Legs", 80, 120),
        ("Arms", 60, 120),
        ("Core", 50, 120),
    ]


def test_get_saved_profile(client, saved_profile):
    data = client.get("/api/v1/profile").json()

    assert data["name"] == "Sung"
    assert data["level"] == 5


def test_update_profile(client, saved_profile, db_session, test_user):
    response = client.patch(
        "/api/v1/profile", json={"weight": "78kg", "goal": "ENDURANCE"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["weight"] == "78kg"
    assert data["goal"] == "ENDURANCE"
    assert data["name"] == "Sung"

    stored = ProfileRepository(db_session).get(test_user.id)
    assert stored.weight == "78kg"
    # XP fields are not editable through the profile form
    assert stored.level == 5


def test_update_profile_ignores_xp_fields(client, saved_profile):
    data = client.patch("/api/v1/profile", json={"level": 99}).json()
    assert data["level"] == 5


def test_update_stat(client, saved_profile):
    response = client.put("/api/v1/profile/stats/Back", json={"value": 130})

    assert response.status_code == 200
    back = next(s for s in response.json()["stats"] if s["label"] == "Back")
    assert back["value"] == 120


def test_update_unknown_stat(client):
    assert client.put("/api/v1/profile/stats/Neck", json={"value": 1}).status_code == 404


def test_setup_with_generated_routine(client, mock_anthropic_client, db_session, test_user):
    mock_anthropic_client.messages.create.side_effect = None
    mock_anthropic_client.messages.create.return_value = make_anthropic_response(
        {
            "name": "Hypertrophy Block",
            "description": "Volume focus",
            "exercises": [{"name": "Cable Crossover"}, {"name": "Lat Pulldown"}],
        }
    )

    response = client.post(
        "/api/v1/profile/setup",
        json={"name": "Jinwoo", "experience": "BEGINNER", "goal": "HYPERTROPHY"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["name"] == "Jinwoo"
    assert data["profile"]["onboarding_complete"] is True
    assert data["profile"]["goal"] == "HYPERTROPHY"
    assert data["warnings"] == []
    assert len(data["routines"]) == 1
    routine = data["routines"][0]
    assert routine["name"] == "Hypertrophy Block"
    assert routine["is_favorite"] is True

    prompt = mock_anthropic_client.messages.create.call_args.kwargs["messages"][0]
    assert "HYPERTROPHY" in prompt["content"]
    assert ProfileRepository(db_session).get(test_user.id).onboarding_complete


def test_setup_falls_back_to_catalog(client):
    response = client.post(
        "/api/v1/profile/setup",
        json={"name": "Jinwoo", "experience": "EXPERT", "goal": "STRENGTH"},
    )

    assert response.status_code == 200
    routine = response.json()["routines"][0]
    assert routine["is_favorite"] is True
    assert len(routine["exercises"]) == 5


def test_setup_keeps_single_favorite(client, db_session, test_user):
    RoutineRepository(db_session).upsert(
        test_user.id, Routine(name="Old Favorite", is_favorite=True)
    )

    response = client.post(
        "/api/v1/profile/setup",
        json={"name": "Jinwoo", "experience": "INTERMEDIATE", "goal": "ENDURANCE"},
    )

    favorites = [r["name"] for r in response.json()["routines"] if r["is_favorite"]]
    assert favorites == ["Initiation Protocol"]


def test_setup_keeps_progress(client, saved_profile):
    data = client.post(
        "/api/v1/profile/setup",
        json={"name": "Sung", "experience": "EXPERT", "goal": "STRENGTH"},
    ).json()

    assert data["profile"]["level"] == 5
    assert data["profile"]["current_xp"] == 300


def test_setup_requires_name(client):
    response = client.post(
        "/api/v1/profile/setup",
        json={"name": "", "experience": "EXPERT", "goal": "STRENGTH"},
    )
    assert response.status_code == 422
