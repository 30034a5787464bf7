from datetime import UTC, datetime

import pytest

from errors import ExerciseNotFoundError, NoActiveRoutineError, RoutineNotFoundError
from routines import (
    add_exercise_to_active_routine,
    add_exercise_to_routine,
    find_active_routine,
    fork_routine,
    remove_exercise,
    set_favorite,
    stamp_last_performed,
    unset_favorite,
    update_exercise_targets,
)
from typedefs import Exercise, ExerciseTargets, Routine, RoutineExercise

SQUAT = Exercise(id="squat", name="barbell squat", difficulty="expert")
CURL = Exercise(id="curl", name="dumbbell bicep curl", difficulty="beginner")


@pytest.fixture
def routines():
    return [
        Routine(id="a", name="Legs", is_favorite=True),
        Routine(id="b", name="Arms"),
        Routine(id="c", name="Full Body"),
    ]


def favorites(routines):
    return [r.id for r in routines if r.is_favorite]


def test_new_routine_defaults():
    routine = Routine(name="Fresh")
    assert not routine.is_favorite
    assert routine.last_performed is None
    assert routine.exercises == []


def test_set_favorite_is_exclusive(routines):
    updated = set_favorite(routines, "c")

    assert favorites(updated) == ["c"]
    assert [r.id for r in updated] == ["a", "b", "c"]
    assert favorites(routines) == ["a"]


def test_set_favorite_again_is_idempotent(routines):
    assert favorites(set_favorite(routines, "a")) == ["a"]


def test_set_favorite_unknown_routine(routines):
    with pytest.raises(RoutineNotFoundError):
        set_favorite(routines, "zzz")


def test_unset_favorite(routines):
    assert favorites(unset_favorite(routines, "a")) == []


def test_find_active_routine(routines):
    assert find_active_routine(routines).id == "a"
    assert find_active_routine(unset_favorite(routines, "a")) is None


def test_fork_routine():
    original = Routine(
        id="orig",
        name="Push",
        description="Chest and triceps",
        exercises=[
            RoutineExercise(
                id="re-1",
                exercise=SQUAT,
                target_sets=3,
                target_reps="5",
                target_weight="100",
            )
        ],
        last_performed=datetime(2025, 1, 1, tzinfo=UTC),
        is_favorite=True,
    )

    forked = fork_routine(original)

    assert forked.id != original.id
    assert forked.name == "Push (Copy)"
    assert forked.description == original.description
    assert not forked.is_favorite
    assert forked.last_performed is None
    assert forked.exercises[0].id != "re-1"
    assert forked.exercises[0].exercise == SQUAT
    assert forked.exercises[0].target_sets == 3


def test_add_exercise_to_routine_default_targets():
    routine = add_exercise_to_routine(Routine(name="Legs"), SQUAT)

    added = routine.exercises[0]
    assert (added.target_sets, added.target_reps, added.target_weight) == (3, "10", "20")
    assert added.set_logs == []


def test_add_exercise_to_active_routine(routines):
    updated = add_exercise_to_active_routine(
        routines, CURL, ExerciseTargets(sets=4, reps="12", weight="15")
    )

    assert updated.id == "a"
    assert updated.exercises[0].exercise == CURL
    assert updated.exercises[0].target_sets == 4


def test_add_exercise_without_active_routine(routines):
    with pytest.raises(NoActiveRoutineError) as exc_info:
        add_exercise_to_active_routine(unset_favorite(routines, "a"), CURL)

    assert "Select an active mission" in str(exc_info.value)
    assert exc_info.value.status_code == 422


def test_update_exercise_targets():
    routine = add_exercise_to_routine(Routine(name="Legs"), SQUAT)
    exercise_id = routine.exercises[0].id

    updated = update_exercise_targets(
        routine, exercise_id, ExerciseTargets(sets=5, reps="5", weight="140")
    )

    assert updated.exercises[0].target_sets == 5
    assert updated.exercises[0].target_weight == "140"


def test_update_exercise_targets_unknown_exercise():
    with pytest.raises(ExerciseNotFoundError):
        update_exercise_targets(Routine(name="Legs"), "missing", ExerciseTargets())


def test_remove_exercise():
    routine = add_exercise_to_routine(
        add_exercise_to_routine(Routine(name="Mixed"), SQUAT), CURL
    )

    updated = remove_exercise(routine, routine.exercises[0].id)

    assert [ex.exercise.id for ex in updated.exercises] == ["curl"]


def test_stamp_last_performed():
    when = datetime(2025, 6, 1, 18, 30, tzinfo=UTC)
    assert stamp_last_performed(Routine(name="Legs"), when).last_performed == when
