"""Rules for creating and editing routines.

At most one routine per user is the favorite ("active mission"). It is the
implicit target when an exercise is added outside of a routine edit.
"""

from datetime import datetime
from typing import List

from errors import ExerciseNotFoundError, NoActiveRoutineError, RoutineNotFoundError
from typedefs import Exercise, ExerciseTargets, Routine, RoutineExercise, new_id

FORK_SUFFIX = " (Copy)"


def find_routine(routines: List[Routine], routine_id: str) -> Routine:
    for routine in routines:
        if routine.id == routine_id:
            return routine
    raise RoutineNotFoundError("Routine not found", routine_id=routine_id)


def find_active_routine(routines: List[Routine]) -> Routine | None:
    return next((r for r in routines if r.is_favorite), None)


def set_favorite(routines: List[Routine], target_id: str) -> List[Routine]:
    """Make ``target_id`` the only favorite routine.

    Raises:
        RoutineNotFoundError: If no routine has ``target_id``
    """
    find_routine(routines, target_id)
    return [
        r
        if r.is_favorite == (r.id == target_id)
        else r.model_copy(update={"is_favorite": r.id == target_id})
        for r in routines
    ]


def unset_favorite(routines: List[Routine], target_id: str) -> List[Routine]:
    find_routine(routines, target_id)
    return [
        r.model_copy(update={"is_favorite": False}) if r.id == target_id else r
        for r in routines
    ]


def fork_routine(routine: Routine) -> Routine:
    """Copy a routine under a new id.

    Exercise instance ids are regenerated since they key set mutations. The
    copy is never the favorite and has not been performed yet.
    """
    return Routine(
        id=new_id(),
        name=f"{routine.name}{FORK_SUFFIX}",
        description=routine.description,
        exercises=[
            ex.model_copy(update={"id": new_id(), "set_logs": []})
            for ex in routine.exercises
        ],
        last_performed=None,
        is_favorite=False,
    )


def build_routine_exercise(
    exercise: Exercise, targets: ExerciseTargets | None = None
) -> RoutineExercise:
    targets = targets or ExerciseTargets()
    return RoutineExercise(
        id=new_id(),
        exercise=exercise,
        target_sets=targets.sets,
        target_reps=targets.reps,
        target_weight=targets.weight,
        set_logs=[],
    )


def add_exercise_to_routine(
    routine: Routine, exercise: Exercise, targets: ExerciseTargets | None = None
) -> Routine:
    """Append an exercise in template state (no set logs)."""
    exercises = list(routine.exercises) + [build_routine_exercise(exercise, targets)]
    return routine.model_copy(update={"exercises": exercises})


def add_exercise_to_active_routine(
    routines: List[Routine],
    exercise: Exercise,
    targets: ExerciseTargets | None = None,
) -> Routine:
    """Add an exercise to the favorite routine and return the updated routine.

    Raises:
        NoActiveRoutineError: If no routine is marked as favorite
    """
    active = find_active_routine(routines)
    if active is None:
        raise NoActiveRoutineError(
            "No active mission selected. Select an active mission first.",
            exercise_id=exercise.id,
        )
    return add_exercise_to_routine(active, exercise, targets)


def update_exercise_targets(
    routine: Routine, exercise_id: str, targets: ExerciseTargets
) -> Routine:
    exercises = []
    found = False
    for ex in routine.exercises:
        if ex.id == exercise_id:
            found = True
            ex = ex.model_copy(
                update={
                    "target_sets": targets.sets,
                    "target_reps": targets.reps,
                    "target_weight": targets.weight,
                }
            )
        exercises.append(ex)
    if not found:
        raise ExerciseNotFoundError(
            "Exercise not found in routine",
            routine_id=routine.id,
            exercise_id=exercise_id,
        )
    return routine.model_copy(update={"exercises": exercises})


def remove_exercise(routine: Routine, exercise_id: str) -> Routine:
    """Drop an exercise from a routine.

    Sessions already in progress hold their own snapshot and are unaffected.
    """
    return routine.model_copy(
        update={"exercises": [ex for ex in routine.exercises if ex.id != exercise_id]}
    )


def stamp_last_performed(routine: Routine, when: datetime) -> Routine:
    return routine.model_copy(update={"last_performed": when})
