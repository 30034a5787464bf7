"""Workout session lifecycle.

A user has either no session (NONE) or exactly one ACTIVE session. A session
is created from a routine with ``start_session`` and ends by being reduced
into a ``WorkoutLog`` with ``finish_session`` or ``abort_session``.

Every function returns a new value and leaves its inputs untouched.
"""

import logging
from datetime import UTC, datetime
from typing import List, Literal

from errors import (
    ExerciseNotFoundError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    SessionNotPausedError,
    SessionPausedError,
    SetNotFoundError,
)
from scoring import (
    completed_set_count,
    compute_volume,
    compute_xp,
    round_half_up,
)
from typedefs import (
    Exercise,
    ExerciseTargets,
    LogStatus,
    Routine,
    RoutineExercise,
    SetLog,
    WorkoutLog,
    WorkoutSession,
    new_id,
)

logger = logging.getLogger(__name__)

SetField = Literal["weight", "reps"]


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def materialize_exercise(exercise: RoutineExercise) -> RoutineExercise:
    """Seed one pending set log per target set from the exercise targets."""
    set_logs = [
        SetLog(
            weight=exercise.target_weight,
            reps=exercise.target_reps,
            completed=False,
        )
        for _ in range(exercise.target_sets)
    ]
    return exercise.model_copy(update={"set_logs": set_logs})


def start_session(
    routine: Routine,
    active: WorkoutSession | None = None,
    now: datetime | None = None,
) -> WorkoutSession:
    """Instantiate a live session from a routine.

    Args:
        routine: Routine to execute (left untouched)
        active: The user's current session, if any
        now: Start time (default: current UTC time)

    Returns:
        New WorkoutSession with fully populated set logs

    Raises:
        SessionAlreadyActiveError: If ``active`` is not None
    """
    if active is not None:
        raise SessionAlreadyActiveError(
            "A workout session is already in progress",
            session_id=active.id,
            routine_id=active.routine_id,
        )

    session = WorkoutSession(
        routine_id=routine.id,
        routine_name=routine.name,
        start_time=_now(now),
        exercises=[materialize_exercise(ex) for ex in routine.exercises],
    )
    logger.info("Started session %s from routine %s", session.id, routine.id)
    return session


def _exercise_index(session: WorkoutSession, exercise_id: str) -> int:
    for idx, ex in enumerate(session.exercises):
        if ex.id == exercise_id:
            return idx
    raise ExerciseNotFoundError(
        "Exercise not found in session",
        session_id=session.id,
        exercise_id=exercise_id,
    )


def _check_set_index(
    session: WorkoutSession, exercise: RoutineExercise, set_index: int
) -> None:
    if not 0 <= set_index < len(exercise.set_logs):
        raise SetNotFoundError(
            "Set not found",
            session_id=session.id,
            exercise_id=exercise.id,
            set_index=set_index,
            set_count=len(exercise.set_logs),
        )


def _replace_exercise(
    session: WorkoutSession, idx: int, exercise: RoutineExercise
) -> WorkoutSession:
    exercises = list(session.exercises)
    exercises[idx] = exercise
    return session.model_copy(update={"exercises": exercises})


def _replace_set(
    session: WorkoutSession, exercise_id: str, set_index: int, **changes
) -> WorkoutSession:
    idx = _exercise_index(session, exercise_id)
    exercise = session.exercises[idx]
    _check_set_index(session, exercise, set_index)

    set_logs = list(exercise.set_logs)
    set_logs[set_index] = set_logs[set_index].model_copy(update=changes)
    return _replace_exercise(
        session, idx, exercise.model_copy(update={"set_logs": set_logs})
    )


def toggle_set(
    session: WorkoutSession, exercise_id: str, set_index: int
) -> WorkoutSession:
    """Flip ``completed`` on exactly one set."""
    idx = _exercise_index(session, exercise_id)
    exercise = session.exercises[idx]
    _check_set_index(session, exercise, set_index)
    current = exercise.set_logs[set_index].completed
    return _replace_set(session, exercise_id, set_index, completed=not current)


def update_set_value(
    session: WorkoutSession,
    exercise_id: str,
    set_index: int,
    field: SetField,
    value: str,
) -> WorkoutSession:
    """Overwrite a set's weight or reps. Completion state is unchanged."""
    if field not in ("weight", "reps"):
        raise ValueError(f"Unsupported set field: {field}")
    return _replace_set(session, exercise_id, set_index, **{field: value})


def mark_all_sets(
    session: WorkoutSession, exercise_id: str, completed: bool
) -> WorkoutSession:
    """Set ``completed`` on every set of one exercise (check/uncheck all)."""
    idx = _exercise_index(session, exercise_id)
    exercise = session.exercises[idx]
    set_logs = [s.model_copy(update={"completed": completed}) for s in exercise.set_logs]
    return _replace_exercise(
        session, idx, exercise.model_copy(update={"set_logs": set_logs})
    )


def add_set(session: WorkoutSession, exercise_id: str) -> WorkoutSession:
    """Append one pending set to an exercise, copying the last set's values.

    ``target_sets`` grows with it so that it keeps matching the set count.
    """
    idx = _exercise_index(session, exercise_id)
    exercise = session.exercises[idx]
    if exercise.set_logs:
        last = exercise.set_logs[-1]
        weight, reps = last.weight, last.reps
    else:
        weight, reps = exercise.target_weight, exercise.target_reps

    set_logs = list(exercise.set_logs) + [SetLog(weight=weight, reps=reps)]
    return _replace_exercise(
        session,
        idx,
        exercise.model_copy(
            update={"set_logs": set_logs, "target_sets": len(set_logs)}
        ),
    )


def add_exercise_to_session(
    session: WorkoutSession,
    exercise: Exercise,
    targets: ExerciseTargets | None = None,
) -> WorkoutSession:
    """Append a materialized exercise to the session only.

    The routine the session was started from is not affected.
    """
    targets = targets or ExerciseTargets()
    routine_exercise = RoutineExercise(
        id=new_id(),
        exercise=exercise,
        target_sets=targets.sets,
        target_reps=targets.reps,
        target_weight=targets.weight,
    )
    exercises = list(session.exercises) + [materialize_exercise(routine_exercise)]
    return session.model_copy(update={"exercises": exercises})


def pause_session(
    session: WorkoutSession, now: datetime | None = None
) -> WorkoutSession:
    if session.is_paused:
        raise SessionPausedError("Session is already paused", session_id=session.id)
    return session.model_copy(update={"paused_at": _now(now)})


def resume_session(
    session: WorkoutSession, now: datetime | None = None
) -> WorkoutSession:
    if not session.is_paused:
        raise SessionNotPausedError("Session is not paused", session_id=session.id)
    paused_for = max(0.0, (_now(now) - session.paused_at).total_seconds())
    return session.model_copy(
        update={
            "paused_at": None,
            "total_paused_seconds": session.total_paused_seconds + paused_for,
        }
    )


def elapsed_seconds(session: WorkoutSession, now: datetime | None = None) -> float:
    """Wall-clock time spent training: now - start - every pause interval."""
    now = _now(now)
    paused = session.total_paused_seconds
    if session.paused_at is not None:
        paused += (now - session.paused_at).total_seconds()
    return max(0.0, (now - session.start_time).total_seconds() - paused)


def _all_sets_completed(exercises: List[RoutineExercise]) -> bool:
    # Vacuously true when there are no sets at all
    return all(s.completed for ex in exercises for s in ex.set_logs)


def _reduce(
    session: WorkoutSession, now: datetime, status: LogStatus, xp_earned: int
) -> WorkoutLog:
    duration_minutes = (now - session.start_time).total_seconds() / 60
    return WorkoutLog(
        id=session.id,
        routine_name=session.routine_name,
        date=session.start_time,
        duration=max(0, round_half_up(duration_minutes)),
        xp_earned=xp_earned,
        exercises_completed=sum(
            1 for ex in session.exercises if completed_set_count(ex) > 0
        ),
        total_volume=compute_volume(session.exercises),
        status=status,
        exercises=session.exercises,
    )


def finish_session(
    session: WorkoutSession | None, now: datetime | None = None
) -> WorkoutLog:
    """Reduce a session into a log with full XP credit.

    Status is COMPLETED when every set of every exercise is completed and
    INCOMPLETE otherwise. XP and volume are awarded either way.

    Raises:
        NoActiveSessionError: If there is no session to finish
    """
    if session is None:
        raise NoActiveSessionError("No workout session to finish")

    now = _now(now)
    status = (
        LogStatus.COMPLETED
        if _all_sets_completed(session.exercises)
        else LogStatus.INCOMPLETE
    )
    log = _reduce(session, now, status, compute_xp(session.exercises))
    logger.info(
        "Finished session %s: status=%s xp=%d", log.id, log.status.value, log.xp_earned
    )
    return log


def abort_session(
    session: WorkoutSession | None, now: datetime | None = None
) -> WorkoutLog:
    """Reduce a session into an ABORTED log with half XP (rounded down).

    Callers must obtain explicit user confirmation before aborting.

    Raises:
        NoActiveSessionError: If there is no session to abort
    """
    if session is None:
        raise NoActiveSessionError("No workout session to abort")

    log = _reduce(
        session, _now(now), LogStatus.ABORTED, compute_xp(session.exercises) // 2
    )
    logger.info("Aborted session %s: xp=%d", log.id, log.xp_earned)
    return log
