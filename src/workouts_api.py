"""REST API endpoints for the live workout session."""

import datetime
import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from errors import NoActiveSessionError, SessionPausedError
from progression import apply_xp
from repository import (
    LogRepository,
    ProfileRepository,
    RoutineRepository,
    SessionRepository,
)
from routines import stamp_last_performed
from scoring import session_progress
from typedefs import (
    Exercise,
    ExerciseTargets,
    ProgressionResult,
    UserProfile,
    WorkoutLog,
    WorkoutSession,
)
from workout import (
    abort_session,
    add_exercise_to_session,
    add_set,
    elapsed_seconds,
    finish_session,
    mark_all_sets,
    pause_session,
    resume_session,
    start_session,
    toggle_set,
    update_set_value,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/session", tags=["session"])


class SessionStartRequest(BaseModel):
    routine_id: str


class SetValueRequest(BaseModel):
    field: Literal["weight", "reps"]
    value: str


class MarkAllRequest(BaseModel):
    completed: bool


class SessionExerciseRequest(BaseModel):
    exercise: Exercise
    targets: ExerciseTargets = ExerciseTargets()


class AbortRequest(BaseModel):
    """Aborting is destructive, so the client must confirm it explicitly."""

    confirm: bool = False


class SessionResponse(BaseModel):
    session: WorkoutSession
    elapsed_seconds: float
    progress: float  # Percentage of sets completed
    warnings: List[str] = []


class SessionResultResponse(BaseModel):
    """Outcome of finishing or aborting a session."""

    log: WorkoutLog
    profile: UserProfile
    levels_gained: int
    warnings: List[str] = []


def now_utc() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def build_response(
    session: WorkoutSession, saved: bool = True, now: datetime.datetime | None = None
) -> SessionResponse:
    return SessionResponse(
        session=session,
        elapsed_seconds=elapsed_seconds(session, now),
        progress=session_progress(session.exercises),
        warnings=[] if saved else ["Session changes could not be saved"],
    )


def load_active_session(repo: SessionRepository, user_id) -> WorkoutSession:
    session = repo.get(user_id)
    if session is None:
        raise NoActiveSessionError("No workout session in progress")
    return session


def load_running_session(repo: SessionRepository, user_id) -> WorkoutSession:
    """Active session that is not paused. Set edits and finishing need one."""
    session = load_active_session(repo, user_id)
    if session.is_paused:
        raise SessionPausedError("Resume the session first", session_id=session.id)
    return session


def save_and_respond(
    repo: SessionRepository, user_id, session: WorkoutSession
) -> SessionResponse:
    return build_response(session, repo.save(user_id, session))


@router.post("", response_model=SessionResponse, status_code=201)
def start_workout(
    request: SessionStartRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    """Start a session from one of the user's routines.

    Responds 409 with kind ``session_already_active`` if one is in progress.
    """
    routine = RoutineRepository(db).get(user.user_id, request.routine_id)
    if routine is None:
        raise HTTPException(status_code=404, detail="Routine not found")

    repo = SessionRepository(db)
    session = start_session(routine, active=repo.get(user.user_id))
    return save_and_respond(repo, user.user_id, session)


@router.get("", response_model=SessionResponse)
def get_active_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    session = SessionRepository(db).get(user.user_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No workout session in progress")
    return build_response(session)


@router.post(
    "/exercises/{exercise_id}/sets/{set_index}/toggle", response_model=SessionResponse
)
def toggle_workout_set(
    exercise_id: str,
    set_index: int,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    repo = SessionRepository(db)
    session = load_running_session(repo, user.user_id)
    return save_and_respond(
        repo, user.user_id, toggle_set(session, exercise_id, set_index)
    )


@router.patch("/exercises/{exercise_id}/sets/{set_index}", response_model=SessionResponse)
def update_workout_set(
    exercise_id: str,
    set_index: int,
    request: SetValueRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    """Overwrite the weight or reps of one set. Completion is unchanged."""
    repo = SessionRepository(db)
    session = load_running_session(repo, user.user_id)
    session = update_set_value(
        session, exercise_id, set_index, request.field, request.value
    )
    return save_and_respond(repo, user.user_id, session)


@router.post("/exercises/{exercise_id}/sets", response_model=SessionResponse)
def add_workout_set(
    exercise_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    repo = SessionRepository(db)
    session = load_running_session(repo, user.user_id)
    return save_and_respond(repo, user.user_id, add_set(session, exercise_id))


@router.put("/exercises/{exercise_id}/completed", response_model=SessionResponse)
def mark_all_workout_sets(
    exercise_id: str,
    request: MarkAllRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    """Check or uncheck every set of one exercise."""
    repo = SessionRepository(db)
    session = load_running_session(repo, user.user_id)
    session = mark_all_sets(session, exercise_id, request.completed)
    return save_and_respond(repo, user.user_id, session)


@router.post("/exercises", response_model=SessionResponse)
def add_workout_exercise(
    request: SessionExerciseRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    """Add an exercise to this session only. The routine is not changed."""
    repo = SessionRepository(db)
    session = load_running_session(repo, user.user_id)
    session = add_exercise_to_session(session, request.exercise, request.targets)
    return save_and_respond(repo, user.user_id, session)


@router.post("/pause", response_model=SessionResponse)
def pause_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    repo = SessionRepository(db)
    session = pause_session(load_active_session(repo, user.user_id))
    return save_and_respond(repo, user.user_id, session)


@router.post("/resume", response_model=SessionResponse)
def resume_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResponse:
    repo = SessionRepository(db)
    session = resume_session(load_active_session(repo, user.user_id))
    return save_and_respond(repo, user.user_id, session)


def record_result(
    db: Session,
    user: AuthenticatedUser,
    session: WorkoutSession,
    log: WorkoutLog,
    stamp_routine: bool,
    now: datetime.datetime,
) -> SessionResultResponse:
    """Persist a finished or aborted session and award its XP.

    Every write is independent: a failed write is reported as a warning and
    does not undo the others or the computed result. XP is awarded once per
    session: if its log is already stored because an earlier attempt could
    not clear the session, the stored log is returned and only the remaining
    bookkeeping is retried.
    """
    warnings = []
    logs = LogRepository(db)
    profiles = ProfileRepository(db)
    profile = profiles.get(user.user_id) or UserProfile(email=user.email)

    recorded = logs.get(user.user_id, log.id)
    if recorded is not None:
        logger.info("Session %s was already recorded", session.id)
        log = recorded
        result = ProgressionResult(profile=profile)
    else:
        if not logs.append(user.user_id, log):
            warnings.append("Workout log could not be saved")
        result = apply_xp(profile, log.xp_earned)
        if not profiles.upsert(user.user_id, result.profile):
            warnings.append("Profile progress could not be saved")

    if stamp_routine:
        routines = RoutineRepository(db)
        routine = routines.get(user.user_id, session.routine_id)
        if routine is not None and not routines.upsert(
            user.user_id, stamp_last_performed(routine, now)
        ):
            warnings.append("Routine could not be updated")

    if not SessionRepository(db).delete(user.user_id):
        warnings.append("Session could not be cleared")

    for warning in warnings:
        logger.warning("%s (session %s)", warning, session.id)

    return SessionResultResponse(
        log=log,
        profile=result.profile,
        levels_gained=result.levels_gained,
        warnings=warnings,
    )


@router.post("/finish", response_model=SessionResultResponse)
def finish_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResultResponse:
    """Finish the session with full XP credit and stamp the routine.

    Responds 409 with kind ``no_active_session`` if nothing is in progress,
    or ``session_paused`` if the session has to be resumed first.
    """
    session = load_running_session(SessionRepository(db), user.user_id)
    now = now_utc()
    log = finish_session(session, now)
    return record_result(db, user, session, log, stamp_routine=True, now=now)


@router.post("/abort", response_model=SessionResultResponse)
def abort_workout(
    request: AbortRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SessionResultResponse:
    """Abort the session for half XP. The routine is not stamped."""
    if not request.confirm:
        raise HTTPException(status_code=400, detail="Abort must be confirmed")

    session = SessionRepository(db).get(user.user_id)
    now = now_utc()
    log = abort_session(session, now)
    return record_result(db, user, session, log, stamp_routine=False, now=now)
