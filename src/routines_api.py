"""REST API endpoints for routine operations."""

import logging
from typing import List

from anthropic import Anthropic
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ai_routines import (
    RoutineGenerationError,
    generate_routine,
    get_anthropic_client,
    to_routine,
)
from auth import AuthenticatedUser, get_or_create_user
from catalog import ExerciseCatalog, get_exercise_catalog
from database import get_db
from repository import RoutineRepository
from routines import (
    add_exercise_to_active_routine,
    add_exercise_to_routine,
    fork_routine,
    remove_exercise,
    set_favorite,
    unset_favorite,
    update_exercise_targets,
)
from scoring import compute_estimated_xp
from typedefs import Exercise, ExerciseTargets, Routine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/routines", tags=["routines"])

SAVE_WARNING = "Routine changes could not be saved"


class RoutineCreateRequest(BaseModel):
    name: str
    description: str = ""


class RoutineUpdateRequest(BaseModel):
    """PATCH body. Only fields that are sent are changed."""

    name: str | None = None
    description: str | None = None


class AddExerciseRequest(BaseModel):
    exercise: Exercise
    targets: ExerciseTargets = ExerciseTargets()


class GenerateRoutineRequest(BaseModel):
    prompt: str


class RoutineResponse(Routine):
    """A routine with its XP preview and any persistence warnings."""

    estimated_xp: int
    warnings: List[str] = []


class EstimatedXpResponse(BaseModel):
    routine_id: str
    estimated_xp: int


def to_response(routine: Routine, saved: bool = True) -> RoutineResponse:
    return RoutineResponse(
        **routine.model_dump(),
        estimated_xp=compute_estimated_xp(routine),
        warnings=[] if saved else [SAVE_WARNING],
    )


def load_routine(repo: RoutineRepository, user_id, routine_id: str) -> Routine:
    routine = repo.get(user_id, routine_id)
    if routine is None:
        raise HTTPException(status_code=404, detail="Routine not found")
    return routine


@router.get("", response_model=List[RoutineResponse])
def list_routines(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[RoutineResponse]:
    """List all routines of the authenticated user in creation order."""
    return [to_response(r) for r in RoutineRepository(db).list(user.user_id)]


@router.post("", response_model=RoutineResponse, status_code=201)
def create_routine(
    request: RoutineCreateRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Create an empty routine."""
    routine = Routine(name=request.name, description=request.description)
    saved = RoutineRepository(db).upsert(user.user_id, routine)
    return to_response(routine, saved)


@router.post("/generate", response_model=RoutineResponse, status_code=201)
def generate_routine_endpoint(
    request: GenerateRoutineRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
    client: Anthropic = Depends(get_anthropic_client),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
) -> RoutineResponse:
    """Generate a routine from a free-text prompt and save it."""
    try:
        generated = generate_routine(client, request.prompt)
    except RoutineGenerationError as e:
        logger.warning("Routine generation failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    candidates = catalog.search(page=1, limit=100).items
    routine = to_routine(generated, candidates)
    saved = RoutineRepository(db).upsert(user.user_id, routine)
    return to_response(routine, saved)


@router.post("/active/exercises", response_model=RoutineResponse)
def add_exercise_to_active(
    request: AddExerciseRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Add an exercise to the favorite routine (the "active mission").

    Responds 422 with kind ``no_active_routine`` when none is selected.
    """
    repo = RoutineRepository(db)
    routine = add_exercise_to_active_routine(
        repo.list(user.user_id), request.exercise, request.targets
    )
    return to_response(routine, repo.upsert(user.user_id, routine))


@router.get("/{routine_id}", response_model=RoutineResponse)
def get_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    return to_response(load_routine(RoutineRepository(db), user.user_id, routine_id))


@router.patch("/{routine_id}", response_model=RoutineResponse)
def update_routine(
    routine_id: str,
    request: RoutineUpdateRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    repo = RoutineRepository(db)
    routine = load_routine(repo, user.user_id, routine_id)
    # Use model_dump with exclude_unset=True to only get fields that were explicitly set
    changes = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if value is not None
    }
    routine = routine.model_copy(update=changes)
    return to_response(routine, repo.upsert(user.user_id, routine))


@router.delete("/{routine_id}", status_code=204)
def delete_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> None:
    repo = RoutineRepository(db)
    load_routine(repo, user.user_id, routine_id)
    if not repo.delete(user.user_id, routine_id):
        raise HTTPException(status_code=503, detail="Routine could not be deleted")


@router.post("/{routine_id}/favorite", response_model=RoutineResponse)
def favorite_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Make this routine the active mission; every other routine is unset."""
    repo = RoutineRepository(db)
    routines = set_favorite(repo.list(user.user_id), routine_id)
    saved = repo.upsert_many(user.user_id, routines)
    return to_response(next(r for r in routines if r.id == routine_id), saved)


@router.delete("/{routine_id}/favorite", response_model=RoutineResponse)
def unfavorite_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    repo = RoutineRepository(db)
    routines = unset_favorite(repo.list(user.user_id), routine_id)
    routine = next(r for r in routines if r.id == routine_id)
    return to_response(routine, repo.upsert(user.user_id, routine))


@router.post("/{routine_id}/fork", response_model=RoutineResponse, status_code=201)
def fork_routine_endpoint(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Copy a routine with fresh ids. The copy is never the favorite."""
    repo = RoutineRepository(db)
    forked = fork_routine(load_routine(repo, user.user_id, routine_id))
    return to_response(forked, repo.upsert(user.user_id, forked))


@router.get("/{routine_id}/estimated-xp", response_model=EstimatedXpResponse)
def get_estimated_xp(
    routine_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> EstimatedXpResponse:
    routine = load_routine(RoutineRepository(db), user.user_id, routine_id)
    return EstimatedXpResponse(
        routine_id=routine.id, estimated_xp=compute_estimated_xp(routine)
    )


@router.post("/{routine_id}/exercises", response_model=RoutineResponse)
def add_exercise(
    routine_id: str,
    request: AddExerciseRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    repo = RoutineRepository(db)
    routine = add_exercise_to_routine(
        load_routine(repo, user.user_id, routine_id),
        request.exercise,
        request.targets,
    )
    return to_response(routine, repo.upsert(user.user_id, routine))


@router.patch("/{routine_id}/exercises/{exercise_id}", response_model=RoutineResponse)
def update_exercise(
    routine_id: str,
    exercise_id: str,
    targets: ExerciseTargets,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Change the target sets, reps and weight of one routine exercise."""
    repo = RoutineRepository(db)
    routine = update_exercise_targets(
        load_routine(repo, user.user_id, routine_id), exercise_id, targets
    )
    return to_response(routine, repo.upsert(user.user_id, routine))


@router.delete("/{routine_id}/exercises/{exercise_id}", response_model=RoutineResponse)
def delete_exercise(
    routine_id: str,
    exercise_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> RoutineResponse:
    """Remove an exercise. An in-progress session keeps its own copy."""
    repo = RoutineRepository(db)
    routine = remove_exercise(load_routine(repo, user.user_id, routine_id), exercise_id)
    return to_response(routine, repo.upsert(user.user_id, routine))


def save_generated_favorite(repo: RoutineRepository, user_id, routine: Routine) -> bool:
    """Save a new routine as the single favorite among the user's routines."""
    routines = set_favorite(repo.list(user_id) + [routine], routine.id)
    return repo.upsert_many(user_id, routines)
