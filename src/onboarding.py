"""Profile endpoints, including first-run onboarding."""

import logging
from typing import List, Optional

from anthropic import Anthropic
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ai_routines import (
    RoutineGenerationError,
    build_setup_prompt,
    generate_routine,
    get_anthropic_client,
    to_routine,
)
from auth import AuthenticatedUser, get_or_create_user
from catalog import ExerciseCatalog, get_exercise_catalog
from database import get_db
from repository import ProfileRepository, RoutineRepository
from routines import build_routine_exercise
from routines_api import save_generated_favorite
from typedefs import (
    Exercise,
    Experience,
    Goal,
    Routine,
    UserProfile,
    UserStat,
)

logger = logging.getLogger(__name__)

# Number of catalog exercises used when the generator is unavailable
FALLBACK_ROUTINE_SIZE = 5

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    height: Optional[str] = None
    weight: Optional[str] = None
    avatar_url: Optional[str] = None
    experience: Optional[Experience] = None
    goal: Optional[Goal] = None


class StatUpdateRequest(BaseModel):
    value: int


class SetupRequest(BaseModel):
    name: str = Field(min_length=1)
    experience: Experience
    goal: Goal


class ProfileResponse(UserProfile):
    warnings: List[str] = []


class SetupResponse(BaseModel):
    profile: UserProfile
    routines: List[Routine]
    warnings: List[str] = []


def load_profile(repo: ProfileRepository, user: AuthenticatedUser) -> UserProfile:
    """Stored profile, or a fresh default that still needs onboarding."""
    return repo.get(user.user_id) or UserProfile(email=user.email)


def to_response(profile: UserProfile, saved: bool = True) -> ProfileResponse:
    return ProfileResponse(
        **profile.model_dump(),
        warnings=[] if saved else ["Profile changes could not be saved"],
    )


def calibrate_stat(profile: UserProfile, label: str, value: int) -> UserProfile:
    """Set one radar stat, clamped to [0, full_mark].

    Raises:
        KeyError: If the profile has no stat with this label
    """
    stats = []
    found = False
    for stat in profile.stats:
        if stat.label.lower() == label.lower():
            found = True
            stat = UserStat(
                label=stat.label,
                value=min(max(value, 0), stat.full_mark),
                full_mark=stat.full_mark,
            )
        stats.append(stat)
    if not found:
        raise KeyError(label)
    return profile.model_copy(update={"stats": stats})


def fallback_routine(exercises: List[Exercise]) -> Routine:
    """Starter routine built from the first catalog exercises."""
    return Routine(
        name="Initiation Protocol",
        description="Starter routine",
        exercises=[
            build_routine_exercise(ex) for ex in exercises[:FALLBACK_ROUTINE_SIZE]
        ],
        is_favorite=True,
    )


@router.get("", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ProfileResponse:
    """Return the profile. ``onboarding_complete`` is false for new users."""
    return to_response(load_profile(ProfileRepository(db), user))


@router.patch("", response_model=ProfileResponse)
def update_profile(
    request: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ProfileResponse:
    repo = ProfileRepository(db)
    changes = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if value is not None
    }
    profile = load_profile(repo, user).model_copy(update=changes)
    return to_response(profile, repo.upsert(user.user_id, profile))


@router.put("/stats/{label}", response_model=ProfileResponse)
def update_stat(
    label: str,
    request: StatUpdateRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ProfileResponse:
    repo = ProfileRepository(db)
    try:
        profile = calibrate_stat(load_profile(repo, user), label, request.value)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown stat: {label}") from e
    return to_response(profile, repo.upsert(user.user_id, profile))


@router.post("/setup", response_model=SetupResponse)
def setup_profile(
    request: SetupRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
    client: Anthropic = Depends(get_anthropic_client),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
) -> SetupResponse:
    """Complete onboarding.

    This endpoint:
    1. Generates a first routine for the chosen goal and experience
    2. Falls back to a starter routine from the catalog if generation fails
    3. Saves that routine as the favorite (the active mission)
    4. Saves the profile with onboarding marked complete

    Progress (level, XP, stats) of an existing profile is kept.
    """
    candidates = catalog.search(page=1, limit=100).items

    try:
        generated = generate_routine(
            client, build_setup_prompt(request.goal, request.experience)
        )
        routine = to_routine(generated, candidates, is_favorite=True)
    except RoutineGenerationError as e:
        logger.warning("Using starter routine for user %s: %s", user.user_id, e)
        routine = fallback_routine(candidates)

    warnings = []
    routine_repo = RoutineRepository(db)
    if not save_generated_favorite(routine_repo, user.user_id, routine):
        warnings.append("Generated routine could not be saved")

    profile_repo = ProfileRepository(db)
    profile = load_profile(profile_repo, user).model_copy(
        update={
            "name": request.name,
            "experience": request.experience,
            "goal": request.goal,
            "onboarding_complete": True,
        }
    )
    if not profile_repo.upsert(user.user_id, profile):
        warnings.append("Profile changes could not be saved")

    return SetupResponse(
        profile=profile,
        routines=routine_repo.list(user.user_id),
        warnings=warnings,
    )
