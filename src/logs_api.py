"""REST API endpoints for workout history."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from repository import LogRepository
from typedefs import WorkoutLog

router = APIRouter(prefix="/api/v1/logs", tags=["logs"])


@router.get("", response_model=List[WorkoutLog])
def list_logs(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[WorkoutLog]:
    """List the user's workout logs, most recent session first."""
    return LogRepository(db).list(user.user_id, skip=skip, limit=limit)


@router.get("/{log_id}", response_model=WorkoutLog)
def get_log(
    log_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> WorkoutLog:
    log = LogRepository(db).get(user.user_id, log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Workout log not found")
    return log
