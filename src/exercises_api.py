"""REST API endpoints for browsing the exercise catalog."""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from auth import AuthenticatedUser, get_or_create_user
from catalog import ExerciseCatalog, get_exercise_catalog
from typedefs import CatalogFilters, CatalogPage

router = APIRouter(prefix="/api/v1/exercises", tags=["exercises"])


class FilterListsResponse(BaseModel):
    body_parts: List[str]
    equipments: List[str]
    target_muscles: List[str]
    exercise_types: List[str]


@router.get("", response_model=CatalogPage)
def search_exercises(
    query: str | None = None,
    body_part: List[str] = Query([]),
    equipment: List[str] = Query([]),
    target: List[str] = Query([]),
    exercise_type: List[str] = Query([], alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(6, ge=1, le=100),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> CatalogPage:
    """Search exercises. Repeat a filter parameter to match any of its values."""
    filters = CatalogFilters(
        body_parts=body_part,
        equipments=equipment,
        target_muscles=target,
        exercise_types=exercise_type,
    )
    return catalog.search(filters=filters, query=query, page=page, limit=limit)


@router.get("/filters", response_model=FilterListsResponse)
def get_filter_lists(
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> FilterListsResponse:
    return FilterListsResponse(
        body_parts=catalog.body_parts(),
        equipments=catalog.equipments(),
        target_muscles=catalog.target_muscles(),
        exercise_types=catalog.exercise_types(),
    )
