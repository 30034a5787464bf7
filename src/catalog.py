"""Exercise catalog client.

Wraps the ExerciseDB HTTP API. When the API is not configured, rate limited
or unreachable, a small built-in catalog is used instead so browsing and
onboarding keep working.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List

import requests
from pydantic import ValidationError

from config import settings
from typedefs import CatalogFilters, CatalogPage, Exercise

logger = logging.getLogger(__name__)

# How many exercises to pull from the API before filtering locally
FETCH_LIMIT = 50

FALLBACK_EXERCISES: List[Exercise] = [
    Exercise(
        id="EIeI8Vf",
        name="barbell bench press",
        body_part="chest",
        target="pectorals",
        equipment="barbell",
        secondary_muscles=["triceps", "shoulders"],
        instructions=[
            "Lie flat on a bench.",
            "Grasp barbell with overhand grip.",
            "Lower to chest.",
            "Press up.",
        ],
        difficulty="expert",
        exercise_type="strength",
        gif_url="https://static.exercisedb.dev/media/EIeI8Vf.gif",
    ),
    Exercise(
        id="52r52",
        name="barbell squat",
        body_part="upper legs",
        target="quadriceps",
        equipment="barbell",
        secondary_muscles=["glutes", "hamstrings", "calves"],
        instructions=[
            "Stand with feet shoulder-width.",
            "Barbell on back.",
            "Squat down.",
            "Drive up.",
        ],
        difficulty="expert",
        exercise_type="strength",
        gif_url="https://static.exercisedb.dev/media/52r52.gif",
    ),
    Exercise(
        id="fb_db_curl",
        name="dumbbell bicep curl",
        body_part="upper arms",
        target="biceps",
        equipment="dumbbell",
        secondary_muscles=["forearms"],
        instructions=["Hold dumbbells.", "Curl upwards.", "Lower slowly."],
        difficulty="beginner",
        exercise_type="strength",
    ),
    Exercise(
        id="fb_run",
        name="treadmill running",
        body_part="cardio",
        target="cardiovascular system",
        equipment="machine",
        secondary_muscles=["legs"],
        instructions=["Start machine.", "Run."],
        difficulty="beginner",
        exercise_type="cardio",
    ),
    Exercise(
        id="fb_cable_fly",
        name="cable crossover",
        body_part="chest",
        target="pectorals",
        equipment="cable",
        secondary_muscles=["shoulders"],
        instructions=["Set pulleys high.", "Pull handles down and together."],
        difficulty="intermediate",
        exercise_type="strength",
    ),
    Exercise(
        id="fb_leg_press",
        name="leg press",
        body_part="upper legs",
        target="quadriceps",
        equipment="machine",
        secondary_muscles=["calves"],
        instructions=["Sit on machine.", "Push weight away.", "Return slowly."],
        difficulty="beginner",
        exercise_type="strength",
    ),
    Exercise(
        id="fb_box_jump",
        name="box jump",
        body_part="upper legs",
        target="quadriceps",
        equipment="body weight",
        secondary_muscles=["calves", "glutes"],
        instructions=["Stand before box.", "Jump onto box.", "Step down."],
        difficulty="intermediate",
        exercise_type="plyometrics",
    ),
    Exercise(
        id="fb_lat_pull",
        name="lat pulldown",
        body_part="back",
        target="lats",
        equipment="cable",
        secondary_muscles=["biceps"],
        instructions=["Grip bar wide.", "Pull down to chest.", "Release up."],
        difficulty="beginner",
        exercise_type="strength",
    ),
]

FALLBACK_LISTS: Dict[str, List[str]] = {
    "bodyparts": [
        "back", "cardio", "chest", "lower arms", "lower legs",
        "neck", "shoulders", "upper arms", "upper legs", "waist",
    ],
    "equipments": [
        "assisted", "band", "barbell", "body weight", "bosu ball", "cable",
        "dumbbell", "machine", "kettlebell", "rope", "smith machine", "weighted",
    ],
    "muscles": [
        "abductors", "abs", "adductors", "biceps", "calves", "delts", "forearms",
        "glutes", "hamstrings", "lats", "pectorals", "quads", "traps", "triceps",
    ],
    "exercisetypes": [
        "cardio", "olympic_weightlifting", "plyometrics", "powerlifting",
        "strength", "stretching", "strongman",
    ],
}


class CatalogUnavailableError(Exception):
    """The remote catalog could not serve a request."""


def _name_of(item: Any) -> str:
    """API list entries are either plain strings or {"name": ...} objects."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and item.get("name"):
        return str(item["name"])
    return "unknown"


def _first_name(items: Any) -> str:
    if isinstance(items, list) and items:
        return _name_of(items[0])
    return "unknown"


def _unwrap_list(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


def map_api_exercise(item: Dict[str, Any]) -> Exercise:
    """Convert an ExerciseDB v1 record to an Exercise."""
    exercise_types = item.get("exerciseTypes") or []
    return Exercise(
        id=str(item.get("exerciseId") or item.get("id") or ""),
        name=item.get("name", ""),
        body_part=_first_name(item.get("bodyParts")),
        target=_first_name(item.get("targetMuscles")),
        equipment=_first_name(item.get("equipments")),
        secondary_muscles=[_name_of(m) for m in item.get("secondaryMuscles") or []],
        instructions=list(item.get("instructions") or []),
        exercise_type=_name_of(exercise_types[0]) if exercise_types else "strength",
        difficulty=item.get("difficulty") or None,
        image_url=item.get("imageUrl") or "",
        gif_url=item.get("gifUrl") or "",
    )


def _matches_any(value: str, wanted: List[str]) -> bool:
    wanted = [w.lower() for w in wanted if w and w.upper() != "ALL"]
    if not wanted:
        return True
    value = value.lower()
    return any(w in value for w in wanted)


def filter_exercises(
    exercises: Iterable[Exercise], filters: CatalogFilters, query: str | None = None
) -> List[Exercise]:
    result = []
    needle = (query or "").strip().lower()
    for ex in exercises:
        if needle and needle not in ex.name.lower() and needle not in ex.target.lower():
            continue
        if not _matches_any(ex.body_part, filters.body_parts):
            continue
        if not _matches_any(ex.equipment, filters.equipments):
            continue
        if not _matches_any(ex.target, filters.target_muscles):
            continue
        if not _matches_any(ex.exercise_type, filters.exercise_types):
            continue
        result.append(ex)
    return result


def paginate(exercises: List[Exercise], page: int, limit: int) -> CatalogPage:
    page = max(1, page)
    start = (page - 1) * limit
    return CatalogPage(items=exercises[start : start + limit], total=len(exercises))


def find_by_name(name: str, exercises: Iterable[Exercise]) -> Exercise | None:
    """Loose name match: either name contains the other, case-insensitive."""
    needle = name.strip().lower()
    if not needle:
        return None
    for ex in exercises:
        candidate = ex.name.lower()
        if needle in candidate or candidate in needle:
            return ex
    return None


class ExerciseCatalog:
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        api_host: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_host = api_host
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get(self, endpoint: str, params: Dict[str, Any] | None = None) -> Any:
        if not self.is_configured:
            raise CatalogUnavailableError("Exercise API key is not configured")
        headers = {"x-rapidapi-key": self.api_key}
        if self.api_host:
            headers["x-rapidapi-host"] = self.api_host
        try:
            response = requests.get(
                f"{self.base_url}/{endpoint}",
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CatalogUnavailableError(f"Exercise API request failed: {e}") from e

        if response.status_code == 429:
            raise CatalogUnavailableError("Exercise API rate limit exceeded")
        if not response.ok:
            raise CatalogUnavailableError(
                f"Exercise API returned {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise CatalogUnavailableError("Exercise API returned invalid JSON") from e

    def fetch_remote(
        self, filters: CatalogFilters, query: str | None = None
    ) -> List[Exercise]:
        params: Dict[str, Any] = {"limit": FETCH_LIMIT}
        if query and len(query) > 1:
            params["name"] = query
        body_parts = [b for b in filters.body_parts if b.upper() != "ALL"]
        if body_parts:
            params["bodyParts"] = ",".join(body_parts)
        equipments = [e for e in filters.equipments if e.upper() != "ALL"]
        if equipments:
            params["equipments"] = ",".join(equipments)

        items = _unwrap_list(self._get("exercises", params))
        exercises = []
        for item in items:
            try:
                exercises.append(map_api_exercise(item))
            except (AttributeError, ValidationError) as e:
                logger.warning("Skipping malformed exercise record: %s", e)
        if items and not exercises:
            raise CatalogUnavailableError("Exercise API returned no usable exercises")
        return exercises

    def search(
        self,
        filters: CatalogFilters | None = None,
        query: str | None = None,
        page: int = 1,
        limit: int = 6,
    ) -> CatalogPage:
        """Search the catalog, falling back to built-in exercises on failure.

        Filters are applied locally as well, since the API may ignore some of
        them.
        """
        filters = filters or CatalogFilters()
        try:
            exercises = self.fetch_remote(filters, query)
        except CatalogUnavailableError as e:
            logger.warning("Using fallback exercise catalog: %s", e)
            exercises = FALLBACK_EXERCISES
        return paginate(filter_exercises(exercises, filters, query), page, limit)

    def _fetch_list(self, endpoint: str) -> List[str]:
        fallback = FALLBACK_LISTS[endpoint]
        try:
            items = _unwrap_list(self._get(endpoint))
        except CatalogUnavailableError as e:
            logger.warning("Using fallback %s list: %s", endpoint, e)
            return list(fallback)
        return [_name_of(item) for item in items] or list(fallback)

    def body_parts(self) -> List[str]:
        return self._fetch_list("bodyparts")

    def equipments(self) -> List[str]:
        return self._fetch_list("equipments")

    def target_muscles(self) -> List[str]:
        return self._fetch_list("muscles")

    def exercise_types(self) -> List[str]:
        return self._fetch_list("exercisetypes")


@lru_cache(maxsize=1)
def get_exercise_catalog() -> ExerciseCatalog:
    """Dependency function that returns the shared catalog client."""
    return ExerciseCatalog(
        base_url=settings.EXERCISE_API_URL,
        api_key=settings.EXERCISE_API_KEY,
        api_host=settings.EXERCISE_API_HOST,
        timeout=settings.EXERCISE_API_TIMEOUT,
    )
