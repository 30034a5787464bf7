from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    return str(uuid4())


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class LogStatus(str, Enum):
    COMPLETED = "COMPLETED"
    INCOMPLETE = "INCOMPLETE"
    ABORTED = "ABORTED"


class Experience(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    EXPERT = "EXPERT"


class Goal(str, Enum):
    STRENGTH = "STRENGTH"
    HYPERTROPHY = "HYPERTROPHY"
    ENDURANCE = "ENDURANCE"


class Exercise(BaseModel):
    """Catalog exercise. Read-only to the workout core."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    body_part: str = "unknown"
    target: str = "unknown"
    equipment: str = "unknown"
    secondary_muscles: List[str] = []
    instructions: List[str] = []
    exercise_type: str = "strength"
    # None is scored as intermediate
    difficulty: Difficulty | None = None
    image_url: str = ""
    gif_url: str = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value):
        if value is None or isinstance(value, Difficulty):
            return value
        value = str(value).strip().lower()
        if value in {d.value for d in Difficulty}:
            return value
        return None


class SetLog(BaseModel):
    """One tracked set. Weight (kg) and reps are kept as entered."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    weight: str = ""
    reps: str = ""
    completed: bool = False


class ExerciseTargets(BaseModel):
    """Prescription used when an exercise is added to a routine or session."""

    model_config = ConfigDict(frozen=True)

    sets: int = Field(3, gt=0)
    reps: str = "10"  # Free-form, e.g. "8-10"
    weight: str = "20"


class RoutineExercise(BaseModel):
    """An exercise inside a routine or session.

    ``set_logs`` is empty while the exercise belongs to a routine template and
    holds exactly ``target_sets`` entries once a session materializes it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    exercise: Exercise
    target_sets: int = Field(gt=0)
    target_reps: str
    target_weight: str
    set_logs: List[SetLog] = []


class Routine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    exercises: List[RoutineExercise] = []
    last_performed: Optional[datetime] = None
    is_favorite: bool = False


class WorkoutSession(BaseModel):
    """A live execution of a routine.

    Routine id and name are snapshots taken when the session starts.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    routine_id: str
    routine_name: str
    start_time: datetime
    exercises: List[RoutineExercise] = []
    paused_at: Optional[datetime] = None
    total_paused_seconds: float = 0.0

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None


class WorkoutLog(BaseModel):
    """Immutable record produced when a session is finished or aborted."""

    model_config = ConfigDict(frozen=True)

    id: str  # Reuses the session id
    routine_name: str
    date: datetime  # Session start, not end
    duration: int  # Minutes
    xp_earned: int
    exercises_completed: int
    total_volume: float
    status: LogStatus
    exercises: List[RoutineExercise]


class UserStat(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: int
    full_mark: int = 120


def default_stats() -> List[UserStat]:
    return [
        UserStat(label="Chest", value=70),
        UserStat(label="Back", value=65),
        UserStat(label="Legs", value=80),
        UserStat(label="Arms", value=60),
        UserStat(label="Core", value=50),
    ]


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Operative"
    email: str = ""
    height: str = "180cm"
    weight: str = "80kg"
    avatar_url: Optional[str] = None
    level: int = Field(1, ge=1)
    current_xp: int = Field(0, ge=0)
    xp_required: int = Field(1000, gt=0)
    stats: List[UserStat] = Field(default_factory=default_stats)
    onboarding_complete: bool = False
    experience: Optional[Experience] = None
    goal: Optional[Goal] = None


class ProgressionResult(BaseModel):
    """Updated profile plus the number of levels gained (for notifications)."""

    profile: UserProfile
    levels_gained: int = 0


class CatalogFilters(BaseModel):
    body_parts: List[str] = []
    equipments: List[str] = []
    target_muscles: List[str] = []
    exercise_types: List[str] = []


class CatalogPage(BaseModel):
    items: List[Exercise]
    total: int
