"""XP, volume and progress calculations.

All functions here are pure and never raise on malformed set values.
"""

import math
import re
from typing import Iterable

from typedefs import Difficulty, Exercise, Routine, RoutineExercise

XP_PER_SET = 10

DIFFICULTY_MULTIPLIERS = {
    Difficulty.BEGINNER: 1,
    Difficulty.INTERMEDIATE: 2,
    Difficulty.EXPERT: 3,
}

# Leading number of a free-text value, e.g. "22.5kg" -> 22.5
_NUMBER_PATTERN = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")


def difficulty_multiplier(exercise: Exercise) -> int:
    """Return the XP multiplier for an exercise (unspecified = intermediate)."""
    return DIFFICULTY_MULTIPLIERS[exercise.difficulty or Difficulty.INTERMEDIATE]


def parse_number(value) -> float:
    """Parse a weight/reps entry, returning 0.0 for anything unparseable."""
    if value is None:
        return 0.0
    match = _NUMBER_PATTERN.match(str(value))
    if not match:
        return 0.0
    number = float(match.group(1))
    return number if math.isfinite(number) else 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return math.floor(value + 0.5)


def completed_set_count(exercise: RoutineExercise) -> int:
    return sum(1 for s in exercise.set_logs if s.completed)


def compute_xp(exercises: Iterable[RoutineExercise]) -> int:
    """XP earned for the completed sets of the given exercises."""
    return sum(
        completed_set_count(ex) * XP_PER_SET * difficulty_multiplier(ex.exercise)
        for ex in exercises
    )


def compute_estimated_xp(routine: Routine) -> int:
    """XP obtainable if every target set of the routine were completed.

    Used for preview display only.
    """
    return sum(
        ex.target_sets * XP_PER_SET * difficulty_multiplier(ex.exercise)
        for ex in routine.exercises
    )


def compute_volume(exercises: Iterable[RoutineExercise]) -> float:
    """Sum of weight x reps over completed sets."""
    return sum(
        parse_number(s.weight) * parse_number(s.reps)
        for ex in exercises
        for s in ex.set_logs
        if s.completed
    )


def session_progress(exercises: Iterable[RoutineExercise]) -> float:
    """Percentage of sets completed. No sets at all counts as 0%."""
    total = 0
    completed = 0
    for ex in exercises:
        total += len(ex.set_logs)
        completed += completed_set_count(ex)
    if total == 0:
        return 0.0
    return completed / total * 100
