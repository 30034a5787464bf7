"""AI routine generation with the Anthropic API."""

import json
import logging
from typing import List, Sequence

from anthropic import Anthropic
from pydantic import BaseModel, Field, ValidationError

from catalog import find_by_name
from config import settings
from typedefs import Exercise, Experience, Goal, Routine, RoutineExercise, new_id

logger = logging.getLogger(__name__)

GOAL_FOCUS = {
    Goal.STRENGTH: "compound movements",
    Goal.HYPERTROPHY: "volume and isolation",
    Goal.ENDURANCE: "endurance and stamina",
}


class RoutineGenerationError(Exception):
    """The model could not produce a usable routine."""


class GeneratedExercise(BaseModel):
    name: str
    body_part: str | None = None
    equipment: str | None = None
    instructions: List[str] = []
    target_sets: int = Field(3, gt=0)
    target_reps: str = "10"
    target_weight: str = "20"


class GeneratedRoutine(BaseModel):
    name: str
    description: str = ""
    exercises: List[GeneratedExercise]


def get_anthropic_client() -> Anthropic:
    """Dependency function that returns the Anthropic client."""
    return Anthropic(api_key=settings.ANTHROPIC_API_KEY)


def clean_json_response(response_text: str) -> str:
    """Remove markdown code fences from a model response if present."""
    text = response_text.strip()

    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()

    return text


def get_routine_schema_prompt() -> str:
    schema = GeneratedRoutine.model_json_schema()
    return f"""You are an expert strength coach designing a single workout routine.

The JSON must match this exact schema:

{json.dumps(schema, indent=2)}

Guidelines:
- 4 to 8 exercises, ordered as they should be performed
- exercise names in singular form (e.g. "Barbell Squat")
- target_reps may be a range such as "8-10"
- target_weight is a starting load in kilograms, as a string

CRITICAL: Return ONLY valid JSON matching this schema. No markdown,
no explanation, no code blocks."""


def build_setup_prompt(goal: Goal, experience: Experience) -> str:
    """Prompt used to generate the first routine during onboarding."""
    return (
        f"Create a comprehensive {goal.value} workout routine for a "
        f"{experience.value} level athlete. Focus on {GOAL_FOCUS[goal]}."
    )


def generate_routine(
    client: Anthropic,
    prompt: str,
    max_tokens: int = 4096,
) -> GeneratedRoutine:
    """Ask the model for a routine matching ``prompt``.

    Raises:
        RoutineGenerationError: If the request fails or the response does not
            match the routine schema
    """
    try:
        response = client.messages.create(
            model=settings.ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            system=get_routine_schema_prompt(),
            messages=[{"role": "user", "content": prompt}],
        )
        text = clean_json_response(response.content[0].text)
        return GeneratedRoutine(**json.loads(text))
    except json.JSONDecodeError as e:
        raise RoutineGenerationError(f"Routine generator returned invalid JSON: {e}") from e
    except ValidationError as e:
        raise RoutineGenerationError(f"Routine generator returned bad data: {e}") from e
    except Exception as e:
        raise RoutineGenerationError(f"Routine generation request failed: {e}") from e


def to_routine(
    generated: GeneratedRoutine,
    catalog: Sequence[Exercise] = (),
    is_favorite: bool = False,
) -> Routine:
    """Build a Routine, filling exercise metadata from catalog matches."""
    exercises = []
    for gen in generated.exercises:
        match = find_by_name(gen.name, catalog)
        exercise = Exercise(
            id=match.id if match else new_id(),
            name=gen.name,
            body_part=(match.body_part if match else None) or gen.body_part or "unknown",
            target=match.target if match else "unknown",
            equipment=(match.equipment if match else None) or gen.equipment or "unknown",
            secondary_muscles=match.secondary_muscles if match else [],
            instructions=gen.instructions or (match.instructions if match else []),
            exercise_type=match.exercise_type if match else "strength",
            difficulty=match.difficulty if match else None,
            image_url=match.image_url if match else "",
            gif_url=match.gif_url if match else "",
        )
        exercises.append(
            RoutineExercise(
                exercise=exercise,
                target_sets=gen.target_sets,
                target_reps=gen.target_reps,
                target_weight=gen.target_weight,
            )
        )

    return Routine(
        name=generated.name,
        description=generated.description or "AI Generated Protocol",
        exercises=exercises,
        is_favorite=is_favorite,
    )
