"""Initial plan selection for a program's first plan.

- No log or trend history is used
- Buckets come from pattern mapping
- Dosage is always the low preset (safety first)
- 2-3 exercises, diversified across buckets when possible
"""

from dataclasses import dataclass

from loguru import logger

from remend.errors import NoExercisesAvailableError
from remend.exercises.catalog import CatalogStore
from remend.exercises.pattern_mapper import PatternMappingResult, map_pattern
from remend.exercises.shortlist import MAX_SHORTLIST_SIZE, MIN_SHORTLIST_SIZE, pick_from_bucket
from remend.exercises.types import PatternMappingInput, ShortlistExercise

INITIAL_DOSAGE_LEVEL = "low"


@dataclass(frozen=True)
class InitialPlanResult:
    exercises: list[ShortlistExercise]
    mapping: PatternMappingResult


def select_initial_exercises(catalog: CatalogStore, bucket_slugs: list[str]) -> list[ShortlistExercise]:
    """Select up to three low-dosage exercises from the given buckets.

    First pass takes one exercise per bucket. If that yields fewer than two,
    a second pass draws additional exercises from the same buckets, never
    repeating an exercise id.

    Args:
        catalog: Catalog lookup
        bucket_slugs: Candidate buckets in priority order

    Returns:
        Selected exercises (possibly empty; the caller decides whether that is fatal)
    """
    selected: list[ShortlistExercise] = []

    for bucket_slug in bucket_slugs:
        if len(selected) >= MAX_SHORTLIST_SIZE:
            break
        exercise = pick_from_bucket(
            catalog,
            bucket_slug,
            INITIAL_DOSAGE_LEVEL,
            exclude_ids=[ex.exercise_id for ex in selected],
        )
        if exercise is not None:
            selected.append(exercise)

    if len(selected) < MIN_SHORTLIST_SIZE:
        for bucket_slug in bucket_slugs:
            if len(selected) >= MAX_SHORTLIST_SIZE:
                break
            exercise = pick_from_bucket(
                catalog,
                bucket_slug,
                INITIAL_DOSAGE_LEVEL,
                exclude_ids=[ex.exercise_id for ex in selected],
            )
            if exercise is not None:
                selected.append(exercise)

    return selected


def build_initial_plan(catalog: CatalogStore, mapping_input: PatternMappingInput) -> InitialPlanResult:
    """Map the pattern to buckets and select the first plan's exercises.

    Raises:
        NoExercisesAvailableError: If no exercise exists in any mapped bucket
    """
    mapping = map_pattern(mapping_input)
    exercises = select_initial_exercises(catalog, mapping.buckets)

    if not exercises:
        logger.error(
            "Initial plan has no exercises",
            buckets=mapping.buckets,
            confidence=mapping.confidence_level,
        )
        raise NoExercisesAvailableError(mapping.buckets)

    logger.info(
        "Initial exercises selected",
        buckets=mapping.buckets,
        exercise_ids=[ex.exercise_id for ex in exercises],
        confidence=mapping.confidence_level,
    )
    return InitialPlanResult(exercises=exercises[:MAX_SHORTLIST_SIZE], mapping=mapping)
