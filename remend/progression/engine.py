"""Adaptive plan progression.

Deterministic bucket rotation and dosage adjustment, no AI:
- Mobility buckets are always kept
- Other buckets rotate activation/isometric -> strength -> stability while
  improving, and fall back to activation when worse
- Dosage changes only touch strength/isometric work (see dosage.adjust_dosage)
"""

import re
from dataclasses import dataclass, field

from loguru import logger

from remend.errors import NoExercisesAvailableError
from remend.exercises.catalog import CatalogStore
from remend.exercises.dosage import adjust_dosage
from remend.exercises.shortlist import MAX_SHORTLIST_SIZE, dedupe_shortlist, pick_from_bucket
from remend.exercises.types import ShortlistExercise, Trend

PROGRESSION_DOSAGE_LEVEL = "moderate"

_REGRESSION_PATTERN = re.compile(r"strength|stability")


@dataclass(frozen=True)
class ProgressionResult:
    exercises: list[ShortlistExercise]
    buckets: list[str]
    reasoning: list[str] = field(default_factory=list)


def _unique(items: list[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _upgrade_bucket(bucket: str) -> str:
    # One step per generation
    if "activation" in bucket:
        return bucket.replace("activation", "strength", 1)
    if "isometric" in bucket:
        return bucket.replace("isometric", "strength", 1)
    if "strength" in bucket:
        return bucket.replace("strength", "stability", 1)
    return bucket


def _regress_bucket(bucket: str) -> str:
    return _REGRESSION_PATTERN.sub("activation", bucket, count=1)


def progress_buckets(current_exercises: list[ShortlistExercise], trend: Trend) -> list[str]:
    """Derive the next bucket set from the current shortlist.

    Args:
        current_exercises: Shortlist of the anchor plan
        trend: Trend classification

    Returns:
        Bucket slugs, mobility first for improving/worse, original order for stable
    """
    current_buckets = _unique([exercise.bucket_slug for exercise in current_exercises])

    if trend == "stable":
        return current_buckets

    mobility = [bucket for bucket in current_buckets if "mobility" in bucket]
    others = [bucket for bucket in current_buckets if "mobility" not in bucket]

    if trend == "improving":
        transformed = [_upgrade_bucket(bucket) for bucket in others]
    else:
        transformed = [_regress_bucket(bucket) for bucket in others]

    return _unique(mobility + transformed)


def select_progression_exercises(
    catalog: CatalogStore,
    bucket_slugs: list[str],
    current_exercises: list[ShortlistExercise],
    trend: Trend,
) -> list[ShortlistExercise]:
    """Pick up to three exercises for a progression plan.

    The first current exercise is kept for continuity unless the trend is
    worse. Remaining slots are filled from the new buckets at the moderate
    preset, never repeating an exercise id.
    """
    selected: list[ShortlistExercise] = []

    if trend != "worse" and current_exercises:
        selected.append(current_exercises[0])

    for bucket_slug in bucket_slugs:
        if len(selected) >= MAX_SHORTLIST_SIZE:
            break
        exercise = pick_from_bucket(
            catalog,
            bucket_slug,
            PROGRESSION_DOSAGE_LEVEL,
            exclude_ids=[ex.exercise_id for ex in selected],
        )
        if exercise is not None:
            selected.append(exercise)

    return dedupe_shortlist(selected)[:MAX_SHORTLIST_SIZE]


def progress_plan(
    catalog: CatalogStore,
    current_exercises: list[ShortlistExercise],
    trend: Trend,
) -> ProgressionResult:
    """Evolve an anchor plan's shortlist for the given trend.

    Args:
        catalog: Catalog lookup
        current_exercises: Anchor plan shortlist
        trend: Trend classification

    Returns:
        ProgressionResult with adjusted exercises, buckets and reasoning

    Raises:
        NoExercisesAvailableError: If selection yields nothing
    """
    reasoning: list[str] = []

    buckets = progress_buckets(current_exercises, trend)
    reasoning.append(f"Bucket strategy: {', '.join(buckets)}")

    exercises = select_progression_exercises(catalog, buckets, current_exercises, trend)
    if not exercises:
        logger.error("Progression produced no exercises", buckets=buckets, trend=trend)
        raise NoExercisesAvailableError(buckets)

    adjusted = [adjust_dosage(exercise, trend, reasoning) for exercise in exercises]

    logger.info(
        "Plan progressed",
        trend=trend,
        buckets=buckets,
        exercise_ids=[ex.exercise_id for ex in adjusted],
    )
    return ProgressionResult(exercises=adjusted, buckets=buckets, reasoning=reasoning)
