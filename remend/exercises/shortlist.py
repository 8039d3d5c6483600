"""Shortlist construction helpers shared by initial selection and progression."""

from collections.abc import Iterable

from remend.exercises.catalog import CatalogStore
from remend.exercises.dosage import format_dosage_text
from remend.exercises.types import DosageLevel, ExerciseCatalogEntry, ShortlistExercise

MAX_SHORTLIST_SIZE = 3
MIN_SHORTLIST_SIZE = 2


def to_shortlist_exercise(entry: ExerciseCatalogEntry, level: DosageLevel) -> ShortlistExercise:
    """Build a shortlist entry from a catalog entry at the given dosage level."""
    dosage = entry.dosage_for(level)
    return ShortlistExercise(
        exercise_id=entry.id,
        name=entry.name,
        bucket_slug=entry.bucket_slug,
        bucket_label=entry.bucket_label,
        dosage=dosage,
        dosage_text=format_dosage_text(dosage),
        safety_notes=entry.safety_notes,
    )


def pick_from_bucket(
    catalog: CatalogStore,
    bucket_slug: str,
    level: DosageLevel,
    exclude_ids: Iterable[int] = (),
) -> ShortlistExercise | None:
    """First active exercise of a bucket (catalog order) not already chosen."""
    entries = catalog.find_exercises(bucket_slug, exclude_ids=list(exclude_ids))
    if not entries:
        return None
    return to_shortlist_exercise(entries[0], level)


def dedupe_shortlist(exercises: Iterable[ShortlistExercise]) -> list[ShortlistExercise]:
    """Drop repeated exercise ids, keeping first occurrence order."""
    seen: set[int] = set()
    unique: list[ShortlistExercise] = []
    for exercise in exercises:
        if exercise.exercise_id in seen:
            continue
        seen.add(exercise.exercise_id)
        unique.append(exercise)
    return unique
