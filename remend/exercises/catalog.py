"""Exercise catalog lookup and seeding.

The catalog is read-only inside the engine. Lookups return active entries in
catalog sort order, so exercise selection is reproducible for the same
catalog contents.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import yaml
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from remend.db.models import Exercise, ExerciseBucket
from remend.exercises.types import Dosage, ExerciseCatalogEntry


class CatalogStore(Protocol):
    """Read-only exercise lookup consumed by the plan selector."""

    def find_exercises(self, bucket_slug: str, exclude_ids: Iterable[int] = ()) -> list[ExerciseCatalogEntry]: ...


def _to_entry(exercise: Exercise, bucket: ExerciseBucket) -> ExerciseCatalogEntry:
    presets = {level: Dosage(**dosage) for level, dosage in exercise.dosage_presets.items()}
    return ExerciseCatalogEntry(
        id=exercise.id,
        bucket_slug=bucket.slug,
        bucket_label=bucket.label,
        name=exercise.name,
        description=exercise.description,
        dosage_presets=presets,
        safety_notes=exercise.safety_notes,
        sort_order=exercise.sort_order,
    )


class SqlCatalogStore:
    """Catalog lookup backed by the exercise_buckets/exercises tables."""

    def __init__(self, session: Session):
        self._session = session

    def find_exercises(self, bucket_slug: str, exclude_ids: Iterable[int] = ()) -> list[ExerciseCatalogEntry]:
        """Active exercises of an active bucket, ordered by sort order then id.

        Args:
            bucket_slug: Bucket slug
            exclude_ids: Exercise ids to leave out (already selected)

        Returns:
            Matching entries; an empty list is a valid result
        """
        query = (
            select(Exercise, ExerciseBucket)
            .join(ExerciseBucket, Exercise.bucket_id == ExerciseBucket.id)
            .where(
                ExerciseBucket.slug == bucket_slug,
                ExerciseBucket.is_active.is_(True),
                Exercise.is_active.is_(True),
            )
            .order_by(Exercise.sort_order, Exercise.id)
        )

        excluded = list(exclude_ids)
        if excluded:
            query = query.where(Exercise.id.not_in(excluded))

        rows = self._session.execute(query).all()
        return [_to_entry(exercise, bucket) for exercise, bucket in rows]


def load_catalog_seed(path: Path) -> dict:
    """Load catalog seed data from YAML.

    Args:
        path: Path to catalog YAML

    Returns:
        Parsed seed dict with a "buckets" list

    Raises:
        FileNotFoundError: If the seed file doesn't exist
        ValueError: If the file has no buckets or a bucket lacks low/moderate presets
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog seed not found: {path}")

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    buckets = data.get("buckets")
    if not buckets:
        raise ValueError(f"Catalog seed has no buckets: {path}")

    for bucket in buckets:
        for exercise in bucket.get("exercises", []):
            presets = exercise.get("dosage", {})
            if "low" not in presets or "moderate" not in presets:
                raise ValueError(f"Exercise '{exercise.get('name')}' in {bucket.get('slug')} needs low and moderate dosage presets")

    return data


def seed_catalog(session: Session, path: Path | None = None) -> int:
    """Replace catalog tables with the contents of the seed file.

    Args:
        session: Database session (caller commits)
        path: Seed file path (defaults to settings.catalog_seed_path)

    Returns:
        Number of exercises inserted
    """
    if path is None:
        from remend.config.settings import settings

        path = settings.catalog_seed_path

    data = load_catalog_seed(path)

    session.query(Exercise).delete()
    session.query(ExerciseBucket).delete()

    exercise_count = 0
    for bucket_index, bucket_data in enumerate(data["buckets"], start=1):
        bucket = ExerciseBucket(
            slug=bucket_data["slug"],
            label=bucket_data["label"],
            area=bucket_data.get("area", "general"),
            is_active=bucket_data.get("is_active", True),
            sort_order=bucket_index,
        )
        session.add(bucket)
        session.flush()

        for exercise_index, exercise_data in enumerate(bucket_data.get("exercises", []), start=1):
            session.add(
                Exercise(
                    bucket_id=bucket.id,
                    name=exercise_data["name"],
                    description=exercise_data.get("description"),
                    dosage_presets=exercise_data["dosage"],
                    safety_notes=exercise_data.get("safety_notes"),
                    is_active=exercise_data.get("is_active", True),
                    sort_order=exercise_index,
                )
            )
            exercise_count += 1

    session.flush()
    logger.info(
        "Exercise catalog seeded",
        buckets=len(data["buckets"]),
        exercises=exercise_count,
        version=data.get("version"),
    )
    return exercise_count
