"""Canonical exercise, dosage and shortlist schema.

- Dosage is a small record of optional fields; exactly one of reps,
  hold_seconds or time_seconds is the primary metric of an exercise
- Shortlist entries carry the bucket slug explicitly, so progression never
  has to reverse a display label into a slug
- Catalog entries are read-only inside the engine
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Trend = Literal["improving", "stable", "worse"]
DosageLevel = Literal["low", "moderate", "high"]
Confidence = Literal["high", "medium", "low"]


class Dosage(BaseModel):
    """Prescribed sets/reps/hold/time/rest for one exercise instance."""

    model_config = ConfigDict(frozen=True)

    sets: int | None = None
    reps: int | None = None
    hold_seconds: int | None = None
    time_seconds: int | None = None
    rest_seconds: int | None = None
    notes: str | None = None


class ExerciseCatalogEntry(BaseModel):
    """Active catalog exercise as seen by the engine.

    Attributes:
        id: Exercise id
        bucket_slug: Bucket slug (e.g. "isometric_knee")
        bucket_label: Bucket display label (e.g. "Isometric Knee Strengthening")
        name: Exercise name
        dosage_presets: Dosage per level; "low" and "moderate" always present
        safety_notes: Optional safety text shown with the exercise
    """

    model_config = ConfigDict(frozen=True)

    id: int
    bucket_slug: str
    bucket_label: str
    name: str
    description: str | None = None
    dosage_presets: dict[DosageLevel, Dosage]
    safety_notes: str | None = None
    sort_order: int = 0

    def dosage_for(self, level: DosageLevel) -> Dosage:
        """Preset for a level, stepping down to the nearest lower preset."""
        for candidate in _LEVEL_FALLBACK[level]:
            if candidate in self.dosage_presets:
                return self.dosage_presets[candidate]
        raise KeyError(f"Exercise {self.id} has no dosage preset for {level}")


_LEVEL_FALLBACK: dict[str, tuple[str, ...]] = {
    "low": ("low",),
    "moderate": ("moderate", "low"),
    "high": ("high", "moderate", "low"),
}


class ShortlistExercise(BaseModel):
    """One exercise in a generated plan."""

    model_config = ConfigDict(frozen=True)

    exercise_id: int
    name: str
    bucket_slug: str
    bucket_label: str
    dosage: Dosage
    dosage_text: str
    safety_notes: str | None = None

    @property
    def is_loaded_work(self) -> bool:
        """Whether dosage progression applies (strength or isometric work)."""
        tags = f"{self.bucket_slug} {self.bucket_label}".lower()
        return "strength" in tags or "isometric" in tags


class PatternMappingInput(BaseModel):
    """Upstream pattern inference used only for a program's first plan."""

    suspected_pattern: str = ""
    recommended_focus: list[str] = Field(default_factory=list)
    confidence: Confidence = "low"
    area: str | None = None
