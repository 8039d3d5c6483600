"""Plan, symptom log and advice schema.

Plans are immutable: progression produces a new Plan that points at its
parent, it never edits the previous one.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from remend.errors import InvalidLogError
from remend.exercises.types import ShortlistExercise, Trend

PlanKind = Literal["initial", "progression", "carry_forward"]
AdviceStatus = Literal["success", "fallback", "skipped"]
ProgramStatus = Literal["active", "paused", "completed"]

ANCHOR_PLAN_KINDS: tuple[str, ...] = ("initial", "progression")


class Advice(BaseModel):
    """Natural-language coaching attached to a plan."""

    model_config = ConfigDict(frozen=True)

    summary: str
    bullets: list[str] = Field(default_factory=list)
    caution: str | None = None


class Plan(BaseModel):
    """Generated exercise plan.

    Attributes:
        id: Database id (None until saved)
        program_id: Owning program
        log_id: Originating log (None for onboarding plans created before a log)
        onboarding_profile_id: Onboarding profile for initial plans
        parent_plan_id: Anchor plan this plan was derived from
        kind: initial / progression / carry_forward
        shortlist: 2-4 exercises, unique by exercise id
        buckets: Bucket slugs the shortlist was drawn from
        reasoning: Decision trail (bucket strategy, dosage changes)
        trend: Trend at generation time (None for initial plans)
        context: Trend numbers or pattern mapping used for generation
        advice: Coaching text (None when skipped)
        advice_status: success / fallback / skipped
        generated_at: Generation timestamp (UTC)
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    program_id: int
    log_id: int | None = None
    onboarding_profile_id: int | None = None
    parent_plan_id: int | None = None
    kind: PlanKind
    shortlist: list[ShortlistExercise]
    buckets: list[str] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)
    trend: Trend | None = None
    context: dict | None = None
    advice: Advice | None = None
    advice_status: AdviceStatus = "skipped"
    generated_at: datetime

    @property
    def is_initial(self) -> bool:
        return self.kind == "initial"


class SymptomLogInput(BaseModel):
    """Validated symptom log submission."""

    date: date
    pain: int = Field(ge=0, le=10)
    stiffness: int = Field(ge=0, le=10)
    swelling: int | None = Field(default=None, ge=0, le=10)
    activity_level: str | None = None
    aggravators: list[str] = Field(default_factory=list)
    notes: str = ""
    is_onboarding: bool = False

    @field_validator("aggravators")
    @classmethod
    def dedupe_aggravators(cls, value: list[str]) -> list[str]:
        """Aggravators are a set: normalise case and drop repeats, keeping order."""
        seen: list[str] = []
        for item in value:
            normalized = item.strip().lower()
            if normalized and normalized not in seen:
                seen.append(normalized)
        return seen


def parse_log_input(data: dict) -> SymptomLogInput:
    """Validate raw log data.

    Raises:
        InvalidLogError: If scores are out of range or fields are malformed
    """
    try:
        return SymptomLogInput.model_validate(data)
    except ValidationError as e:
        raise InvalidLogError(f"Invalid symptom log: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


class SymptomLogRecord(BaseModel):
    """Stored symptom log as read back by the engine."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    program_id: int
    user_id: str
    date: date
    pain: int
    stiffness: int
    swelling: int | None = None
    activity_level: str | None = None
    aggravators: list[str] = Field(default_factory=list)
    notes: str = ""
    is_onboarding: bool = False
    created_at: datetime


class ProgramRecord(BaseModel):
    """Program fields the engine reads."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    user_id: str
    area: str
    side: str
    start_date: date
    status: ProgramStatus
    current_streak: int = 0
    longest_streak: int = 0
    last_logged_date: date | None = None
    last_summary_generated_at: datetime | None = None
    last_summary: dict | None = None
