from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExerciseBucket(Base):
    """Named category of exercises targeting one movement quality and area.

    Stores:
    - slug: Stable identifier used by the engine (e.g. "mobility_knee")
    - label: Display label (e.g. "Knee Mobility")
    - area: Body area the bucket belongs to ("knee", "ankle", "general")
    """

    __tablename__ = "exercise_buckets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    label: Mapped[str] = mapped_column(String, nullable=False)
    area: Mapped[str] = mapped_column(String, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Exercise(Base):
    """Catalog exercise with discrete dosage presets.

    dosage_presets maps a level ("low", "moderate", optionally "high") to a
    dosage dict (sets, reps, hold_seconds, time_seconds, rest_seconds, notes).
    """

    __tablename__ = "exercises"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    bucket_id: Mapped[int] = mapped_column(Integer, ForeignKey("exercise_buckets.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    dosage_presets: Mapped[dict] = mapped_column(JSON, nullable=False)
    safety_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RehabProgram(Base):
    """One rehab program for one body area of one user.

    Streak fields (current_streak, longest_streak, last_logged_date) are
    written only by the adherence tracker after a log is recorded.
    """

    __tablename__ = "rehab_programs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    area: Mapped[str] = mapped_column(String, nullable=False)
    side: Mapped[str] = mapped_column(String, nullable=False, default="na")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")  # active | paused | completed
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_logged_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_summary_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_summary_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_rehab_programs_user_status", "user_id", "status"),)


class RehabLog(Base):
    """Daily symptom log. One log per program per calendar date."""

    __tablename__ = "rehab_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    program_id: Mapped[int] = mapped_column(Integer, ForeignKey("rehab_programs.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    pain: Mapped[int] = mapped_column(Integer, nullable=False)
    stiffness: Mapped[int] = mapped_column(Integer, nullable=False)
    swelling: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activity_level: Mapped[str | None] = mapped_column(String, nullable=True)
    aggravators: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_onboarding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("program_id", "date", name="uq_rehab_logs_program_date"),)


class RehabPlan(Base):
    """Generated exercise plan. Rows are written once and never updated.

    kind:
    - "initial": first plan of a program (pattern mapping, low dosage)
    - "progression": bucket/dosage progression from the previous anchor plan
    - "carry_forward": per-log plan repeating the anchor shortlist
    """

    __tablename__ = "rehab_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    program_id: Mapped[int] = mapped_column(Integer, ForeignKey("rehab_programs.id"), nullable=False, index=True)
    log_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("rehab_logs.id"), nullable=True, index=True)
    onboarding_profile_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    parent_plan_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("rehab_plans.id"), nullable=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    is_initial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shortlist_json: Mapped[list] = mapped_column(JSON, nullable=False)
    buckets_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    reasoning_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    context_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    trend: Mapped[str | None] = mapped_column(String(20), nullable=True)
    advice_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    advice_status: Mapped[str] = mapped_column(String, nullable=False, default="skipped")
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_rehab_plans_program_generated", "program_id", "generated_at"),)
