"""Tests for the 7-days-or-3-logs progression trigger."""

from datetime import UTC, datetime, timedelta

from remend.exercises.types import Dosage, ShortlistExercise
from remend.plans.types import Plan
from remend.progression.trigger import check_progression_trigger, evaluate_trigger

PLAN_TIME = datetime(2026, 3, 1, 8, 0, tzinfo=UTC)


class StubPlanStore:
    def __init__(self, plan: Plan | None):
        self.plan = plan

    def latest_plan(self, program_id: int) -> Plan | None:
        return self.plan


class StubLogStore:
    def __init__(self, created: list[datetime]):
        self.created = created

    def logs_since(self, program_id: int, since: datetime) -> int:
        return sum(1 for created_at in self.created if created_at > since)


def _plan() -> Plan:
    dosage = Dosage(sets=2, reps=10)
    return Plan(
        id=1,
        program_id=1,
        kind="initial",
        shortlist=[
            ShortlistExercise(
                exercise_id=1,
                name="Heel Slides",
                bucket_slug="mobility_knee",
                bucket_label="Knee Mobility",
                dosage=dosage,
                dosage_text="2 sets × 10 reps",
            )
        ],
        generated_at=PLAN_TIME,
    )


def test_no_prior_plan_never_progresses():
    trigger = check_progression_trigger(StubPlanStore(None), StubLogStore([]), 1, PLAN_TIME)

    assert trigger.should_progress is False
    assert trigger.reason == "No previous plan found"
    assert trigger.log_count == 0
    assert trigger.days_since_last_plan == 0


def test_seven_days_triggers():
    now = PLAN_TIME + timedelta(days=7)

    trigger = check_progression_trigger(StubPlanStore(_plan()), StubLogStore([]), 1, now)

    assert trigger.should_progress is True
    assert trigger.days_since_last_plan == 7
    assert "7 days elapsed" in trigger.reason


def test_partial_days_are_floored():
    now = PLAN_TIME + timedelta(days=6, hours=23)

    trigger = check_progression_trigger(StubPlanStore(_plan()), StubLogStore([]), 1, now)

    assert trigger.should_progress is False
    assert trigger.days_since_last_plan == 6


def test_three_logs_trigger():
    created = [PLAN_TIME + timedelta(days=day) for day in (1, 2, 3)]

    trigger = check_progression_trigger(StubPlanStore(_plan()), StubLogStore(created), 1, PLAN_TIME + timedelta(days=3))

    assert trigger.should_progress is True
    assert trigger.log_count == 3
    assert "3 logs completed" in trigger.reason


def test_logs_at_plan_time_are_not_counted():
    """Only logs created strictly after the plan count."""
    created = [PLAN_TIME, PLAN_TIME + timedelta(days=1), PLAN_TIME + timedelta(days=2)]

    trigger = check_progression_trigger(StubPlanStore(_plan()), StubLogStore(created), 1, PLAN_TIME + timedelta(days=2))

    assert trigger.should_progress is False
    assert trigger.log_count == 2
    assert trigger.reason == "Waiting for 7 days or 3 logs (currently 2 days, 2 logs)"


def test_days_checked_before_logs():
    trigger = evaluate_trigger(days_since_last_plan=8, log_count=5)

    assert trigger.should_progress is True
    assert trigger.reason.startswith("7 days elapsed")
