"""End-to-end tests for PlanService against an in-memory database."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from remend.advice.cache import AdviceCache
from remend.advice.weekly_summary import DEFAULT_SUMMARY, WeeklySummary
from remend.errors import NoExercisesAvailableError, ProgramNotActiveError
from remend.exercises.catalog import SqlCatalogStore
from remend.exercises.types import PatternMappingInput
from remend.plans.repository import SqlLogStore, SqlPlanStore, SqlProgramStore
from remend.plans.service import PlanService
from remend.plans.types import Advice, SymptomLogInput


def _build_service(session, clock, formatter=None, summary_formatter=None) -> PlanService:
    return PlanService(
        catalog=SqlCatalogStore(session),
        logs=SqlLogStore(session),
        plans=SqlPlanStore(session),
        programs=SqlProgramStore(session),
        advice_cache=AdviceCache(),
        formatter=formatter,
        summary_formatter=summary_formatter,
        clock=clock,
    )


@pytest.fixture
def service(seeded_session, clock):
    return _build_service(seeded_session, clock)


@pytest.fixture
def program(service, clock):
    return service.programs.create_program("user-1", "knee", "left", clock.today())


def _log(clock, pain: int, stiffness: int = 4, **kwargs) -> SymptomLogInput:
    return SymptomLogInput(date=clock.today(), pain=pain, stiffness=stiffness, **kwargs)


def test_first_log_creates_initial_plan(service, program, clock):
    result = service.record_log(program, _log(clock, 6))

    assert result.created is True
    assert result.plan.kind == "initial"
    assert result.plan.log_id == result.log.id
    assert result.plan.advice_status == "skipped"
    assert result.plan.advice is None
    # area alone matches no rule, so mapping stays on the safe defaults
    assert result.plan.buckets == ["mobility_general", "isometric_general"]
    assert [ex.name for ex in result.plan.shortlist] == ["Gentle Walking", "Static Holds"]
    assert service.programs.get_program(program.id).current_streak == 1


def test_logs_carry_forward_until_progression_is_due(service, program, clock):
    initial = service.record_log(program, _log(clock, 6)).plan

    kinds = []
    for pain in (6, 6, 3):
        clock.advance(days=1)
        kinds.append(service.record_log(program, _log(clock, pain)).plan)

    assert [plan.kind for plan in kinds] == ["carry_forward", "carry_forward", "progression"]
    assert kinds[0].shortlist == initial.shortlist
    assert kinds[0].parent_plan_id == initial.id
    assert kinds[0].trend == "stable"
    assert kinds[0].advice_status == "fallback"

    progression = kinds[-1]
    assert progression.trend == "improving"
    assert progression.parent_plan_id == initial.id
    assert progression.buckets == ["mobility_general", "strength_general"]
    assert [ex.name for ex in progression.shortlist] == ["Gentle Walking", "Full Body Stretch"]
    assert progression.reasoning[0].startswith("3 logs completed")
    assert progression.advice.summary == "Great progress! Your pain and stiffness levels are trending down."

    clock.advance(days=1)
    after = service.record_log(program, _log(clock, 3)).plan
    assert after.kind == "carry_forward"
    assert after.parent_plan_id == progression.id
    assert service.plans.latest_plan(program.id).id == progression.id


def test_seven_days_without_logs_triggers_progression(service, program, clock):
    service.record_log(program, _log(clock, 5))

    clock.advance(days=7)
    result = service.record_log(program, _log(clock, 5))

    assert result.plan.kind == "progression"
    assert result.trigger.days_since_last_plan == 7
    # gap of 7 days resets the streak
    assert service.programs.get_program(program.id).current_streak == 1


def test_streak_counts_consecutive_logs(service, program, clock):
    for _ in range(3):
        service.record_log(program, _log(clock, 5))
        clock.advance(days=1)

    refreshed = service.programs.get_program(program.id)
    assert refreshed.current_streak == 3
    assert refreshed.longest_streak == 3
    assert refreshed.last_logged_date == clock.today() - timedelta(days=1)


def test_same_day_correction_updates_log_and_reuses_advice(seeded_session, clock):
    formatter = MagicMock()
    formatter.format.return_value = Advice(summary="Steady", bullets=["a", "b", "c"])
    service = _build_service(seeded_session, clock, formatter=formatter)
    program = service.programs.create_program("user-1", "knee", "left", clock.today())

    service.record_log(program, _log(clock, 5))
    clock.advance(days=1)
    first = service.record_log(program, _log(clock, 5))
    clock.advance(hours=2)
    corrected = service.record_log(program, _log(clock, 5, notes="forgot to add notes"))

    assert corrected.created is False
    assert corrected.log.id == first.log.id
    assert corrected.log.notes == "forgot to add notes"
    assert service.logs.count_logs(program.id) == 2
    assert service.programs.get_program(program.id).current_streak == 2
    assert corrected.plan.advice_status == "success"
    formatter.format.assert_called_once()
    assert "supersedes_plan_id" not in first.plan.context
    assert corrected.plan.context["supersedes_plan_id"] == first.plan.id
    assert service.plans.latest_plan_for_log(first.log.id).id == corrected.plan.id


def test_same_day_correction_to_worse_scores_refreshes_advice(seeded_session, clock):
    formatter = MagicMock()
    formatter.format.return_value = Advice(summary="Steady", bullets=["a", "b", "c"], caution=None)
    service = _build_service(seeded_session, clock, formatter=formatter)
    program = service.programs.create_program("user-1", "knee", "left", clock.today())

    service.record_log(program, _log(clock, 3, stiffness=3))
    clock.advance(days=1)
    first = service.record_log(program, _log(clock, 3, stiffness=3))
    clock.advance(hours=2)
    corrected = service.record_log(program, _log(clock, 9, stiffness=9))

    assert first.plan.trend == "stable"
    assert corrected.created is False
    assert corrected.plan.trend == "worse"
    assert corrected.plan.advice_status == "success"
    assert corrected.plan.advice.caution is not None
    assert formatter.format.call_count == 2
    assert formatter.format.call_args.args[1].trend == "worse"


def test_early_feedback_mode_for_first_logs(seeded_session, clock):
    formatter = MagicMock()
    formatter.format.return_value = Advice(summary="Ok", bullets=["a", "b", "c"])
    service = _build_service(seeded_session, clock, formatter=formatter)
    program = service.programs.create_program("user-1", "knee", "left", clock.today())

    service.record_log(program, _log(clock, 5))
    clock.advance(days=1)
    service.record_log(program, _log(clock, 5))

    context = formatter.format.call_args.args[1]
    assert context.mode == "early"
    assert context.trend == "stable"


def test_paused_program_rejects_logs(service, program, clock):
    service.programs.update_status(program.id, "paused")

    with pytest.raises(ProgramNotActiveError):
        service.record_log(program, _log(clock, 5))


def test_initial_plan_from_onboarding(service, program):
    plan = service.generate_initial_plan(
        program,
        PatternMappingInput(suspected_pattern="patellar tendon pain", confidence="high", area="knee"),
        onboarding_profile_id=42,
    )

    assert plan.kind == "initial"
    assert plan.log_id is None
    assert plan.onboarding_profile_id == 42
    assert plan.buckets == ["isometric_knee", "mobility_knee"]
    assert plan.context["mapping"]["matched_keywords"] == ["patellar"]
    assert [ex.dosage.sets for ex in plan.shortlist] == [3, 2]


def test_empty_catalog_fails_loudly(db_session, clock):
    service = _build_service(db_session, clock)
    program = service.programs.create_program("user-1", "knee", "left", clock.today())

    with pytest.raises(NoExercisesAvailableError):
        service.record_log(program, _log(clock, 5))


def test_adherence_and_weekly_summary(service, program, clock):
    for pain in (6, 5, 4):
        service.record_log(program, _log(clock, pain))
        clock.advance(days=1)
    clock.advance(days=-1)

    adherence = service.adherence(program.id)
    assert adherence.days_logged == 3
    assert adherence.total_days == 3
    assert adherence.adherence_rate == 1.0

    report = service.weekly_summary_if_due(program.id)
    assert report.data.logs_this_week == 3
    assert report.data.avg_pain_change == 0
    assert report.status == "fallback"
    assert report.summary == DEFAULT_SUMMARY

    stored = service.programs.get_program(program.id)
    assert stored.last_summary_generated_at == clock()
    assert stored.last_summary == report.summary.model_dump(mode="json")
    assert service.weekly_summary_if_due(program.id) is None

    clock.advance(days=7)
    assert service.weekly_summary_if_due(program.id) is not None


def test_weekly_summary_from_formatter_is_stored(seeded_session, clock):
    summary_formatter = MagicMock()
    summary_formatter.format.return_value = WeeklySummary(
        summary="Two solid days", highlights=["a", "b", "c"], encouragement="Keep logging", emoji="📈"
    )
    service = _build_service(seeded_session, clock, summary_formatter=summary_formatter)
    program = service.programs.create_program("user-1", "knee", "left", clock.today())
    service.record_log(program, _log(clock, 5))
    clock.advance(days=1)
    service.record_log(program, _log(clock, 5))

    report = service.weekly_summary_if_due(program.id)

    summary_input = summary_formatter.format.call_args.args[0]
    assert summary_input.current_streak == 2
    assert summary_input.adherence_rate == 1.0
    assert summary_input.logs_this_week == 2
    assert report.status == "success"
    assert service.programs.get_program(program.id).last_summary["summary"] == "Two solid days"
