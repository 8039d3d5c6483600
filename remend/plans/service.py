"""Plan service: the entry point that turns symptom logs into plans.

Flow for a new log:
1. Upsert the log (same-day submissions correct the existing log)
2. Update the adherence streak (new logs only)
3. Analyze trend over the recent window
4. Generate a plan:
   - no anchor plan yet -> initial plan (pattern mapping, low dosage)
   - progression due    -> progression plan derived from the anchor
   - otherwise          -> carry-forward plan repeating the anchor shortlist
5. Attach advice (cached formatter call, canned fallback) to non-initial plans
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from remend.adherence.service import (
    AdherenceSummary,
    WeeklySummaryData,
    calculate_adherence,
    should_generate_weekly_summary,
    update_streak_for_program,
    weekly_summary_for_program,
)
from remend.advice.cache import AdviceCache
from remend.advice.formatter import AdviceContext, AdviceFormatter, get_advice
from remend.advice.weekly_summary import (
    WeeklySummary,
    WeeklySummaryFormatter,
    WeeklySummaryInput,
    generate_weekly_summary,
)
from remend.errors import ProgramNotActiveError
from remend.exercises.catalog import CatalogStore
from remend.exercises.initial_plan import build_initial_plan
from remend.exercises.types import PatternMappingInput
from remend.plans.stores import LogStore, PlanStore, ProgramStore
from remend.plans.types import AdviceStatus, Plan, ProgramRecord, SymptomLogInput, SymptomLogRecord
from remend.progression.engine import progress_plan
from remend.progression.trend import TREND_WINDOW, TrendAnalysis, analyze_trend
from remend.progression.trigger import ProgressionTrigger, check_progression_trigger
from remend.utils.dates import utcnow

EARLY_FEEDBACK_MAX_LOGS = 2


@dataclass(frozen=True)
class RecordLogResult:
    log: SymptomLogRecord
    plan: Plan
    created: bool
    trend: TrendAnalysis | None = None
    trigger: ProgressionTrigger | None = None


@dataclass(frozen=True)
class WeeklyReport:
    data: WeeklySummaryData
    summary: WeeklySummary
    status: AdviceStatus
    adherence: AdherenceSummary


def mapping_input_for_program(program: ProgramRecord, log: SymptomLogRecord | None = None) -> PatternMappingInput:
    """Mapping input for a program without an onboarding profile.

    Only the area and the log's aggravators are known, so confidence is low
    and mapping stays conservative.
    """
    return PatternMappingInput(
        suspected_pattern="",
        recommended_focus=list(log.aggravators) if log else [],
        confidence="low",
        area=program.area,
    )


class PlanService:
    """Coordinates stores, rule components and the advice cache.

    Args:
        catalog: Exercise catalog lookup
        logs: Log store
        plans: Plan store
        programs: Program store
        advice_cache: Shared advice cache
        formatter: Advice formatter; None means canned advice only
        summary_formatter: Weekly summary formatter; None means canned summaries
        clock: UTC time source
    """

    def __init__(
        self,
        catalog: CatalogStore,
        logs: LogStore,
        plans: PlanStore,
        programs: ProgramStore,
        advice_cache: AdviceCache,
        formatter: AdviceFormatter | None = None,
        summary_formatter: WeeklySummaryFormatter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.catalog = catalog
        self.logs = logs
        self.plans = plans
        self.programs = programs
        self.advice_cache = advice_cache
        self.formatter = formatter
        self.summary_formatter = summary_formatter
        self.clock = clock

    def generate_initial_plan(
        self,
        program: ProgramRecord,
        mapping_input: PatternMappingInput,
        log: SymptomLogRecord | None = None,
        onboarding_profile_id: int | None = None,
    ) -> Plan:
        """Create and save a program's first plan.

        Raises:
            NoExercisesAvailableError: If no mapped bucket has exercises
        """
        result = build_initial_plan(self.catalog, mapping_input)
        mapping = result.mapping

        plan = Plan(
            program_id=program.id,
            log_id=log.id if log else None,
            onboarding_profile_id=onboarding_profile_id,
            kind="initial",
            shortlist=result.exercises,
            buckets=mapping.buckets,
            reasoning=[*mapping.rationale, mapping.notes],
            trend=None,
            context={"mapping": mapping.to_dict()},
            advice=None,
            advice_status="skipped",
            generated_at=self.clock(),
        )
        saved = self.plans.save_plan(plan)
        logger.info(
            "Initial plan generated",
            program_id=program.id,
            plan_id=saved.id,
            buckets=mapping.buckets,
            confidence=mapping.confidence_level,
        )
        return saved

    def _upsert_log(self, program: ProgramRecord, log_input: SymptomLogInput, now: datetime) -> tuple[SymptomLogRecord, bool]:
        existing = self.logs.get_log_for_date(program.id, log_input.date)
        if existing is not None:
            return self.logs.update_log(existing.id, log_input, updated_at=now), False
        return self.logs.create_log(program, log_input, created_at=now), True

    def record_log(self, program: ProgramRecord, log_input: SymptomLogInput) -> RecordLogResult:
        """Record a symptom log and generate the plan that follows from it.

        Args:
            program: Program the log belongs to
            log_input: Validated log

        Returns:
            RecordLogResult with the stored log, the saved plan and whether the
            log was newly created (False for a same-day correction)

        Raises:
            ProgramNotFoundError: If the program no longer exists
            ProgramNotActiveError: If the program is paused or completed
            NoExercisesAvailableError: If plan generation finds no exercises
        """
        program = self.programs.get_program(program.id)
        if program.status != "active":
            raise ProgramNotActiveError(f"Program {program.id} is {program.status}")

        now = self.clock()
        log, created = self._upsert_log(program, log_input, now)

        if created:
            program = update_streak_for_program(self.programs, self.logs, program, log.date)
        superseded = None if created else self.plans.latest_plan_for_log(log.id)

        recent = self.logs.recent_logs(program.id, TREND_WINDOW)
        analysis = analyze_trend(recent, now.date())

        anchor = self.plans.latest_plan(program.id)
        if anchor is None:
            plan = self.generate_initial_plan(program, mapping_input_for_program(program, log), log=log)
            return RecordLogResult(log=log, plan=plan, created=created, trend=analysis)

        trend = analysis.trend if analysis else "stable"
        trigger = check_progression_trigger(self.plans, self.logs, program.id, now)

        if trigger.should_progress:
            progression = progress_plan(self.catalog, anchor.shortlist, trend)
            kind = "progression"
            shortlist = progression.exercises
            buckets = progression.buckets
            reasoning = [trigger.reason, *progression.reasoning]
        else:
            kind = "carry_forward"
            shortlist = anchor.shortlist
            buckets = anchor.buckets
            reasoning = [f"Keeping plan {anchor.id}: {trigger.reason}"]

        advice_context = AdviceContext(
            trend=trend,
            analysis=analysis.to_dict() if analysis else {},
            buckets=buckets,
            user_notes=log.notes or None,
            mode="early" if len(recent) <= EARLY_FEEDBACK_MAX_LOGS else "full",
        )
        key = self.advice_cache.generate_key(
            program.user_id,
            program.id,
            [item.id for item in recent],
            scores={item.id: (item.pain, item.stiffness) for item in recent},
        )
        advice, advice_status = get_advice(self.advice_cache, self.formatter, key, shortlist, advice_context)

        plan_context = {
            "trend": analysis.to_dict() if analysis else None,
            "summary": analysis.describe() if analysis else None,
        }
        if superseded is not None:
            plan_context["supersedes_plan_id"] = superseded.id

        plan = self.plans.save_plan(
            Plan(
                program_id=program.id,
                log_id=log.id,
                parent_plan_id=anchor.id,
                kind=kind,
                shortlist=shortlist,
                buckets=buckets,
                reasoning=reasoning,
                trend=trend,
                context=plan_context,
                advice=advice,
                advice_status=advice_status,
                generated_at=now,
            )
        )
        logger.info(
            "Plan generated from log",
            program_id=program.id,
            log_id=log.id,
            plan_id=plan.id,
            kind=kind,
            trend=trend,
            created=created,
            supersedes_plan_id=superseded.id if superseded else None,
        )
        return RecordLogResult(log=log, plan=plan, created=created, trend=analysis, trigger=trigger)

    def adherence(self, program_id: int) -> AdherenceSummary:
        program = self.programs.get_program(program_id)
        return calculate_adherence(self.logs, program, self.clock().date())

    def weekly_summary_if_due(self, program_id: int) -> WeeklyReport | None:
        """Weekly summary when one is due; stores it on the program.

        Returns None when the last summary is less than 7 days old.
        """
        program = self.programs.get_program(program_id)
        now = self.clock()
        if not should_generate_weekly_summary(program.last_summary_generated_at, now):
            return None

        adherence = calculate_adherence(self.logs, program, now.date())
        data = weekly_summary_for_program(self.logs, self.plans, program_id, now.date())
        summary, status = generate_weekly_summary(
            self.summary_formatter,
            WeeklySummaryInput(
                adherence_rate=adherence.adherence_rate,
                current_streak=adherence.current_streak,
                avg_pain_change=data.avg_pain_change,
                avg_stiffness_change=data.avg_stiffness_change,
                logs_this_week=data.logs_this_week,
                trend=data.trend,
            ),
        )
        self.programs.mark_summary_generated(program_id, now, summary.model_dump(mode="json"))
        logger.info(
            "Weekly summary generated and stored",
            program_id=program_id,
            adherence_rate=adherence.adherence_rate,
            streak=adherence.current_streak,
            logs_this_week=data.logs_this_week,
            trend=data.trend,
            status=status,
        )
        return WeeklyReport(data=data, summary=summary, status=status, adherence=adherence)
