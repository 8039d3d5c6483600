"""SQLAlchemy implementations of the log, plan and program stores.

Stores flush but never commit; the caller owns the transaction
(see remend.db.session.get_session).
"""

from datetime import date, datetime

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from remend.db.models import RehabLog, RehabPlan, RehabProgram
from remend.errors import ActiveProgramConflictError, ProgramNotFoundError
from remend.exercises.types import ShortlistExercise
from remend.plans.types import (
    ANCHOR_PLAN_KINDS,
    Advice,
    Plan,
    ProgramRecord,
    ProgramStatus,
    SymptomLogInput,
    SymptomLogRecord,
)
from remend.programs.status import validate_status_transition
from remend.utils.dates import to_utc, utcnow


def _log_record(row: RehabLog) -> SymptomLogRecord:
    return SymptomLogRecord(
        id=row.id,
        program_id=row.program_id,
        user_id=row.user_id,
        date=row.date,
        pain=row.pain,
        stiffness=row.stiffness,
        swelling=row.swelling,
        activity_level=row.activity_level,
        aggravators=list(row.aggravators or []),
        notes=row.notes or "",
        is_onboarding=row.is_onboarding,
        created_at=to_utc(row.created_at),
    )


def _program_record(row: RehabProgram) -> ProgramRecord:
    return ProgramRecord(
        id=row.id,
        user_id=row.user_id,
        area=row.area,
        side=row.side,
        start_date=row.start_date,
        status=row.status,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_logged_date=row.last_logged_date,
        last_summary_generated_at=to_utc(row.last_summary_generated_at) if row.last_summary_generated_at else None,
        last_summary=row.last_summary_json,
    )


def plan_from_row(row: RehabPlan) -> Plan:
    """Rebuild a Plan from its stored JSON columns."""
    return Plan(
        id=row.id,
        program_id=row.program_id,
        log_id=row.log_id,
        onboarding_profile_id=row.onboarding_profile_id,
        parent_plan_id=row.parent_plan_id,
        kind=row.kind,
        shortlist=[ShortlistExercise.model_validate(item) for item in row.shortlist_json],
        buckets=list(row.buckets_json or []),
        reasoning=list(row.reasoning_json or []),
        trend=row.trend,
        context=row.context_json,
        advice=Advice.model_validate(row.advice_json) if row.advice_json else None,
        advice_status=row.advice_status,
        generated_at=to_utc(row.generated_at),
    )


class SqlLogStore:
    def __init__(self, session: Session):
        self._session = session

    def _get_row(self, log_id: int) -> RehabLog:
        row = self._session.get(RehabLog, log_id)
        if row is None:
            raise ValueError(f"Log {log_id} not found")
        return row

    def recent_logs(self, program_id: int, limit: int) -> list[SymptomLogRecord]:
        rows = self._session.execute(
            select(RehabLog)
            .where(RehabLog.program_id == program_id)
            .order_by(RehabLog.date.desc(), RehabLog.id.desc())
            .limit(limit)
        ).scalars()
        return [_log_record(row) for row in rows]

    def logs_since(self, program_id: int, since: datetime) -> int:
        count = self._session.execute(
            select(func.count(RehabLog.id)).where(
                RehabLog.program_id == program_id,
                RehabLog.created_at > to_utc(since),
            )
        ).scalar_one()
        return int(count)

    def get_log_for_date(self, program_id: int, log_date: date) -> SymptomLogRecord | None:
        row = self._session.execute(
            select(RehabLog).where(RehabLog.program_id == program_id, RehabLog.date == log_date)
        ).scalar_one_or_none()
        return _log_record(row) if row is not None else None

    def create_log(
        self,
        program: ProgramRecord,
        log_input: SymptomLogInput,
        created_at: datetime | None = None,
    ) -> SymptomLogRecord:
        timestamp = to_utc(created_at) if created_at else utcnow()
        row = RehabLog(
            program_id=program.id,
            user_id=program.user_id,
            date=log_input.date,
            pain=log_input.pain,
            stiffness=log_input.stiffness,
            swelling=log_input.swelling,
            activity_level=log_input.activity_level,
            aggravators=list(log_input.aggravators),
            notes=log_input.notes,
            is_onboarding=log_input.is_onboarding,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._session.add(row)
        self._session.flush()
        logger.info("Symptom log created", program_id=program.id, log_id=row.id, date=str(row.date))
        return _log_record(row)

    def update_log(
        self,
        log_id: int,
        log_input: SymptomLogInput,
        updated_at: datetime | None = None,
    ) -> SymptomLogRecord:
        row = self._get_row(log_id)
        row.pain = log_input.pain
        row.stiffness = log_input.stiffness
        row.swelling = log_input.swelling
        row.activity_level = log_input.activity_level
        row.aggravators = list(log_input.aggravators)
        row.notes = log_input.notes
        row.updated_at = to_utc(updated_at) if updated_at else utcnow()
        self._session.flush()
        logger.info("Symptom log corrected", program_id=row.program_id, log_id=row.id, date=str(row.date))
        return _log_record(row)

    def logs_between(self, program_id: int, start: date, end: date) -> list[SymptomLogRecord]:
        rows = self._session.execute(
            select(RehabLog)
            .where(
                RehabLog.program_id == program_id,
                RehabLog.date >= start,
                RehabLog.date <= end,
            )
            .order_by(RehabLog.date.desc())
        ).scalars()
        return [_log_record(row) for row in rows]

    def count_logs(self, program_id: int) -> int:
        count = self._session.execute(
            select(func.count(RehabLog.id)).where(RehabLog.program_id == program_id)
        ).scalar_one()
        return int(count)


class SqlPlanStore:
    def __init__(self, session: Session):
        self._session = session

    def latest_plan(self, program_id: int) -> Plan | None:
        row = self._session.execute(
            select(RehabPlan)
            .where(RehabPlan.program_id == program_id, RehabPlan.kind.in_(ANCHOR_PLAN_KINDS))
            .order_by(RehabPlan.generated_at.desc(), RehabPlan.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        return plan_from_row(row) if row is not None else None

    def latest_plan_for_log(self, log_id: int) -> Plan | None:
        """Newest plan generated from a log (corrections add newer ones)."""
        row = self._session.execute(
            select(RehabPlan)
            .where(RehabPlan.log_id == log_id)
            .order_by(RehabPlan.generated_at.desc(), RehabPlan.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        return plan_from_row(row) if row is not None else None

    def save_plan(self, plan: Plan) -> Plan:
        row = RehabPlan(
            program_id=plan.program_id,
            log_id=plan.log_id,
            onboarding_profile_id=plan.onboarding_profile_id,
            parent_plan_id=plan.parent_plan_id,
            kind=plan.kind,
            is_initial=plan.is_initial,
            shortlist_json=[exercise.model_dump(mode="json") for exercise in plan.shortlist],
            buckets_json=list(plan.buckets),
            reasoning_json=list(plan.reasoning),
            context_json=plan.context,
            trend=plan.trend,
            advice_json=plan.advice.model_dump(mode="json") if plan.advice else None,
            advice_status=plan.advice_status,
            generated_at=to_utc(plan.generated_at),
        )
        self._session.add(row)
        self._session.flush()
        logger.info(
            "Plan saved",
            program_id=plan.program_id,
            plan_id=row.id,
            kind=plan.kind,
            trend=plan.trend,
            advice_status=plan.advice_status,
        )
        return plan.model_copy(update={"id": row.id})


class SqlProgramStore:
    def __init__(self, session: Session):
        self._session = session

    def _get_row(self, program_id: int) -> RehabProgram:
        row = self._session.get(RehabProgram, program_id)
        if row is None:
            raise ProgramNotFoundError(f"Program {program_id} not found")
        return row

    def _ensure_no_other_active(self, user_id: str, exclude_id: int | None = None) -> None:
        query = select(RehabProgram.id).where(RehabProgram.user_id == user_id, RehabProgram.status == "active")
        if exclude_id is not None:
            query = query.where(RehabProgram.id != exclude_id)
        existing = self._session.execute(query.limit(1)).scalar_one_or_none()
        if existing is not None:
            raise ActiveProgramConflictError(f"User {user_id} already has an active program ({existing})")

    def get_program(self, program_id: int) -> ProgramRecord:
        return _program_record(self._get_row(program_id))

    def create_program(
        self,
        user_id: str,
        area: str,
        side: str,
        start_date: date,
        status: ProgramStatus = "active",
        metadata: dict | None = None,
    ) -> ProgramRecord:
        if status == "active":
            self._ensure_no_other_active(user_id)

        row = RehabProgram(
            user_id=user_id,
            area=area,
            side=side,
            start_date=start_date,
            status=status,
            metadata_json=metadata,
        )
        self._session.add(row)
        self._session.flush()
        logger.info("Rehab program created", user_id=user_id, program_id=row.id, area=area, status=status)
        return _program_record(row)

    def update_status(self, program_id: int, status: ProgramStatus) -> ProgramRecord:
        row = self._get_row(program_id)
        validate_status_transition(row.status, status)
        if status == "active":
            self._ensure_no_other_active(row.user_id, exclude_id=row.id)

        previous = row.status
        row.status = status
        self._session.flush()
        logger.info("Rehab program status updated", program_id=program_id, previous=previous, status=status)
        return _program_record(row)

    def update_streak_fields(
        self,
        program_id: int,
        current_streak: int,
        longest_streak: int,
        last_logged_date: date,
    ) -> ProgramRecord:
        row = self._get_row(program_id)
        row.current_streak = current_streak
        row.longest_streak = longest_streak
        row.last_logged_date = last_logged_date
        self._session.flush()
        return _program_record(row)

    def mark_summary_generated(
        self,
        program_id: int,
        generated_at: datetime,
        summary: dict | None = None,
    ) -> ProgramRecord:
        row = self._get_row(program_id)
        row.last_summary_generated_at = to_utc(generated_at)
        row.last_summary_json = summary
        self._session.flush()
        return _program_record(row)
