"""Persistence interfaces consumed by the plan engine.

SQLAlchemy implementations live in remend.plans.repository; tests may supply
in-memory doubles.
"""

from datetime import date, datetime
from typing import Protocol

from remend.plans.types import Plan, ProgramRecord, ProgramStatus, SymptomLogInput, SymptomLogRecord


class LogStore(Protocol):
    def recent_logs(self, program_id: int, limit: int) -> list[SymptomLogRecord]:
        """Most recent logs by date, most-recent-first."""
        ...

    def logs_since(self, program_id: int, since: datetime) -> int:
        """Number of logs created strictly after ``since``."""
        ...

    def get_log_for_date(self, program_id: int, log_date: date) -> SymptomLogRecord | None: ...

    def create_log(
        self,
        program: ProgramRecord,
        log_input: SymptomLogInput,
        created_at: datetime | None = None,
    ) -> SymptomLogRecord: ...

    def update_log(
        self,
        log_id: int,
        log_input: SymptomLogInput,
        updated_at: datetime | None = None,
    ) -> SymptomLogRecord: ...

    def logs_between(self, program_id: int, start: date, end: date) -> list[SymptomLogRecord]:
        """Logs with start <= date <= end, most-recent-first."""
        ...

    def count_logs(self, program_id: int) -> int: ...


class PlanStore(Protocol):
    def latest_plan(self, program_id: int) -> Plan | None:
        """Latest anchor (initial or progression) plan."""
        ...

    def latest_plan_for_log(self, log_id: int) -> Plan | None:
        """Newest plan generated from a log, of any kind."""
        ...

    def save_plan(self, plan: Plan) -> Plan: ...


class ProgramStore(Protocol):
    def get_program(self, program_id: int) -> ProgramRecord: ...

    def create_program(self, user_id: str, area: str, side: str, start_date: date) -> ProgramRecord: ...

    def update_status(self, program_id: int, status: ProgramStatus) -> ProgramRecord: ...

    def update_streak_fields(
        self,
        program_id: int,
        current_streak: int,
        longest_streak: int,
        last_logged_date: date,
    ) -> ProgramRecord: ...

    def mark_summary_generated(
        self,
        program_id: int,
        generated_at: datetime,
        summary: dict | None = None,
    ) -> ProgramRecord:
        """Stamp the summary time and store the latest summary."""
        ...


__all__ = ["LogStore", "PlanStore", "ProgramStore"]
