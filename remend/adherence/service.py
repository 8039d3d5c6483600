"""Adherence tracking: streaks, adherence rate and weekly summaries.

Streak rule is gap tolerant: a log within 2 days of the previous one
continues the streak (one missed day is allowed), anything longer resets it
to 1. The pure functions below hold the rules; the *_for_program wrappers
read and write through the stores.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from loguru import logger

from remend.exercises.types import Trend
from remend.plans.stores import LogStore, PlanStore, ProgramStore
from remend.plans.types import ProgramRecord
from remend.progression.trend import SymptomReading
from remend.utils.dates import days_between, whole_days_since

MAX_STREAK_GAP_DAYS = 2
WEEK_DAYS = 7
SUMMARY_INTERVAL_DAYS = 7


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_logged_date: date
    reason: str


@dataclass(frozen=True)
class AdherenceSummary:
    days_logged: int
    total_days: int
    adherence_rate: float
    current_streak: int
    longest_streak: int
    last_logged_date: date | None


@dataclass(frozen=True)
class WeeklySummaryData:
    """Week-over-week symptom change (negative = improvement)."""

    avg_pain_change: float
    avg_stiffness_change: float
    logs_this_week: int
    trend: Trend | None
    days_with_logs: int


def compute_streak_update(
    current_streak: int,
    longest_streak: int,
    last_logged_date: date | None,
    log_dates_desc: Sequence[date],
    new_log_date: date,
) -> StreakUpdate:
    """Compute streak fields after a log is recorded.

    Args:
        current_streak: Program streak before this log
        longest_streak: Program longest streak before this log
        last_logged_date: Program's last logged date before this log
        log_dates_desc: Log dates after the write, most-recent-first
        new_log_date: Date of the log just recorded

    Returns:
        StreakUpdate with the new field values
    """
    if last_logged_date is not None and last_logged_date == new_log_date:
        # Same-day correction
        current = max(current_streak, 1)
        reason = "same-day correction"
    elif len(log_dates_desc) < 2:
        current = 1
        reason = "first log"
    else:
        gap = days_between(log_dates_desc[0], log_dates_desc[1])
        if gap <= MAX_STREAK_GAP_DAYS:
            current = current_streak + 1
            reason = f"continued ({gap} day gap)"
        else:
            current = 1
            reason = f"reset ({gap} day gap)"

    newest = log_dates_desc[0] if log_dates_desc else new_log_date
    return StreakUpdate(
        current_streak=current,
        longest_streak=max(longest_streak, current),
        last_logged_date=max(newest, new_log_date),
        reason=reason,
    )


def adherence_rate(days_logged: int, start_date: date, today: date) -> tuple[float, int]:
    """Fraction of days since start (inclusive) with a log.

    Returns:
        (rate capped at 1.0, total_days with a minimum of 1)
    """
    total_days = max(1, (today - start_date).days + 1)
    return min(1.0, days_logged / total_days), total_days


def _mean(values: list[int]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def weekly_summary(logs: Sequence[SymptomReading], today: date, trend: Trend | None = None) -> WeeklySummaryData:
    """Compare this week's mean symptoms with the previous week's.

    This week is the 7 calendar days ending today; the previous week is the
    7 days before that. An empty previous week uses this week's mean, and an
    empty week counts as 0.
    """
    this_week_start = today - timedelta(days=WEEK_DAYS - 1)
    previous_week_start = this_week_start - timedelta(days=WEEK_DAYS)

    this_week = [log for log in logs if this_week_start <= log.date <= today]
    previous_week = [log for log in logs if previous_week_start <= log.date < this_week_start]

    this_pain = _mean([log.pain for log in this_week]) or 0.0
    this_stiffness = _mean([log.stiffness for log in this_week]) or 0.0

    previous_pain = _mean([log.pain for log in previous_week])
    previous_stiffness = _mean([log.stiffness for log in previous_week])
    if previous_pain is None:
        previous_pain = this_pain
    if previous_stiffness is None:
        previous_stiffness = this_stiffness

    days_with_logs = len({log.date for log in this_week})
    return WeeklySummaryData(
        avg_pain_change=this_pain - previous_pain,
        avg_stiffness_change=this_stiffness - previous_stiffness,
        logs_this_week=len(this_week),
        trend=trend,
        days_with_logs=days_with_logs,
    )


def should_generate_weekly_summary(last_generated_at: datetime | None, now: datetime) -> bool:
    """True when a summary was never generated or 7+ days have passed."""
    if last_generated_at is None:
        return True
    return whole_days_since(last_generated_at, now) >= SUMMARY_INTERVAL_DAYS


def update_streak_for_program(
    programs: ProgramStore,
    logs: LogStore,
    program: ProgramRecord,
    new_log_date: date,
) -> ProgramRecord:
    """Apply the streak rule after a log write and persist the result."""
    recent = logs.recent_logs(program.id, limit=2)
    update = compute_streak_update(
        current_streak=program.current_streak,
        longest_streak=program.longest_streak,
        last_logged_date=program.last_logged_date,
        log_dates_desc=[log.date for log in recent],
        new_log_date=new_log_date,
    )

    logger.info(
        "Streak updated",
        program_id=program.id,
        previous_streak=program.current_streak,
        current_streak=update.current_streak,
        longest_streak=update.longest_streak,
        reason=update.reason,
    )
    return programs.update_streak_fields(
        program.id,
        current_streak=update.current_streak,
        longest_streak=update.longest_streak,
        last_logged_date=update.last_logged_date,
    )


def calculate_adherence(logs: LogStore, program: ProgramRecord, today: date) -> AdherenceSummary:
    days_logged = logs.count_logs(program.id)
    rate, total_days = adherence_rate(days_logged, program.start_date, today)
    return AdherenceSummary(
        days_logged=days_logged,
        total_days=total_days,
        adherence_rate=rate,
        current_streak=program.current_streak,
        longest_streak=program.longest_streak,
        last_logged_date=program.last_logged_date,
    )


def weekly_summary_for_program(logs: LogStore, plans: PlanStore, program_id: int, today: date) -> WeeklySummaryData:
    """Weekly summary over the last 14 days, with the latest anchor plan's trend."""
    window_start = today - timedelta(days=2 * WEEK_DAYS - 1)
    recent = logs.logs_between(program_id, window_start, today)
    latest = plans.latest_plan(program_id)
    return weekly_summary(recent, today, trend=latest.trend if latest else None)
