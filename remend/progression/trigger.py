"""Progression trigger: when is a new anchor plan due?

A program progresses once 7 days have passed since its anchor plan, or once
3 logs have been created after it, whichever comes first.
"""

from dataclasses import dataclass
from datetime import datetime

from remend.plans.stores import LogStore, PlanStore
from remend.utils.dates import whole_days_since

DAYS_BETWEEN_PROGRESSIONS = 7
LOGS_BETWEEN_PROGRESSIONS = 3


@dataclass(frozen=True)
class ProgressionTrigger:
    should_progress: bool
    reason: str
    log_count: int
    days_since_last_plan: int


def evaluate_trigger(days_since_last_plan: int, log_count: int) -> ProgressionTrigger:
    """Apply the 7-days-or-3-logs rule to precomputed counts."""
    if days_since_last_plan >= DAYS_BETWEEN_PROGRESSIONS:
        return ProgressionTrigger(
            should_progress=True,
            reason=f"{DAYS_BETWEEN_PROGRESSIONS} days elapsed since last plan ({days_since_last_plan} days)",
            log_count=log_count,
            days_since_last_plan=days_since_last_plan,
        )

    if log_count >= LOGS_BETWEEN_PROGRESSIONS:
        return ProgressionTrigger(
            should_progress=True,
            reason=f"{LOGS_BETWEEN_PROGRESSIONS} logs completed since last plan ({log_count} logs)",
            log_count=log_count,
            days_since_last_plan=days_since_last_plan,
        )

    return ProgressionTrigger(
        should_progress=False,
        reason=(
            f"Waiting for {DAYS_BETWEEN_PROGRESSIONS} days or {LOGS_BETWEEN_PROGRESSIONS} logs "
            f"(currently {days_since_last_plan} days, {log_count} logs)"
        ),
        log_count=log_count,
        days_since_last_plan=days_since_last_plan,
    )


def check_progression_trigger(
    plan_store: PlanStore,
    log_store: LogStore,
    program_id: int,
    now: datetime,
) -> ProgressionTrigger:
    """Check whether a program is due for a progression plan.

    Args:
        plan_store: Plan lookup (latest anchor plan)
        log_store: Log lookup (logs created after a timestamp)
        program_id: Program to check
        now: Reference instant

    Returns:
        ProgressionTrigger; never eligible without a prior anchor plan
    """
    latest = plan_store.latest_plan(program_id)
    if latest is None:
        return ProgressionTrigger(
            should_progress=False,
            reason="No previous plan found",
            log_count=0,
            days_since_last_plan=0,
        )

    log_count = log_store.logs_since(program_id, latest.generated_at)
    days_since_last_plan = whole_days_since(latest.generated_at, now)
    return evaluate_trigger(days_since_last_plan, log_count)
