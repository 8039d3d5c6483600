"""Trend analysis over a rolling window of symptom logs.

The most recent log is compared against the mean of the same window
(current log included). Classification uses an "either" trigger:

- improving if pain OR stiffness delta <= -1
- else worse if pain OR stiffness delta >= +1
- else stable

Improving is checked first, so mixed signals (pain down, stiffness up)
resolve to improving.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from remend.exercises.types import Trend

TREND_WINDOW = 7
IMPROVING_THRESHOLD = -1.0
WORSE_THRESHOLD = 1.0


class SymptomReading(Protocol):
    """Minimal log shape read by the analyzer."""

    date: date
    pain: int
    stiffness: int


@dataclass(frozen=True)
class TrendAnalysis:
    """Trend classification and the numbers behind it.

    Attributes:
        trend: improving / stable / worse
        current_pain: Pain of the most recent log
        current_stiffness: Stiffness of the most recent log
        baseline_pain: Mean pain of the window
        baseline_stiffness: Mean stiffness of the window
        pain_delta: current - baseline (negative = improvement)
        stiffness_delta: current - baseline (negative = improvement)
        log_count: Number of logs in the window
        days_since_start: Days from the oldest log in the window to today
    """

    trend: Trend
    current_pain: float
    current_stiffness: float
    baseline_pain: float
    baseline_stiffness: float
    pain_delta: float
    stiffness_delta: float
    log_count: int
    days_since_start: int

    def describe(self) -> str:
        """Short human summary, e.g. "Pain down 1.3 pts vs 7-log avg"."""
        if self.log_count <= 1:
            return "First log entry"
        if self.trend == "improving":
            metric, delta = _dominant(self.pain_delta, self.stiffness_delta, negative=True)
            return f"{metric} down {abs(delta):.1f} pts vs {self.log_count}-log avg"
        if self.trend == "worse":
            metric, delta = _dominant(self.pain_delta, self.stiffness_delta, negative=False)
            return f"{metric} up {abs(delta):.1f} pts vs {self.log_count}-log avg"
        return f"Pain stable ({self.current_pain:g}/10)"

    def to_dict(self) -> dict:
        return {
            "trend": self.trend,
            "current_pain": self.current_pain,
            "current_stiffness": self.current_stiffness,
            "baseline_pain": round(self.baseline_pain, 2),
            "baseline_stiffness": round(self.baseline_stiffness, 2),
            "pain_delta": round(self.pain_delta, 2),
            "stiffness_delta": round(self.stiffness_delta, 2),
            "log_count": self.log_count,
            "days_since_start": self.days_since_start,
        }


def _dominant(pain_delta: float, stiffness_delta: float, *, negative: bool) -> tuple[str, float]:
    # The metric that fired the classification; pain wins ties
    if negative:
        return ("Pain", pain_delta) if pain_delta <= stiffness_delta else ("Stiffness", stiffness_delta)
    return ("Pain", pain_delta) if pain_delta >= stiffness_delta else ("Stiffness", stiffness_delta)


def classify_trend(pain_delta: float, stiffness_delta: float) -> Trend:
    """Classify deltas using the either-trigger rule (improving checked first)."""
    if pain_delta <= IMPROVING_THRESHOLD or stiffness_delta <= IMPROVING_THRESHOLD:
        return "improving"
    if pain_delta >= WORSE_THRESHOLD or stiffness_delta >= WORSE_THRESHOLD:
        return "worse"
    return "stable"


def analyze_trend(logs: Sequence[SymptomReading], today: date) -> TrendAnalysis | None:
    """Analyze trend from recent logs.

    Args:
        logs: Logs ordered most-recent-first; only the first TREND_WINDOW are used
        today: Reference date for days_since_start

    Returns:
        TrendAnalysis, or None if there are no logs
    """
    window = list(logs[:TREND_WINDOW])
    if not window:
        return None

    current = window[0]
    count = len(window)
    baseline_pain = sum(log.pain for log in window) / count
    baseline_stiffness = sum(log.stiffness for log in window) / count

    pain_delta = current.pain - baseline_pain
    stiffness_delta = current.stiffness - baseline_stiffness

    oldest = window[-1]
    days_since_start = max(0, (today - oldest.date).days)

    return TrendAnalysis(
        trend=classify_trend(pain_delta, stiffness_delta),
        current_pain=current.pain,
        current_stiffness=current.stiffness,
        baseline_pain=baseline_pain,
        baseline_stiffness=baseline_stiffness,
        pain_delta=pain_delta,
        stiffness_delta=stiffness_delta,
        log_count=count,
        days_since_start=days_since_start,
    )
