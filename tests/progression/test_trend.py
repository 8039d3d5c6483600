"""Tests for trend classification over the rolling log window."""

from dataclasses import dataclass
from datetime import date, timedelta

import pytest

from remend.progression.trend import TREND_WINDOW, analyze_trend, classify_trend

TODAY = date(2026, 3, 10)


@dataclass
class Reading:
    date: date
    pain: int
    stiffness: int


def _logs(pains: list[int], stiffness: list[int] | None = None) -> list[Reading]:
    """Most-recent-first readings, one per day ending today."""
    stiffness = stiffness or [3] * len(pains)
    return [
        Reading(date=TODAY - timedelta(days=index), pain=pain, stiffness=stiff)
        for index, (pain, stiff) in enumerate(zip(pains, stiffness, strict=True))
    ]


def test_no_logs_means_no_trend():
    assert analyze_trend([], TODAY) is None


def test_single_log_is_stable():
    analysis = analyze_trend(_logs([6]), TODAY)

    assert analysis.trend == "stable"
    assert analysis.pain_delta == 0
    assert analysis.log_count == 1
    assert analysis.describe() == "First log entry"


def test_rising_pain_is_worse():
    """Current 7 against a 5.71 mean is a +1.29 delta."""
    analysis = analyze_trend(_logs([7, 7, 6, 6, 5, 5, 4]), TODAY)

    assert analysis.baseline_pain == pytest.approx(5.714, abs=0.001)
    assert analysis.pain_delta == pytest.approx(1.286, abs=0.001)
    assert analysis.trend == "worse"
    assert analysis.days_since_start == 6
    assert analysis.describe() == "Pain up 1.3 pts vs 7-log avg"


def test_falling_pain_is_improving():
    analysis = analyze_trend(_logs([3, 5, 5, 6, 6]), TODAY)

    assert analysis.trend == "improving"
    assert analysis.describe().startswith("Pain down")


def test_stiffness_alone_can_trigger():
    analysis = analyze_trend(_logs([4, 4, 4], stiffness=[2, 5, 5]), TODAY)

    assert analysis.trend == "improving"
    assert analysis.describe().startswith("Stiffness down")


def test_only_window_is_used():
    """Logs beyond the window do not affect the baseline."""
    analysis = analyze_trend(_logs([5] * TREND_WINDOW + [10, 10, 10]), TODAY)

    assert analysis.log_count == TREND_WINDOW
    assert analysis.baseline_pain == 5
    assert analysis.trend == "stable"


@pytest.mark.parametrize(
    ("pain_delta", "stiffness_delta", "expected"),
    [
        (-1.0, 0.0, "improving"),
        (0.0, -1.0, "improving"),
        (-1.0, 3.0, "improving"),
        (2.0, -1.5, "improving"),
        (1.0, 0.0, "worse"),
        (0.0, 1.0, "worse"),
        (-0.9, 0.9, "stable"),
        (0.0, 0.0, "stable"),
    ],
)
def test_classify_trend_either_rule(pain_delta, stiffness_delta, expected):
    """Improving wins whenever either delta reaches -1, even with the other rising."""
    assert classify_trend(pain_delta, stiffness_delta) == expected


def test_to_dict_rounds_deltas():
    analysis = analyze_trend(_logs([7, 7, 6, 6, 5, 5, 4]), TODAY)

    data = analysis.to_dict()

    assert data["pain_delta"] == 1.29
    assert data["baseline_pain"] == 5.71
    assert data["trend"] == "worse"
