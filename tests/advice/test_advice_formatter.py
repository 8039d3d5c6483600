"""Tests for advice formatting, caching and canned fallbacks."""

from unittest.mock import MagicMock, patch

import pytest

from remend.advice.cache import AdviceCache
from remend.advice.formatter import (
    CANNED_ADVICE,
    GENERIC_BULLET,
    AdviceContext,
    AdviceOutput,
    LLMAdviceFormatter,
    build_advice_prompt,
    fallback_advice,
    get_advice,
    normalize_output,
)
from remend.advice.llm import openai_model
from remend.exercises.types import Dosage, ShortlistExercise
from remend.plans.types import Advice

SHORTLIST = [
    ShortlistExercise(
        exercise_id=1,
        name="Quad Sets",
        bucket_slug="isometric_knee",
        bucket_label="Isometric Knee Strengthening",
        dosage=Dosage(sets=3, hold_seconds=5),
        dosage_text="3 sets × 5s hold",
    )
]


@pytest.fixture
def cache():
    return AdviceCache()


def _context(trend: str = "improving") -> AdviceContext:
    return AdviceContext(
        trend=trend,
        analysis={
            "current_pain": 3,
            "current_stiffness": 2,
            "baseline_pain": 4.5,
            "baseline_stiffness": 3.0,
            "pain_delta": -1.5,
            "stiffness_delta": -1.0,
            "log_count": 4,
            "days_since_start": 5,
        },
        buckets=["isometric_knee"],
    )


def test_formatter_called_on_miss_and_result_cached(cache):
    advice = Advice(summary="Nice work", bullets=["a", "b", "c"])
    formatter = MagicMock()
    formatter.format.return_value = advice

    first = get_advice(cache, formatter, "key", SHORTLIST, _context())
    second = get_advice(cache, formatter, "key", SHORTLIST, _context())

    assert first == (advice, "success")
    assert second == (advice, "success")
    formatter.format.assert_called_once()


def test_formatter_error_falls_back_without_caching(cache):
    formatter = MagicMock()
    formatter.format.side_effect = TimeoutError("deadline exceeded")

    advice, status = get_advice(cache, formatter, "key", SHORTLIST, _context("worse"))

    assert status == "fallback"
    assert advice == CANNED_ADVICE["worse"]
    assert advice.caution is not None
    assert cache.get("key") is None


def test_formatter_advice_gets_caution_for_worse_trend(cache):
    formatter = MagicMock()
    formatter.format.return_value = Advice(summary="Steady", bullets=["a", "b", "c"], caution=None)

    advice, status = get_advice(cache, formatter, "key", SHORTLIST, _context("worse"))

    assert status == "success"
    assert advice.caution == CANNED_ADVICE["worse"].caution
    assert cache.get("key").caution == CANNED_ADVICE["worse"].caution


def test_formatter_caution_dropped_when_not_worse(cache):
    formatter = MagicMock()
    formatter.format.return_value = Advice(summary="Nice", bullets=["a", "b", "c"], caution="careful")

    advice, _ = get_advice(cache, formatter, "key", SHORTLIST, _context("improving"))

    assert advice.caution is None


def test_missing_formatter_uses_canned_advice(cache):
    advice, status = get_advice(cache, None, "key", SHORTLIST, _context("stable"))

    assert status == "fallback"
    assert advice.summary == "You're maintaining steady progress - consistency is key."


def test_fallback_for_unknown_trend_is_stable():
    assert fallback_advice(None) == CANNED_ADVICE["stable"]


def test_canned_advice_has_three_bullets():
    for advice in CANNED_ADVICE.values():
        assert len(advice.bullets) == 3


def test_normalize_output_pads_and_truncates_bullets():
    padded = normalize_output(AdviceOutput(summary="Good", coaching=["one", "  "]), "improving")
    truncated = normalize_output(AdviceOutput(summary="Good", coaching=["1", "2", "3", "4"]), "stable")

    assert padded.bullets == ["one", GENERIC_BULLET, GENERIC_BULLET]
    assert truncated.bullets == ["1", "2", "3"]


def test_normalize_output_caution_only_when_worse():
    improving = normalize_output(AdviceOutput(summary="Good", coaching=["a"], caution="careful"), "improving")
    worse = normalize_output(AdviceOutput(summary="Hmm", coaching=["a"]), "worse")

    assert improving.caution is None
    assert worse.caution == CANNED_ADVICE["worse"].caution


def test_normalize_output_rejects_empty_summary():
    with pytest.raises(ValueError, match="empty summary"):
        normalize_output(AdviceOutput(summary="  ", coaching=["a"]), "stable")


def test_prompt_mentions_plan_and_numbers():
    prompt = build_advice_prompt(SHORTLIST, _context())

    assert "Trend classification: improving" in prompt
    assert "change: -1.5" in prompt
    assert "Quad Sets (Isometric Knee Strengthening): 3 sets × 5s hold" in prompt
    assert "Leave caution empty." in prompt


def test_early_mode_prompt_is_cautious():
    context = _context().model_copy(update={"mode": "early"})

    assert "Only a couple of logs so far" in build_advice_prompt(SHORTLIST, context)


def test_llm_formatter_runs_agent_with_settings():
    agent = MagicMock()
    agent.run_sync.return_value.output = AdviceOutput(summary="Nice", coaching=["a", "b", "c"])

    with (
        patch("remend.advice.formatter.openai_model", return_value="model") as openai_model,
        patch("remend.advice.formatter.Agent", return_value=agent) as agent_cls,
    ):
        advice = LLMAdviceFormatter("gpt-4o-mini", timeout_seconds=5.0).format(SHORTLIST, _context())

    openai_model.assert_called_once_with("gpt-4o-mini")
    assert agent_cls.call_args.kwargs["output_type"] is AdviceOutput
    assert agent.run_sync.call_args.kwargs["model_settings"]["timeout"] == 5.0
    assert advice == Advice(summary="Nice", bullets=["a", "b", "c"], caution=None)


def test_openai_model_uses_given_key():
    model = openai_model("gpt-4o-mini", api_key="sk-test")

    assert model.model_name == "gpt-4o-mini"
