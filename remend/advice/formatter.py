"""Advice formatting for generated plans.

The formatter only writes coaching text around an already-selected
shortlist; it never chooses exercises. Any formatter failure (including
its timeout) is replaced by a canned, trend-keyed message.
"""

from typing import Protocol

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from remend.advice.cache import AdviceCache
from remend.advice.llm import openai_model
from remend.exercises.types import ShortlistExercise, Trend
from remend.plans.types import Advice, AdviceStatus

BULLET_COUNT = 3
GENERIC_BULLET = "Continue monitoring your symptoms and adjusting as needed"

CANNED_ADVICE: dict[str, Advice] = {
    "improving": Advice(
        summary="Great progress! Your pain and stiffness levels are trending down.",
        bullets=[
            "Continue with consistent exercise - you're building momentum",
            "Listen to your body and maintain good form on all movements",
            "Gradually increase activity as symptoms allow",
        ],
        caution=None,
    ),
    "stable": Advice(
        summary="You're maintaining steady progress - consistency is key.",
        bullets=[
            "Keep up your exercise routine to maintain gains",
            "Try to be consistent with timing and form",
            "Small improvements add up over time",
        ],
        caution=None,
    ),
    "worse": Advice(
        summary="Your symptoms have increased slightly - let's adjust your approach.",
        bullets=[
            "Focus on gentle movements and avoid aggravating activities",
            "Prioritize rest and recovery between sessions",
            "If pain persists or worsens, consult your healthcare provider",
        ],
        caution=(
            "Your pain or stiffness has increased. We've adjusted your plan to be more conservative. "
            "If symptoms continue to worsen, please consult a healthcare professional."
        ),
    ),
}

SYSTEM_PROMPT = """You are a supportive, empathetic physical therapy coach.
Your job is to provide encouraging, actionable feedback for users progressing through rehab.

Guidelines:
- Be warm and supportive, not clinical or diagnostic
- Focus on motivation and practical tips
- Keep language simple and accessible
- For worsening trends, be reassuring but cautious
- Never diagnose or claim to treat conditions
- This is educational guidance only"""


class AdviceContext(BaseModel):
    """What the formatter is told about the plan and the user's trend."""

    trend: Trend
    analysis: dict = Field(default_factory=dict)
    buckets: list[str] = Field(default_factory=list)
    user_notes: str | None = None
    mode: str = "full"


class AdviceOutput(BaseModel):
    """Schema for LLM advice output."""

    summary: str = Field(description="1-2 sentence summary acknowledging the trend")
    coaching: list[str] = Field(description="Exactly 3 short actionable tips")
    caution: str | None = Field(default=None, description="Caution note, only for worsening trends")


class AdviceFormatter(Protocol):
    def format(self, shortlist: list[ShortlistExercise], context: AdviceContext) -> Advice:
        """Coaching text for a shortlist. May raise; callers fall back."""
        ...


def fallback_advice(trend: Trend | None) -> Advice:
    return CANNED_ADVICE.get(trend or "stable", CANNED_ADVICE["stable"])


def _signed(value: float) -> str:
    return f"+{value:.1f}" if value >= 0 else f"{value:.1f}"


def build_advice_prompt(shortlist: list[ShortlistExercise], context: AdviceContext) -> str:
    """User prompt describing trend numbers and the new plan."""
    analysis = context.analysis
    lines = [
        "User's Rehab Progress Update:",
        "",
        f"Trend classification: {context.trend}",
    ]
    if analysis:
        lines.extend(
            [
                f"- Current pain: {analysis.get('current_pain')}/10 (change: {_signed(analysis.get('pain_delta', 0.0))})",
                f"- Current stiffness: {analysis.get('current_stiffness')}/10 "
                f"(change: {_signed(analysis.get('stiffness_delta', 0.0))})",
                f"- Baseline pain (window avg): {analysis.get('baseline_pain', 0.0):.1f}/10",
                f"- Baseline stiffness (window avg): {analysis.get('baseline_stiffness', 0.0):.1f}/10",
                f"- Days since start: {analysis.get('days_since_start', 0)}",
                f"- Total logs: {analysis.get('log_count', 0)}",
            ]
        )
    if context.mode == "early":
        lines.append("- Only a couple of logs so far: keep feedback encouraging and avoid strong conclusions")

    lines.append("")
    lines.append("New plan:")
    lines.extend(f"- {exercise.name} ({exercise.bucket_label}): {exercise.dosage_text}" for exercise in shortlist)
    if context.buckets:
        lines.append(f"Focus areas: {', '.join(context.buckets)}")
    if context.user_notes:
        lines.append(f'User\'s recent notes: "{context.user_notes}"')

    lines.append("")
    lines.append(f"Write a 1-2 sentence summary and exactly {BULLET_COUNT} coaching tips (1 sentence each).")
    if context.trend == "worse":
        lines.append("Include a brief caution note about the worsening trend.")
    else:
        lines.append("Leave caution empty.")
    return "\n".join(lines)


def normalize_output(output: AdviceOutput, trend: Trend) -> Advice:
    """Validate LLM output into Advice: exactly three bullets, caution only when worse.

    Raises:
        ValueError: If the summary is empty
    """
    summary = output.summary.strip()
    if not summary:
        raise ValueError("LLM advice has an empty summary")

    bullets = [tip.strip() for tip in output.coaching if tip and tip.strip()]
    bullets = (bullets + [GENERIC_BULLET] * BULLET_COUNT)[:BULLET_COUNT]

    caution = output.caution.strip() if output.caution else None
    return with_trend_caution(Advice(summary=summary, bullets=bullets, caution=caution), trend)


def with_trend_caution(advice: Advice, trend: Trend) -> Advice:
    """Caution present exactly when the trend is worse."""
    if trend == "worse":
        if advice.caution:
            return advice
        return advice.model_copy(update={"caution": CANNED_ADVICE["worse"].caution})
    if advice.caution is not None:
        return advice.model_copy(update={"caution": None})
    return advice


class LLMAdviceFormatter:
    """Advice formatter backed by a pydantic_ai Agent."""

    def __init__(
        self,
        model_name: str,
        temperature: float = 0.3,
        max_tokens: int = 400,
        timeout_seconds: float = 10.0,
    ):
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    def format(self, shortlist: list[ShortlistExercise], context: AdviceContext) -> Advice:
        user_prompt = build_advice_prompt(shortlist, context)

        agent = Agent(
            model=openai_model(self.model_name),
            system_prompt=SYSTEM_PROMPT,
            output_type=AdviceOutput,
        )

        logger.debug("LLM Prompt: Plan advice", system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)
        result = agent.run_sync(
            user_prompt,
            model_settings={
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "timeout": self.timeout_seconds,
            },
        )
        advice = normalize_output(result.output, context.trend)

        logger.info("Plan advice generated with LLM", trend=context.trend, model=self.model_name)
        return advice


def formatter_from_settings() -> AdviceFormatter | None:
    """LLM formatter when AI is enabled, otherwise None (canned advice only)."""
    from remend.config.settings import settings

    if not settings.ai_enabled:
        logger.info("AI disabled - plan advice will use canned responses")
        return None

    return LLMAdviceFormatter(
        model_name=settings.advice_model,
        temperature=settings.advice_temperature,
        max_tokens=settings.advice_max_tokens,
        timeout_seconds=settings.advice_timeout_seconds,
    )


def get_advice(
    cache: AdviceCache,
    formatter: AdviceFormatter | None,
    key: str,
    shortlist: list[ShortlistExercise],
    context: AdviceContext,
) -> tuple[Advice, AdviceStatus]:
    """Advice for a plan, deduplicated through the cache.

    The formatter is called only on a cache miss. Successful results are
    cached; fallbacks are not, so a later call can still reach the formatter.

    Returns:
        (advice, "success" | "fallback")
    """
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Advice cache hit", key=key)
        return cached, "success"

    if formatter is None:
        return fallback_advice(context.trend), "fallback"

    try:
        advice = with_trend_caution(formatter.format(shortlist, context), context.trend)
    except Exception as e:
        logger.warning(
            "Failed to generate plan advice, using canned fallback",
            error=f"{type(e).__name__}: {e}",
            trend=context.trend,
        )
        return fallback_advice(context.trend), "fallback"

    cache.set(key, advice)
    return advice, "success"
