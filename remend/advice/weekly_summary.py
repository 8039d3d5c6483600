"""Weekly progress summaries.

Turns adherence numbers and the week-over-week symptom change into a short
motivational message. Focus stays on effort and consistency, never medical
advice. Failures fall back to canned, trend-keyed summaries.
"""

from typing import Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic_ai import Agent

from remend.advice.llm import openai_model
from remend.exercises.types import Trend
from remend.plans.types import AdviceStatus

HIGHLIGHT_COUNT = 3
GENERIC_HIGHLIGHT = "Staying committed to recovery"
STREAK_CELEBRATION_DAYS = 5
HIGH_ADHERENCE_PERCENT = 80
LOW_LOG_COUNT = 3

TREND_EMOJI: dict[str, str] = {
    "improving": "🎉",
    "stable": "📈",
    "worse": "💪",
}
DEFAULT_EMOJI = "🌟"
VALID_EMOJIS = frozenset([*TREND_EMOJI.values(), DEFAULT_EMOJI])


class WeeklySummaryInput(BaseModel):
    adherence_rate: float
    current_streak: int
    avg_pain_change: float
    avg_stiffness_change: float
    logs_this_week: int
    trend: Trend | None = None


class WeeklySummary(BaseModel):
    """Stored on the program as its latest weekly summary."""

    model_config = ConfigDict(frozen=True)

    summary: str
    highlights: list[str]
    encouragement: str
    emoji: str = DEFAULT_EMOJI


class WeeklySummaryOutput(BaseModel):
    """Schema for LLM weekly summary output."""

    summary: str = Field(description="1-2 sentence overview celebrating progress and consistency")
    highlights: list[str] = Field(description="Exactly 3 specific observations from the data")
    encouragement: str = Field(description="One sentence of gentle next-step motivation")
    emoji: str = Field(default="", description="One of 🎉 💪 🌟 📈 matching the tone")


CANNED_SUMMARIES: dict[str, WeeklySummary] = {
    "improving": WeeklySummary(
        summary="Great week! Your pain and stiffness are trending down, and you're staying consistent.",
        highlights=[
            "Pain levels improving",
            "Building momentum with regular logging",
            "Showing positive progress",
        ],
        encouragement="Keep up the excellent work - you're on the right track!",
        emoji="🎉",
    ),
    "stable": WeeklySummary(
        summary="Steady progress this week. You're maintaining your gains and staying consistent.",
        highlights=[
            "Consistent logging habit",
            "Maintaining stability",
            "Building a strong foundation",
        ],
        encouragement="Small, consistent steps lead to lasting results. Stay the course!",
        emoji="📈",
    ),
    "worse": WeeklySummary(
        summary="This week had some challenges, but you're still showing up and tracking your progress.",
        highlights=[
            "Continuing to log despite setbacks",
            "Building awareness of patterns",
            "Staying committed to recovery",
        ],
        encouragement=(
            "Progress isn't always linear. Focus on rest and gentle movement, "
            "and consult your provider if symptoms persist."
        ),
        emoji="💪",
    ),
}

DEFAULT_SUMMARY = WeeklySummary(
    summary="Thanks for staying consistent with your rehab tracking this week!",
    highlights=[
        "Regular logging helps track patterns",
        "Building healthy habits",
        "Taking ownership of recovery",
    ],
    encouragement="Every log entry brings you closer to your goals. Keep it up!",
    emoji=DEFAULT_EMOJI,
)

SYSTEM_PROMPT = """You are an empathetic physical therapist providing weekly encouragement.
Focus on effort and progress. No medical advice or diagnosis.
Be warm, supportive, and motivating."""


class WeeklySummaryFormatter(Protocol):
    def format(self, summary_input: WeeklySummaryInput) -> WeeklySummary:
        """Weekly summary text. May raise; callers fall back."""
        ...


def fallback_summary(trend: Trend | None) -> WeeklySummary:
    if trend is None:
        return DEFAULT_SUMMARY
    return CANNED_SUMMARIES.get(trend, DEFAULT_SUMMARY)


def _signed(value: float) -> str:
    return f"+{value:.1f}" if value >= 0 else f"{value:.1f}"


def build_weekly_summary_prompt(summary_input: WeeklySummaryInput) -> str:
    adherence_percent = round(summary_input.adherence_rate * 100)
    trend = summary_input.trend or "stable"

    lines = [
        "User's Weekly Rehab Progress:",
        "",
        "Adherence:",
        f"- Current streak: {summary_input.current_streak} days",
        f"- Overall adherence: {adherence_percent}%",
        f"- Logs this week: {summary_input.logs_this_week}/7 days",
        "",
        "Progress metrics:",
        f"- Pain change: {_signed(summary_input.avg_pain_change)} (vs previous week)",
        f"- Stiffness change: {_signed(summary_input.avg_stiffness_change)} (vs previous week)",
        f"- Overall trend: {trend}",
        "",
        "Guidelines:",
    ]

    if trend == "improving":
        lines.append("- Celebrate their progress. Be enthusiastic about pain/stiffness improvements.")
    elif trend == "worse":
        lines.append("- Be empathetic and reassuring. Acknowledge setbacks as part of recovery. Suggest rest if needed.")
    else:
        lines.append("- Emphasize consistency and building a foundation. Progress isn't just numbers.")
    if summary_input.current_streak >= STREAK_CELEBRATION_DAYS:
        lines.append("- Celebrate their streak. Consistency is key.")
    if adherence_percent >= HIGH_ADHERENCE_PERCENT:
        lines.append("- Praise their excellent adherence rate.")
    if summary_input.logs_this_week < LOW_LOG_COUNT:
        lines.append("- Gently encourage more frequent logging for better insights.")
    lines.extend(
        [
            "- Highlights should be specific observations from the data, not generic",
            "- Encouragement should be actionable but not medical advice",
            f"Write a 1-2 sentence summary, exactly {HIGHLIGHT_COUNT} highlights and one sentence of encouragement.",
        ]
    )
    return "\n".join(lines)


def normalize_summary(output: WeeklySummaryOutput, trend: Trend | None) -> WeeklySummary:
    """Validate LLM output: exactly three highlights and a known emoji.

    Raises:
        ValueError: If summary, highlights or encouragement are missing
    """
    summary = output.summary.strip()
    encouragement = output.encouragement.strip()
    if not summary:
        raise ValueError("LLM weekly summary has an empty summary")
    if not encouragement:
        raise ValueError("LLM weekly summary has an empty encouragement")

    highlights = [item.strip() for item in output.highlights if item and item.strip()]
    if not highlights:
        raise ValueError("LLM weekly summary has no highlights")
    highlights = (highlights + [GENERIC_HIGHLIGHT] * HIGHLIGHT_COUNT)[:HIGHLIGHT_COUNT]

    emoji = output.emoji.strip()
    if emoji not in VALID_EMOJIS:
        emoji = TREND_EMOJI.get(trend or "", DEFAULT_EMOJI)

    return WeeklySummary(summary=summary, highlights=highlights, encouragement=encouragement, emoji=emoji)


class LLMWeeklySummaryFormatter:
    """Weekly summary formatter backed by a pydantic_ai Agent."""

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

    def format(self, summary_input: WeeklySummaryInput) -> WeeklySummary:
        user_prompt = build_weekly_summary_prompt(summary_input)

        agent = Agent(
            model=openai_model(self.model_name),
            system_prompt=SYSTEM_PROMPT,
            output_type=WeeklySummaryOutput,
        )

        logger.debug("LLM Prompt: Weekly summary", system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)
        result = agent.run_sync(
            user_prompt,
            model_settings={
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "timeout": self.timeout_seconds,
            },
        )
        return normalize_summary(result.output, summary_input.trend)


def weekly_summary_formatter_from_settings() -> WeeklySummaryFormatter | None:
    from remend.config.settings import settings

    if not settings.ai_enabled:
        return None

    return LLMWeeklySummaryFormatter(
        model_name=settings.advice_model,
        temperature=settings.advice_temperature,
        max_tokens=settings.advice_max_tokens,
        timeout_seconds=settings.advice_timeout_seconds,
    )


def generate_weekly_summary(
    formatter: WeeklySummaryFormatter | None,
    summary_input: WeeklySummaryInput,
) -> tuple[WeeklySummary, AdviceStatus]:
    """Weekly summary from the formatter, or the canned one for the trend.

    Returns:
        (summary, "success" | "fallback")
    """
    if formatter is None:
        logger.info("AI disabled - using canned weekly summary", trend=summary_input.trend)
        return fallback_summary(summary_input.trend), "fallback"

    try:
        summary = formatter.format(summary_input)
    except Exception as e:
        logger.warning(
            "Failed to generate weekly summary, using canned fallback",
            error=f"{type(e).__name__}: {e}",
            trend=summary_input.trend,
        )
        return fallback_summary(summary_input.trend), "fallback"

    logger.info(
        "Weekly summary generated with LLM",
        adherence_rate=summary_input.adherence_rate,
        streak=summary_input.current_streak,
    )
    return summary, "success"
