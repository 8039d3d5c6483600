"""Dosage rendering and trend-driven dosage adjustment.

Rendering is a pure function of the Dosage record. Adjustment only touches
strength/isometric work, and keeps sets inside [MIN_LOADED_SETS,
MAX_LOADED_SETS] by clamping, never by raising.
"""

from loguru import logger

from remend.exercises.types import Dosage, ShortlistExercise, Trend

MIN_LOADED_SETS = 2
MAX_LOADED_SETS = 4

IMPROVING_REP_STEP = 2
WORSE_REP_STEP = 2
WORSE_REP_FLOOR = 5
STABLE_REP_STEP = 1


def _format_seconds(total_seconds: int) -> str:
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0 and seconds == 0:
        return f"{minutes} min"
    if minutes > 0:
        return f"{minutes} min {seconds}s"
    return f"{seconds}s"


def format_dosage_text(dosage: Dosage) -> str:
    """Format dosage as human-readable text.

    Examples:
        sets=3, reps=10, rest=30 -> "3 sets × 10 reps, 30s rest"
        sets=2, hold=5           -> "2 sets × 5s hold"
        time=330                 -> "5 min 30s"

    Args:
        dosage: Dosage record

    Returns:
        Comma-joined dosage text (empty string if nothing to render)
    """
    parts: list[str] = []

    if dosage.sets and dosage.reps:
        parts.append(f"{dosage.sets} sets × {dosage.reps} reps")
    elif dosage.sets and dosage.hold_seconds:
        parts.append(f"{dosage.sets} sets × {dosage.hold_seconds}s hold")
    elif dosage.sets and dosage.time_seconds:
        parts.append(f"{dosage.sets} sets × {dosage.time_seconds}s")
    elif dosage.time_seconds:
        parts.append(_format_seconds(dosage.time_seconds))

    if dosage.rest_seconds:
        parts.append(f"{dosage.rest_seconds}s rest")

    if dosage.notes:
        parts.append(f"• {dosage.notes}")

    return ", ".join(parts)


def clamp_loaded_sets(sets: int | None) -> int | None:
    """Clamp sets into the safe interval for strength/isometric work."""
    if sets is None:
        return None
    return max(MIN_LOADED_SETS, min(MAX_LOADED_SETS, sets))


def adjust_dosage(exercise: ShortlistExercise, trend: Trend, reasoning: list[str]) -> ShortlistExercise:
    """Adjust one exercise's dosage for the given trend.

    Rules (strength/isometric exercises only, others pass through):
    - improving: +1 set while sets < 4, otherwise +2 reps
    - worse: -1 set while sets > 2, otherwise -2 reps while reps > 5
    - stable: +1 rep

    Args:
        exercise: Shortlist exercise to adjust
        trend: Trend classification
        reasoning: Reasoning list, appended in place

    Returns:
        New ShortlistExercise with adjusted dosage and re-rendered text
    """
    if not exercise.is_loaded_work:
        reasoning.append(f"{exercise.name}: kept dosage ({exercise.bucket_slug} bucket)")
        return exercise

    sets = exercise.dosage.sets
    reps = exercise.dosage.reps

    if trend == "improving":
        if sets is not None and sets < MAX_LOADED_SETS:
            sets += 1
            reasoning.append(f"{exercise.name}: +1 set (now {sets})")
        elif reps is not None:
            reps += IMPROVING_REP_STEP
            reasoning.append(f"{exercise.name}: +{IMPROVING_REP_STEP} reps (now {reps})")
    elif trend == "worse":
        if sets is not None and sets > MIN_LOADED_SETS:
            sets -= 1
            reasoning.append(f"{exercise.name}: -1 set (now {sets})")
        elif reps is not None and reps > WORSE_REP_FLOOR:
            reps -= WORSE_REP_STEP
            reasoning.append(f"{exercise.name}: -{WORSE_REP_STEP} reps (now {reps})")
    elif reps is not None:
        reps += STABLE_REP_STEP
        reasoning.append(f"{exercise.name}: +{STABLE_REP_STEP} rep (now {reps})")

    clamped_sets = clamp_loaded_sets(sets)
    if clamped_sets != sets:
        logger.debug(
            "Clamped loaded sets",
            exercise_id=exercise.exercise_id,
            requested=sets,
            clamped=clamped_sets,
        )

    dosage = exercise.dosage.model_copy(update={"sets": clamped_sets, "reps": reps})
    return exercise.model_copy(update={"dosage": dosage, "dosage_text": format_dosage_text(dosage)})
