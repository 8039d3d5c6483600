"""Pattern mapping: inferred pain pattern -> safe exercise buckets.

Pure deterministic logic, no AI calls. Rules are data (PATTERN_RULES) and are
evaluated by a single generic matcher. The result always contains at least
one bucket.
"""

from dataclasses import dataclass, field

from remend.exercises.types import Confidence, PatternMappingInput

CONSERVATIVE_BUCKET_TAGS = ("mobility", "isometric")

# Always safe, always seeded
FALLBACK_BUCKETS: tuple[str, ...] = ("mobility_general", "isometric_general")


@dataclass(frozen=True)
class PatternRule:
    """Keyword rule. Matches when any keyword is a substring of the search text."""

    keywords: tuple[str, ...]
    target_buckets: tuple[str, ...]
    rationale: str


PATTERN_RULES: tuple[PatternRule, ...] = (
    # Knee patterns
    PatternRule(
        keywords=("quad", "patellar", "front of knee", "kneecap"),
        target_buckets=("isometric_knee", "mobility_knee"),
        rationale="Front-of-knee pattern: isometric loading + mobility",
    ),
    PatternRule(
        keywords=("meniscus", "twisting", "locking", "catching"),
        target_buckets=("stability_lower", "mobility_knee"),
        rationale="Meniscus-like pattern: stability work + controlled mobility",
    ),
    PatternRule(
        keywords=("hamstring",),
        target_buckets=("activation_quads", "mobility_knee"),
        rationale="Hamstring involvement: quad activation + gentle mobility",
    ),
    # Ankle patterns
    PatternRule(
        keywords=("achilles", "calf", "ankle"),
        target_buckets=("isometric_ankle", "mobility_ankle"),
        rationale="Ankle/calf pattern: isometric strengthening + mobility",
    ),
    # Focus-based mappings (when pattern is vague)
    PatternRule(
        keywords=("isometric", "load management"),
        target_buckets=("isometric_knee", "isometric_ankle"),
        rationale="Isometric focus: safe loading without movement",
    ),
    PatternRule(
        keywords=("mobility", "range of motion", "stiffness"),
        target_buckets=("mobility_knee", "mobility_ankle"),
        rationale="Mobility focus: gentle range of motion work",
    ),
    PatternRule(
        keywords=("activation", "muscle activation"),
        target_buckets=("activation_quads",),
        rationale="Activation focus: targeted muscle engagement",
    ),
    PatternRule(
        keywords=("stability", "balance", "control"),
        target_buckets=("stability_lower",),
        rationale="Stability focus: balance and proprioception",
    ),
)


@dataclass(frozen=True)
class PatternMappingResult:
    """Outcome of pattern mapping.

    Attributes:
        buckets: Bucket slugs to draw exercises from (never empty)
        rationale: One line per matched rule, or a generic line on fallback
        confidence_level: Input confidence, downgraded to "low" when nothing matched
        matched_keywords: Keywords that matched, in rule order
        notes: Human-readable summary of how the buckets were chosen
    """

    buckets: list[str]
    rationale: list[str]
    confidence_level: Confidence
    matched_keywords: list[str] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "buckets": list(self.buckets),
            "rationale": list(self.rationale),
            "confidence_level": self.confidence_level,
            "matched_keywords": list(self.matched_keywords),
            "notes": self.notes,
        }


def build_search_text(mapping_input: PatternMappingInput) -> str:
    """Lowercase search text from pattern, focus tags and area."""
    parts = [mapping_input.suspected_pattern.lower()]
    parts.extend(focus.lower() for focus in mapping_input.recommended_focus)
    parts.append((mapping_input.area or "").lower())
    return " ".join(parts)


def match_rules(
    search_text: str,
    rules: tuple[PatternRule, ...] = PATTERN_RULES,
) -> list[tuple[PatternRule, list[str]]]:
    """Return every matching rule with the keywords that matched, in rule order."""
    matches: list[tuple[PatternRule, list[str]]] = []
    for rule in rules:
        found = [keyword for keyword in rule.keywords if keyword in search_text]
        if found:
            matches.append((rule, found))
    return matches


def _is_conservative(bucket: str) -> bool:
    return any(tag in bucket for tag in CONSERVATIVE_BUCKET_TAGS)


def map_pattern(
    mapping_input: PatternMappingInput,
    rules: tuple[PatternRule, ...] = PATTERN_RULES,
) -> PatternMappingResult:
    """Map an inferred pattern to exercise buckets.

    Args:
        mapping_input: Pattern, focus tags, confidence and optional area
        rules: Ordered rule table

    Returns:
        PatternMappingResult with at least one bucket
    """
    matches = match_rules(build_search_text(mapping_input), rules)
    matched_keywords = [keyword for _, found in matches for keyword in found]

    if not matches:
        return PatternMappingResult(
            buckets=list(FALLBACK_BUCKETS),
            rationale=["Using general safe exercises - no specific pattern detected"],
            confidence_level="low",
            matched_keywords=[],
            notes=f"No pattern match found - using safe defaults ({', '.join(FALLBACK_BUCKETS)})",
        )

    buckets: list[str] = []
    for rule, _ in matches:
        for bucket in rule.target_buckets:
            if bucket not in buckets:
                buckets.append(bucket)

    rationale = [rule.rationale for rule, _ in matches]

    if mapping_input.confidence == "low":
        conservative = [bucket for bucket in buckets if _is_conservative(bucket)]
        if conservative:
            notes = f"Low AI confidence - restricted to conservative buckets: {', '.join(conservative)}"
            buckets = conservative
        else:
            notes = f"Low AI confidence + no conservative buckets - using fallback: {', '.join(FALLBACK_BUCKETS)}"
            buckets = list(FALLBACK_BUCKETS)
    else:
        notes = f"Matched {len(matches)} rule(s) with keywords: {', '.join(matched_keywords)}"

    return PatternMappingResult(
        buckets=buckets,
        rationale=rationale,
        confidence_level=mapping_input.confidence,
        matched_keywords=matched_keywords,
        notes=notes,
    )
