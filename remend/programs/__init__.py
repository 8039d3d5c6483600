"""Program lifecycle rules."""

from remend.programs.status import ALLOWED_TRANSITIONS, validate_status_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "validate_status_transition",
]
