"""Program status lifecycle.

Allowed transitions: active -> paused, active -> completed, paused -> active.
Completed programs are terminal. Setting the current status again is rejected.
"""

from remend.errors import InvalidStatusTransitionError

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "active": frozenset({"paused", "completed"}),
    "paused": frozenset({"active"}),
    "completed": frozenset(),
}


def validate_status_transition(current: str, target: str) -> None:
    """Raise InvalidStatusTransitionError unless current -> target is allowed."""
    if target not in ALLOWED_TRANSITIONS:
        raise InvalidStatusTransitionError(f"Unknown program status: {target}")
    if current == target:
        raise InvalidStatusTransitionError(f"Program is already {target}")
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransitionError(f"Cannot change program status from {current} to {target}")
