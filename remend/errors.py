"""Domain-specific errors for the rehab plan engine.

Rule components never raise for bad input data; they fall back to safe
defaults. These errors cover the conditions that must be reported to the
caller instead of silently producing an unsafe result.
"""


class RemendError(Exception):
    """Base exception for all engine errors."""

    pass


class PlanGenerationError(RemendError):
    """Raised when a plan cannot be generated."""

    pass


class NoExercisesAvailableError(PlanGenerationError):
    """Raised when the catalog yields zero exercises for every candidate bucket.

    An empty plan is never returned in place of this error.
    """

    def __init__(self, buckets: list[str]):
        self.buckets = list(buckets)
        super().__init__(f"No exercises found in buckets [{', '.join(self.buckets)}]")


class ProgramError(RemendError):
    """Base exception for program lifecycle errors."""

    pass


class ProgramNotFoundError(ProgramError):
    """Raised when a program id does not exist."""

    pass


class ProgramNotActiveError(ProgramError):
    """Raised when logging against a paused or completed program."""

    pass


class InvalidStatusTransitionError(ProgramError):
    """Raised for no-op or disallowed program status transitions."""

    pass


class ActiveProgramConflictError(ProgramError):
    """Raised when a user would end up with two active programs."""

    pass


class InvalidLogError(RemendError):
    """Raised when a symptom log fails validation."""

    pass
