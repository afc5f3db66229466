"""
Error taxonomy for the progression engine.

SequenceViolation and ValidationError are recovered locally by the caller and never retried.
PersistenceFailure is surfaced so the learner can re-trigger the action; local state has already
been reverted (or was never committed) by the time it is raised.
"""


class EngineError(Exception):
    """Base class for every error the engine raises on purpose."""

    code = "engine_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.context}


class SequenceViolation(EngineError):
    """A day was completed, selected or quizzed out of order."""

    code = "sequence_violation"


class PersistenceFailure(EngineError):
    """The backing store did not acknowledge a write (or a read failed)."""

    code = "persistence_failure"


class NotFound(EngineError):
    """Course, day, enrollment or note does not exist."""

    code = "not_found"


class ValidationError(EngineError):
    """Malformed input, e.g. a negative score."""

    code = "validation_error"
