"""
Course progression and engagement-integrity engine.

Backend-agnostic core. Import from submodules or from this package.

Example:
    from progression import LearnerSession, InMemoryStore
    from progression.aggregator import summarize
"""

from progression.aggregator import EnrollmentStatus, ProgressSummary, parse_duration, summarize
from progression.attempts import AttemptLedger, score_answers
from progression.errors import EngineError, NotFound, PersistenceFailure, SequenceViolation, ValidationError
from progression.memory_store import InMemoryStore
from progression.notes import NotesStore
from progression.outline import CourseOutline, MCQOption, MCQQuestion, OutlineSource, RoadmapDay
from progression.session import LearnerSession, QuizResult
from progression.state_machine import DayState, EnrollmentRecord, ProgressionStateMachine
from progression.store import EnrollmentSnapshot, Note, ProgressStore, QuizAttempt
from progression.watch_guard import LockedPlaceholder, PlaybackMonitor, PlayerChannel, PlayerKind, WatchGuard

__all__ = [
    # aggregator
    "EnrollmentStatus",
    "ProgressSummary",
    "parse_duration",
    "summarize",
    # attempts
    "AttemptLedger",
    "score_answers",
    # errors
    "EngineError",
    "NotFound",
    "PersistenceFailure",
    "SequenceViolation",
    "ValidationError",
    # stores
    "InMemoryStore",
    "ProgressStore",
    "EnrollmentSnapshot",
    "Note",
    "QuizAttempt",
    # notes
    "NotesStore",
    # outline
    "CourseOutline",
    "MCQOption",
    "MCQQuestion",
    "OutlineSource",
    "RoadmapDay",
    # session
    "LearnerSession",
    "QuizResult",
    # state machine
    "DayState",
    "EnrollmentRecord",
    "ProgressionStateMachine",
    # watch guard
    "LockedPlaceholder",
    "PlaybackMonitor",
    "PlayerChannel",
    "PlayerKind",
    "WatchGuard",
]
