from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from progression.aggregator import EnrollmentStatus


@dataclass(frozen=True)
class EnrollmentSnapshot:
    """What the store holds for one (learner, course)."""

    completed_days: Optional[tuple[int, ...]] = None  # None on legacy rows that only stored `progress`
    progress: int = 0
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    last_accessed_at: Optional[datetime] = None


@dataclass(frozen=True)
class QuizAttempt:
    day: int
    attempt_number: int
    score: int
    total_questions: int
    submitted_at: datetime


@dataclass(frozen=True)
class Note:
    id: str
    day: int
    content: str
    updated_at: datetime


@dataclass
class StoreCall:
    """Single recorded store call (used by the in-memory store for inspection in tests/dev)."""

    op: str
    args: dict = field(default_factory=dict)


class ProgressStore(ABC):
    """
    Persistence contract consumed by the engine.

    Every method may suspend. Implementations raise any exception on failure; the engine
    treats every non-success outcome as a PersistenceFailure.
    """

    @abstractmethod
    async def get_enrollment(self, learner_id: str, course_id: str) -> Optional[EnrollmentSnapshot]:
        """Return the stored enrollment, or None if the learner never enrolled."""
        raise NotImplementedError

    @abstractmethod
    async def update_progress(
        self,
        learner_id: str,
        course_id: str,
        completed_days: Sequence[int],
        progress: int,
        status: EnrollmentStatus,
    ) -> EnrollmentSnapshot:
        """
        Upsert the enrollment. Returning normally is the acknowledgement.
        The store stamps `last_accessed_at`.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_quiz_attempts(self, learner_id: str, course_id: str, day: int) -> List[QuizAttempt]:
        raise NotImplementedError

    @abstractmethod
    async def submit_quiz_attempt(
        self,
        learner_id: str,
        course_id: str,
        day: int,
        score: int,
        total_questions: int,
        attempt_number: int,
        submitted_at: datetime,
    ) -> int:
        """
        Append an attempt and return its attempt number.
        Must reject a duplicate (learner, course, day, attempt_number).
        """
        raise NotImplementedError

    @abstractmethod
    async def get_note(self, learner_id: str, course_id: str, day: int) -> Optional[Note]:
        raise NotImplementedError

    @abstractmethod
    async def save_note(
        self,
        learner_id: str,
        course_id: str,
        day: int,
        content: str,
        note_id: Optional[str] = None,
    ) -> Note:
        """Create a note when `note_id` is None, otherwise update that note."""
        raise NotImplementedError
