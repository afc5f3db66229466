"""
Learner session: one learner working through one course.

Holds the durable side (state machine, attempt ledger, saved notes) next to the session-only
side (watched videos, unsaved note edits) and keeps the two apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from progression.attempts import AttemptLedger, score_answers
from progression.errors import PersistenceFailure, ValidationError
from progression.notes import NotesStore
from progression.outline import CourseOutline
from progression.aggregator import ProgressSummary
from progression.state_machine import DayState, EnrollmentRecord, ProgressionStateMachine
from progression.store import Note, ProgressStore, QuizAttempt
from progression.watch_guard import (
    DEFAULT_TRUSTED_ORIGINS,
    POLL_INTERVAL_SECONDS,
    LockedPlaceholder,
    PlaybackMonitor,
    PlayerChannel,
    WatchGuard,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizResult:
    attempt: QuizAttempt
    day_completed: bool  # True when the submission also completed the day
    progress_saved: bool = True  # False when completing the day failed after the attempt was stored


class LearnerSession:
    def __init__(
        self,
        *,
        machine: ProgressionStateMachine,
        trusted_origins: Iterable[str] = DEFAULT_TRUSTED_ORIGINS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.machine = machine
        self.outline = machine.outline
        self.store = machine.store
        self.learner_id = machine.learner_id
        self.course_id = machine.course_id
        self.guard = WatchGuard(
            is_unlocked=lambda d: not machine.is_locked(d),
            on_complete=self._on_video_complete,
            trusted_origins=trusted_origins,
            poll_interval=poll_interval,
        )
        self.attempts = AttemptLedger(
            outline=self.outline,
            store=self.store,
            learner_id=self.learner_id,
            is_eligible=self.is_quiz_eligible,
        )
        self.notes = NotesStore(outline=self.outline, store=self.store, learner_id=self.learner_id)
        self.closed = False

    @classmethod
    async def open(
        cls,
        *,
        store: ProgressStore,
        outline: CourseOutline,
        learner_id: str,
        trusted_origins: Iterable[str] = DEFAULT_TRUSTED_ORIGINS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> "LearnerSession":
        machine = await ProgressionStateMachine.load(outline=outline, store=store, learner_id=learner_id)
        logger.info(
            "learner session opened learner=%s course=%s completed_through=%s",
            learner_id,
            outline.course_id,
            machine.record.completed_through,
        )
        return cls(machine=machine, trusted_origins=trusted_origins, poll_interval=poll_interval)

    # ----- state -----

    @property
    def record(self) -> EnrollmentRecord:
        return self.machine.record

    @property
    def current_day(self) -> Optional[int]:
        return self.machine.current_day

    def summary(self) -> ProgressSummary:
        return self.machine.summary()

    def day_states(self) -> List[tuple[int, DayState]]:
        return self.machine.day_states()

    def is_quiz_eligible(self, day: int) -> bool:
        return self.machine.is_completed(day) or self.guard.has_watched(day)

    # ----- navigation / video -----

    def select_day(
        self,
        day: int,
        channel: Optional[PlayerChannel] = None,
    ) -> Union[PlaybackMonitor, LockedPlaceholder, None]:
        """
        Move to `day`. A refused move (locked day) leaves the cursor and the playing monitor
        alone. A move to another day tears the previous monitor down before the new player is
        guarded, so no stale seek reaches it. Unsaved note edits for other days are kept.
        """
        self.machine.select_day(day)
        if self.guard.active_day == day:
            return self.guard.active if channel is not None else None
        self.guard.deactivate()
        if channel is None:
            return None
        return self.guard.activate(day, channel)

    def attach_player(self, day: int, channel: PlayerChannel) -> Union[PlaybackMonitor, LockedPlaceholder]:
        """Start guarding `day` without moving the cursor (locked days get a placeholder)."""
        self.outline.get_day(day)
        return self.guard.activate(day, channel)

    async def video_ended(self, day: int) -> bool:
        self.outline.get_day(day)
        return await self.guard.mark_ended(day)

    def _on_video_complete(self, day: int) -> None:
        logger.info("video watched learner=%s course=%s day=%s", self.learner_id, self.course_id, day)

    # ----- progression -----

    async def set_day_completion(self, day: int, desired_complete: bool) -> EnrollmentRecord:
        return await self.machine.set_day_completion(day, desired_complete)

    # ----- quizzes -----

    async def submit_quiz(
        self,
        day: int,
        *,
        score: Optional[int] = None,
        answers: Optional[Sequence[Optional[int]]] = None,
        total_questions: Optional[int] = None,
    ) -> QuizResult:
        roadmap_day = self.outline.get_day(day)
        if answers is not None:
            score = score_answers(roadmap_day.mcqs, answers)
        if score is None:
            raise ValidationError("either score or answers is required", day=day)
        if total_questions is None:
            total_questions = len(roadmap_day.mcqs)

        attempt = await self.attempts.submit_attempt(day, score, total_questions)

        day_completed = False
        progress_saved = True
        if not self.machine.is_completed(day) and not self.machine.is_locked(day):
            try:
                await self.machine.set_day_completion(day, True)
                day_completed = True
            except PersistenceFailure as e:
                # The attempt is stored; only the day's completion is missing and can be retried.
                logger.warning(
                    "quiz recorded but day completion failed learner=%s course=%s day=%s attempt=%s error=%s",
                    self.learner_id,
                    self.course_id,
                    day,
                    attempt.attempt_number,
                    e,
                )
                progress_saved = False
        return QuizResult(attempt=attempt, day_completed=day_completed, progress_saved=progress_saved)

    async def list_attempts(self, day: int) -> List[QuizAttempt]:
        return await self.attempts.list_attempts(day)

    # ----- notes -----

    def edit_note(self, day: int, content: str) -> None:
        self.notes.edit(day, content)

    async def save_note(self, day: int) -> Note:
        return await self.notes.save(day)

    async def note_content(self, day: int) -> str:
        return await self.notes.content(day)

    # ----- lifecycle -----

    async def close(self) -> None:
        if self.closed:
            return
        await self.guard.teardown()
        self.notes.end_session()
        self.closed = True
        logger.info("learner session closed learner=%s course=%s", self.learner_id, self.course_id)
