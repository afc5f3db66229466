"""
Attempt ledger: append-only quiz attempts per (learner, course, day).

Attempt numbers run 1, 2, 3, ... per day with no gaps or reuse. Numbers come from the highest
attempt the store knows about, so they survive across sessions.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from progression.aggregator import round_half_up
from progression.errors import NotFound, PersistenceFailure, SequenceViolation, ValidationError
from progression.outline import CourseOutline, MCQQuestion
from progression.store import ProgressStore, QuizAttempt

logger = logging.getLogger(__name__)


def score_answers(questions: Sequence[MCQQuestion], selected: Sequence[Optional[int]]) -> int:
    """Percent of questions answered with the correct option. Unanswered counts as wrong."""
    if len(selected) != len(questions):
        raise ValidationError(
            "answers do not match questions",
            questions=len(questions),
            answers=len(selected),
        )
    if not questions:
        return 0
    correct = sum(1 for q, a in zip(questions, selected) if a is not None and a == q.correct_index())
    return round_half_up(100 * correct / len(questions))


def validate_submission(score, total_questions) -> None:
    if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
        raise ValidationError("score must be an integer between 0 and 100", score=score)
    if isinstance(total_questions, bool) or not isinstance(total_questions, int) or total_questions < 0:
        raise ValidationError("total_questions must be a non-negative integer", total_questions=total_questions)


class AttemptLedger:
    def __init__(
        self,
        *,
        outline: CourseOutline,
        store: ProgressStore,
        learner_id: str,
        is_eligible: Callable[[int], bool],
    ):
        self.outline = outline
        self.store = store
        self.learner_id = learner_id
        self.course_id = outline.course_id
        self._is_eligible = is_eligible
        self._attempts: Dict[int, List[QuizAttempt]] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def _lock_for(self, day: int) -> asyncio.Lock:
        if day not in self._locks:
            self._locks[day] = asyncio.Lock()
        return self._locks[day]

    async def _load(self, day: int) -> List[QuizAttempt]:
        if day in self._attempts:
            return self._attempts[day]
        try:
            rows = await self.store.list_quiz_attempts(self.learner_id, self.course_id, day)
        except Exception as e:
            logger.warning("list_quiz_attempts failed course=%s day=%s error=%s", self.course_id, day, e)
            raise PersistenceFailure("Failed to load quiz results", course_id=self.course_id, day=day) from e
        self._attempts[day] = list(rows)
        return self._attempts[day]

    async def list_attempts(self, day: int) -> List[QuizAttempt]:
        """Most recent first."""
        self.outline.get_day(day)
        rows = await self._load(day)
        return sorted(rows, key=lambda a: a.attempt_number, reverse=True)

    async def best_score(self, day: int) -> Optional[int]:
        rows = await self.list_attempts(day)
        return max((a.score for a in rows), default=None)

    async def submit_attempt(self, day: int, score: int, total_questions: int) -> QuizAttempt:
        if not self.outline.has_day(day):
            raise NotFound(f"Day {day} not found", course_id=self.course_id, day=day)
        validate_submission(score, total_questions)
        if not self._is_eligible(day):
            raise SequenceViolation(
                "Watch the video or complete the day before taking the quiz",
                course_id=self.course_id,
                day=day,
            )

        async with self._lock_for(day):
            rows = await self._load(day)
            attempt_number = max((a.attempt_number for a in rows), default=0) + 1
            submitted_at = datetime.now(timezone.utc)
            try:
                stored_number = await self.store.submit_quiz_attempt(
                    self.learner_id,
                    self.course_id,
                    day,
                    score,
                    total_questions,
                    attempt_number,
                    submitted_at,
                )
            except Exception as e:
                logger.warning(
                    "submit_quiz_attempt failed course=%s day=%s attempt=%s error=%s",
                    self.course_id,
                    day,
                    attempt_number,
                    e,
                )
                # A rejected number may mean another session wrote it; reload next time.
                self._attempts.pop(day, None)
                raise PersistenceFailure(
                    "Failed to submit quiz. Please try again.",
                    course_id=self.course_id,
                    day=day,
                ) from e

            attempt = QuizAttempt(
                day=day,
                attempt_number=int(stored_number or attempt_number),
                score=score,
                total_questions=total_questions,
                submitted_at=submitted_at,
            )
            rows.append(attempt)
            logger.info(
                "quiz attempt recorded course=%s day=%s attempt=%s score=%s",
                self.course_id,
                day,
                attempt.attempt_number,
                score,
            )
            return attempt
