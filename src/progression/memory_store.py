"""
Simple in-memory implementation of the ProgressStore and OutlineSource contracts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from progression.aggregator import EnrollmentStatus
from progression.outline import CourseOutline, OutlineSource
from progression.store import EnrollmentSnapshot, Note, ProgressStore, QuizAttempt, StoreCall

Key = Tuple[str, str]


class InMemoryStore(ProgressStore, OutlineSource):
    """Dict-backed store. Not shared across processes."""

    def __init__(self, outlines: Optional[List[CourseOutline]] = None):
        self._outlines: Dict[str, CourseOutline] = {o.course_id: o for o in outlines or []}
        self._enrollments: Dict[Key, EnrollmentSnapshot] = {}
        self._attempts: Dict[Tuple[str, str, int], List[QuizAttempt]] = {}
        self._notes: Dict[Tuple[str, str, int], Note] = {}
        self.calls: List[StoreCall] = []

    def add_outline(self, outline: CourseOutline) -> None:
        self._outlines[outline.course_id] = outline

    def put_enrollment(self, learner_id: str, course_id: str, snapshot: EnrollmentSnapshot) -> None:
        """Seed an enrollment directly (no call recorded)."""
        self._enrollments[(learner_id, course_id)] = snapshot

    async def get_outline(self, course_id: str) -> Optional[CourseOutline]:
        return self._outlines.get(course_id)

    async def get_enrollment(self, learner_id: str, course_id: str) -> Optional[EnrollmentSnapshot]:
        self.calls.append(StoreCall("get_enrollment", {"learner_id": learner_id, "course_id": course_id}))
        return self._enrollments.get((learner_id, course_id))

    async def update_progress(
        self,
        learner_id: str,
        course_id: str,
        completed_days: Sequence[int],
        progress: int,
        status: EnrollmentStatus,
    ) -> EnrollmentSnapshot:
        self.calls.append(
            StoreCall(
                "update_progress",
                {"completed_days": list(completed_days), "progress": progress, "status": status},
            )
        )
        snap = EnrollmentSnapshot(
            completed_days=tuple(sorted(completed_days)),
            progress=progress,
            status=status,
            last_accessed_at=datetime.now(timezone.utc),
        )
        self._enrollments[(learner_id, course_id)] = snap
        return snap

    async def list_quiz_attempts(self, learner_id: str, course_id: str, day: int) -> List[QuizAttempt]:
        return list(self._attempts.get((learner_id, course_id, day), []))

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
        self.calls.append(StoreCall("submit_quiz_attempt", {"day": day, "attempt_number": attempt_number}))
        rows = self._attempts.setdefault((learner_id, course_id, day), [])
        if any(a.attempt_number == attempt_number for a in rows):
            raise ValueError(f"attempt {attempt_number} already recorded for day {day}")
        rows.append(
            QuizAttempt(
                day=day,
                attempt_number=attempt_number,
                score=score,
                total_questions=total_questions,
                submitted_at=submitted_at,
            )
        )
        return attempt_number

    async def get_note(self, learner_id: str, course_id: str, day: int) -> Optional[Note]:
        return self._notes.get((learner_id, course_id, day))

    async def save_note(
        self,
        learner_id: str,
        course_id: str,
        day: int,
        content: str,
        note_id: Optional[str] = None,
    ) -> Note:
        self.calls.append(StoreCall("save_note", {"day": day, "note_id": note_id}))
        key = (learner_id, course_id, day)
        if note_id is not None:
            existing = self._notes.get(key)
            if existing is None or existing.id != note_id:
                raise KeyError(f"note {note_id} not found")
        note = Note(
            id=note_id or str(uuid4()),
            day=day,
            content=content,
            updated_at=datetime.now(timezone.utc),
        )
        self._notes[key] = note
        return note
