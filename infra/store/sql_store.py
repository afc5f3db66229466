from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.models.models import Course, CourseDay, DayNote, Enrollment, QuizSubmission
from progression.aggregator import EnrollmentStatus
from progression.outline import CourseOutline, MCQOption, MCQQuestion, OutlineSource, RoadmapDay
from progression.store import EnrollmentSnapshot, Note, ProgressStore, QuizAttempt

logger = logging.getLogger(__name__)


def _snapshot(row: Enrollment) -> EnrollmentSnapshot:
    days = row.completed_days
    return EnrollmentSnapshot(
        completed_days=tuple(int(d) for d in days) if isinstance(days, list) else None,
        progress=int(row.progress or 0),
        status=EnrollmentStatus(row.status),
        last_accessed_at=row.last_accessed_at,
    )


def _note(row: DayNote) -> Note:
    return Note(id=row.id, day=row.day, content=row.content or "", updated_at=row.updated_at)


def _mcqs(raw: Any) -> tuple[MCQQuestion, ...]:
    if not isinstance(raw, list):
        return ()
    out = []
    for q in raw:
        if not isinstance(q, dict):
            continue
        out.append(
            MCQQuestion(
                question=str(q.get("question") or ""),
                options=tuple(
                    MCQOption(text=str(o.get("text") or ""), is_correct=bool(o.get("isCorrect", o.get("is_correct"))))
                    for o in q.get("options") or []
                    if isinstance(o, dict)
                ),
                explanation=q.get("explanation"),
            )
        )
    return tuple(out)


@dataclass
class SqlProgressStore(ProgressStore, OutlineSource):
    """
    SQLAlchemy-backed store.

    - One DB session per call, opened from `session_factory`.
    - Any SQLAlchemyError rolls the session back and is re-raised; the engine turns it into a
      PersistenceFailure.
    - Concurrent sessions for the same enrollment: last write wins.
    """

    session_factory: Callable[[], Session]

    def _run(self, op: str, fn: Callable[[Session], Any]) -> Any:
        db = self.session_factory()
        try:
            result = fn(db)
            db.commit()
            return result
        except SQLAlchemyError:
            db.rollback()
            logger.exception("store op failed op=%s", op)
            raise
        finally:
            db.close()

    # ----- outlines -----

    async def get_outline(self, course_id: str) -> Optional[CourseOutline]:
        def fn(db: Session) -> Optional[CourseOutline]:
            course = db.query(Course).filter(Course.id == course_id).first()
            if course is None:
                return None
            rows = db.query(CourseDay).filter(CourseDay.course_id == course_id).order_by(CourseDay.day.asc()).all()
            return CourseOutline(
                course_id=course.id,
                title=course.title,
                duration=course.duration,
                days=tuple(
                    RoadmapDay(
                        day=r.day,
                        video=r.video or "",
                        topics=r.topics or "",
                        transcript=r.transcript,
                        notes=r.notes,
                        mcqs=_mcqs(r.mcqs),
                    )
                    for r in rows
                ),
            )

        return self._run("get_outline", fn)

    # ----- enrollment -----

    async def get_enrollment(self, learner_id: str, course_id: str) -> Optional[EnrollmentSnapshot]:
        def fn(db: Session) -> Optional[EnrollmentSnapshot]:
            row = (
                db.query(Enrollment)
                .filter(Enrollment.learner_id == learner_id, Enrollment.course_id == course_id)
                .first()
            )
            return _snapshot(row) if row else None

        return self._run("get_enrollment", fn)

    async def update_progress(
        self,
        learner_id: str,
        course_id: str,
        completed_days: Sequence[int],
        progress: int,
        status: EnrollmentStatus,
    ) -> EnrollmentSnapshot:
        def fn(db: Session) -> EnrollmentSnapshot:
            now = datetime.utcnow()
            row = (
                db.query(Enrollment)
                .filter(Enrollment.learner_id == learner_id, Enrollment.course_id == course_id)
                .first()
            )
            if row is None:
                row = Enrollment(id=str(uuid4()), learner_id=learner_id, course_id=course_id, enrolled_at=now)
            row.completed_days = sorted(int(d) for d in completed_days)
            row.progress = int(progress)
            row.status = EnrollmentStatus(status)
            row.last_accessed_at = now
            db.add(row)
            db.flush()
            return _snapshot(row)

        return self._run("update_progress", fn)

    # ----- quiz attempts -----

    async def list_quiz_attempts(self, learner_id: str, course_id: str, day: int) -> List[QuizAttempt]:
        def fn(db: Session) -> List[QuizAttempt]:
            rows = (
                db.query(QuizSubmission)
                .filter(
                    QuizSubmission.learner_id == learner_id,
                    QuizSubmission.course_id == course_id,
                    QuizSubmission.day == day,
                )
                .order_by(QuizSubmission.attempt_number.desc())
                .all()
            )
            return [
                QuizAttempt(
                    day=r.day,
                    attempt_number=r.attempt_number,
                    score=r.score,
                    total_questions=r.total_questions,
                    submitted_at=r.submitted_at,
                )
                for r in rows
            ]

        return self._run("list_quiz_attempts", fn)

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
        def fn(db: Session) -> int:
            db.add(
                QuizSubmission(
                    id=str(uuid4()),
                    learner_id=learner_id,
                    course_id=course_id,
                    day=day,
                    attempt_number=attempt_number,
                    score=score,
                    total_questions=total_questions,
                    submitted_at=submitted_at.replace(tzinfo=None),
                )
            )
            # Unique (learner, course, day, attempt_number) rejects reuse here.
            db.flush()
            return attempt_number

        return self._run("submit_quiz_attempt", fn)

    # ----- notes -----

    async def get_note(self, learner_id: str, course_id: str, day: int) -> Optional[Note]:
        def fn(db: Session) -> Optional[Note]:
            row = (
                db.query(DayNote)
                .filter(DayNote.learner_id == learner_id, DayNote.course_id == course_id, DayNote.day == day)
                .first()
            )
            return _note(row) if row else None

        return self._run("get_note", fn)

    async def save_note(
        self,
        learner_id: str,
        course_id: str,
        day: int,
        content: str,
        note_id: Optional[str] = None,
    ) -> Note:
        def fn(db: Session) -> Note:
            now = datetime.utcnow()
            if note_id is None:
                row = DayNote(
                    id=str(uuid4()),
                    learner_id=learner_id,
                    course_id=course_id,
                    day=day,
                    content=content,
                    created_at=now,
                    updated_at=now,
                )
            else:
                row = (
                    db.query(DayNote)
                    .filter(DayNote.id == note_id, DayNote.learner_id == learner_id, DayNote.course_id == course_id)
                    .first()
                )
                if row is None:
                    raise LookupError(f"note {note_id} not found")
                row.content = content
                row.updated_at = now
            db.add(row)
            db.flush()
            return _note(row)

        return self._run("save_note", fn)
