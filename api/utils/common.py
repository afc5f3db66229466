"""
Common utility functions used across multiple routes.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Header, HTTPException

from api.schemas.note_schemas import NoteResponse
from api.schemas.progress_schemas import DayStateResponse, ProgressResponse
from api.schemas.quiz_schemas import AttemptResponse
from progression.errors import EngineError, NotFound, PersistenceFailure, SequenceViolation, ValidationError
from progression.session import LearnerSession
from progression.store import Note, QuizAttempt

ERROR_STATUS: dict[type, int] = {
    SequenceViolation: 409,
    PersistenceFailure: 503,
    NotFound: 404,
    ValidationError: 422,
}


def iso_format(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO string with Z suffix (naive values are UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"


def status_for(exc: EngineError) -> int:
    for cls, code in ERROR_STATUS.items():
        if isinstance(exc, cls):
            return code
    return 500


def get_learner_id(x_learner_id: Optional[str] = Header(None)) -> str:
    """Identity is owned upstream; the gateway forwards the learner id in a header."""
    if not x_learner_id or not x_learner_id.strip():
        raise HTTPException(status_code=401, detail="Missing learner id")
    return x_learner_id.strip()


def progress_response(session: LearnerSession) -> ProgressResponse:
    summary = session.summary()
    record = session.record
    return ProgressResponse(
        course_id=session.course_id,
        completed_days=sorted(record.completed_days),
        progress=summary.raw_percent,
        display_progress=summary.display_percent,
        status=summary.status.value,
        fully_complete=summary.fully_complete,
        total_days=summary.total_days,
        duration_days=summary.duration_days,
        current_day=session.current_day,
        last_accessed_at=iso_format(record.last_accessed_at),
        days=[
            DayStateResponse(
                day=day,
                state=state.value,
                has_quiz=session.outline.get_day(day).has_quiz,
                watched=session.guard.has_watched(day),
            )
            for day, state in session.day_states()
        ],
    )


def attempt_response(attempt: QuizAttempt) -> AttemptResponse:
    return AttemptResponse(
        day=attempt.day,
        attempt_number=attempt.attempt_number,
        score=attempt.score,
        total_questions=attempt.total_questions,
        submitted_at=iso_format(attempt.submitted_at),
    )


def note_response(day: int, note: Optional[Note], pending: Optional[str] = None) -> NoteResponse:
    if pending is not None:
        return NoteResponse(
            day=day,
            id=note.id if note else None,
            content=pending,
            updated_at=iso_format(note.updated_at) if note else None,
            unsaved=True,
        )
    if note is None:
        return NoteResponse(day=day, content="")
    return NoteResponse(day=day, id=note.id, content=note.content, updated_at=iso_format(note.updated_at))
