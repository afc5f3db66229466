"""
Day note endpoints. PUT buffers the edit and, unless `save` is false, persists it.
A failed save answers 503 and keeps the edit buffered for the next attempt.
"""

from fastapi import APIRouter, Depends

from api.schemas.note_schemas import EditNoteRequest, NoteResponse
from api.services.learner_session_service import LearnerSessionService, get_session_service, get_store
from api.utils.common import get_learner_id, note_response
from api.utils.logger import configure_logging, log_request
from infra.store.sql_store import SqlProgressStore

note_routes = APIRouter()
logger = configure_logging()


@note_routes.get("/courses/{course_id}/days/{day}/note", response_model=NoteResponse)
async def get_note(
    course_id: str,
    day: int,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> NoteResponse:
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    note = await session.notes.load(day)
    return note_response(day, note, session.notes.pending(day))


@note_routes.put("/courses/{course_id}/days/{day}/note", response_model=NoteResponse)
async def put_note(
    course_id: str,
    day: int,
    req: EditNoteRequest,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> NoteResponse:
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    session.edit_note(day, req.content)
    if not req.save:
        note = await session.notes.load(day)
        return note_response(day, note, session.notes.pending(day))
    with log_request(logger, f"save_note course={course_id} day={day}"):
        note = await session.save_note(day)
    return note_response(day, note, session.notes.pending(day))
