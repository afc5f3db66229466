"""
Enrollment progress endpoints: course view state, day selection, day completion, video end.
"""

from fastapi import APIRouter, Depends

from api.schemas.progress_schemas import (
    CloseSessionResponse,
    DayCompletionRequest,
    ProgressResponse,
    SelectDayResponse,
    VideoEndedResponse,
)
from api.services.learner_session_service import LearnerSessionService, get_session_service, get_store
from api.utils.common import get_learner_id, progress_response
from api.utils.logger import configure_logging, log_request
from infra.store.sql_store import SqlProgressStore
from progression.watch_guard import player_kind

progress_routes = APIRouter()
logger = configure_logging()


@progress_routes.get("/courses/{course_id}/progress", response_model=ProgressResponse)
async def get_progress(
    course_id: str,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> ProgressResponse:
    """Enrollment state for the course view; enrolls the learner on first access."""
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    return progress_response(session)


@progress_routes.put("/courses/{course_id}/days/{day}/completion", response_model=ProgressResponse)
async def set_day_completion(
    course_id: str,
    day: int,
    req: DayCompletionRequest,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> ProgressResponse:
    """Mark a day complete (in order) or incomplete (cascades to later days)."""
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    with log_request(logger, f"set_day_completion course={course_id} day={day} completed={req.completed}"):
        await session.set_day_completion(day, req.completed)
    return progress_response(session)


@progress_routes.post("/courses/{course_id}/days/{day}/select", response_model=SelectDayResponse)
async def select_day(
    course_id: str,
    day: int,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> SelectDayResponse:
    """Move the day cursor. Locked days answer 409 with a 'complete the previous day' notice."""
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    session.select_day(day)
    return SelectDayResponse(
        course_id=course_id,
        current_day=day,
        player=player_kind(session.outline.get_day(day).video).value,
    )


@progress_routes.post("/courses/{course_id}/days/{day}/video-ended", response_model=VideoEndedResponse)
async def video_ended(
    course_id: str,
    day: int,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> VideoEndedResponse:
    """Native players report the ended event here; embedded players go through the player websocket."""
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    newly = await session.video_ended(day)
    return VideoEndedResponse(day=day, watched=session.guard.has_watched(day), newly_watched=newly)


@progress_routes.delete("/courses/{course_id}/session", response_model=CloseSessionResponse)
async def close_session(
    course_id: str,
    learner_id: str = Depends(get_learner_id),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> CloseSessionResponse:
    """End the learner's session: stops player polling and drops unsaved note edits."""
    session = sessions.get(learner_id, course_id)
    if session is None:
        return CloseSessionResponse(course_id=course_id, closed=False)
    discarded = session.notes.unsaved_days()
    await sessions.close(learner_id, course_id)
    return CloseSessionResponse(course_id=course_id, closed=True, discarded_note_days=discarded)
