"""
Quiz attempt endpoints. Attempts are append-only; listing is most recent first.
"""

from fastapi import APIRouter, Depends

from api.schemas.quiz_schemas import (
    AttemptListResponse,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
)
from api.services.learner_session_service import LearnerSessionService, get_session_service, get_store
from api.utils.common import attempt_response, get_learner_id
from api.utils.logger import configure_logging, log_request
from infra.store.sql_store import SqlProgressStore

quiz_routes = APIRouter()
logger = configure_logging()


@quiz_routes.post("/courses/{course_id}/days/{day}/attempts", response_model=SubmitAttemptResponse)
async def submit_attempt(
    course_id: str,
    day: int,
    req: SubmitAttemptRequest,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> SubmitAttemptResponse:
    """
    Record a quiz attempt. The day must be completed or its video watched in this session.
    Submitting on a day that is not completed yet also completes it.
    """
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    with log_request(logger, f"submit_quiz course={course_id} day={day}"):
        result = await session.submit_quiz(
            day,
            score=req.score if req.answers is None else None,
            answers=req.answers,
            total_questions=req.total_questions,
        )
    summary = session.summary()
    logger.info(
        "quiz submitted learner=%s course=%s day=%s attempt=%s day_completed=%s",
        learner_id,
        course_id,
        day,
        result.attempt.attempt_number,
        result.day_completed,
    )
    return SubmitAttemptResponse(
        attempt=attempt_response(result.attempt),
        day_completed=result.day_completed,
        progress_saved=result.progress_saved,
        progress=summary.raw_percent,
        status=summary.status.value,
    )


@quiz_routes.get("/courses/{course_id}/days/{day}/attempts", response_model=AttemptListResponse)
async def list_attempts(
    course_id: str,
    day: int,
    learner_id: str = Depends(get_learner_id),
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
) -> AttemptListResponse:
    session = await sessions.get_or_open(store, store, learner_id, course_id)
    attempts = await session.list_attempts(day)
    return AttemptListResponse(
        day=day,
        attempts=[attempt_response(a) for a in attempts],
        best_score=await session.attempts.best_score(day),
    )
