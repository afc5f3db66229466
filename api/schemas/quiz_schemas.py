"""
Quiz attempt schemas.
"""

from pydantic import BaseModel, model_validator
from typing import Optional


class SubmitAttemptRequest(BaseModel):
    """Either a precomputed score or the selected option index per question."""
    score: Optional[int] = None
    answers: Optional[list[Optional[int]]] = None
    total_questions: Optional[int] = None

    @model_validator(mode="after")
    def _score_or_answers(self):
        if self.score is None and self.answers is None:
            raise ValueError("either score or answers is required")
        return self


class AttemptResponse(BaseModel):
    day: int
    attempt_number: int
    score: int
    total_questions: int
    submitted_at: str  # ISO


class SubmitAttemptResponse(BaseModel):
    attempt: AttemptResponse
    day_completed: bool
    progress_saved: bool = True  # False: attempt stored, day completion must be retried
    progress: int
    status: str


class AttemptListResponse(BaseModel):
    day: int
    attempts: list[AttemptResponse]  # most recent first
    best_score: Optional[int] = None
