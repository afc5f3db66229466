"""
Enrollment progress schemas (course view sidebar, course cards, completion toggle).
"""

from pydantic import BaseModel
from typing import Optional


class DayStateResponse(BaseModel):
    day: int
    state: str  # locked|unlocked|completed
    has_quiz: bool
    watched: bool = False  # watched in the current session


class ProgressResponse(BaseModel):
    course_id: str
    completed_days: list[int]
    progress: int  # raw percent over authored days; drives gating and status
    display_progress: int  # percent over the promised duration; cards only
    status: str  # enrolled|started|completed
    fully_complete: bool
    total_days: int
    duration_days: Optional[int] = None
    current_day: Optional[int] = None
    last_accessed_at: Optional[str] = None  # ISO
    days: list[DayStateResponse] = []


class DayCompletionRequest(BaseModel):
    completed: bool


class SelectDayResponse(BaseModel):
    course_id: str
    current_day: int
    player: str  # embed|native|locked


class VideoEndedResponse(BaseModel):
    day: int
    watched: bool
    newly_watched: bool


class CloseSessionResponse(BaseModel):
    course_id: str
    closed: bool
    discarded_note_days: list[int] = []
