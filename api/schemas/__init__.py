"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import ProgressResponse, SubmitAttemptRequest
    from api.schemas.note_schemas import NoteResponse
"""

from api.schemas.progress_schemas import (
    DayStateResponse,
    ProgressResponse,
    DayCompletionRequest,
    SelectDayResponse,
    VideoEndedResponse,
    CloseSessionResponse,
)
from api.schemas.quiz_schemas import (
    SubmitAttemptRequest,
    AttemptResponse,
    SubmitAttemptResponse,
    AttemptListResponse,
)
from api.schemas.note_schemas import (
    NoteResponse,
    EditNoteRequest,
)

__all__ = [
    # progress
    "DayStateResponse",
    "ProgressResponse",
    "DayCompletionRequest",
    "SelectDayResponse",
    "VideoEndedResponse",
    "CloseSessionResponse",
    # quiz
    "SubmitAttemptRequest",
    "AttemptResponse",
    "SubmitAttemptResponse",
    "AttemptListResponse",
    # notes
    "NoteResponse",
    "EditNoteRequest",
]
