"""
Day note schemas.
"""

from pydantic import BaseModel
from typing import Optional


class NoteResponse(BaseModel):
    day: int
    id: Optional[str] = None  # None until the first save
    content: str
    updated_at: Optional[str] = None  # ISO
    unsaved: bool = False  # content comes from the unsaved-edit buffer


class EditNoteRequest(BaseModel):
    content: str
    save: bool = True  # False only buffers the edit
