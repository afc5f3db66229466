"""
Per-day notes with an unsaved-edit buffer.

Edits land in the buffer first and only reach the store on save(). A failed save keeps the
buffer so nothing the learner typed is lost. The buffer lives as long as the session.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from progression.errors import NotFound, PersistenceFailure, ValidationError
from progression.outline import CourseOutline
from progression.store import Note, ProgressStore

logger = logging.getLogger(__name__)

_MISSING = object()


class NotesStore:
    def __init__(self, *, outline: CourseOutline, store: ProgressStore, learner_id: str):
        self.outline = outline
        self.store = store
        self.learner_id = learner_id
        self.course_id = outline.course_id
        self._buffer: Dict[int, str] = {}
        self._persisted: Dict[int, Optional[Note]] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def _lock_for(self, day: int) -> asyncio.Lock:
        if day not in self._locks:
            self._locks[day] = asyncio.Lock()
        return self._locks[day]

    # ----- buffer -----

    def edit(self, day: int, content: str) -> None:
        """Local only; nothing is sent to the store."""
        self.outline.get_day(day)
        if not isinstance(content, str):
            raise ValidationError("note content must be text", day=day)
        self._buffer[day] = content

    def has_unsaved(self, day: int) -> bool:
        return day in self._buffer

    def unsaved_days(self) -> List[int]:
        return sorted(self._buffer)

    def pending(self, day: int) -> Optional[str]:
        return self._buffer.get(day)

    def discard(self, day: int) -> None:
        self._buffer.pop(day, None)

    def end_session(self) -> None:
        if self._buffer:
            logger.info("discarding unsaved notes course=%s days=%s", self.course_id, sorted(self._buffer))
        self._buffer.clear()

    # ----- persisted -----

    async def load(self, day: int) -> Optional[Note]:
        self.outline.get_day(day)
        if day in self._persisted:
            return self._persisted[day]
        try:
            note = await self.store.get_note(self.learner_id, self.course_id, day)
        except Exception as e:
            logger.warning("get_note failed course=%s day=%s error=%s", self.course_id, day, e)
            raise PersistenceFailure("Could not load your note", course_id=self.course_id, day=day) from e
        self._persisted[day] = note
        return note

    async def content(self, day: int) -> str:
        """What the editor should show: unsaved edits first, then the saved note."""
        if day in self._buffer:
            return self._buffer[day]
        note = await self.load(day)
        return note.content if note else ""

    async def save(self, day: int) -> Note:
        async with self._lock_for(day):
            existing = await self.load(day)
            buffered = self._buffer.get(day, _MISSING)
            if buffered is _MISSING:
                if existing is None:
                    raise NotFound("Nothing to save for this day", course_id=self.course_id, day=day)
                content = existing.content
            else:
                content = buffered

            note_id = existing.id if existing else None
            try:
                note = await self.store.save_note(self.learner_id, self.course_id, day, content, note_id)
            except Exception as e:
                logger.warning(
                    "save_note failed course=%s day=%s note_id=%s error=%s", self.course_id, day, note_id, e
                )
                raise PersistenceFailure(
                    "Could not save your note. Your changes are kept; please try again.",
                    course_id=self.course_id,
                    day=day,
                ) from e

            self._persisted[day] = note
            # Edits made while the save was in flight stay buffered.
            if self._buffer.get(day, _MISSING) == content:
                del self._buffer[day]
            logger.info(
                "note %s course=%s day=%s note_id=%s",
                "updated" if note_id else "created",
                self.course_id,
                day,
                note.id,
            )
            return note
