"""
In-process registry of live learner sessions, keyed by (learner_id, course_id).

REST calls and the player websocket for the same learner and course share one LearnerSession, so
a video watched over the websocket makes the quiz available over REST.
"""

import asyncio
from typing import Dict, Optional, Tuple

from api.config import SessionLocal, settings
from api.utils.logger import configure_logging
from infra.store.sql_store import SqlProgressStore
from progression.errors import EngineError, PersistenceFailure
from progression.outline import OutlineSource
from progression.session import LearnerSession
from progression.store import ProgressStore

logger = configure_logging()

SessionKey = Tuple[str, str]


class LearnerSessionService:
    """Opens, caches and closes learner sessions."""

    def __init__(self):
        self._sessions: Dict[SessionKey, LearnerSession] = {}
        self._locks: Dict[SessionKey, asyncio.Lock] = {}

    def _lock_for(self, key: SessionKey) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def get(self, learner_id: str, course_id: str) -> Optional[LearnerSession]:
        return self._sessions.get((learner_id, course_id))

    async def get_or_open(self, store: ProgressStore, outlines: OutlineSource, learner_id: str, course_id: str) -> LearnerSession:
        key = (learner_id, course_id)
        async with self._lock_for(key):
            session = self._sessions.get(key)
            if session is not None and not session.closed:
                return session
            try:
                outline = await outlines.require_outline(course_id)
            except EngineError:
                raise
            except Exception as e:
                logger.warning("outline lookup failed course=%s error=%s", course_id, e)
                raise PersistenceFailure("Could not load the course", course_id=course_id) from e
            session = await LearnerSession.open(
                store=store,
                outline=outline,
                learner_id=learner_id,
                trusted_origins=settings.trusted_origins(),
                poll_interval=settings.poll_interval_seconds,
            )
            self._sessions[key] = session
            logger.info("learner session registered learner=%s course=%s active=%s", learner_id, course_id, len(self._sessions))
            return session

    async def close(self, learner_id: str, course_id: str) -> Optional[LearnerSession]:
        session = self._sessions.pop((learner_id, course_id), None)
        if session is not None:
            await session.close()
        return session

    async def close_all(self) -> None:
        for key in list(self._sessions):
            await self.close(*key)

    def __len__(self) -> int:
        return len(self._sessions)


_store = SqlProgressStore(session_factory=SessionLocal)
_service = LearnerSessionService()


def get_store() -> SqlProgressStore:
    return _store


def get_session_service() -> LearnerSessionService:
    return _service
