"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
from pathlib import Path

# The app module creates tables on import; keep that in memory for tests.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

# Add project root and src to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from progression.memory_store import InMemoryStore  # noqa: E402
from progression.outline import CourseOutline, MCQOption, MCQQuestion, RoadmapDay  # noqa: E402
from progression.watch_guard import PlayerChannel  # noqa: E402

DRIVE_URL = "https://drive.google.com/file/d/1AbC_dEf-123/view"


def make_questions(n: int = 2) -> tuple:
    return tuple(
        MCQQuestion(
            question=f"Q{i + 1}",
            options=(MCQOption("right", True), MCQOption("wrong", False)),
        )
        for i in range(n)
    )


def make_outline(course_id: str = "course-1", days: int = 5, duration: str | None = "5 days") -> CourseOutline:
    return CourseOutline(
        course_id=course_id,
        title="Python in 5 days",
        duration=duration,
        days=tuple(
            RoadmapDay(day=d, video=DRIVE_URL, topics=f"Topic {d}", mcqs=make_questions())
            for d in range(1, days + 1)
        ),
    )


class FailingStore(InMemoryStore):
    """In-memory store whose listed operations raise until removed from `fail_ops`."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_ops: set[str] = set()

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_ops:
            raise ConnectionError(f"{op} unavailable")

    async def get_enrollment(self, *args, **kwargs):
        self._maybe_fail("get_enrollment")
        return await super().get_enrollment(*args, **kwargs)

    async def update_progress(self, *args, **kwargs):
        self._maybe_fail("update_progress")
        return await super().update_progress(*args, **kwargs)

    async def list_quiz_attempts(self, *args, **kwargs):
        self._maybe_fail("list_quiz_attempts")
        return await super().list_quiz_attempts(*args, **kwargs)

    async def submit_quiz_attempt(self, *args, **kwargs):
        self._maybe_fail("submit_quiz_attempt")
        return await super().submit_quiz_attempt(*args, **kwargs)

    async def get_note(self, *args, **kwargs):
        self._maybe_fail("get_note")
        return await super().get_note(*args, **kwargs)

    async def save_note(self, *args, **kwargs):
        self._maybe_fail("save_note")
        return await super().save_note(*args, **kwargs)


class RecordingChannel(PlayerChannel):
    """Player channel that keeps every outbound frame."""

    def __init__(self):
        self.sent: list[str] = []

    async def send(self, message: str) -> None:
        self.sent.append(message)


@pytest.fixture
def outline():
    """Five authored days, five promised."""
    return make_outline()


@pytest.fixture
def short_outline():
    """Three authored days of a course that promises five."""
    return make_outline(course_id="course-short", days=3, duration="5 days")


@pytest.fixture
def store(outline, short_outline):
    return FailingStore([outline, short_outline])


@pytest.fixture
def channel():
    return RecordingChannel()
