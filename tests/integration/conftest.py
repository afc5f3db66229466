"""
Integration test fixtures. In-memory SQLite shared across connections, seeded with one course,
plus an API client wired to it.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

DRIVE_URL = "https://drive.google.com/file/d/1AbC_dEf-123/view"
MP4_URL = "https://cdn.example.com/python/day3.mp4"

MCQS = [
    {
        "question": "What does len([1, 2]) return?",
        "options": [{"text": "2", "isCorrect": True}, {"text": "1", "isCorrect": False}],
    },
    {
        "question": "Which keyword defines a function?",
        "options": [{"text": "func", "isCorrect": False}, {"text": "def", "isCorrect": True}],
    },
]


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database with the schema created."""
    from api.config import create_db
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """Course 'py-basics': 4 authored days of a 5-day course; day 3 is a direct video file."""
    from api.models.models import Course, CourseDay
    db = session_factory()
    try:
        db.add(Course(id="py-basics", title="Python basics", duration="5 days"))
        for day in range(1, 5):
            db.add(
                CourseDay(
                    course_id="py-basics",
                    day=day,
                    video=MP4_URL if day == 3 else DRIVE_URL,
                    topics=f"Topic {day}",
                    mcqs=MCQS if day != 4 else None,
                )
            )
        db.commit()
    finally:
        db.close()
    return session_factory


@pytest.fixture
def sql_store(seeded):
    from infra.store.sql_store import SqlProgressStore
    return SqlProgressStore(session_factory=seeded)


@pytest.fixture
def api_client(sql_store):
    """FastAPI TestClient using the seeded store and a fresh session registry."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.services.learner_session_service import LearnerSessionService, get_session_service, get_store
    sessions = LearnerSessionService()
    app.dependency_overrides[get_store] = lambda: sql_store
    app.dependency_overrides[get_session_service] = lambda: sessions
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def learner_headers():
    return {"x-learner-id": "learner-42"}
