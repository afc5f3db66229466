"""
Integration tests for the SQL-backed store (in-memory SQLite).
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from progression.aggregator import EnrollmentStatus
from progression.errors import NotFound
from progression.session import LearnerSession
from progression.state_machine import ProgressionStateMachine


@pytest.mark.integration
class TestOutline:
    @pytest.mark.asyncio
    async def test_outline_from_rows(self, sql_store):
        outline = await sql_store.get_outline("py-basics")
        assert len(outline) == 4
        assert outline.duration_days == 5
        day1 = outline.get_day(1)
        assert day1.has_quiz
        assert day1.mcqs[1].correct_index() == 1
        assert not outline.get_day(4).has_quiz

    @pytest.mark.asyncio
    async def test_missing_course(self, sql_store):
        assert await sql_store.get_outline("nope") is None
        with pytest.raises(NotFound):
            await sql_store.require_outline("nope")


@pytest.mark.integration
class TestEnrollment:
    @pytest.mark.asyncio
    async def test_upsert(self, sql_store):
        assert await sql_store.get_enrollment("l1", "py-basics") is None
        await sql_store.update_progress("l1", "py-basics", [], 0, EnrollmentStatus.ENROLLED)
        snap = await sql_store.update_progress("l1", "py-basics", [2, 1], 50, EnrollmentStatus.STARTED)
        assert snap.completed_days == (1, 2)
        loaded = await sql_store.get_enrollment("l1", "py-basics")
        assert loaded.completed_days == (1, 2)
        assert loaded.progress == 50
        assert loaded.status == EnrollmentStatus.STARTED
        assert loaded.last_accessed_at is not None

    @pytest.mark.asyncio
    async def test_legacy_row_hydrates_to_prefix(self, sql_store, seeded):
        from api.models.models import Enrollment
        db = seeded()
        db.add(Enrollment(id="legacy", learner_id="old", course_id="py-basics", completed_days=None, progress=50))
        db.commit()
        db.close()
        machine = await ProgressionStateMachine.load(
            outline=await sql_store.require_outline("py-basics"), store=sql_store, learner_id="old"
        )
        assert machine.completed_days == frozenset({1, 2})


@pytest.mark.integration
class TestQuizAttempts:
    @pytest.mark.asyncio
    async def test_append_and_list(self, sql_store):
        now = datetime.now(timezone.utc)
        for n, score in enumerate((40, 80), start=1):
            await sql_store.submit_quiz_attempt("l1", "py-basics", 1, score, 2, n, now)
        rows = await sql_store.list_quiz_attempts("l1", "py-basics", 1)
        assert [a.attempt_number for a in rows] == [2, 1]
        assert rows[0].score == 80
        assert await sql_store.list_quiz_attempts("l1", "py-basics", 2) == []

    @pytest.mark.asyncio
    async def test_attempt_number_reuse_rejected(self, sql_store):
        now = datetime.now(timezone.utc)
        await sql_store.submit_quiz_attempt("l1", "py-basics", 1, 40, 2, 1, now)
        with pytest.raises(IntegrityError):
            await sql_store.submit_quiz_attempt("l1", "py-basics", 1, 90, 2, 1, now)
        assert len(await sql_store.list_quiz_attempts("l1", "py-basics", 1)) == 1


@pytest.mark.integration
class TestNotes:
    @pytest.mark.asyncio
    async def test_create_then_update(self, sql_store):
        created = await sql_store.save_note("l1", "py-basics", 1, "first")
        updated = await sql_store.save_note("l1", "py-basics", 1, "second", created.id)
        assert updated.id == created.id
        assert (await sql_store.get_note("l1", "py-basics", 1)).content == "second"

    @pytest.mark.asyncio
    async def test_update_unknown_note(self, sql_store):
        with pytest.raises(LookupError):
            await sql_store.save_note("l1", "py-basics", 1, "x", "missing-id")


@pytest.mark.integration
class TestSessionOverSql:
    @pytest.mark.asyncio
    async def test_progress_survives_reopen(self, sql_store):
        outline = await sql_store.require_outline("py-basics")
        first = await LearnerSession.open(store=sql_store, outline=outline, learner_id="l9")
        await first.set_day_completion(1, True)
        await first.video_ended(2)
        await first.submit_quiz(2, answers=[0, 1])
        await first.close()

        second = await LearnerSession.open(store=sql_store, outline=outline, learner_id="l9")
        assert second.machine.completed_days == frozenset({1, 2})
        summary = second.summary()
        assert summary.raw_percent == 50
        assert summary.display_percent == 40
        assert summary.status == EnrollmentStatus.STARTED
        attempts = await second.list_attempts(2)
        assert attempts[0].score == 100
        await second.close()
