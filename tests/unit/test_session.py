"""Unit tests for the learner session (state machine, guard, ledger and notes together)."""
import json

import pytest

from progression.errors import SequenceViolation, ValidationError
from progression.session import LearnerSession
from progression.state_machine import DayState
from progression.watch_guard import LockedPlaceholder, PlaybackMonitor, SampleOutcome

ORIGIN = "https://drive.google.com"


@pytest.mark.unit
class TestQuizFlow:
    @pytest.mark.asyncio
    async def test_quiz_locked_until_watched(self, session):
        assert not session.is_quiz_eligible(1)
        with pytest.raises(SequenceViolation):
            await session.submit_quiz(1, score=80)

    @pytest.mark.asyncio
    async def test_watch_then_quiz_completes_day(self, session):
        assert await session.video_ended(1) is True
        assert session.is_quiz_eligible(1)
        result = await session.submit_quiz(1, score=80)
        assert result.attempt.attempt_number == 1
        assert result.attempt.total_questions == 2
        assert result.day_completed is True
        assert session.machine.is_completed(1)
        assert session.summary().raw_percent == 20

    @pytest.mark.asyncio
    async def test_retake_does_not_recomplete(self, session):
        await session.video_ended(1)
        await session.submit_quiz(1, score=40)
        again = await session.submit_quiz(1, answers=[0, 0])
        assert again.attempt.attempt_number == 2
        assert again.attempt.score == 100
        assert again.day_completed is False
        assert [a.attempt_number for a in await session.list_attempts(1)] == [2, 1]

    @pytest.mark.asyncio
    async def test_completed_day_is_eligible_without_watching(self, session):
        await session.set_day_completion(1, True)
        assert session.is_quiz_eligible(1)

    @pytest.mark.asyncio
    async def test_completion_failure_keeps_stored_attempt(self, session, store):
        await session.video_ended(1)
        store.fail_ops.add("update_progress")
        result = await session.submit_quiz(1, score=80)
        assert result.attempt.attempt_number == 1
        assert result.day_completed is False
        assert result.progress_saved is False
        assert not session.machine.is_completed(1)
        store.fail_ops.clear()
        assert [a.attempt_number for a in await session.list_attempts(1)] == [1]
        retry = await session.submit_quiz(1, score=90)
        assert retry.attempt.attempt_number == 2
        assert retry.day_completed is True
        assert retry.progress_saved is True

    @pytest.mark.asyncio
    async def test_score_or_answers_required(self, session):
        await session.video_ended(1)
        with pytest.raises(ValidationError):
            await session.submit_quiz(1)

    @pytest.mark.asyncio
    async def test_locked_day_video_end_ignored(self, session):
        assert await session.video_ended(3) is False
        assert not session.is_quiz_eligible(3)


@pytest.mark.unit
class TestPlayer:
    @pytest.mark.asyncio
    async def test_guard_completion_makes_quiz_eligible(self, session, channel):
        monitor = session.select_day(1, channel)
        assert isinstance(monitor, PlaybackMonitor)
        await session.guard.receive(ORIGIN, {"currentTime": 300, "percentPlayed": 96})
        assert session.is_quiz_eligible(1)
        # watching alone never completes a day
        assert session.machine.state_of(1) == DayState.UNLOCKED

    @pytest.mark.asyncio
    async def test_refused_switch_keeps_guarding_current_video(self, session, channel):
        monitor = session.select_day(1, channel)
        await session.guard.receive(ORIGIN, {"currentTime": 10})
        with pytest.raises(SequenceViolation):
            session.select_day(3, channel)
        assert session.current_day == 1
        assert session.guard.active is monitor
        outcome = await session.guard.receive(ORIGIN, {"currentTime": 15})
        assert outcome == SampleOutcome.SKIP_REJECTED
        seeks = [m for m in map(json.loads, channel.sent) if m["event"] == "command"]
        assert seeks == [{"event": "command", "func": "seekTo", "args": [10.0]}]

    @pytest.mark.asyncio
    async def test_reselecting_playing_day_keeps_monitor(self, session, channel):
        monitor = session.select_day(1, channel)
        assert session.select_day(1) is None
        assert session.guard.active is monitor
        assert session.select_day(1, channel) is monitor

    @pytest.mark.asyncio
    async def test_switching_day_replaces_monitor(self, session, channel):
        await session.set_day_completion(1, True)
        first = session.select_day(1, channel)
        second = session.select_day(2, channel)
        assert first.stopped
        assert session.guard.active is second

    @pytest.mark.asyncio
    async def test_attach_locked_day(self, session, channel):
        assert isinstance(session.attach_player(4, channel), LockedPlaceholder)


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_drops_session_state(self, session, channel):
        session.attach_player(1, channel)
        session.edit_note(1, "unsaved")
        await session.close()
        assert session.closed
        assert session.guard.active is None
        assert session.notes.unsaved_days() == []

    @pytest.mark.asyncio
    async def test_reopen_keeps_durable_state_only(self, outline, store):
        first = await LearnerSession.open(store=store, outline=outline, learner_id="learner-2")
        await first.video_ended(1)
        await first.submit_quiz(1, score=90)
        first.edit_note(2, "draft")
        await first.close()

        second = await LearnerSession.open(store=store, outline=outline, learner_id="learner-2")
        assert second.machine.completed_days == frozenset({1})
        assert not second.guard.has_watched(1)
        assert await second.note_content(2) == ""
        assert len(await second.list_attempts(1)) == 1
        await second.close()

    @pytest.mark.asyncio
    async def test_under_authored_course(self, short_outline, store):
        s = await LearnerSession.open(store=store, outline=short_outline, learner_id="learner-3")
        for day in (1, 2, 3):
            await s.set_day_completion(day, True)
        summary = s.summary()
        assert summary.raw_percent == 100
        assert summary.display_percent == 60
        assert summary.fully_complete is False
        await s.close()
