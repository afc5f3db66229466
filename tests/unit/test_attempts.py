"""Unit tests for the quiz attempt ledger."""
import asyncio
from datetime import datetime, timezone

import pytest

from progression.attempts import AttemptLedger, score_answers, validate_submission
from progression.errors import NotFound, PersistenceFailure, SequenceViolation, ValidationError
from progression.outline import MCQOption, MCQQuestion


def make_questions(n):
    return tuple(MCQQuestion(question=f"Q{i}", options=(MCQOption("a", True), MCQOption("b", False))) for i in range(n))


@pytest.fixture
def ledger(outline, store):
    return AttemptLedger(outline=outline, store=store, learner_id="learner-1", is_eligible=lambda day: day <= 2)


@pytest.mark.unit
class TestScoreAnswers:
    def test_all_correct(self):
        assert score_answers(make_questions(2), [0, 0]) == 100

    def test_half_correct(self):
        assert score_answers(make_questions(2), [0, 1]) == 50

    def test_unanswered_counts_wrong(self):
        assert score_answers(make_questions(3), [0, None, None]) == 33

    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            score_answers(make_questions(2), [0])

    def test_empty_quiz(self):
        assert score_answers((), []) == 0


@pytest.mark.unit
class TestValidateSubmission:
    @pytest.mark.parametrize("score", [-1, 101, 50.5, "80", True])
    def test_bad_score(self, score):
        with pytest.raises(ValidationError):
            validate_submission(score, 2)

    def test_bad_total(self):
        with pytest.raises(ValidationError):
            validate_submission(50, -1)

    def test_bounds_accepted(self):
        validate_submission(0, 0)
        validate_submission(100, 10)


@pytest.mark.unit
class TestSubmitAttempt:
    @pytest.mark.asyncio
    async def test_numbers_are_monotonic(self, ledger):
        numbers = [(await ledger.submit_attempt(1, s, 2)).attempt_number for s in (40, 60, 100)]
        assert numbers == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_numbering_is_per_day(self, ledger):
        await ledger.submit_attempt(1, 50, 2)
        second = await ledger.submit_attempt(2, 50, 2)
        assert second.attempt_number == 1

    @pytest.mark.asyncio
    async def test_concurrent_submissions_get_distinct_numbers(self, ledger):
        results = await asyncio.gather(*(ledger.submit_attempt(1, 10 * i, 2) for i in range(5)))
        assert sorted(a.attempt_number for a in results) == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_continues_from_stored_attempts(self, outline, store):
        await store.submit_quiz_attempt("learner-1", outline.course_id, 1, 70, 2, 1, datetime.now(timezone.utc))
        await store.submit_quiz_attempt("learner-1", outline.course_id, 1, 80, 2, 2, datetime.now(timezone.utc))
        fresh = AttemptLedger(outline=outline, store=store, learner_id="learner-1", is_eligible=lambda d: True)
        attempt = await fresh.submit_attempt(1, 90, 2)
        assert attempt.attempt_number == 3

    @pytest.mark.asyncio
    async def test_unknown_day(self, ledger):
        with pytest.raises(NotFound):
            await ledger.submit_attempt(42, 50, 2)

    @pytest.mark.asyncio
    async def test_ineligible_day(self, ledger, store):
        with pytest.raises(SequenceViolation):
            await ledger.submit_attempt(3, 50, 2)
        assert not [c for c in store.calls if c.op == "submit_quiz_attempt"]

    @pytest.mark.asyncio
    async def test_invalid_score_records_nothing(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.submit_attempt(1, 150, 2)
        assert await ledger.list_attempts(1) == []

    @pytest.mark.asyncio
    async def test_store_failure_records_nothing(self, ledger, store):
        store.fail_ops.add("submit_quiz_attempt")
        with pytest.raises(PersistenceFailure):
            await ledger.submit_attempt(1, 50, 2)
        store.fail_ops.clear()
        assert await ledger.list_attempts(1) == []
        retry = await ledger.submit_attempt(1, 50, 2)
        assert retry.attempt_number == 1


@pytest.mark.unit
class TestListAttempts:
    @pytest.mark.asyncio
    async def test_newest_first(self, ledger):
        for score in (20, 90, 50):
            await ledger.submit_attempt(1, score, 2)
        rows = await ledger.list_attempts(1)
        assert [a.attempt_number for a in rows] == [3, 2, 1]
        assert await ledger.best_score(1) == 90

    @pytest.mark.asyncio
    async def test_no_attempts(self, ledger):
        assert await ledger.best_score(1) is None

    @pytest.mark.asyncio
    async def test_load_failure(self, ledger, store):
        store.fail_ops.add("list_quiz_attempts")
        with pytest.raises(PersistenceFailure):
            await ledger.list_attempts(1)
