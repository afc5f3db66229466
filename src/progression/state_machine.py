"""
Progression state machine: owns which days of an enrollment are unlocked/completed.

Completed days always form a prefix {1..k}. Completion only lands in memory after the store
acknowledges the write; a failed write leaves the previous record in place.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from progression.aggregator import EnrollmentStatus, ProgressSummary, prefix_from_progress, summarize
from progression.errors import NotFound, PersistenceFailure, SequenceViolation
from progression.outline import CourseOutline
from progression.store import EnrollmentSnapshot, ProgressStore

logger = logging.getLogger(__name__)


class DayState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class EnrollmentRecord:
    completed_days: frozenset = frozenset()
    progress: int = 0
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    last_accessed_at: Optional[datetime] = None

    @property
    def completed_through(self) -> int:
        """k in {1..k}."""
        return len(self.completed_days)


def longest_prefix(days: Iterable[int], limit: int) -> frozenset:
    present = set(days)
    k = 0
    while k < limit and (k + 1) in present:
        k += 1
    return frozenset(range(1, k + 1))


def hydrate(snapshot: EnrollmentSnapshot, total_days: int) -> EnrollmentRecord:
    """Turn a stored snapshot into a record that satisfies the prefix invariant."""
    if snapshot.completed_days is None:
        completed = prefix_from_progress(snapshot.progress, total_days)
    else:
        completed = longest_prefix(snapshot.completed_days, total_days)
        if len(completed) != len(set(snapshot.completed_days)):
            logger.warning(
                "stored completed_days not a prefix, truncated stored=%s kept=%s",
                sorted(snapshot.completed_days),
                sorted(completed),
            )
    return EnrollmentRecord(
        completed_days=completed,
        progress=snapshot.progress,
        status=snapshot.status,
        last_accessed_at=snapshot.last_accessed_at,
    )


class ProgressionStateMachine:
    def __init__(
        self,
        *,
        outline: CourseOutline,
        store: ProgressStore,
        learner_id: str,
        course_id: Optional[str] = None,
        record: Optional[EnrollmentRecord] = None,
    ):
        self.outline = outline
        self.store = store
        self.learner_id = learner_id
        self.course_id = course_id or outline.course_id
        self._record = record or EnrollmentRecord()
        self._current_day = outline.first_day()
        self._lock = asyncio.Lock()

    @classmethod
    async def load(
        cls,
        *,
        outline: CourseOutline,
        store: ProgressStore,
        learner_id: str,
    ) -> "ProgressionStateMachine":
        """Load the enrollment, creating it on first access."""
        machine = cls(outline=outline, store=store, learner_id=learner_id)
        try:
            snapshot = await store.get_enrollment(learner_id, outline.course_id)
        except Exception as e:
            logger.exception("get_enrollment failed learner=%s course=%s", learner_id, outline.course_id)
            raise PersistenceFailure("Could not load enrollment", course_id=outline.course_id) from e

        if snapshot is None:
            summary = summarize((), len(outline), outline.duration)
            try:
                snapshot = await store.update_progress(
                    learner_id, outline.course_id, [], summary.raw_percent, summary.status
                )
            except Exception as e:
                logger.exception("enrollment create failed learner=%s course=%s", learner_id, outline.course_id)
                raise PersistenceFailure("Could not create enrollment", course_id=outline.course_id) from e
            logger.info("enrollment created learner=%s course=%s", learner_id, outline.course_id)

        machine._record = hydrate(snapshot, len(outline))
        return machine

    # ----- queries -----

    @property
    def record(self) -> EnrollmentRecord:
        return self._record

    @property
    def completed_days(self) -> frozenset:
        return self._record.completed_days

    @property
    def current_day(self) -> Optional[int]:
        return self._current_day

    def is_completed(self, day: int) -> bool:
        return day in self._record.completed_days

    def is_locked(self, day: int) -> bool:
        return day > 1 and (day - 1) not in self._record.completed_days

    def state_of(self, day: int) -> DayState:
        if self.is_completed(day):
            return DayState.COMPLETED
        if self.is_locked(day):
            return DayState.LOCKED
        return DayState.UNLOCKED

    def day_states(self) -> List[Tuple[int, DayState]]:
        return [(d.day, self.state_of(d.day)) for d in self.outline.days]

    def summary(self) -> ProgressSummary:
        return summarize(self._record.completed_days, len(self.outline), self.outline.duration)

    # ----- commands -----

    def select_day(self, day: int) -> int:
        self.outline.get_day(day)
        if self.is_locked(day):
            raise SequenceViolation(
                "Please complete the previous day first.",
                course_id=self.course_id,
                day=day,
            )
        self._current_day = day
        return day

    async def set_day_completion(self, day: int, desired_complete: bool) -> EnrollmentRecord:
        if not self.outline.has_day(day):
            raise NotFound(f"Day {day} not found", course_id=self.course_id, day=day)

        async with self._lock:
            before = self._record
            if desired_complete:
                if self.is_locked(day):
                    raise SequenceViolation(
                        f"Day {day - 1} must be completed before day {day}",
                        course_id=self.course_id,
                        day=day,
                    )
                completed = before.completed_days | {day}
            else:
                # Unchecking day d drops every day >= d.
                completed = frozenset(x for x in before.completed_days if x < day)

            if completed == before.completed_days:
                if desired_complete and self.outline.has_day(day + 1):
                    self._current_day = day + 1
                logger.debug("day completion unchanged course=%s day=%s complete=%s", self.course_id, day, desired_complete)
                return self._record

            summary = summarize(completed, len(self.outline), self.outline.duration)
            try:
                ack = await self.store.update_progress(
                    self.learner_id,
                    self.course_id,
                    sorted(completed),
                    summary.raw_percent,
                    summary.status,
                )
            except Exception as e:
                logger.warning(
                    "update_progress failed learner=%s course=%s day=%s complete=%s error=%s",
                    self.learner_id,
                    self.course_id,
                    day,
                    desired_complete,
                    e,
                )
                self._record = before
                raise PersistenceFailure(
                    "Could not update your course progress. Please try again.",
                    course_id=self.course_id,
                    day=day,
                ) from e

            self._record = replace(
                before,
                completed_days=completed,
                progress=summary.raw_percent,
                status=summary.status,
                last_accessed_at=getattr(ack, "last_accessed_at", None) or before.last_accessed_at,
            )
            if desired_complete and self.outline.has_day(day + 1):
                self._current_day = day + 1
            logger.info(
                "day completion set learner=%s course=%s day=%s complete=%s progress=%s status=%s",
                self.learner_id,
                self.course_id,
                day,
                desired_complete,
                summary.raw_percent,
                summary.status.value,
            )
            return self._record
