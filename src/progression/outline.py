"""
Course outline types. Outlines are authored elsewhere; the engine only reads them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from progression.aggregator import parse_duration
from progression.errors import NotFound, ValidationError


@dataclass(frozen=True)
class MCQOption:
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class MCQQuestion:
    question: str
    options: tuple[MCQOption, ...] = ()
    explanation: Optional[str] = None

    def correct_index(self) -> Optional[int]:
        for i, opt in enumerate(self.options):
            if opt.is_correct:
                return i
        return None


@dataclass(frozen=True)
class RoadmapDay:
    day: int
    video: str = ""
    topics: str = ""
    transcript: Optional[str] = None
    notes: Optional[str] = None
    mcqs: tuple[MCQQuestion, ...] = ()

    @property
    def has_quiz(self) -> bool:
        return bool(self.mcqs)


@dataclass(frozen=True)
class CourseOutline:
    """
    Ordered roadmap of a course plus its nominal duration.

    `duration` is kept as authored ("5 days"); use `duration_days` for the parsed value.
    Days must be unique, 1-based and contiguous.
    """

    course_id: str
    days: tuple[RoadmapDay, ...] = field(default_factory=tuple)
    duration: Optional[str] = None
    title: str = ""

    def __post_init__(self):
        numbers = [d.day for d in self.days]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValidationError(
                "roadmap days must be unique, 1-based and contiguous",
                course_id=self.course_id,
                days=numbers,
            )

    def __len__(self) -> int:
        return len(self.days)

    def has_day(self, day: int) -> bool:
        return 1 <= day <= len(self.days)

    def get_day(self, day: int) -> RoadmapDay:
        if not self.has_day(day):
            raise NotFound(f"Day {day} not found", course_id=self.course_id, day=day)
        return self.days[day - 1]

    def first_day(self) -> Optional[int]:
        return 1 if self.days else None

    @property
    def duration_days(self) -> Optional[int]:
        return parse_duration(self.duration)

    @classmethod
    def from_dict(cls, course_id: str, data: dict) -> "CourseOutline":
        """Build an outline from the authoring system's JSON shape (camelCase keys accepted)."""
        days = []
        for raw in sorted(data.get("roadmap") or [], key=lambda d: int(d.get("day", 0))):
            mcqs = tuple(
                MCQQuestion(
                    question=q.get("question", ""),
                    options=tuple(
                        MCQOption(text=o.get("text", ""), is_correct=bool(o.get("isCorrect", o.get("is_correct"))))
                        for o in q.get("options") or []
                    ),
                    explanation=q.get("explanation"),
                )
                for q in raw.get("mcqs") or []
            )
            days.append(
                RoadmapDay(
                    day=int(raw["day"]),
                    video=raw.get("video") or "",
                    topics=raw.get("topics") or "",
                    transcript=raw.get("transcript"),
                    notes=raw.get("notes"),
                    mcqs=mcqs,
                )
            )
        return cls(
            course_id=course_id,
            days=tuple(days),
            duration=data.get("duration"),
            title=data.get("title") or "",
        )


class OutlineSource(ABC):
    """Read-only access to authored course outlines."""

    @abstractmethod
    async def get_outline(self, course_id: str) -> Optional[CourseOutline]:
        raise NotImplementedError

    async def require_outline(self, course_id: str) -> CourseOutline:
        outline = await self.get_outline(course_id)
        if outline is None:
            raise NotFound("Course not found", course_id=course_id)
        return outline
