"""
Progress aggregation.

Two notions of "done" meet here:
  - raw percent: completed days over days authored so far (drives gating and status)
  - display percent: completed days over days promised by the course duration (cards/summaries)

An under-authored course (duration > authored days) never reports `completed`, and its display
percent is not bumped to 100 when every authored day is done.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

_DURATION_RE = re.compile(r"^\s*(\d+)")


class EnrollmentStatus(str, Enum):
    ENROLLED = "enrolled"
    STARTED = "started"
    COMPLETED = "completed"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def parse_duration(duration: Union[str, int, None]) -> Optional[int]:
    """
    Parse a nominal course duration such as "5 days" or "12 Days" into a day count.
    Returns None when missing or not a positive leading integer.
    """
    if duration is None or isinstance(duration, bool):
        return None
    if isinstance(duration, int):
        return duration if duration > 0 else None
    m = _DURATION_RE.match(str(duration))
    if not m:
        return None
    days = int(m.group(1))
    return days if days > 0 else None


def raw_percent(completed_days: Iterable[int], total_days: int) -> int:
    if total_days <= 0:
        return 0
    count = len(set(completed_days))
    return max(0, min(100, round_half_up(100 * count / total_days)))


def is_under_authored(total_days: int, duration_days: Optional[int]) -> bool:
    return duration_days is not None and duration_days > total_days


def display_percent(raw: int, total_days: int, duration_days: Optional[int]) -> int:
    if not is_under_authored(total_days, duration_days):
        return raw
    # ceil(raw/100 * L) in integer arithmetic
    completed_count = -(-raw * total_days // 100)
    return min(100, round_half_up(100 * completed_count / duration_days))


def derive_status(raw: int, total_days: int, duration_days: Optional[int] = None) -> EnrollmentStatus:
    if raw <= 0:
        return EnrollmentStatus.ENROLLED
    if raw >= 100 and not is_under_authored(total_days, duration_days):
        return EnrollmentStatus.COMPLETED
    return EnrollmentStatus.STARTED


def prefix_from_progress(progress: int, total_days: int) -> frozenset[int]:
    """Rebuild a completed-days prefix from a stored percentage (legacy rows carry only `progress`)."""
    if total_days <= 0 or progress <= 0:
        return frozenset()
    count = min(total_days, round_half_up(progress * total_days / 100))
    return frozenset(range(1, count + 1))


@dataclass(frozen=True)
class ProgressSummary:
    raw_percent: int
    display_percent: int
    status: EnrollmentStatus
    completed_count: int
    total_days: int
    duration_days: Optional[int]

    @property
    def fully_complete(self) -> bool:
        return self.raw_percent == 100 and not is_under_authored(self.total_days, self.duration_days)

    def to_dict(self) -> dict:
        return {
            "raw_percent": self.raw_percent,
            "display_percent": self.display_percent,
            "status": self.status.value,
            "completed_count": self.completed_count,
            "total_days": self.total_days,
            "duration_days": self.duration_days,
            "fully_complete": self.fully_complete,
        }


def summarize(
    completed_days: Iterable[int],
    total_days: int,
    duration: Union[str, int, None] = None,
) -> ProgressSummary:
    completed = set(completed_days)
    duration_days = parse_duration(duration)
    raw = raw_percent(completed, total_days)
    return ProgressSummary(
        raw_percent=raw,
        display_percent=display_percent(raw, total_days, duration_days),
        status=derive_status(raw, total_days, duration_days),
        completed_count=len(completed),
        total_days=total_days,
        duration_days=duration_days,
    )
