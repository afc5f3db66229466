"""
Watch-Guard: best-effort anti-skip heuristic and completion detection for embedded players.

Not DRM. The guard polls the player every 500 ms for its position, snaps small forward jumps
back to the last confirmed position, and marks the day watched once 95% has been played.

Player wire protocol (JSON, compatible with embeddable players):
    outbound poll:  {"event": "requesting", "func": "getCurrentTime"}
    outbound seek:  {"event": "command", "func": "seekTo", "args": [time]}
    inbound status: {"currentTime": float, "percentPlayed": float}  (either key may be missing)
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Set, Union

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.5
SKIP_TOLERANCE_SECONDS = 1.0
LEGITIMATE_SEEK_SECONDS = 10.0
COMPLETION_PERCENT = 95.0
DEFAULT_TRUSTED_ORIGINS = ("https://drive.google.com",)

_DRIVE_ID_RE = re.compile(r"(?:https?://)?(?:drive\.google\.com/)?(?:file/d/|open\?id=|uc\?id=)([a-zA-Z0-9_-]+)")


def poll_message() -> dict:
    return {"event": "requesting", "func": "getCurrentTime"}


def seek_message(time: float) -> dict:
    return {"event": "command", "func": "seekTo", "args": [time]}


def encode(message: dict) -> str:
    return json.dumps(message)


def is_suspected_skip(new_time: float, last_valid_time: float) -> bool:
    """Forward jumps in (1, 10) seconds look like skipping; >= 10 s is treated as a real seek."""
    return new_time > last_valid_time + SKIP_TOLERANCE_SECONDS and new_time - last_valid_time < LEGITIMATE_SEEK_SECONDS


class PlayerKind(str, Enum):
    EMBED = "embed"  # Drive iframe, guarded by polling
    NATIVE = "native"  # direct file, completes on the player's ended event


def drive_file_id(url: str) -> Optional[str]:
    m = _DRIVE_ID_RE.search(url or "")
    return m.group(1) if m else None


def player_kind(video_url: str) -> PlayerKind:
    return PlayerKind.EMBED if drive_file_id(video_url) else PlayerKind.NATIVE


class PlayerChannel(ABC):
    """Outbound side of the player connection (iframe postMessage, websocket relay, ...)."""

    @abstractmethod
    async def send(self, message: str) -> None:
        raise NotImplementedError


class SampleOutcome(str, Enum):
    ACCEPTED = "accepted"
    SKIP_REJECTED = "skip_rejected"
    COMPLETED = "completed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class LockedPlaceholder:
    """Returned instead of a monitor when the day is still locked."""

    day: int
    message: str = "Complete the previous day's content to unlock this video"


CompletionCallback = Callable[[int], Any]


class PlaybackMonitor:
    """Tracks one day's player. Owned by a WatchGuard; at most one is active at a time."""

    def __init__(
        self,
        *,
        guard: "WatchGuard",
        day: int,
        channel: PlayerChannel,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.guard = guard
        self.day = day
        self.channel = channel
        self.poll_interval = poll_interval
        self.last_valid_time = 0.0
        self.current_time = 0.0
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        if self._stopped or self.polling:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll_loop(), name=f"watch-guard-day-{self.day}")

    def stop_polling(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def stop(self) -> None:
        """Stop polling and ignore any late messages."""
        self._stopped = True
        self.stop_polling()

    async def wait_stopped(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self) -> None:
        payload = encode(poll_message())
        while True:
            try:
                await self.channel.send(payload)
            except Exception as e:
                logger.warning("player channel send failed day=%s error=%s; polling stopped", self.day, e)
                return
            await asyncio.sleep(self.poll_interval)

    async def handle(self, data: dict) -> SampleOutcome:
        if self._stopped:
            return SampleOutcome.IGNORED

        outcome = SampleOutcome.IGNORED
        current = data.get("currentTime")
        if current is not None:
            try:
                new_time = float(current)
            except (TypeError, ValueError):
                return SampleOutcome.IGNORED
            if is_suspected_skip(new_time, self.last_valid_time):
                logger.info(
                    "forward skip rejected day=%s new_time=%.2f last_valid=%.2f",
                    self.day,
                    new_time,
                    self.last_valid_time,
                )
                self.current_time = self.last_valid_time
                await self.channel.send(encode(seek_message(self.last_valid_time)))
                outcome = SampleOutcome.SKIP_REJECTED
            else:
                self.last_valid_time = new_time
                self.current_time = new_time
                outcome = SampleOutcome.ACCEPTED

        percent = data.get("percentPlayed")
        if percent is not None:
            try:
                played = float(percent)
            except (TypeError, ValueError):
                played = 0.0
            if played >= COMPLETION_PERCENT and not self.guard.has_fired(self.day):
                self.stop_polling()
                await self.guard.mark_watched(self.day)
                outcome = SampleOutcome.COMPLETED
        return outcome


class WatchGuard:
    """
    Per-session playback guard.

    `watched_days` is session-only state; it is never persisted and never confused with
    completed days.
    """

    def __init__(
        self,
        *,
        is_unlocked: Callable[[int], bool],
        on_complete: Optional[CompletionCallback] = None,
        trusted_origins: Iterable[str] = DEFAULT_TRUSTED_ORIGINS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self._is_unlocked = is_unlocked
        self._on_complete = on_complete
        self.trusted_origins: Set[str] = set(trusted_origins)
        self.poll_interval = poll_interval
        self.watched_days: Set[int] = set()
        self._fired: Set[int] = set()
        self._active: Optional[PlaybackMonitor] = None

    @property
    def active(self) -> Optional[PlaybackMonitor]:
        return self._active

    @property
    def active_day(self) -> Optional[int]:
        return self._active.day if self._active else None

    def has_watched(self, day: int) -> bool:
        return day in self.watched_days

    def has_fired(self, day: int) -> bool:
        return day in self._fired

    def activate(self, day: int, channel: PlayerChannel) -> Union[PlaybackMonitor, LockedPlaceholder]:
        """Switch the guard to `day`. The previous day's monitor is always torn down first."""
        self.deactivate()
        if not self._is_unlocked(day):
            logger.debug("watch guard bypassed for locked day=%s", day)
            return LockedPlaceholder(day=day)
        monitor = PlaybackMonitor(guard=self, day=day, channel=channel, poll_interval=self.poll_interval)
        self._active = monitor
        monitor.start()
        return monitor

    def deactivate(self) -> None:
        if self._active is not None:
            self._active.stop()
            self._active = None

    async def teardown(self) -> None:
        monitor = self._active
        self.deactivate()
        if monitor is not None:
            await monitor.wait_stopped()

    async def receive(self, origin: str, raw: Union[str, bytes, dict]) -> SampleOutcome:
        """Feed an inbound player message. Untrusted origins and junk are ignored."""
        if origin not in self.trusted_origins:
            logger.debug("player message ignored, untrusted origin=%s", origin)
            return SampleOutcome.IGNORED
        if self._active is None:
            return SampleOutcome.IGNORED
        data = raw
        if isinstance(raw, (str, bytes)):
            try:
                data = json.loads(raw)
            except ValueError:
                return SampleOutcome.IGNORED
        if not isinstance(data, dict):
            return SampleOutcome.IGNORED
        return await self._active.handle(data)

    async def mark_ended(self, day: int) -> bool:
        """Native players report `ended` directly; no skip guarding applies to them."""
        if not self._is_unlocked(day):
            return False
        return await self.mark_watched(day)

    async def mark_watched(self, day: int) -> bool:
        """Mark `day` watched and fire the completion callback once per session. Returns True if it fired."""
        self.watched_days.add(day)
        if day in self._fired:
            return False
        self._fired.add(day)
        logger.info("video completed day=%s", day)
        if self._on_complete is not None:
            result = self._on_complete(day)
            if inspect.isawaitable(result):
                await result
        return True
