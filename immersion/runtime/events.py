"""
Session Events - Discrete inputs funnelled into the orchestrator.

Every independent source (proximity ticks, clicks, pinches, controller
triggers, playback completion, visibility changes) publishes an event
into one EventChannel. The orchestrator is the only consumer and decides
validity through its guard logic.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class TriggerSource(Enum):
    """Where an enter-media trigger came from."""

    PROXIMITY = "proximity"
    """Observer walked into a hotspot's radius."""

    CLICK = "click"
    """Hotspot was selected directly (desktop click, gaze cursor)."""

    GESTURE = "gesture"
    """Hand-tracking pinch near a hotspot."""

    CONTROLLER = "controller"
    """Controller trigger pressed with the hand near a hotspot."""

    DEBUG = "debug"
    """Forced from tooling."""


@dataclass(frozen=True)
class TriggerEvent:
    """Request to enter media mode."""
    source: TriggerSource
    target_id: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class PlaybackEnded:
    """The media resource reached its end."""
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class UserExitRequested:
    """User asked to leave media mode (exit affordance, escape key)."""
    reason: str = "user"
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class VisibilityHidden:
    """The host surface was hidden (tab switch, headset removed)."""
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ImmersiveModeChanged:
    """A tracked origin became (in)active."""
    active: bool
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class MediaFailed:
    """The media resource reported a load error outside of a pipeline."""
    message: str = ""
    timestamp: float = field(default_factory=time.time)


SessionEvent = Union[
    TriggerEvent,
    PlaybackEnded,
    UserExitRequested,
    VisibilityHidden,
    ImmersiveModeChanged,
    MediaFailed,
]


class EventChannel:
    """
    Unbounded FIFO of session events.

    Producers call publish() from anywhere on the loop thread; the
    consumer either drains synchronously once per frame or awaits next().

    Example:
        channel = EventChannel()
        channel.publish(TriggerEvent(TriggerSource.CLICK, "fountain"))

        for event in channel.drain():
            orchestrator.handle(event)
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._published = 0

    def __len__(self) -> int:
        return self._queue.qsize()

    @property
    def published(self) -> int:
        """Total number of events ever published."""
        return self._published

    def publish(self, event: SessionEvent) -> None:
        self._queue.put_nowait(event)
        self._published += 1

    async def next(self) -> SessionEvent:
        """Wait for the next event."""
        return await self._queue.get()

    def drain(self) -> list[SessionEvent]:
        """Remove and return every pending event, oldest first."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events
