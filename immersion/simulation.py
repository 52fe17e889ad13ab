"""
Headless walkthrough on a virtual clock.

An observer starts some distance from the first hotspot, walks towards
it until a transition starts, watches the media to the end, then walks
back. Every mode change is recorded with its virtual timestamp, so a full
enter/exit cycle runs in milliseconds of real time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from immersion.config import ExperienceConfig
from immersion.experience import Experience
from immersion.monitoring.logging import StructuredLogger
from immersion.runtime.errors import MediaLoadError
from immersion.runtime.states import SessionMode
from immersion.spatial.position import Coordinates
from immersion.testing import (
    FakeAudioResource,
    FakeMediaPlayback,
    RecordingMovement,
    RecordingNotifier,
    RecordingUI,
    RecordingVisuals,
    VirtualClock,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationSettings:
    """Walkthrough parameters.

    Args:
        start_distance: Meters between the observer and the hotspot at t=0.
        walk_speed: Meters per second.
        media_length: Seconds of media before playback ends by itself.
        duration: Total virtual seconds to simulate.
        fail_media: Make media playback fail to load.
        block_autoplay: Refuse ambient autoplay until the first click.
        force_trigger_at: Virtual second at which to force a transition to
            the first hotspot, wherever the observer is.
    """

    start_distance: float = 4.0
    walk_speed: float = 1.4
    media_length: float = 5.0
    duration: float = 20.0
    fail_media: bool = False
    block_autoplay: bool = False
    force_trigger_at: float | None = None

    def __post_init__(self) -> None:
        if self.start_distance < 0:
            raise ValueError(f"start_distance must be >= 0, got {self.start_distance}")
        if self.walk_speed <= 0:
            raise ValueError(f"walk_speed must be > 0, got {self.walk_speed}")
        if self.media_length <= 0:
            raise ValueError(f"media_length must be > 0, got {self.media_length}")
        if self.duration <= 0:
            raise ValueError(f"duration must be > 0, got {self.duration}")
        if self.force_trigger_at is not None and self.force_trigger_at < 0:
            raise ValueError(f"force_trigger_at must be >= 0, got {self.force_trigger_at}")


@dataclass(frozen=True)
class TimelineEntry:
    """A mode change at a virtual time."""
    at: float
    mode: SessionMode


@dataclass
class SimulationReport:
    """Outcome of one walkthrough."""
    timeline: list[TimelineEntry] = field(default_factory=list)
    duration: float = 0.0
    frames: int = 0
    notifications: list[str] = field(default_factory=list)
    snapshot: dict[str, Any] = field(default_factory=dict)

    def first(self, mode: SessionMode) -> float | None:
        """Virtual time the session first entered `mode`."""
        for entry in self.timeline:
            if entry.mode == mode:
                return entry.at
        return None

    def format_timeline(self) -> str:
        return "\n".join(f"{entry.at:8.3f}s  {entry.mode.value}" for entry in self.timeline)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeline": [{"at": round(e.at, 3), "mode": e.mode.value} for e in self.timeline],
            "duration": self.duration,
            "frames": self.frames,
            "notifications": list(self.notifications),
            "snapshot": self.snapshot,
        }


async def run_walkthrough(
    config: ExperienceConfig,
    settings: SimulationSettings,
    clock: VirtualClock | None = None,
    event_log: StructuredLogger | None = None,
) -> SimulationReport:
    """Drive one walkthrough on the running loop."""
    if not config.hotspots:
        raise ValueError("Simulation needs at least one hotspot")

    clock = clock or VirtualClock()
    media = FakeMediaPlayback(fail_with=MediaLoadError("simulated load failure") if settings.fail_media else None)
    notifier = RecordingNotifier()
    ambience = FakeAudioResource("ambience", block_autoplay=settings.block_autoplay)

    experience = Experience(
        config,
        media=media,
        visuals=RecordingVisuals(),
        movement=RecordingMovement(),
        ui=RecordingUI(),
        exploration_audio=[ambience],
        media_audio=[FakeAudioResource("soundtrack")],
        notifier=notifier,
        sleep=clock.sleep,
        event_log=event_log,
    )

    hotspot = Coordinates.of(config.hotspots[0].position)
    start = hotspot + Coordinates(0.0, 0.0, settings.start_distance)
    position = start
    frame = experience.scheduler.frame_interval

    report = SimulationReport(timeline=[TimelineEntry(0.0, experience.mode)])
    visited = False
    forced = False
    media_started_at: float | None = None

    experience.start()

    while clock.now < settings.duration:
        # Walk in until something happens, then walk back out.
        goal = start if visited else hotspot
        offset = goal - position
        remaining = offset.distance_to(Coordinates())
        if remaining > 0:
            step = min(remaining, settings.walk_speed * frame)
            position = position + offset * (step / remaining)

        if not forced and settings.force_trigger_at is not None and clock.now >= settings.force_trigger_at:
            experience.force_trigger(config.hotspots[0].hotspot_id)
            forced = True

        experience.update_camera(position)
        experience.tick(frame)

        if experience.mode != report.timeline[-1].mode:
            report.timeline.append(TimelineEntry(clock.now, experience.mode))
            logger.debug(f"t={clock.now:.3f}s mode={experience.mode.value}")
        if experience.mode != SessionMode.EXPLORING:
            visited = True

        if experience.mode == SessionMode.MEDIA_ACTIVE:
            if media_started_at is None:
                media_started_at = clock.now
            elif clock.now - media_started_at >= settings.media_length and media.playing:
                media.finish()
        else:
            media_started_at = None

        if ambience.block_autoplay and any(ch.autoplay_blocked for ch in experience.audio.exploration):
            # First user interaction after the refusal.
            ambience.allow_playback()
            experience.user_gesture()
        report.frames += 1

        await clock.advance(frame)

    report.duration = clock.now
    report.notifications = list(notifier.messages)
    report.snapshot = experience.snapshot()
    return report


def simulate(
    config: ExperienceConfig | None = None,
    settings: SimulationSettings | None = None,
    event_log: StructuredLogger | None = None,
) -> SimulationReport:
    """
    Run a walkthrough in a fresh event loop.

    Example:
        report = simulate()
        print(report.format_timeline())
    """
    return asyncio.run(run_walkthrough(
        config or ExperienceConfig.default(),
        settings or SimulationSettings(),
        event_log=event_log,
    ))
