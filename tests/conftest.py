"""
Shared fixtures for immersion tests.

`session` builds a fully wired orchestrator around recording fakes and a
virtual clock. Scenarios run inside `asyncio.run`, so every test gets a
fresh event loop.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import pytest

from immersion.audio import AudioCrossfadeEngine, ChannelGroup
from immersion.config import AudioConfig, TransitionConfig
from immersion.monitoring import StructuredLogger
from immersion.runtime import EventChannel, SessionState, TransitionOrchestrator
from immersion.spatial import Coordinates, ObserverRig
from immersion.testing import (
    CallLog,
    FakeAudioResource,
    FakeMediaPlayback,
    RecordingMovement,
    RecordingNotifier,
    RecordingUI,
    RecordingVisuals,
    VirtualClock,
)
from immersion.triggers import ProximityMonitor, TriggerZone


@dataclass
class Session:
    """Everything a transition test needs to poke at."""
    clock: VirtualClock
    log: CallLog
    ambience: FakeAudioResource
    soundtrack: FakeAudioResource
    media: FakeMediaPlayback
    visuals: RecordingVisuals
    movement: RecordingMovement
    ui: RecordingUI
    notifier: RecordingNotifier
    state: SessionState
    events: EventChannel
    rig: ObserverRig
    zone: TriggerZone
    monitor: ProximityMonitor
    audio: AudioCrossfadeEngine
    orchestrator: TransitionOrchestrator
    event_log: StructuredLogger

    @property
    def exploration(self):
        return self.audio.exploration.channels[0]

    @property
    def media_channel(self):
        return self.audio.media.channels[0]


def build_session(
    media_error: Exception | None = None,
    fail_visual: str | None = None,
    require_exit_before_retrigger: bool = False,
    with_channel: bool = True,
) -> Session:
    """Exploring session with the ambience already playing at 0.6."""
    clock = VirtualClock()
    log = CallLog()
    ambience = FakeAudioResource("ambience", volume=0.6, playing=True, log=log)
    soundtrack = FakeAudioResource("soundtrack", log=log)
    media = FakeMediaPlayback(fail_with=media_error, log=log)
    visuals = RecordingVisuals(log=log, fail_on=fail_visual)
    movement = RecordingMovement(log=log)
    ui = RecordingUI(log=log)
    notifier = RecordingNotifier()
    state = SessionState()
    events = EventChannel()
    rig = ObserverRig()
    zone = TriggerZone("fountain", Coordinates(0.0, 0.0, 0.0), radius=2.0)
    monitor = ProximityMonitor(state, [zone], rig, emit=events.publish)
    event_log = StructuredLogger(output=io.StringIO())

    audio = AudioCrossfadeEngine(
        exploration=ChannelGroup.from_sources("exploration", [ambience]),
        media=ChannelGroup.from_sources("media", [soundtrack]),
        config=AudioConfig(),
        sleep=clock.sleep,
    )
    orchestrator = TransitionOrchestrator(
        state,
        audio,
        media,
        visuals,
        movement,
        ui,
        zones=[zone],
        events=events if with_channel else None,
        notifier=notifier,
        config=TransitionConfig(),
        rig=rig,
        require_exit_before_retrigger=require_exit_before_retrigger,
        sleep=clock.sleep,
        event_log=event_log,
    )

    return Session(
        clock=clock,
        log=log,
        ambience=ambience,
        soundtrack=soundtrack,
        media=media,
        visuals=visuals,
        movement=movement,
        ui=ui,
        notifier=notifier,
        state=state,
        events=events,
        rig=rig,
        zone=zone,
        monitor=monitor,
        audio=audio,
        orchestrator=orchestrator,
        event_log=event_log,
    )


@pytest.fixture
def session_factory():
    """Factory for wired sessions (call inside the scenario coroutine)."""
    return build_session
