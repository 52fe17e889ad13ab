"""
Immersion - Testing Utilities

Tools for exercising transitions without a renderer or real media.

Components:
    VirtualClock       - Deterministic time for fades and delays
    FakeAudioResource  - Playable audio element with volume history
    FakeMediaPlayback  - Media element with failure injection
    Recording*         - Collaborators that record every call

Usage:
    from immersion.testing import VirtualClock, FakeAudioResource

    clock = VirtualClock()
    ambience = FakeAudioResource("ambience", volume=0.6, playing=True)
    engine = AudioCrossfadeEngine(
        ChannelGroup.from_sources("exploration", [ambience]),
        sleep=clock.sleep,
    )
"""

from immersion.testing.clock import VirtualClock

from immersion.testing.fakes import (
    CallLog,
    FakeAudioResource,
    FakeSoundEntity,
    FakeMediaPlayback,
    RecordingVisuals,
    RecordingMovement,
    RecordingUI,
    RecordingNotifier,
)

__all__ = [
    "VirtualClock",
    "CallLog",
    "FakeAudioResource",
    "FakeSoundEntity",
    "FakeMediaPlayback",
    "RecordingVisuals",
    "RecordingMovement",
    "RecordingUI",
    "RecordingNotifier",
]
