"""
Immersion - Audio Module

Channel handles and the crossfade engine.

Components:
    PlayableResource      - Protocol for anything with play/pause/volume
    HasAudioChannel       - Protocol for entities carrying a sound component
    AudioChannel          - One resource under fade control
    ChannelGroup          - All channels of one logical sound
    AudioCrossfadeEngine  - fade_out / fade_in and the composite fades
    linear_ramp           - Step levels of a linear ramp

Usage:
    from immersion.audio import AudioCrossfadeEngine, ChannelGroup

    engine = AudioCrossfadeEngine(
        exploration=ChannelGroup.from_sources("exploration", [emitter, element]),
    )
    await engine.stop_exploration_audio()
"""

from immersion.audio.channel import (
    PlayableResource,
    HasAudioChannel,
    AudioChannel,
    ChannelGroup,
    resolve_source,
)

from immersion.audio.crossfade import (
    AudioCrossfadeEngine,
    FadeOutcome,
    linear_ramp,
    DEFAULT_STEP_MS,
)

__all__ = [
    # Channels
    "PlayableResource",
    "HasAudioChannel",
    "AudioChannel",
    "ChannelGroup",
    "resolve_source",
    # Crossfade
    "AudioCrossfadeEngine",
    "FadeOutcome",
    "linear_ramp",
    "DEFAULT_STEP_MS",
]
