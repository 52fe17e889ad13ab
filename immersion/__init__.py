"""
Immersion v0.1 - Mode transitions for spatial interactive experiences.

Architecture:
    Triggers → EventChannel → TransitionOrchestrator → Pipelines → Collaborators

Public API (stable):
    Experience              - Facade. Build from a config and forward inputs.
    ExperienceConfig        - Hotspots, fade timings, thresholds, delays.
    TransitionOrchestrator  - The only writer of session mode.
    AudioCrossfadeEngine    - Linear volume ramps with supersession.
    SessionMode             - EXPLORING / ENTERING_MEDIA / MEDIA_ACTIVE / EXITING_MEDIA

Modules:
    runtime         - Session state, events, saga pipelines, frame scheduler
    audio           - Audio channels and the crossfade engine
    triggers        - Proximity zones and gesture hit tests
    spatial         - Coordinates and observer selection
    monitoring      - Structured transition logging
    testing         - VirtualClock and recording fakes

Example:
    from immersion import Experience, ExperienceConfig

    experience = Experience(
        ExperienceConfig.default(),
        media=video, visuals=swapper, movement=controls, ui=hud,
        exploration_audio=[ambience],
    )
    experience.start()
    experience.click("hotspot")
    experience.tick()
"""

from immersion.config import (
    ExperienceConfig,
    AudioConfig,
    TriggerConfig,
    TransitionConfig,
    HotspotConfig,
)

from immersion.runtime import (
    SessionMode,
    SessionState,
    TriggerSource,
    EventChannel,
    TransitionOrchestrator,
    FrameScheduler,
    ImmersionError,
    MediaLoadError,
    AutoplayBlockedError,
    TransitionGuardViolation,
)

from immersion.audio import (
    AudioChannel,
    ChannelGroup,
    AudioCrossfadeEngine,
    FadeOutcome,
)

from immersion.triggers import (
    TriggerZone,
    ProximityMonitor,
    GestureEvaluator,
    InteractiveTarget,
)

from immersion.spatial import Coordinates, ObserverRig

from immersion.experience import Experience

__version__ = "0.1.0"

__all__ = [
    # Facade
    "Experience",
    # Config
    "ExperienceConfig",
    "AudioConfig",
    "TriggerConfig",
    "TransitionConfig",
    "HotspotConfig",
    # Runtime
    "SessionMode",
    "SessionState",
    "TriggerSource",
    "EventChannel",
    "TransitionOrchestrator",
    "FrameScheduler",
    # Errors
    "ImmersionError",
    "MediaLoadError",
    "AutoplayBlockedError",
    "TransitionGuardViolation",
    # Audio
    "AudioChannel",
    "ChannelGroup",
    "AudioCrossfadeEngine",
    "FadeOutcome",
    # Triggers
    "TriggerZone",
    "ProximityMonitor",
    "GestureEvaluator",
    "InteractiveTarget",
    # Spatial
    "Coordinates",
    "ObserverRig",
    # Version
    "__version__",
]
