"""
Runtime module - Session state, events, pipelines and the orchestrator.

The runtime owns every mode change. Trigger sources only publish events;
the orchestrator decides what happens.
"""

from immersion.runtime.states import (
    SessionMode,
    SessionState,
    VALID_TRANSITIONS,
    is_valid_transition,
)

from immersion.runtime.errors import (
    ImmersionError,
    MediaLoadError,
    AutoplayBlockedError,
    TransitionGuardViolation,
    PipelineStepFailure,
    InvalidTransitionError,
)

from immersion.runtime.events import (
    TriggerSource,
    TriggerEvent,
    PlaybackEnded,
    UserExitRequested,
    VisibilityHidden,
    ImmersiveModeChanged,
    MediaFailed,
    SessionEvent,
    EventChannel,
)

from immersion.runtime.pipeline import (
    Pipeline,
    PipelineStep,
    PipelineResult,
)

from immersion.runtime.scheduler import FrameScheduler

from immersion.runtime.collaborators import (
    MediaPlayback,
    VisualSwapper,
    MovementControls,
    UIController,
    Notifier,
)

from immersion.runtime.orchestrator import TransitionOrchestrator

__all__ = [
    # States
    "SessionMode",
    "SessionState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    # Errors
    "ImmersionError",
    "MediaLoadError",
    "AutoplayBlockedError",
    "TransitionGuardViolation",
    "PipelineStepFailure",
    "InvalidTransitionError",
    # Events
    "TriggerSource",
    "TriggerEvent",
    "PlaybackEnded",
    "UserExitRequested",
    "VisibilityHidden",
    "ImmersiveModeChanged",
    "MediaFailed",
    "SessionEvent",
    "EventChannel",
    # Pipelines
    "Pipeline",
    "PipelineStep",
    "PipelineResult",
    # Scheduling
    "FrameScheduler",
    # Collaborators
    "MediaPlayback",
    "VisualSwapper",
    "MovementControls",
    "UIController",
    "Notifier",
    # Orchestrator
    "TransitionOrchestrator",
]
