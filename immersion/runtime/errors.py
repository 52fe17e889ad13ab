"""
Runtime Errors - Failure taxonomy for mode transitions.

Error hierarchy:
    ImmersionError (base)
    ├── MediaLoadError            (user-visible, triggers rollback mid-pipeline)
    ├── AutoplayBlockedError      (logged, non-fatal)
    ├── TransitionGuardViolation  (expected, discarded silently)
    ├── PipelineStepFailure       (caught at the pipeline boundary)
    └── InvalidTransitionError    (programming error)
"""

from __future__ import annotations

from typing import Any


class ImmersionError(Exception):
    """Base error for all immersion runtime errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MediaLoadError(ImmersionError):
    """
    Raised when the media resource fails to load or start playing.

    Surfaced to the end user as a notification. Never retried
    automatically.
    """


class AutoplayBlockedError(ImmersionError):
    """
    Raised when the host refuses to start audio without a user gesture.

    The crossfade engine logs this and keeps ramping; the channel starts
    sounding once playback is allowed.
    """

    def __init__(
        self,
        channel: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message or f"Autoplay blocked on channel '{channel}'", details)
        self.channel = channel


class TransitionGuardViolation(ImmersionError):
    """
    Raised by the session guard when a transition is not allowed right now.

    This is the normal outcome for duplicate triggers and triggers that
    arrive mid-pipeline, so the orchestrator discards it without logging
    an error.
    """

    def __init__(
        self,
        attempted: str,
        mode: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Cannot {attempted} while {mode}", details)
        self.attempted = attempted
        self.mode = mode


class PipelineStepFailure(ImmersionError):
    """A single step of a transition pipeline raised."""

    def __init__(
        self,
        pipeline: str,
        step: str,
        cause: BaseException,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[{pipeline}] step '{step}' failed: {cause}", details)
        self.pipeline = pipeline
        self.step = step
        self.cause = cause


class InvalidTransitionError(ImmersionError):
    """
    Raised for session mode changes outside the state machine.

    Examples:
    - EXPLORING → MEDIA_ACTIVE (must enter first)
    - MEDIA_ACTIVE → EXPLORING (must exit first)
    """

    def __init__(
        self,
        from_mode: str,
        to_mode: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        msg = message or f"Invalid transition: {from_mode} → {to_mode}"
        super().__init__(msg, details)
        self.from_mode = from_mode
        self.to_mode = to_mode
