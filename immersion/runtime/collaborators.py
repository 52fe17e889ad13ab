"""
Collaborator Interfaces - What the orchestrator drives but does not implement.

These are narrow structural protocols. Hosts pass any objects with the
right methods; nothing here needs to be subclassed.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable


@runtime_checkable
class MediaPlayback(Protocol):
    """The immersive media resource (360° video and its track)."""

    def play(self) -> Awaitable[Any]:
        """Start playback; the awaitable raises if the media cannot play."""
        ...

    def pause(self) -> None: ...

    def reset_to_start(self) -> None: ...

    def on_ended(self, callback: Callable[[], None]) -> None:
        """Register the single end-of-playback listener."""
        ...

    def remove_ended_listener(self) -> None: ...


@runtime_checkable
class VisualSwapper(Protocol):
    """Swaps what surrounds the viewer."""

    def show_media_surface(self) -> None: ...

    def show_exploration_surface(self) -> None: ...

    def show_exploration_world(self) -> None: ...

    def hide_exploration_world(self) -> None: ...


@runtime_checkable
class MovementControls(Protocol):
    """Locomotion in exploration mode."""

    def disable(self) -> None: ...

    def enable(self) -> None: ...


@runtime_checkable
class UIController(Protocol):
    """On-screen affordances."""

    def show_exit_affordance(self) -> None: ...

    def hide_exit_affordance(self) -> None: ...

    def show_overlay(self) -> None: ...

    def hide_overlay(self) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    """Blocking user-facing notification (load/playback failures only)."""

    def notify(self, message: str) -> None: ...
