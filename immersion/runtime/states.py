"""
Session State - The single mutable record of which presentation mode is live.

One SessionState exists per session. It is created by the host (or the
Experience facade) and handed explicitly to every component that needs to
read it. Only the TransitionOrchestrator writes to it.

Mode graph:

    EXPLORING ──trigger──▶ ENTERING_MEDIA ──ok──▶ MEDIA_ACTIVE
        ▲                        │                     │
        │                     failure            ended / exit
        │                        ▼                     ▼
        └──────────────────── EXITING_MEDIA ◀──────────┘
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import InvalidTransitionError, TransitionGuardViolation


class SessionMode(Enum):
    """Presentation modes of the experience."""
    EXPLORING = "exploring"
    ENTERING_MEDIA = "entering_media"
    MEDIA_ACTIVE = "media_active"
    EXITING_MEDIA = "exiting_media"


# Valid mode changes (from -> to)
VALID_TRANSITIONS: dict[SessionMode, set[SessionMode]] = {
    SessionMode.EXPLORING: {SessionMode.ENTERING_MEDIA},
    SessionMode.ENTERING_MEDIA: {SessionMode.MEDIA_ACTIVE, SessionMode.EXITING_MEDIA},
    SessionMode.MEDIA_ACTIVE: {SessionMode.EXITING_MEDIA},
    SessionMode.EXITING_MEDIA: {SessionMode.EXPLORING},
}


def is_valid_transition(from_mode: SessionMode, to_mode: SessionMode) -> bool:
    """Check if a mode change is valid."""
    return to_mode in VALID_TRANSITIONS.get(from_mode, set())


@dataclass
class SessionState:
    """
    Shared session record.

    Fields:
        mode: Current presentation mode.
        pending_trigger_source: Source of the trigger that started the
            transition in flight (None when idle in a steady mode).
        origin_zone_id: Hotspot that caused the current media session.
        immersive: True while a tracked (headset) origin drives the view.
        transitions: Number of completed enter/exit transitions.
    """
    mode: SessionMode = SessionMode.EXPLORING
    pending_trigger_source: str | None = None
    origin_zone_id: str | None = None
    immersive: bool = False
    transitions: int = 0

    @property
    def is_exploring(self) -> bool:
        return self.mode == SessionMode.EXPLORING

    @property
    def in_transition(self) -> bool:
        """True while an enter or exit pipeline owns the session."""
        return self.mode in (SessionMode.ENTERING_MEDIA, SessionMode.EXITING_MEDIA)

    def claim(self, expected: SessionMode, new_mode: SessionMode) -> None:
        """
        Atomically move from `expected` to `new_mode`.

        There is no await between the check and the write, so two events
        handled in the same loop iteration can never both claim the session.

        Raises:
            TransitionGuardViolation: If the session is not in `expected`.
        """
        if self.mode != expected:
            raise TransitionGuardViolation(
                attempted=f"move to {new_mode.value}",
                mode=self.mode.value,
            )
        self.move_to(new_mode)

    def move_to(self, new_mode: SessionMode) -> None:
        """
        Move to `new_mode` along the mode graph.

        Raises:
            InvalidTransitionError: If the edge does not exist.
        """
        if not is_valid_transition(self.mode, new_mode):
            raise InvalidTransitionError(self.mode.value, new_mode.value)
        self.mode = new_mode

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "pending_trigger_source": self.pending_trigger_source,
            "origin_zone_id": self.origin_zone_id,
            "immersive": self.immersive,
            "transitions": self.transitions,
        }
