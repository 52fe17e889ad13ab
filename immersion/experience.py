"""
Experience - One object wiring every part of a session together.

The host supplies the collaborators it owns (media element, visual
swapper, movement controls, UI, notifier, audio sources) and a config;
the Experience builds everything else and exposes the discrete inputs a
host forwards from its input layer.

Per frame:
    1. Proximity sampling (may publish a trigger)
    2. Event drain into the orchestrator

Example:
    experience = Experience(
        ExperienceConfig.load("experience.json"),
        media=video, visuals=swapper, movement=controls, ui=hud,
        exploration_audio=[ambient_emitter, ambient_fallback],
        media_audio=[video_track],
    )
    experience.start()

    # host render loop
    experience.update_camera(camera.position)
    experience.tick(dt)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from immersion.audio.channel import ChannelGroup
from immersion.audio.crossfade import AudioCrossfadeEngine
from immersion.config import ExperienceConfig
from immersion.monitoring.logging import StructuredLogger
from immersion.runtime.collaborators import (
    MediaPlayback,
    MovementControls,
    Notifier,
    UIController,
    VisualSwapper,
)
from immersion.runtime.events import (
    EventChannel,
    ImmersiveModeChanged,
    MediaFailed,
    TriggerEvent,
    TriggerSource,
    UserExitRequested,
    VisibilityHidden,
)
from immersion.runtime.orchestrator import TransitionOrchestrator
from immersion.runtime.scheduler import FrameScheduler
from immersion.runtime.states import SessionMode, SessionState
from immersion.spatial.position import Coordinates, ObserverRig
from immersion.triggers.gestures import GestureEvaluator, InteractiveTarget
from immersion.triggers.proximity import ProximityMonitor, TriggerZone

logger = logging.getLogger(__name__)


class Experience:
    """
    Session facade.

    Args:
        config: Experience configuration (default: one hotspot at the origin).
        media: Media playback collaborator.
        visuals: Visual swap collaborator.
        movement: Movement controls.
        ui: On-screen affordances.
        exploration_audio: Sources of the ambient sound (resources or
            entities carrying a sound component).
        media_audio: Sources of the media soundtrack.
        notifier: Blocking user notifications.
        sleep: Coroutine used for every delay (default asyncio.sleep).
        event_log: Structured transition log.
    """

    def __init__(
        self,
        config: ExperienceConfig | None = None,
        *,
        media: MediaPlayback,
        visuals: VisualSwapper,
        movement: MovementControls,
        ui: UIController,
        exploration_audio: Iterable[Any] = (),
        media_audio: Iterable[Any] = (),
        notifier: Notifier | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        event_log: StructuredLogger | None = None,
    ):
        self.config = config or ExperienceConfig.default()
        self.state = SessionState()
        self.events = EventChannel()
        self.rig = ObserverRig()

        self.zones = [
            TriggerZone(h.hotspot_id, Coordinates.of(h.position), self.config.radius_for(h))
            for h in self.config.hotspots
        ]
        self.targets = [
            InteractiveTarget(h.hotspot_id, Coordinates.of(h.position))
            for h in self.config.hotspots
        ]

        self.audio = AudioCrossfadeEngine(
            exploration=ChannelGroup.from_sources("exploration", exploration_audio),
            media=ChannelGroup.from_sources("media", media_audio),
            config=self.config.audio,
            sleep=sleep,
        )

        triggers = self.config.triggers
        self.proximity = ProximityMonitor(self.state, self.zones, self.rig, emit=self.events.publish)
        self.pinch = GestureEvaluator(
            self.targets,
            threshold=triggers.pinch_threshold,
            source=TriggerSource.GESTURE,
            emit=self.events.publish,
        )
        self.controller = GestureEvaluator(
            self.targets,
            threshold=triggers.controller_reach,
            source=TriggerSource.CONTROLLER,
            emit=self.events.publish,
            inclusive=True,
        )

        self.orchestrator = TransitionOrchestrator(
            self.state,
            self.audio,
            media,
            visuals,
            movement,
            ui,
            zones=self.zones,
            events=self.events,
            notifier=notifier,
            config=self.config.transitions,
            rig=self.rig,
            require_exit_before_retrigger=triggers.require_exit_before_retrigger,
            sleep=sleep,
            event_log=event_log,
        )

        self.scheduler = FrameScheduler(self.config.frame_rate, sleep=sleep)
        self.scheduler.add(self.proximity.tick)
        self.scheduler.add(self._drain_events)

        self._background: set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"Experience(mode={self.mode.value}, hotspots={[z.zone_id for z in self.zones]})"

    @property
    def mode(self) -> SessionMode:
        return self.state.mode

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Schedule the delayed ambient fade-in. Call once on the loop."""
        logger.info(f"Starting experience with {len(self.zones)} hotspot(s)")
        return self._spawn(self.orchestrator.start_ambient())

    def tick(self, dt: float | None = None) -> int:
        """Run one frame. Returns the frame number."""
        return self.scheduler.tick(dt)

    async def run(self, frames: int | None = None) -> int:
        """Start and drive frames at the configured rate (headless hosts)."""
        self.start()
        return await self.scheduler.run(frames)

    async def wait_idle(self) -> None:
        """Wait for any running transition and pending delayed exit."""
        await self.orchestrator.wait_idle()

    def _drain_events(self, dt: float) -> None:
        self.orchestrator.process_pending()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def user_gesture(self) -> None:
        """Any user interaction. Retries channels whose autoplay was refused."""
        if any(channel.autoplay_blocked for channel in self.audio.channels):
            self._spawn(self.audio.retry_blocked())

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def click(self, target_id: str | None = None) -> bool:
        """
        Direct selection of a hotspot.

        Returns:
            True if a trigger was published.
        """
        self.user_gesture()
        if target_id is not None and all(t.target_id != target_id for t in self.targets):
            logger.warning(f"Click on unknown hotspot {target_id!r}; ignoring")
            return False
        self.events.publish(TriggerEvent(source=TriggerSource.CLICK, target_id=target_id))
        return True

    def force_trigger(self, target_id: str | None = None) -> None:
        """Start a media transition from tooling, bypassing hit tests."""
        logger.info(f"Forcing media transition for {target_id!r}")
        self.events.publish(TriggerEvent(source=TriggerSource.DEBUG, target_id=target_id))

    def gesture_start(self, point: Coordinates | Iterable[float]) -> InteractiveTarget | None:
        """Pinch started at `point`. Returns the hotspot hit, if any."""
        self.user_gesture()
        return self.pinch.handle(point)

    def controller_trigger_down(self, point: Coordinates | Iterable[float]) -> InteractiveTarget | None:
        """Controller trigger pressed with the controller at `point`."""
        self.user_gesture()
        return self.controller.handle(point)

    def request_exit(self, reason: str = "user") -> None:
        self.user_gesture()
        self.events.publish(UserExitRequested(reason=reason))

    def visibility_hidden(self) -> None:
        self.events.publish(VisibilityHidden())

    def media_error(self, message: str = "") -> None:
        """Media element reported an error outside of a transition."""
        self.events.publish(MediaFailed(message=message))

    def set_immersive(self, active: bool) -> None:
        # The rig switches now so this frame's proximity check uses it.
        self.rig.set_immersive(active)
        self.events.publish(ImmersiveModeChanged(active=active))

    def update_camera(self, position: Coordinates | Iterable[float]) -> None:
        self.rig.update_camera(position)

    def update_tracked_origin(self, position: Coordinates | Iterable[float] | None) -> None:
        self.rig.update_tracked_origin(position)

    # -------------------------------------------------------------------------
    # Debug
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Current state for debug overlays and the CLI."""
        observer = self.rig.active_position()
        return {
            "session": self.state.to_dict(),
            "frame": self.scheduler.frame,
            "busy": self.orchestrator.busy,
            "discarded_events": self.orchestrator.discarded,
            "pending_events": len(self.events),
            "observer": None if observer is None else list(observer.as_tuple()),
            "zones": [
                {
                    "id": zone.zone_id,
                    "radius": zone.radius,
                    "latched": zone.latched,
                    "armed": zone.armed,
                }
                for zone in self.zones
            ],
            "audio": {
                channel.name: {
                    "volume": round(channel.current_volume, 3),
                    "target": channel.target_volume,
                    "playing": channel.is_playing,
                    "fading": channel.fading,
                    "autoplay_blocked": channel.autoplay_blocked,
                }
                for channel in self.audio.channels
            },
        }
