"""
Transition Orchestrator - The only writer of session mode.

All meaningful mode changes go through this class:

    1. An event arrives (trigger, exit request, playback end, ...)
    2. The guard claims the session synchronously (or discards the event)
    3. A pipeline task runs the ordered steps for the transition
    4. On failure the pipeline is compensated and the session is forced
       back to EXPLORING

Key principle:
    > The check-and-set of mode happens before the first await, so at
    > most one pipeline can exist at any time without locks.

Events that arrive while a pipeline owns the session are dropped, not
queued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable

from immersion.config import TransitionConfig
from immersion.monitoring.logging import StructuredLogger, get_logger

from .collaborators import MediaPlayback, MovementControls, Notifier, UIController, VisualSwapper
from .errors import MediaLoadError, TransitionGuardViolation
from .events import (
    EventChannel,
    ImmersiveModeChanged,
    MediaFailed,
    PlaybackEnded,
    SessionEvent,
    TriggerEvent,
    TriggerSource,
    UserExitRequested,
    VisibilityHidden,
)
from .pipeline import Pipeline, PipelineResult, PipelineStep, maybe_await
from .states import SessionMode, SessionState

if TYPE_CHECKING:
    from immersion.audio.crossfade import AudioCrossfadeEngine
    from immersion.spatial.position import ObserverRig
    from immersion.triggers.proximity import TriggerZone

logger = logging.getLogger(__name__)


ENTER_PIPELINE = "enter_media"
EXIT_PIPELINE = "exit_media"

MEDIA_LOAD_MESSAGE = "Unable to load the media. Please check your connection and try again."


class TransitionOrchestrator:
    """
    State machine coordinating exploration ⇄ media switches.

    Usage:
        orchestrator = TransitionOrchestrator(
            state, audio, media, visuals, movement, ui,
            zones=monitor.zones, events=channel,
        )

        orchestrator.trigger(TriggerSource.CLICK, "fountain")
        await orchestrator.wait_idle()
        assert state.mode == SessionMode.MEDIA_ACTIVE

    Args:
        state: The session record (mutated only here).
        audio: Crossfade engine holding exploration and media channels.
        media: Media playback collaborator.
        visuals: Visual swap collaborator.
        movement: Exploration movement controls.
        ui: On-screen affordances.
        zones: Trigger zones reset on every return to exploration.
        events: Event channel to consume (optional for direct calls).
        notifier: Blocking user notifications (optional).
        config: Transition delays.
        rig: Observer rig kept in sync with immersive mode (optional).
        require_exit_before_retrigger: Passed to TriggerZone.reset().
        sleep: Coroutine used for delays (default asyncio.sleep).
        event_log: Structured transition log (default global logger).
    """

    def __init__(
        self,
        state: SessionState,
        audio: AudioCrossfadeEngine,
        media: MediaPlayback,
        visuals: VisualSwapper,
        movement: MovementControls,
        ui: UIController,
        zones: Iterable[TriggerZone] = (),
        events: EventChannel | None = None,
        notifier: Notifier | None = None,
        config: TransitionConfig | None = None,
        rig: ObserverRig | None = None,
        require_exit_before_retrigger: bool = False,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        event_log: StructuredLogger | None = None,
    ):
        self.state = state
        self.audio = audio
        self.media = media
        self.visuals = visuals
        self.movement = movement
        self.ui = ui
        self.zones = list(zones)
        self.events = events
        self.notifier = notifier
        self.config = config or TransitionConfig()
        self.rig = rig
        self.require_exit_before_retrigger = require_exit_before_retrigger
        self._sleep = sleep or asyncio.sleep
        self._log = event_log or get_logger()

        self._pipeline_task: asyncio.Task | None = None
        self._pending_exit: asyncio.Task | None = None
        self._last_result: PipelineResult | None = None
        self._discarded = 0

    @property
    def mode(self) -> SessionMode:
        return self.state.mode

    @property
    def busy(self) -> bool:
        """True while a pipeline task is running."""
        return self._pipeline_task is not None and not self._pipeline_task.done()

    @property
    def last_result(self) -> PipelineResult | None:
        """Result of the most recent pipeline (enter or exit)."""
        return self._last_result

    @property
    def discarded(self) -> int:
        """Number of events dropped by the guard."""
        return self._discarded

    # -------------------------------------------------------------------------
    # Event intake
    # -------------------------------------------------------------------------

    def handle(self, event: SessionEvent) -> bool:
        """
        Dispatch one session event.

        Returns:
            True if the event was acted on, False if it was discarded.
        """
        if isinstance(event, TriggerEvent):
            return self.trigger(event.source, event.target_id) is not None
        if isinstance(event, UserExitRequested):
            return self.request_exit(event.reason) is not None
        if isinstance(event, PlaybackEnded):
            return self._schedule_ended_exit() is not None
        if isinstance(event, VisibilityHidden):
            self.media.pause()
            return True
        if isinstance(event, ImmersiveModeChanged):
            self.state.immersive = event.active
            if self.rig is not None:
                self.rig.set_immersive(event.active)
            return True
        if isinstance(event, MediaFailed):
            logger.error(f"Media error reported: {event.message}")
            self._notify(MEDIA_LOAD_MESSAGE)
            return True

        logger.warning(f"Unknown session event {type(event).__name__}; ignoring")
        return False

    def process_pending(self) -> int:
        """
        Handle every queued event now. Frame callback for FrameScheduler.

        Returns:
            Number of events acted on.
        """
        if self.events is None:
            return 0
        return sum(1 for event in self.events.drain() if self.handle(event))

    async def run(self) -> None:
        """Consume the event channel forever."""
        if self.events is None:
            raise RuntimeError("run() needs an EventChannel")
        while True:
            event = await self.events.next()
            self.handle(event)

    def _discard(self, what: str, violation: TransitionGuardViolation) -> None:
        self._discarded += 1
        logger.debug(f"Ignoring {what}: {violation.message}")

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def trigger(
        self,
        source: TriggerSource | str,
        target_id: str | None = None,
    ) -> asyncio.Task | None:
        """
        Enter media mode.

        Valid only from EXPLORING. Must be called on the event loop.

        Returns:
            The pipeline task, or None if the trigger was discarded.
        """
        loop = asyncio.get_running_loop()
        source = TriggerSource(source)

        try:
            self.state.claim(SessionMode.EXPLORING, SessionMode.ENTERING_MEDIA)
        except TransitionGuardViolation as violation:
            self._discard(f"{source.value} trigger", violation)
            return None

        self.state.pending_trigger_source = source.value
        self.state.origin_zone_id = target_id
        logger.info(f"Transitioning to media (triggered by {source.value})")
        return self._launch(loop, self._enter(source))

    def request_exit(self, reason: str = "user") -> asyncio.Task | None:
        """
        Leave media mode.

        Valid only from MEDIA_ACTIVE. Cancels a pending delayed exit.

        Returns:
            The pipeline task, or None if the request was discarded.
        """
        loop = asyncio.get_running_loop()

        try:
            self.state.claim(SessionMode.MEDIA_ACTIVE, SessionMode.EXITING_MEDIA)
        except TransitionGuardViolation as violation:
            self._discard(f"exit ({reason})", violation)
            return None

        self._cancel_pending_exit()
        logger.info(f"Returning to exploration ({reason})")
        return self._launch(loop, self._exit(reason))

    def _launch(self, loop: asyncio.AbstractEventLoop, pipeline) -> asyncio.Task:
        task = loop.create_task(pipeline)
        self._pipeline_task = task
        task.add_done_callback(self._pipeline_done)
        return task

    def _pipeline_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Transition pipeline was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Transition pipeline crashed: {error}", exc_info=error)

    async def _enter(self, source: TriggerSource) -> PipelineResult:
        pipeline = self.enter_pipeline()
        started = time.monotonic()
        self._log.transition_start(ENTER_PIPELINE, source=source.value, zone=self.state.origin_zone_id)

        result = await pipeline.run()
        self._last_result = result

        if result.ok:
            self.state.move_to(SessionMode.MEDIA_ACTIVE)
            self.state.pending_trigger_source = None
            self.state.transitions += 1
            self._log.transition_complete(ENTER_PIPELINE, (time.monotonic() - started) * 1000)
            logger.info("Media transition complete")
            return result

        failure = result.failures[0]
        self._log.step_failed(ENTER_PIPELINE, failure.step, failure.cause)
        self.state.move_to(SessionMode.EXITING_MEDIA)

        await pipeline.rollback(result)
        self._reset_zones()
        self._log.rollback(ENTER_PIPELINE, result.compensated)

        if result.caused_by(MediaLoadError):
            self._notify(MEDIA_LOAD_MESSAGE)

        self._finish_exploring()
        return result

    async def _exit(self, reason: str) -> PipelineResult:
        pipeline = self.exit_pipeline()
        started = time.monotonic()
        self._log.transition_start(EXIT_PIPELINE, reason=reason)

        result = await pipeline.run_best_effort()
        self._last_result = result

        for failure in result.failures:
            self._log.step_failed(EXIT_PIPELINE, failure.step, failure.cause)

        self.state.transitions += 1
        self._finish_exploring()
        self._log.transition_complete(
            EXIT_PIPELINE,
            (time.monotonic() - started) * 1000,
            failed_steps=[f.step for f in result.failures],
        )
        logger.info("Returned to exploration")
        return result

    def _finish_exploring(self) -> None:
        self.state.move_to(SessionMode.EXPLORING)
        self.state.pending_trigger_source = None
        self.state.origin_zone_id = None

    # -------------------------------------------------------------------------
    # Playback completion
    # -------------------------------------------------------------------------

    def _on_media_ended(self) -> None:
        logger.info("Media playback ended")
        if self.events is not None:
            self.events.publish(PlaybackEnded())
        else:
            self._schedule_ended_exit()

    def _schedule_ended_exit(self) -> asyncio.Task | None:
        if self.state.mode != SessionMode.MEDIA_ACTIVE:
            logger.debug(f"Ignoring playback end while {self.state.mode.value}")
            return None
        if self._pending_exit is not None and not self._pending_exit.done():
            return None

        self._pending_exit = asyncio.get_running_loop().create_task(self._exit_after_delay())
        return self._pending_exit

    async def _exit_after_delay(self) -> None:
        await self._sleep(self.config.ended_exit_delay_ms / 1000)
        self._pending_exit = None
        self.request_exit("playback_ended")

    def _cancel_pending_exit(self) -> None:
        if self._pending_exit is not None and not self._pending_exit.done():
            self._pending_exit.cancel()
        self._pending_exit = None

    async def wait_idle(self) -> None:
        """Wait until no pipeline or delayed exit is outstanding."""
        while True:
            pending = [
                task for task in (self._pending_exit, self._pipeline_task)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    # -------------------------------------------------------------------------
    # Pipelines
    # -------------------------------------------------------------------------

    def enter_pipeline(self) -> Pipeline:
        """Steps into media mode, each with its compensation."""
        return Pipeline(ENTER_PIPELINE, [
            PipelineStep(
                "fade_out_exploration_audio",
                self.audio.stop_exploration_audio,
                compensate=self.audio.start_exploration_audio,
            ),
            PipelineStep(
                "show_media_surface",
                self.visuals.show_media_surface,
                compensate=self.visuals.show_exploration_surface,
            ),
            PipelineStep(
                "start_media_playback",
                self._start_media,
                compensate=self._stop_media,
            ),
            PipelineStep(
                "fade_in_media_audio",
                self.audio.start_media_audio,
                compensate=self.audio.stop_media_audio,
            ),
            PipelineStep(
                "hide_exploration_world",
                self.visuals.hide_exploration_world,
                compensate=self.visuals.show_exploration_world,
            ),
            PipelineStep(
                "disable_movement",
                self.movement.disable,
                compensate=self._enable_movement,
            ),
            PipelineStep(
                "show_media_ui",
                self._show_media_ui,
                compensate=self._show_exploration_ui,
            ),
            PipelineStep(
                "register_ended_listener",
                self._register_ended_listener,
                compensate=self.media.remove_ended_listener,
            ),
        ])

    def exit_pipeline(self) -> Pipeline:
        """Steps back to exploration. Every step is idempotent."""
        return Pipeline(EXIT_PIPELINE, [
            PipelineStep("fade_out_media_audio", self.audio.stop_media_audio),
            PipelineStep("stop_media_playback", self._stop_media),
            PipelineStep("show_exploration_surface", self.visuals.show_exploration_surface),
            PipelineStep("show_exploration_world", self.visuals.show_exploration_world),
            PipelineStep("enable_movement", self._enable_movement),
            PipelineStep("show_exploration_ui", self._show_exploration_ui),
            PipelineStep("reset_trigger_zones", self._reset_zones),
            PipelineStep("fade_in_exploration_audio", self.audio.start_exploration_audio),
        ])

    async def _start_media(self) -> None:
        try:
            await maybe_await(self.media.play())
        except MediaLoadError:
            raise
        except Exception as e:
            raise MediaLoadError(f"Media failed to start: {e}") from e

    def _stop_media(self) -> None:
        self.media.pause()
        self.media.reset_to_start()
        self.media.remove_ended_listener()

    def _enable_movement(self) -> None:
        if self.state.immersive:
            logger.debug("Immersive session active; leaving movement controls to the tracked rig")
            return
        self.movement.enable()

    def _show_media_ui(self) -> None:
        self.ui.show_exit_affordance()
        self.ui.hide_overlay()

    def _show_exploration_ui(self) -> None:
        self.ui.hide_exit_affordance()
        self.ui.show_overlay()

    def _register_ended_listener(self) -> None:
        self.media.on_ended(self._on_media_ended)

    def _reset_zones(self) -> None:
        for zone in self.zones:
            zone.reset(require_exit=self.require_exit_before_retrigger)

    def _notify(self, message: str) -> None:
        if self.notifier is None:
            logger.warning(f"No notifier configured; dropping user notification: {message}")
            return
        try:
            self.notifier.notify(message)
        except Exception as e:
            logger.error(f"Notifier failed: {e}", exc_info=e)

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def start_ambient(self) -> None:
        """Fade the exploration ambience in after the startup delay."""
        await self._sleep(self.config.startup_audio_delay_ms / 1000)
        if not self.state.is_exploring:
            return
        await self.audio.start_exploration_audio()
        blocked = [ch.name for ch in self.audio.exploration if ch.autoplay_blocked]
        if blocked:
            logger.warning(f"Autoplay blocked on {blocked}; waiting for a user gesture")
