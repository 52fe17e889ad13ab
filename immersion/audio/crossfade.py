"""
Crossfade Engine - Linear volume ramps over live audio channels.

Two primitives drive every volume change in the experience:

    fade_out(channel, ms)          current → 0, then pause the resource
    fade_in(channel, target, ms)   0 → target, starting playback first

Semantics:
    - Ramps are linear and quantised to fixed steps (default 50ms)
    - A ramp of d ms takes ceil(d / step) steps, so it settles within
      one step of d
    - One fade per channel: starting a fade cancels the one already
      running on that channel before the new ramp writes anything
    - A superseded fade settles with FadeOutcome.SUPERSEDED; it never
      raises into whoever was awaiting it
    - fade_out on a stopped channel settles at once (SKIPPED)
    - fade_in tolerates refused playback: the refusal is logged as
      AutoplayBlockedError and the ramp carries on

Composites fan a primitive out to every channel of a logical sound and
join on all of them.
"""

from __future__ import annotations

import asyncio
import logging
import math
from enum import Enum
from typing import Awaitable, Callable, Coroutine, Any

import numpy as np

from immersion.audio.channel import AudioChannel, ChannelGroup
from immersion.config import AudioConfig
from immersion.runtime.errors import AutoplayBlockedError
from immersion.runtime.pipeline import maybe_await

logger = logging.getLogger(__name__)


DEFAULT_STEP_MS = 50


class FadeOutcome(Enum):
    """How a fade settled."""
    COMPLETED = "completed"
    SUPERSEDED = "superseded"
    SKIPPED = "skipped"


def linear_ramp(
    start: float,
    end: float,
    duration_ms: float,
    step_ms: float = DEFAULT_STEP_MS,
) -> np.ndarray:
    """Volume levels to write, one per step, for a linear ramp.

    Args:
        start: Level before the first step (not included).
        end: Level after the last step (always the final element).
        duration_ms: Ramp duration.
        step_ms: Step interval.

    Returns:
        Array of ceil(duration_ms / step_ms) levels; empty for a zero
        duration, in which case the caller jumps straight to `end`.
    """
    if step_ms <= 0:
        raise ValueError(f"step_ms must be > 0, got {step_ms}")
    if duration_ms <= 0:
        return np.empty(0, dtype=np.float64)

    steps = int(math.ceil(duration_ms / step_ms))
    return np.linspace(start, end, steps + 1, dtype=np.float64)[1:]


class AudioCrossfadeEngine:
    """
    Owns every volume ramp in the experience.

    Usage:
        engine = AudioCrossfadeEngine(
            exploration=ChannelGroup.from_sources("exploration", [emitter, fallback]),
            media=ChannelGroup.from_sources("media", [video_track]),
        )

        await engine.stop_exploration_audio()
        await engine.start_media_audio()

    Args:
        exploration: Channels carrying the ambient exploration sound.
        media: Channels carrying the media soundtrack.
        config: Fade timings and levels.
        sleep: Coroutine used to wait one step (default asyncio.sleep).
    """

    def __init__(
        self,
        exploration: ChannelGroup | None = None,
        media: ChannelGroup | None = None,
        config: AudioConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.config = config or AudioConfig()
        self.exploration = exploration or ChannelGroup("exploration")
        self.media = media or ChannelGroup("media")
        self._sleep = sleep or asyncio.sleep

    @property
    def step_ms(self) -> int:
        return self.config.step_ms

    @property
    def channels(self) -> list[AudioChannel]:
        return [*self.exploration, *self.media]

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def fade_out(self, channel: AudioChannel, duration_ms: float) -> asyncio.Future:
        """Ramp `channel` to silence and stop it.

        Must be called from a running event loop. The returned future
        resolves to a FadeOutcome.
        """
        channel.cancel_fade()
        channel.target_volume = 0.0

        if not channel.is_playing:
            settled = asyncio.get_running_loop().create_future()
            settled.set_result(FadeOutcome.SKIPPED)
            return settled

        return self._launch(channel, self._run_fade_out(channel, duration_ms))

    def fade_in(
        self,
        channel: AudioChannel,
        target_volume: float,
        duration_ms: float,
    ) -> asyncio.Future:
        """Start `channel` from silence and ramp it to `target_volume`.

        A fade_in that supersedes a running fade_out still restarts from
        silence rather than the level the out-ramp had reached.

        Must be called from a running event loop. The returned future
        resolves to a FadeOutcome.
        """
        if not 0.0 <= target_volume <= 1.0:
            raise ValueError(f"target_volume must be 0.0-1.0, got {target_volume}")

        channel.cancel_fade()
        channel.target_volume = target_volume
        return self._launch(channel, self._run_fade_in(channel, target_volume, duration_ms))

    def _launch(
        self,
        channel: AudioChannel,
        ramp: Coroutine[Any, Any, FadeOutcome],
    ) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        task = loop.create_task(ramp)
        channel.active_fade = task
        settled = loop.create_future()

        def _settle(finished: asyncio.Task) -> None:
            if channel.active_fade is finished:
                channel.active_fade = None
            if settled.done():
                return
            if finished.cancelled():
                settled.set_result(FadeOutcome.SUPERSEDED)
            elif finished.exception() is not None:
                settled.set_exception(finished.exception())
            else:
                settled.set_result(finished.result())

        task.add_done_callback(_settle)
        return settled

    async def _ramp(self, channel: AudioChannel, start: float, end: float, duration_ms: float) -> None:
        step_seconds = self.step_ms / 1000
        for level in linear_ramp(start, end, duration_ms, self.step_ms):
            await self._sleep(step_seconds)
            channel.current_volume = float(level)
        channel.current_volume = end

    async def _run_fade_out(self, channel: AudioChannel, duration_ms: float) -> FadeOutcome:
        await self._ramp(channel, channel.current_volume, 0.0, duration_ms)
        channel.stop()
        logger.debug(f"Faded out {channel.name} over {duration_ms}ms")
        return FadeOutcome.COMPLETED

    async def _run_fade_in(
        self,
        channel: AudioChannel,
        target_volume: float,
        duration_ms: float,
    ) -> FadeOutcome:
        channel.current_volume = 0.0
        await self._start_playback(channel)
        await self._ramp(channel, 0.0, target_volume, duration_ms)
        logger.debug(f"Faded in {channel.name} to {target_volume:.2f} over {duration_ms}ms")
        return FadeOutcome.COMPLETED

    async def _start_playback(self, channel: AudioChannel) -> bool:
        """Ask the resource to play. Refusal is logged, never raised."""
        try:
            await maybe_await(channel.resource.play())
        except Exception as e:
            blocked = e if isinstance(e, AutoplayBlockedError) else AutoplayBlockedError(
                channel.name, f"Playback refused on channel '{channel.name}': {e}",
            )
            channel.autoplay_blocked = True
            logger.warning(f"{blocked.message}; continuing fade silently")
            return False
        channel.autoplay_blocked = False
        return True

    # -------------------------------------------------------------------------
    # Composites
    # -------------------------------------------------------------------------

    async def _join(self, fades: list[asyncio.Future]) -> list[FadeOutcome]:
        if not fades:
            return []
        outcomes = await asyncio.gather(*fades, return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise errors[0]
        return list(outcomes)

    async def stop_exploration_audio(self) -> list[FadeOutcome]:
        """Fade the ambient sound out on every exploration channel."""
        logger.info("Stopping exploration audio")
        duration = self.config.exploration_fade_out_ms
        return await self._join([self.fade_out(ch, duration) for ch in self.exploration])

    async def start_exploration_audio(self) -> list[FadeOutcome]:
        """Fade the ambient sound in on every exploration channel."""
        logger.info("Starting exploration audio")
        volume = self.config.exploration_volume
        duration = self.config.exploration_fade_in_ms
        return await self._join([self.fade_in(ch, volume, duration) for ch in self.exploration])

    async def start_media_audio(self) -> list[FadeOutcome]:
        """Fade the soundtrack in on every media channel."""
        logger.info("Starting media audio")
        volume = self.config.media_volume
        duration = self.config.media_fade_in_ms
        return await self._join([self.fade_in(ch, volume, duration) for ch in self.media])

    async def stop_media_audio(self) -> list[FadeOutcome]:
        """Fade the soundtrack out on every media channel and rewind it."""
        logger.info("Stopping media audio")
        duration = self.config.media_fade_out_ms
        outcomes = await self._join([self.fade_out(ch, duration) for ch in self.media])
        for channel in self.media:
            channel.resource.rewind()
        return outcomes

    async def retry_blocked(self) -> int:
        """
        Retry playback on channels whose autoplay was refused.

        Call after a user gesture. Only channels that should be audible
        (non-zero target) are retried.

        Returns:
            Number of channels that started playing.
        """
        started = 0
        for channel in self.channels:
            if channel.autoplay_blocked and channel.target_volume > 0 and not channel.is_playing:
                if await self._start_playback(channel):
                    started += 1
        if started:
            logger.info(f"Resumed {started} channel(s) after user gesture")
        return started
