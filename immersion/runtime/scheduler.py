"""
Frame Scheduler - Explicit per-frame callback driver.

Decouples per-frame work (proximity sampling, event draining) from any
render loop. A host with its own loop calls tick() once per rendered
frame; a headless host can await run() instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


FrameCallback = Callable[[float], None]


class FrameScheduler:
    """
    Calls registered callbacks once per logical frame.

    Example:
        scheduler = FrameScheduler(frame_rate=72)
        scheduler.add(monitor.tick)
        scheduler.add(lambda dt: orchestrator.process_pending())

        # From the host render loop
        scheduler.tick(dt)

        # Or headless
        await scheduler.run(frames=720)
    """

    def __init__(
        self,
        frame_rate: float = 72.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be > 0, got {frame_rate}")
        self._frame_rate = frame_rate
        self._sleep = sleep or asyncio.sleep
        self._callbacks: list[FrameCallback] = []
        self._frame = 0
        self._running = False

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    @property
    def frame_interval(self) -> float:
        """Seconds between frames."""
        return 1.0 / self._frame_rate

    @property
    def frame(self) -> int:
        """Number of frames ticked so far."""
        return self._frame

    @property
    def running(self) -> bool:
        return self._running

    def add(self, callback: FrameCallback) -> FrameCallback:
        """Register a per-frame callback; returns it for later removal."""
        self._callbacks.append(callback)
        return callback

    def remove(self, callback: FrameCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def tick(self, dt: float | None = None) -> int:
        """
        Run one frame.

        A failing callback is logged and does not stop the others.

        Args:
            dt: Seconds since the previous frame (default: frame interval).

        Returns:
            The new frame number.
        """
        if dt is None:
            dt = self.frame_interval
        self._frame += 1

        for callback in list(self._callbacks):
            try:
                callback(dt)
            except Exception as e:
                logger.error(f"Frame callback error on frame {self._frame}: {e}", exc_info=e)

        return self._frame

    async def run(self, frames: int | None = None) -> int:
        """
        Tick at the configured frame rate until stop() or `frames` ticks.

        Returns:
            Number of frames ticked by this call.
        """
        self._running = True
        count = 0
        try:
            while self._running and (frames is None or count < frames):
                self.tick()
                count += 1
                await self._sleep(self.frame_interval)
        finally:
            self._running = False
        return count

    def stop(self) -> None:
        self._running = False
