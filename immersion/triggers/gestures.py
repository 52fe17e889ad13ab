"""
Gesture Triggers - One-shot hit tests for pinches and controller presses.

Unlike proximity, these run once per discrete input event. The point of
the gesture (pinch midpoint, controller position) is tested against every
interactive target; the nearest target within the threshold wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from immersion.runtime.events import SessionEvent, TriggerEvent, TriggerSource
from immersion.spatial.position import Coordinates

logger = logging.getLogger(__name__)


DEFAULT_PINCH_THRESHOLD = 0.3


@dataclass(frozen=True)
class InteractiveTarget:
    """Something a gesture can select."""
    target_id: str
    position: Coordinates


class GestureEvaluator:
    """
    Hit-tests gesture points against targets.

    Pinches need the point strictly inside the threshold; controller reach
    is inclusive (`inclusive=True`).

    Example:
        pinch = GestureEvaluator(targets, threshold=0.3,
                                 source=TriggerSource.GESTURE,
                                 emit=channel.publish)
        pinch.handle((0.1, 1.2, -4.9))
    """

    def __init__(
        self,
        targets: Iterable[InteractiveTarget] = (),
        threshold: float = DEFAULT_PINCH_THRESHOLD,
        source: TriggerSource = TriggerSource.GESTURE,
        emit: Callable[[SessionEvent], None] | None = None,
        inclusive: bool = False,
    ):
        if threshold <= 0:
            raise ValueError(f"threshold must be > 0, got {threshold}")
        self.targets = list(targets)
        self.threshold = threshold
        self.source = source
        self.inclusive = inclusive
        self._emit = emit

    def evaluate(
        self,
        point: Coordinates | Iterable[float],
        targets: Iterable[InteractiveTarget] | None = None,
    ) -> InteractiveTarget | None:
        """Nearest target within the threshold of `point`, or None."""
        point = Coordinates.of(point)
        candidates = self.targets if targets is None else targets

        best: InteractiveTarget | None = None
        best_distance = 0.0
        for target in candidates:
            distance = point.distance_to(target.position)
            if not self.within(distance):
                continue
            if best is None or distance < best_distance:
                best, best_distance = target, distance
        return best

    def within(self, distance: float) -> bool:
        if self.inclusive:
            return distance <= self.threshold
        return distance < self.threshold

    def handle(self, point: Coordinates | Iterable[float]) -> InteractiveTarget | None:
        """Evaluate a gesture event and emit a trigger on a match."""
        target = self.evaluate(point)
        if target is None:
            return None

        logger.info(f"{self.source.value} gesture hit {target.target_id}")
        if self._emit is not None:
            self._emit(TriggerEvent(source=self.source, target_id=target.target_id))
        return target
