"""
Proximity Triggers - Walk-in hotspots with latch-once semantics.

Each frame the monitor measures the distance from the active observer to
every hotspot. The first time a zone is in range it latches and emits a
single proximity TriggerEvent; it stays silent until the orchestrator
resets it on the way back to exploration.

While the session is not exploring the monitor skips the frame entirely,
so nothing can fire while media is active or a transition is running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from immersion.runtime.events import SessionEvent, TriggerEvent, TriggerSource
from immersion.runtime.states import SessionState
from immersion.spatial.position import Coordinates, ObserverRig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProximityReading:
    """Result of one distance check."""
    zone_id: str
    in_range: bool
    distance: float
    fired: bool = False


class TriggerZone:
    """
    A hotspot's walk-in region.

    Fields:
        zone_id: Hotspot identity carried by emitted events.
        position: World position of the hotspot.
        radius: Trigger distance in meters (inclusive).
        latched: Set on first detection, cleared only by reset().
    """

    def __init__(self, zone_id: str, position: Coordinates, radius: float = 2.0):
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        self.zone_id = zone_id
        self.position = Coordinates.of(position)
        self.radius = radius
        self.latched = False
        self._awaiting_exit = False

    def __repr__(self) -> str:
        return f"TriggerZone({self.zone_id!r}, radius={self.radius}, latched={self.latched})"

    @property
    def armed(self) -> bool:
        """True if the next in-range reading will fire."""
        return not self.latched and not self._awaiting_exit

    def measure(self, observer: Coordinates) -> ProximityReading:
        """Distance check with no side effects."""
        distance = self.position.distance_to(observer)
        return ProximityReading(
            zone_id=self.zone_id,
            in_range=distance <= self.radius,
            distance=distance,
        )

    def reset(self, require_exit: bool = False) -> None:
        """
        Clear the latch.

        Args:
            require_exit: Stay quiet until the observer has been seen
                outside the radius at least once.
        """
        self.latched = False
        self._awaiting_exit = require_exit

    def observe(self, reading: ProximityReading) -> bool:
        """Apply latch rules to a reading; True if the zone fires."""
        if not reading.in_range:
            self._awaiting_exit = False
            return False
        if not self.armed:
            return False
        self.latched = True
        return True


class ProximityMonitor:
    """
    Per-frame proximity sampling for all hotspots.

    Example:
        monitor = ProximityMonitor(state, zones, rig, emit=channel.publish)
        scheduler.add(monitor.tick)
    """

    def __init__(
        self,
        state: SessionState,
        zones: Iterable[TriggerZone],
        rig: ObserverRig,
        emit: Callable[[SessionEvent], None] | None = None,
    ):
        self.state = state
        self.zones = list(zones)
        self.rig = rig
        self._emit = emit
        self._fired = 0

    @property
    def fired(self) -> int:
        """Total proximity triggers emitted."""
        return self._fired

    def zone(self, zone_id: str) -> TriggerZone | None:
        for zone in self.zones:
            if zone.zone_id == zone_id:
                return zone
        return None

    def evaluate(self, zone: TriggerZone, observer: Coordinates) -> ProximityReading:
        """
        Measure `zone` against `observer`, latching and emitting on first hit.

        Returns:
            The reading; `fired` is True only for the reading that latched.
        """
        reading = zone.measure(observer)
        if not zone.observe(reading):
            return reading

        logger.info(f"Proximity triggered on {zone.zone_id}: distance {reading.distance:.2f}m")
        self._fired += 1
        if self._emit is not None:
            self._emit(TriggerEvent(source=TriggerSource.PROXIMITY, target_id=zone.zone_id))
        return ProximityReading(
            zone_id=reading.zone_id,
            in_range=True,
            distance=reading.distance,
            fired=True,
        )

    def tick(self, dt: float = 0.0) -> list[ProximityReading]:
        """
        Sample every zone once. Frame callback for FrameScheduler.

        Returns:
            Readings taken this frame (empty when skipped).
        """
        if not self.state.is_exploring:
            return []

        observer = self.rig.active_position()
        if observer is None:
            return []

        return [self.evaluate(zone, observer) for zone in self.zones]

    def reset_all(self, require_exit: bool = False) -> None:
        for zone in self.zones:
            zone.reset(require_exit=require_exit)
