"""
Spatial Position - World coordinates and the active observer.

Features:
    - 3D coordinate system
    - Distance calculation
    - Observer selection (tracked origin vs. camera)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Coordinates:
    """3D world coordinates in meters."""

    x: float = 0.0  # Left (-) / Right (+)
    y: float = 0.0  # Down (-) / Up (+)
    z: float = 0.0  # Behind (-) / Front (+)

    @classmethod
    def of(cls, value: "Coordinates | Iterable[float]") -> "Coordinates":
        """Coerce an (x, y, z) sequence or Coordinates into Coordinates."""
        if isinstance(value, Coordinates):
            return value
        x, y, z = (float(v) for v in value)
        return cls(x, y, z)

    def distance_to(self, other: "Coordinates") -> float:
        """Calculate Euclidean distance to another point."""
        return math.sqrt(
            (self.x - other.x) ** 2 +
            (self.y - other.y) ** 2 +
            (self.z - other.z) ** 2
        )

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def __add__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(
            x=self.x + other.x,
            y=self.y + other.y,
            z=self.z + other.z,
        )

    def __sub__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(
            x=self.x - other.x,
            y=self.y - other.y,
            z=self.z - other.z,
        )

    def __mul__(self, scalar: float) -> "Coordinates":
        return Coordinates(
            x=self.x * scalar,
            y=self.y * scalar,
            z=self.z * scalar,
        )


class ObserverRig:
    """
    Tracks where the viewer is.

    Two references feed the rig each frame:
        camera:         generic camera / desktop rig position
        tracked origin: headset tracking origin, only meaningful while
                        an immersive session is active

    Selection policy: prefer the tracked origin while immersive and known,
    otherwise fall back to the camera.

    Example:
        rig = ObserverRig()
        rig.update_camera((0.0, 1.6, 4.0))
        rig.set_immersive(True)
        rig.update_tracked_origin((0.5, 1.6, 3.0))
        rig.active_position()  # tracked origin
    """

    def __init__(self) -> None:
        self._camera: Coordinates | None = None
        self._tracked_origin: Coordinates | None = None
        self._immersive = False

    @property
    def immersive(self) -> bool:
        return self._immersive

    @property
    def camera(self) -> Coordinates | None:
        return self._camera

    @property
    def tracked_origin(self) -> Coordinates | None:
        return self._tracked_origin

    def set_immersive(self, active: bool) -> None:
        self._immersive = active

    def update_camera(self, position: "Coordinates | Iterable[float]") -> None:
        self._camera = Coordinates.of(position)

    def update_tracked_origin(self, position: "Coordinates | Iterable[float] | None") -> None:
        self._tracked_origin = None if position is None else Coordinates.of(position)

    def active_position(self) -> Coordinates | None:
        """Position proximity checks should use, or None if unknown."""
        if self._immersive and self._tracked_origin is not None:
            return self._tracked_origin
        return self._camera
