"""
Immersion - Spatial Module

World coordinates and observer tracking.

Components:
    Coordinates   - 3D world coordinates with distance
    ObserverRig   - Chooses the active observer position each frame

Usage:
    from immersion.spatial import Coordinates, ObserverRig

    rig = ObserverRig()
    rig.update_camera(Coordinates(0.0, 1.6, 4.0))
    distance = rig.active_position().distance_to(Coordinates(0, 1, 0))
"""

from immersion.spatial.position import (
    Coordinates,
    ObserverRig,
)

__all__ = [
    "Coordinates",
    "ObserverRig",
]
