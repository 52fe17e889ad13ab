"""
Immersion - Triggers Module

Event sources that ask to enter media mode.

Components:
    TriggerZone        - Walk-in hotspot region with a latch
    ProximityMonitor   - Per-frame distance sampling
    ProximityReading   - One distance check
    InteractiveTarget  - Gesture-selectable hotspot
    GestureEvaluator   - One-shot hit test for pinch / controller
"""

from immersion.triggers.proximity import (
    TriggerZone,
    ProximityMonitor,
    ProximityReading,
)

from immersion.triggers.gestures import (
    InteractiveTarget,
    GestureEvaluator,
    DEFAULT_PINCH_THRESHOLD,
)

__all__ = [
    # Proximity
    "TriggerZone",
    "ProximityMonitor",
    "ProximityReading",
    # Gestures
    "InteractiveTarget",
    "GestureEvaluator",
    "DEFAULT_PINCH_THRESHOLD",
]
