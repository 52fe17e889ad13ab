"""
Proximity Trigger Tests - Latch-once walk-in hotspots.

Invariants tested:
    1. Inclusive radius (distance == radius is in range)
    2. A zone fires at most once between resets, whatever the path
    3. Nothing fires unless the session is exploring
    4. Reset re-arms, optionally only after the observer has left
"""

import pytest
from hypothesis import given, settings, strategies as st

from immersion.runtime import SessionMode, SessionState, TriggerSource
from immersion.runtime.events import TriggerEvent
from immersion.spatial import Coordinates, ObserverRig
from immersion.triggers import ProximityMonitor, TriggerZone


def make_monitor(radius=2.0, mode=SessionMode.EXPLORING):
    state = SessionState(mode=mode)
    zone = TriggerZone("fountain", Coordinates(0.0, 0.0, 0.0), radius=radius)
    rig = ObserverRig()
    emitted = []
    monitor = ProximityMonitor(state, [zone], rig, emit=emitted.append)
    return monitor, zone, rig, emitted


class TestTriggerZone:
    """Tests for TriggerZone."""

    def test_radius_must_be_positive(self):
        """Zero or negative radius is rejected."""
        with pytest.raises(ValueError, match="radius must be > 0"):
            TriggerZone("z", Coordinates(), radius=0)

    def test_inclusive_radius(self):
        """Exactly on the boundary counts as in range."""
        zone = TriggerZone("z", Coordinates(), radius=2.0)
        assert zone.measure(Coordinates(0.0, 0.0, 2.0)).in_range
        assert not zone.measure(Coordinates(0.0, 0.0, 2.0001)).in_range

    def test_measure_has_no_side_effects(self):
        """measure() never latches."""
        zone = TriggerZone("z", Coordinates())
        zone.measure(Coordinates())
        assert not zone.latched
        assert zone.armed

    def test_observe_latches_once(self):
        """First in-range reading fires, later ones do not."""
        zone = TriggerZone("z", Coordinates())
        reading = zone.measure(Coordinates(0.0, 0.0, 1.0))
        assert zone.observe(reading)
        assert zone.latched
        assert not zone.observe(reading)

    def test_reset_rearms(self):
        """reset() clears the latch."""
        zone = TriggerZone("z", Coordinates())
        zone.observe(zone.measure(Coordinates()))
        zone.reset()
        assert zone.armed
        assert zone.observe(zone.measure(Coordinates()))

    def test_reset_requiring_exit(self):
        """With require_exit the zone stays quiet until the observer leaves."""
        zone = TriggerZone("z", Coordinates(), radius=2.0)
        zone.observe(zone.measure(Coordinates()))
        zone.reset(require_exit=True)

        assert not zone.latched
        assert not zone.armed
        assert not zone.observe(zone.measure(Coordinates()))
        assert not zone.observe(zone.measure(Coordinates(0.0, 0.0, 5.0)))
        assert zone.armed
        assert zone.observe(zone.measure(Coordinates()))


class TestProximityMonitor:
    """Tests for per-frame sampling."""

    def test_fires_when_inside(self):
        """Observer 1.5m from a 2.0m hotspot fires one proximity trigger."""
        monitor, zone, rig, emitted = make_monitor()
        rig.update_camera((0.0, 0.0, 1.5))

        readings = monitor.tick()

        assert readings[0].fired
        assert readings[0].distance == pytest.approx(1.5)
        assert len(emitted) == 1
        event = emitted[0]
        assert isinstance(event, TriggerEvent)
        assert event.source == TriggerSource.PROXIMITY
        assert event.target_id == "fountain"
        assert zone.latched

    def test_does_not_fire_outside(self):
        """Observer outside the radius fires nothing."""
        monitor, zone, rig, emitted = make_monitor()
        rig.update_camera((0.0, 0.0, 3.0))

        readings = monitor.tick()

        assert not readings[0].in_range
        assert emitted == []

    def test_fires_once_while_standing_inside(self):
        """Repeated frames inside the zone emit one event."""
        monitor, _, rig, emitted = make_monitor()
        rig.update_camera((0.0, 0.0, 1.0))

        for _ in range(100):
            monitor.tick()

        assert len(emitted) == 1
        assert monitor.fired == 1

    @pytest.mark.parametrize("mode", [
        SessionMode.ENTERING_MEDIA,
        SessionMode.MEDIA_ACTIVE,
        SessionMode.EXITING_MEDIA,
    ])
    def test_skipped_outside_exploration(self, mode):
        """No sampling at all unless exploring."""
        monitor, zone, rig, emitted = make_monitor(mode=mode)
        rig.update_camera((0.0, 0.0, 0.0))

        assert monitor.tick() == []
        assert emitted == []
        assert not zone.latched

    def test_skipped_without_observer(self):
        """No position yet means no sampling."""
        monitor, _, _, emitted = make_monitor()
        assert monitor.tick() == []
        assert emitted == []

    def test_uses_tracked_origin_when_immersive(self):
        """The headset origin drives proximity in immersive sessions."""
        monitor, _, rig, emitted = make_monitor()
        rig.update_camera((0.0, 0.0, 10.0))
        rig.set_immersive(True)
        rig.update_tracked_origin((0.0, 0.0, 0.5))

        monitor.tick()

        assert len(emitted) == 1

    def test_reset_all(self):
        """reset_all re-arms every zone."""
        monitor, zone, rig, emitted = make_monitor()
        rig.update_camera((0.0, 0.0, 0.0))
        monitor.tick()
        monitor.reset_all()
        monitor.tick()
        assert len(emitted) == 2

    def test_zone_lookup(self):
        """Zones are found by id."""
        monitor, zone, _, _ = make_monitor()
        assert monitor.zone("fountain") is zone
        assert monitor.zone("missing") is None

    def test_emit_optional(self):
        """Without an emitter the reading still reports the hit."""
        state = SessionState()
        zone = TriggerZone("z", Coordinates())
        rig = ObserverRig()
        rig.update_camera((0.0, 0.0, 0.0))
        monitor = ProximityMonitor(state, [zone], rig)
        assert monitor.tick()[0].fired


# Random walks in and around a 2m zone
walk_strategy = st.lists(
    st.tuples(
        st.floats(min_value=-5.0, max_value=5.0),
        st.floats(min_value=-5.0, max_value=5.0),
        st.floats(min_value=-5.0, max_value=5.0),
    ),
    min_size=1,
    max_size=60,
)


class TestLatchOnceProperty:
    """Property: at most one trigger per zone between resets."""

    @given(walk=walk_strategy)
    @settings(max_examples=200)
    def test_at_most_one_trigger(self, walk):
        """Any walk emits zero or one event."""
        monitor, _, rig, emitted = make_monitor()
        for point in walk:
            rig.update_camera(point)
            monitor.tick()
        assert len(emitted) <= 1

    @given(walk=walk_strategy)
    @settings(max_examples=200)
    def test_fires_iff_walk_enters(self, walk):
        """An event is emitted exactly when some point is within the radius."""
        monitor, zone, rig, emitted = make_monitor()
        entered = any(zone.measure(Coordinates.of(p)).in_range for p in walk)
        for point in walk:
            rig.update_camera(point)
            monitor.tick()
        assert (len(emitted) == 1) == entered
