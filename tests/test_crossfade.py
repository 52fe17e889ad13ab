"""
Crossfade Engine Tests - Linear ramps, supersession and autoplay refusal.

All timing runs on a VirtualClock, so a 1s fade takes no real time and
ends at exactly the virtual second it was scheduled for.
"""

import asyncio

import numpy as np
import pytest

from immersion.audio import AudioChannel, AudioCrossfadeEngine, ChannelGroup, FadeOutcome, linear_ramp
from immersion.audio.channel import resolve_source
from immersion.config import AudioConfig
from immersion.testing import FakeAudioResource, FakeSoundEntity, VirtualClock

STEP = 0.05


def make_engine(*exploration, media=(), clock=None):
    clock = clock or VirtualClock()
    engine = AudioCrossfadeEngine(
        exploration=ChannelGroup.from_sources("exploration", exploration),
        media=ChannelGroup.from_sources("media", media),
        config=AudioConfig(),
        sleep=clock.sleep,
    )
    return engine, clock


class TestLinearRamp:
    """Tests for linear_ramp."""

    def test_levels(self):
        """Evenly spaced levels ending on the target."""
        levels = linear_ramp(0.0, 1.0, 200, 50)
        np.testing.assert_allclose(levels, [0.25, 0.5, 0.75, 1.0])

    def test_step_count_rounds_up(self):
        """A partial step still counts as a step."""
        assert len(linear_ramp(0.0, 1.0, 1020, 50)) == 21

    def test_zero_duration(self):
        """Zero duration yields no intermediate levels."""
        assert len(linear_ramp(0.6, 0.0, 0, 50)) == 0

    def test_descending(self):
        """Ramps can go down."""
        levels = linear_ramp(0.6, 0.0, 800, 50)
        assert len(levels) == 16
        assert levels[-1] == 0.0
        assert np.all(np.diff(levels) < 0)

    def test_invalid_step(self):
        """Step must be positive."""
        with pytest.raises(ValueError, match="step_ms must be > 0"):
            linear_ramp(0.0, 1.0, 100, 0)


class TestFadePrimitives:
    """Tests for fade_out / fade_in."""

    def test_fade_out_converges(self):
        """fade_out reaches silence within one step of its duration and stops."""
        ambience = FakeAudioResource("ambience", volume=0.6, playing=True)
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            return await clock.run(engine.fade_out(channel, 800))

        outcome = asyncio.run(scenario())

        assert outcome == FadeOutcome.COMPLETED
        assert abs(clock.now - 0.8) <= STEP
        assert channel.current_volume == 0.0
        assert ambience.paused
        assert channel.target_volume == 0.0

    def test_fade_in_converges(self):
        """fade_in starts playback and lands exactly on the target."""
        ambience = FakeAudioResource("ambience")
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            return await clock.run(engine.fade_in(channel, 0.6, 1000))

        outcome = asyncio.run(scenario())

        assert outcome == FadeOutcome.COMPLETED
        assert abs(clock.now - 1.0) <= STEP
        assert channel.current_volume == 0.6
        assert not ambience.paused
        assert ambience.volume_history[0] == 0.0
        assert len(ambience.volume_history) == 22  # reset + 20 steps + final

    def test_uneven_duration_within_one_step(self):
        """Durations that are not a multiple of the step overshoot by < 1 step."""
        engine, clock = make_engine(FakeAudioResource("ambience"))
        channel = engine.exploration.channels[0]

        async def scenario():
            await clock.run(engine.fade_in(channel, 0.5, 1020))

        asyncio.run(scenario())

        assert abs(clock.now - 1.02) <= STEP
        assert channel.current_volume == 0.5

    def test_fade_in_is_monotonic(self):
        """Every write moves towards the target."""
        ambience = FakeAudioResource("ambience")
        engine, clock = make_engine(ambience)

        async def scenario():
            await clock.run(engine.fade_in(engine.exploration.channels[0], 0.8, 500))

        asyncio.run(scenario())

        assert np.all(np.diff(ambience.volume_history) >= 0)

    def test_fade_out_skipped_when_stopped(self):
        """A stopped channel settles immediately with SKIPPED."""
        ambience = FakeAudioResource("ambience", volume=0.0, playing=False)
        engine, clock = make_engine(ambience)

        async def scenario():
            return await engine.fade_out(engine.exploration.channels[0], 800)

        assert asyncio.run(scenario()) == FadeOutcome.SKIPPED
        assert clock.now == 0.0
        assert ambience.volume_history == []

    def test_zero_duration_jumps(self):
        """A zero-length fade writes the end value at once."""
        ambience = FakeAudioResource("ambience", volume=0.6, playing=True)
        engine, clock = make_engine(ambience)

        async def scenario():
            return await clock.run(engine.fade_out(engine.exploration.channels[0], 0))

        assert asyncio.run(scenario()) == FadeOutcome.COMPLETED
        assert clock.now == 0.0
        assert ambience.volume == 0.0
        assert ambience.paused

    def test_invalid_target_volume(self):
        """Targets outside 0.0-1.0 are rejected."""
        engine, _ = make_engine(FakeAudioResource("ambience"))

        async def scenario():
            engine.fade_in(engine.exploration.channels[0], 1.5, 100)

        with pytest.raises(ValueError, match="target_volume must be 0.0-1.0"):
            asyncio.run(scenario())


class TestSupersession:
    """Property: one fade per channel; the newest fade wins."""

    def test_new_fade_cancels_running_fade(self):
        """A fade_out mid fade_in supersedes it without interleaved writes."""
        ambience = FakeAudioResource("ambience")
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            first = engine.fade_in(channel, 0.6, 1000)
            await clock.advance(0.3)
            second = engine.fade_out(channel, 800)
            second_outcome = await clock.run(second)
            first_outcome = await first
            return first_outcome, second_outcome

        first_outcome, second_outcome = asyncio.run(scenario())

        assert first_outcome == FadeOutcome.SUPERSEDED
        assert second_outcome == FadeOutcome.COMPLETED
        assert channel.current_volume == 0.0
        assert ambience.paused

        history = ambience.volume_history
        peak = history.index(max(history))
        assert max(history) == pytest.approx(0.18)
        assert np.all(np.diff(history[peak:]) <= 0)
        assert abs(clock.now - 1.1) <= STEP

    def test_fade_in_cancels_running_fade_out(self):
        """A fade_in right after a fade_out takes over from silence."""
        ambience = FakeAudioResource("ambience", volume=0.6, playing=True)
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            out = engine.fade_out(channel, 800)
            await clock.advance(0.2)
            fade_in = engine.fade_in(channel, 0.6, 1000)
            in_outcome = await clock.run(fade_in)
            out_outcome = await out
            return out_outcome, in_outcome

        out_outcome, in_outcome = asyncio.run(scenario())

        assert out_outcome == FadeOutcome.SUPERSEDED
        assert in_outcome == FadeOutcome.COMPLETED
        assert channel.current_volume == pytest.approx(0.6)
        assert not ambience.paused
        assert "pause" not in ambience.calls

        history = ambience.volume_history
        silence = history.index(0.0)
        assert silence > 0
        assert np.all(np.diff(history[:silence]) < 0)
        assert np.all(np.diff(history[silence:]) >= 0)
        assert history[-1] == pytest.approx(0.6)

    def test_superseded_fade_does_not_raise(self):
        """Awaiting a superseded fade returns instead of raising."""
        engine, clock = make_engine(FakeAudioResource("ambience"))
        channel = engine.exploration.channels[0]

        async def scenario():
            first = engine.fade_in(channel, 0.6, 1000)
            await clock.advance(0.1)
            engine.fade_in(channel, 0.3, 100)
            return await first

        assert asyncio.run(scenario()) == FadeOutcome.SUPERSEDED

    def test_cancel_fade_reports(self):
        """cancel_fade() is a no-op without a running fade."""
        channel = AudioChannel("c", FakeAudioResource())
        assert channel.cancel_fade() is False
        assert not channel.fading


class TestAutoplay:
    """Tests for refused playback."""

    def test_blocked_fade_in_still_completes(self):
        """Refused autoplay is recorded and the ramp carries on."""
        ambience = FakeAudioResource("ambience", block_autoplay=True)
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            return await clock.run(engine.fade_in(channel, 0.6, 1000))

        assert asyncio.run(scenario()) == FadeOutcome.COMPLETED
        assert channel.autoplay_blocked
        assert not channel.is_playing
        assert channel.current_volume == 0.6

    def test_retry_after_gesture(self):
        """retry_blocked() starts channels once playback is allowed."""
        ambience = FakeAudioResource("ambience", block_autoplay=True)
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]

        async def scenario():
            await clock.run(engine.fade_in(channel, 0.6, 1000))
            still_blocked = await engine.retry_blocked()
            ambience.allow_playback()
            started = await engine.retry_blocked()
            return still_blocked, started

        still_blocked, started = asyncio.run(scenario())

        assert still_blocked == 0
        assert started == 1
        assert channel.is_playing
        assert not channel.autoplay_blocked

    def test_retry_ignores_silent_channels(self):
        """Channels faded out are not restarted."""
        ambience = FakeAudioResource("ambience", block_autoplay=True)
        engine, clock = make_engine(ambience)
        channel = engine.exploration.channels[0]
        channel.autoplay_blocked = True
        channel.target_volume = 0.0
        ambience.allow_playback()

        assert asyncio.run(engine.retry_blocked()) == 0
        assert ambience.paused


class TestComposites:
    """Tests for the logical-sound composites."""

    def test_fans_out_in_parallel(self):
        """Both physical channels fade together and are joined."""
        emitter = FakeAudioResource("emitter", volume=0.6, playing=True)
        fallback = FakeAudioResource("fallback", volume=0.6, playing=True)
        engine, clock = make_engine(emitter, fallback)

        async def scenario():
            return await clock.run(engine.stop_exploration_audio())

        outcomes = asyncio.run(scenario())

        assert outcomes == [FadeOutcome.COMPLETED, FadeOutcome.COMPLETED]
        assert abs(clock.now - 0.8) <= STEP
        assert engine.exploration.volumes == [0.0, 0.0]
        assert not engine.exploration.any_playing

    def test_start_exploration_audio(self):
        """Exploration fades in to 0.6 over 1s."""
        engine, clock = make_engine(FakeAudioResource("ambience"))

        async def scenario():
            await clock.run(engine.start_exploration_audio())

        asyncio.run(scenario())

        assert engine.exploration.volumes == [0.6]
        assert abs(clock.now - 1.0) <= STEP

    def test_media_audio_cycle(self):
        """Media fades in to 0.8 over 1s, out over 0.5s, then rewinds."""
        soundtrack = FakeAudioResource("soundtrack")
        engine, clock = make_engine(media=[soundtrack])

        async def scenario():
            await clock.run(engine.start_media_audio())
            level = engine.media.volumes[0]
            started_out = clock.now
            await clock.run(engine.stop_media_audio())
            return level, clock.now - started_out

        level, fade_out_time = asyncio.run(scenario())

        assert level == 0.8
        assert abs(fade_out_time - 0.5) <= STEP
        assert soundtrack.paused
        assert soundtrack.calls[-1] == "rewind"

    def test_empty_group(self):
        """A logical sound with no channels completes at once."""
        engine, clock = make_engine()
        assert asyncio.run(engine.stop_exploration_audio()) == []
        assert engine.channels == []


class TestChannelResolution:
    """Tests for capability lookup at configuration time."""

    def test_entity_with_sound(self):
        """Entities expose their sound component."""
        resource = FakeAudioResource("emitter")
        channel = resolve_source("exploration[0]", FakeSoundEntity(resource))
        assert channel.resource is resource
        assert channel.name == "exploration[0]"

    def test_entity_without_sound(self):
        """Entities without sound are skipped."""
        assert resolve_source("x", FakeSoundEntity(None)) is None

    def test_none_source(self):
        assert resolve_source("x", None) is None

    def test_unsupported_source(self):
        """Anything else is a configuration error."""
        with pytest.raises(TypeError, match="must be a PlayableResource or HasAudioChannel"):
            resolve_source("x", object())

    def test_group_from_mixed_sources(self):
        """Groups keep only sources that resolve, named by position."""
        group = ChannelGroup.from_sources("exploration", [
            FakeSoundEntity(FakeAudioResource("emitter")),
            FakeSoundEntity(None),
            FakeAudioResource("fallback"),
        ])
        assert len(group) == 2
        assert [c.name for c in group] == ["exploration[0]", "exploration[2]"]

    def test_volume_is_clamped(self):
        """Writes outside 0.0-1.0 are clamped."""
        resource = FakeAudioResource()
        channel = AudioChannel("c", resource)
        channel.current_volume = 1.7
        assert resource.volume == 1.0
        channel.current_volume = -0.2
        assert resource.volume == 0.0
