"""
Audio Channels - Volume-bearing handles over playable resources.

A logical sound (the exploration ambience, the media soundtrack) may be
carried by several physical resources at once, e.g. a spatialised
emitter plus a flat fallback element. Each resource gets its own
AudioChannel; a ChannelGroup bundles the channels of one logical sound
so they are always faded together.

Capability lookup happens once, at configuration time: a source either
is a PlayableResource or exposes one through HasAudioChannel. Sources
that yield nothing are skipped, so a group may hold zero, one, or two
channels.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterable, Iterator, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class PlayableResource(Protocol):
    """Anything that plays audio and has a volume."""

    volume: float

    @property
    def paused(self) -> bool: ...

    def play(self) -> Awaitable[Any] | None:
        """Start playback. May raise (or return an awaitable that raises)."""
        ...

    def pause(self) -> None: ...

    def rewind(self) -> None:
        """Seek back to the start."""
        ...


@runtime_checkable
class HasAudioChannel(Protocol):
    """An entity that carries a sound sub-component."""

    def audio_resource(self) -> PlayableResource | None: ...


class AudioChannel:
    """
    One physical resource under crossfade control.

    The crossfade engine is the only writer of `current_volume`,
    `target_volume` and `active_fade`.
    """

    def __init__(self, name: str, resource: PlayableResource):
        self.name = name
        self.resource = resource
        self.target_volume = float(resource.volume)
        self.active_fade: asyncio.Task | None = None
        self.autoplay_blocked = False

    def __repr__(self) -> str:
        return (
            f"AudioChannel({self.name!r}, volume={self.current_volume:.3f}, "
            f"target={self.target_volume:.3f}, playing={self.is_playing})"
        )

    @property
    def current_volume(self) -> float:
        return float(self.resource.volume)

    @current_volume.setter
    def current_volume(self, value: float) -> None:
        self.resource.volume = min(1.0, max(0.0, float(value)))

    @property
    def is_playing(self) -> bool:
        return not self.resource.paused

    @property
    def fading(self) -> bool:
        return self.active_fade is not None and not self.active_fade.done()

    def stop(self) -> None:
        self.resource.pause()

    def cancel_fade(self) -> bool:
        """Cancel the running fade, if any. Returns True if one was cancelled."""
        if self.fading:
            self.active_fade.cancel()
            return True
        return False


def resolve_source(name: str, source: Any) -> AudioChannel | None:
    """
    Turn a configured audio source into a channel.

    Args:
        name: Channel name for logs.
        source: A PlayableResource, a HasAudioChannel entity, or None.

    Returns:
        AudioChannel, or None when the source carries no sound.

    Raises:
        TypeError: If the source is neither capability.
    """
    if source is None:
        return None
    if isinstance(source, HasAudioChannel):
        resource = source.audio_resource()
        if resource is None:
            logger.warning(f"Audio source '{name}' has no sound component; skipping")
            return None
        return AudioChannel(name, resource)
    if isinstance(source, PlayableResource):
        return AudioChannel(name, source)
    raise TypeError(
        f"Audio source '{name}' must be a PlayableResource or HasAudioChannel, "
        f"got {type(source).__name__}"
    )


@dataclass
class ChannelGroup:
    """All channels carrying one logical sound."""
    name: str
    channels: list[AudioChannel] = field(default_factory=list)

    @classmethod
    def from_sources(cls, name: str, sources: Iterable[Any]) -> ChannelGroup:
        channels = []
        for index, source in enumerate(sources):
            channel = resolve_source(f"{name}[{index}]", source)
            if channel is not None:
                channels.append(channel)
        if not channels:
            logger.info(f"Channel group '{name}' has no audio channels")
        return cls(name=name, channels=channels)

    def __iter__(self) -> Iterator[AudioChannel]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self.channels)

    @property
    def volumes(self) -> list[float]:
        return [channel.current_volume for channel in self.channels]

    @property
    def any_playing(self) -> bool:
        return any(channel.is_playing for channel in self.channels)
