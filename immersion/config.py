"""
Experience configuration.

Defines fade timings, trigger thresholds, transition delays and hotspot
layout. Every section validates itself on construction.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class AudioConfig:
    """Crossfade timings and levels.

    Args:
        step_ms: Ramp step interval. Every fade writes the volume once per step.
        exploration_volume: Target level of the ambient exploration sound.
        exploration_fade_out_ms: Ambient fade-out when entering media.
        exploration_fade_in_ms: Ambient fade-in when returning to exploration.
        media_volume: Target level of the media soundtrack.
        media_fade_in_ms: Soundtrack fade-in once media is playing.
        media_fade_out_ms: Soundtrack fade-out when leaving media.
    """

    step_ms: int = 50
    exploration_volume: float = 0.6
    exploration_fade_out_ms: int = 800
    exploration_fade_in_ms: int = 1000
    media_volume: float = 0.8
    media_fade_in_ms: int = 1000
    media_fade_out_ms: int = 500

    def __post_init__(self) -> None:
        if self.step_ms <= 0:
            raise ValueError(f"step_ms must be > 0, got {self.step_ms}")
        for name in ("exploration_volume", "media_volume"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be 0.0-1.0, got {value}")
        for name in (
            "exploration_fade_out_ms",
            "exploration_fade_in_ms",
            "media_fade_in_ms",
            "media_fade_out_ms",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass
class TriggerConfig:
    """Hit-testing thresholds (meters)."""

    proximity_radius: float = 2.0
    """Default hotspot radius for walk-in triggers."""

    pinch_threshold: float = 0.3
    """Max distance between a pinch point and a hotspot."""

    controller_reach: float = 2.0
    """Max distance between a controller and a hotspot on trigger press."""

    require_exit_before_retrigger: bool = False
    """After a reset, keep a zone quiet until the observer has left it once."""

    def __post_init__(self) -> None:
        for name in ("proximity_radius", "pinch_threshold", "controller_reach"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")


@dataclass
class TransitionConfig:
    """Delays around mode transitions."""

    ended_exit_delay_ms: int = 1000
    """Pause between playback completion and the automatic exit."""

    startup_audio_delay_ms: int = 500
    """Delay before the ambient sound fades in at startup."""

    def __post_init__(self) -> None:
        if self.ended_exit_delay_ms < 0:
            raise ValueError(f"ended_exit_delay_ms must be >= 0, got {self.ended_exit_delay_ms}")
        if self.startup_audio_delay_ms < 0:
            raise ValueError(
                f"startup_audio_delay_ms must be >= 0, got {self.startup_audio_delay_ms}"
            )


@dataclass
class HotspotConfig:
    """One interactive hotspot."""

    hotspot_id: str
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float | None = None
    """Proximity radius; None uses TriggerConfig.proximity_radius."""

    def __post_init__(self) -> None:
        if not self.hotspot_id:
            raise ValueError("hotspot_id must not be empty")
        self.position = tuple(float(v) for v in self.position)
        if len(self.position) != 3:
            raise ValueError(f"position must have 3 components, got {len(self.position)}")
        if self.radius is not None and self.radius <= 0:
            raise ValueError(f"radius must be > 0, got {self.radius}")


@dataclass
class ExperienceConfig:
    """Top-level configuration.

    Example:
        config = ExperienceConfig(
            hotspots=[HotspotConfig("fountain", position=(0.0, 1.0, -5.0))],
            audio=AudioConfig(exploration_volume=0.5),
        )

        config = ExperienceConfig.load("experience.json")
    """

    hotspots: list[HotspotConfig] = field(default_factory=list)
    audio: AudioConfig = field(default_factory=AudioConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    transitions: TransitionConfig = field(default_factory=TransitionConfig)
    frame_rate: float = 72.0

    def __post_init__(self) -> None:
        if self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be > 0, got {self.frame_rate}")
        ids = [h.hotspot_id for h in self.hotspots]
        if len(ids) != len(set(ids)):
            raise ValueError(f"hotspot ids must be unique, got {ids}")

    def radius_for(self, hotspot: HotspotConfig) -> float:
        return hotspot.radius if hotspot.radius is not None else self.triggers.proximity_radius

    @classmethod
    def default(cls) -> ExperienceConfig:
        """Single hotspot at the origin with stock timings."""
        return cls(hotspots=[HotspotConfig("hotspot")])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExperienceConfig:
        return cls(
            hotspots=[HotspotConfig(**h) for h in data.get("hotspots", [])],
            audio=AudioConfig(**data.get("audio", {})),
            triggers=TriggerConfig(**data.get("triggers", {})),
            transitions=TransitionConfig(**data.get("transitions", {})),
            frame_rate=data.get("frame_rate", 72.0),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for hotspot in data["hotspots"]:
            hotspot["position"] = list(hotspot["position"])
        return data

    @classmethod
    def load(cls, path: str | Path) -> ExperienceConfig:
        """Load configuration from a JSON file."""
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path
