"""Tunable thresholds for the spectral engine and gesture classifiers.

Configuration is plain dataclasses. Values outside their valid range are
clamped rather than rejected, so a hand-edited YAML file can never stop the
engines from running.

Example YAML:

    spectral:
      sensitivity: 1.4
      smoothing: 0.8
      beat_threshold: 1.25
    gestures:
      swipe_velocity: 0.06
      swipe_cooldown: 0.5
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import yaml

from cuesense.smoothing import clamp

logger = logging.getLogger("cuesense.config")

SENSITIVITY_RANGE = (0.1, 3.0)
SMOOTHING_RANGE = (0.1, 0.95)


def _known_keys(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        logger.debug("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return {k: v for k, v in data.items() if k in names}


@dataclass
class SpectralConfig:
    """Band layout, smoothing and onset detection settings for audio."""

    sensitivity: float = 1.0
    smoothing: float = 0.85
    max_magnitude: float = 255.0
    volume_threshold: float = 0.01
    decay_factor: float = 0.95

    # Band edges in Hz
    bass_range: tuple[float, float] = (20.0, 250.0)
    mid_range: tuple[float, float] = (250.0, 4000.0)
    treble_range: tuple[float, float] = (4000.0, 20000.0)

    beat_history: int = 10
    beat_threshold: float = 1.3
    beat_min_interval: float = 0.2  # seconds

    peak_history: int = 5
    peak_threshold: float = 0.7
    peak_multiplier: float = 1.5
    peak_min_interval: float = 0.1  # seconds

    def __post_init__(self):
        self.sensitivity = clamp(float(self.sensitivity), *SENSITIVITY_RANGE)
        self.smoothing = clamp(float(self.smoothing), *SMOOTHING_RANGE)
        self.decay_factor = clamp(float(self.decay_factor), 0.0, 1.0)
        self.max_magnitude = max(float(self.max_magnitude), 1e-9)
        self.bass_range = tuple(self.bass_range)
        self.mid_range = tuple(self.mid_range)
        self.treble_range = tuple(self.treble_range)
        self.beat_history = max(1, int(self.beat_history))
        self.peak_history = max(1, int(self.peak_history))
        self.beat_min_interval = max(0.0, float(self.beat_min_interval))
        self.peak_min_interval = max(0.0, float(self.peak_min_interval))

    @classmethod
    def from_dict(cls, data: dict) -> SpectralConfig:
        return cls(**_known_keys(cls, data))


@dataclass
class GestureConfig:
    """Thresholds, smoothing factors and cooldowns for the classifiers."""

    smoothing: float = 0.8
    follow_smoothing: float = 0.7

    thumb_extension_margin: float = 0.05
    finger_extension_margin: float = 0.02

    pinch_scale: float = 10.0
    pinch_activation: float = 0.3

    swipe_velocity: float = 0.05
    swipe_axis_ratio: float = 1.5
    swipe_cooldown: float = 0.5  # seconds

    open_palm_min_fingers: int = 4
    reset_cooldown: float = 0.0  # seconds, 0 fires every qualifying frame

    lean_amplification: float = 2.0

    def __post_init__(self):
        self.smoothing = clamp(float(self.smoothing), 0.0, 0.99)
        self.follow_smoothing = clamp(float(self.follow_smoothing), 0.0, 0.99)
        self.pinch_activation = clamp(float(self.pinch_activation))
        self.open_palm_min_fingers = int(clamp(int(self.open_palm_min_fingers), 1, 5))
        self.swipe_axis_ratio = max(1.0, float(self.swipe_axis_ratio))
        self.swipe_cooldown = max(0.0, float(self.swipe_cooldown))
        self.reset_cooldown = max(0.0, float(self.reset_cooldown))

    @classmethod
    def from_dict(cls, data: dict) -> GestureConfig:
        return cls(**_known_keys(cls, data))


@dataclass
class EngineConfig:
    """Top-level configuration for an engine context."""

    spectral: SpectralConfig = field(default_factory=SpectralConfig)
    gestures: GestureConfig = field(default_factory=GestureConfig)
    profiling: bool = True

    def to_dict(self) -> dict:
        data = asdict(self)
        for band in ("bass_range", "mid_range", "treble_range"):
            data["spectral"][band] = list(data["spectral"][band])
        return data

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        return cls(
            spectral=SpectralConfig.from_dict(data.get("spectral") or {}),
            gestures=GestureConfig.from_dict(data.get("gestures") or {}),
            profiling=bool(data.get("profiling", True)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path | None = None) -> str:
        """Serialize to YAML. Writes to `path` when given."""
        text = yaml.safe_dump(self.to_dict(), sort_keys=False)
        if path is not None:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        return text
