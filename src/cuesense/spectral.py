"""Spectral band analysis with beat and peak detection.

Consumes one frequency-magnitude array per audio tick (typically 8-bit
analyser output, 0-255 per bin) and produces:

- raw and smoothed band energies for bass, mid, treble and overall
- beat events from a rolling bass-energy history
- peak events from a shorter rolling overall-energy history

Usage:
    engine = SpectralEngine()
    engine.on_beat(lambda intensity: print(f"beat {intensity:.2f}"))

    # In the render loop:
    engine.update(analyser_bins, sample_rate=44100, active=player.is_playing)
    bass = engine.smoothed.bass
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, ClassVar, Optional, Sequence, Union

import numpy as np

from cuesense.config import SMOOTHING_RANGE, SENSITIVITY_RANGE, SpectralConfig
from cuesense.dispatch import DispatchRegistry
from cuesense.metrics import MetricsCollector
from cuesense.profiler import PipelineProfiler
from cuesense.smoothing import RollingMean, clamp, ema

logger = logging.getLogger("cuesense.spectral")

FrequencyFrame = Union[np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class BandEnergy:
    """Normalized energy per band, each in [0, 1]."""
    bass: float = 0.0
    mid: float = 0.0
    treble: float = 0.0
    overall: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class BeatEvent:
    slot: ClassVar[str] = "beat"
    intensity: float
    timestamp: float


@dataclass
class PeakEvent:
    slot: ClassVar[str] = "peak"
    intensity: float
    timestamp: float


class OnsetDetector:
    """Energy-history onset detector with a minimum spacing between onsets.

    An onset fires when the value exceeds `floor` and `multiplier` times the
    mean of the recent history (which includes the value itself), and at
    least `min_interval` seconds have passed since the previous onset.
    """

    def __init__(
        self,
        history: int,
        multiplier: float,
        min_interval: float,
        floor: float = 0.0,
    ):
        self.multiplier = multiplier
        self.min_interval = min_interval
        self.floor = floor
        self._history = RollingMean(capacity=history)
        self.last_onset: Optional[float] = None

    def configure(
        self,
        history: int,
        multiplier: float,
        min_interval: float,
        floor: float = 0.0,
    ):
        """Apply new settings, keeping the most recent history."""
        self.multiplier = multiplier
        self.min_interval = min_interval
        self.floor = floor
        if history != self._history.capacity:
            self._history.resize(history)

    def check(self, value: float, timestamp: float) -> bool:
        mean = self._history.push(value)
        if value <= self.floor or value <= mean * self.multiplier:
            return False
        if self.last_onset is not None and timestamp - self.last_onset < self.min_interval:
            return False
        self.last_onset = timestamp
        return True

    def reset(self):
        self._history.clear()
        self.last_onset = None


class SpectralEngine:
    """Turns frequency-magnitude frames into band energies and onset events.

    State is only replaced at the end of a tick, under a lock, so readers on
    another cadence always see a complete snapshot.
    """

    def __init__(
        self,
        config: Optional[SpectralConfig] = None,
        registry: Optional[DispatchRegistry] = None,
        profiler: Optional[PipelineProfiler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or SpectralConfig()
        self.registry = registry or DispatchRegistry()
        self.profiler = profiler or PipelineProfiler()
        self.metrics = metrics

        self._lock = threading.Lock()
        self._raw = BandEnergy()
        self._smoothed = BandEnergy()
        self._last_timestamp = 0.0
        self._ticks = 0

        self._beats = OnsetDetector(
            history=self.config.beat_history,
            multiplier=self.config.beat_threshold,
            min_interval=self.config.beat_min_interval,
        )
        self._peaks = OnsetDetector(
            history=self.config.peak_history,
            multiplier=self.config.peak_multiplier,
            min_interval=self.config.peak_min_interval,
            floor=self.config.peak_threshold,
        )

    # Configuration

    def set_sensitivity(self, value: float):
        self.config.sensitivity = clamp(float(value), *SENSITIVITY_RANGE)

    def set_smoothing(self, value: float):
        self.config.smoothing = clamp(float(value), *SMOOTHING_RANGE)

    @property
    def sensitivity(self) -> float:
        return self.config.sensitivity

    @property
    def smoothing(self) -> float:
        return self.config.smoothing

    # Callbacks

    def on_beat(self, callback: Callable[[float], None]):
        """Add a beat listener. Listeners accumulate; see remove_beat_callback."""
        self.registry.subscribe("beat", callback)

    def remove_beat_callback(self, callback: Callable[[float], None]) -> bool:
        return self.registry.unsubscribe("beat", callback)

    def on_peak(self, callback: Callable[[float], None]):
        self.registry.subscribe("peak", callback)

    # Analysis

    def band_bins(self, bin_count: int, sample_rate: float) -> Optional[dict[str, tuple[int, int]]]:
        """Inclusive bin index ranges for each band.

        Returns None when the sample rate yields non-finite bin positions.
        """
        nyquist = sample_rate / 2.0
        ranges = {
            "bass": self.config.bass_range,
            "mid": self.config.mid_range,
            "treble": self.config.treble_range,
        }
        result = {}
        for name, (lo, hi) in ranges.items():
            start = lo / nyquist * bin_count
            end = hi / nyquist * bin_count
            if not (math.isfinite(start) and math.isfinite(end)):
                return None
            result[name] = (int(math.floor(start)), int(math.floor(end)))
        return result

    def _band_value(self, bins: np.ndarray, start: int, end: int) -> float:
        segment = bins[max(0, start):end + 1]
        if segment.size == 0:
            return 0.0
        average = float(segment.mean())
        return clamp(average / self.config.max_magnitude * self.config.sensitivity)

    def analyze(self, frequencies: FrequencyFrame, sample_rate: float) -> Optional[BandEnergy]:
        """Compute raw band energies for one frame without touching state.

        Returns None when the frame cannot be analyzed.
        """
        if frequencies is None or sample_rate is None:
            return None
        sample_rate = float(sample_rate)
        if not math.isfinite(sample_rate) or sample_rate <= 0:
            return None

        bins = np.asarray(frequencies, dtype=np.float64)
        if bins.ndim != 1 or bins.size == 0:
            return None
        bins = np.clip(np.nan_to_num(bins, nan=0.0, posinf=self.config.max_magnitude), 0.0, None)

        ranges = self.band_bins(bins.size, sample_rate)
        if ranges is None:
            return None
        return BandEnergy(
            bass=self._band_value(bins, *ranges["bass"]),
            mid=self._band_value(bins, *ranges["mid"]),
            treble=self._band_value(bins, *ranges["treble"]),
            overall=self._band_value(bins, 0, bins.size - 1),
        )

    def update(
        self,
        frequencies: Optional[FrequencyFrame],
        sample_rate: Optional[float],
        active: bool = True,
        timestamp: Optional[float] = None,
    ) -> list[BeatEvent | PeakEvent]:
        """Run one audio tick. Returns the onset events fired on this tick.

        When `active` is False the smoothed bands decay instead. A missing
        sample rate or empty frame leaves every value untouched.
        """
        now = time.monotonic() if timestamp is None else timestamp
        t_start = time.perf_counter()

        if not active:
            self.decay(timestamp=now)
            self._record(t_start, skipped=False)
            return []

        with self.profiler.stage("band_analysis"):
            raw = self.analyze(frequencies, sample_rate)

        if raw is None:
            logger.debug("Skipping spectral tick: no frame or sample rate")
            self._record(t_start, skipped=True)
            return []

        alpha = self.config.smoothing
        smoothed = BandEnergy(
            bass=clamp(ema(self._smoothed.bass, raw.bass, alpha)),
            mid=clamp(ema(self._smoothed.mid, raw.mid, alpha)),
            treble=clamp(ema(self._smoothed.treble, raw.treble, alpha)),
            overall=clamp(ema(self._smoothed.overall, raw.overall, alpha)),
        )

        events: list[BeatEvent | PeakEvent] = []
        with self.profiler.stage("onset_detection"):
            self._sync_detectors()
            if self._beats.check(raw.bass, now):
                events.append(BeatEvent(intensity=raw.bass, timestamp=now))
            if self._peaks.check(raw.overall, now):
                events.append(PeakEvent(intensity=raw.overall, timestamp=now))

        with self._lock:
            self._raw = raw
            self._smoothed = smoothed
            self._last_timestamp = now
            self._ticks += 1

        with self.profiler.stage("dispatch"):
            for event in events:
                self.registry.emit(event.slot, event.intensity)
                if self.metrics is not None:
                    self.metrics.record_event(event.slot)

        self._record(t_start, skipped=False)
        return events

    def _sync_detectors(self):
        """Pick up onset settings changed on the shared config since the last tick."""
        cfg = self.config
        self._beats.configure(
            history=cfg.beat_history,
            multiplier=cfg.beat_threshold,
            min_interval=cfg.beat_min_interval,
        )
        self._peaks.configure(
            history=cfg.peak_history,
            multiplier=cfg.peak_multiplier,
            min_interval=cfg.peak_min_interval,
            floor=cfg.peak_threshold,
        )

    def _record(self, t_start: float, skipped: bool):
        if self.metrics is not None:
            self.metrics.record_tick("audio", time.perf_counter() - t_start, skipped=skipped)

    def decay(self, timestamp: Optional[float] = None):
        """Fade smoothed bands toward zero for a tick without audio."""
        factor = self.config.decay_factor
        with self._lock:
            s = self._smoothed
            self._smoothed = BandEnergy(
                bass=s.bass * factor,
                mid=s.mid * factor,
                treble=s.treble * factor,
                overall=s.overall * factor,
            )
            if timestamp is not None:
                self._last_timestamp = timestamp

    # Readers

    @property
    def raw(self) -> BandEnergy:
        with self._lock:
            return self._raw

    @property
    def smoothed(self) -> BandEnergy:
        with self._lock:
            return self._smoothed

    @property
    def tick_count(self) -> int:
        return self._ticks

    def frequency_data(self) -> dict[str, dict[str, float]]:
        with self._lock:
            return {"raw": self._raw.to_dict(), "smoothed": self._smoothed.to_dict()}

    def audio_features(self) -> dict:
        """Smoothed values in the shape visualizers read every frame."""
        with self._lock:
            s = self._smoothed
            timestamp = self._last_timestamp
        return {
            "volume": s.overall,
            "bass": s.bass,
            "mid": s.mid,
            "treble": s.treble,
            "is_active": s.overall > self.config.volume_threshold,
            "timestamp": timestamp,
        }

    def reset(self):
        """Return to the silent initial state. Listeners are kept."""
        with self._lock:
            self._raw = BandEnergy()
            self._smoothed = BandEnergy()
            self._ticks = 0
        self._beats.reset()
        self._peaks.reset()
