"""Per-stage tick timing shared by the audio and camera cadences.

Both engines record into the same profiler, possibly from different
threads, so every window is guarded by one lock.

Usage:
    profiler = PipelineProfiler(budget_ms=16.7)

    with profiler.stage("band_analysis"):
        raw = engine.analyze(spectrum, 44100)

    print(profiler.summary())
    print(profiler.over_budget())
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Iterator

import numpy as np

STAGES = ("band_analysis", "onset_detection", "preprocess", "classification", "dispatch")


@dataclass
class StageStats:
    """Rolling timing statistics for one stage, in milliseconds."""
    name: str
    avg_ms: float
    min_ms: float
    max_ms: float
    p95_ms: float
    call_count: int

    def to_dict(self) -> dict:
        data = asdict(self)
        del data["name"]
        data["calls"] = data.pop("call_count")
        return {k: round(v, 3) if isinstance(v, float) else v for k, v in data.items()}


class PipelineProfiler:
    """Rolling-window timing of named stages.

    Stages outside STAGES are created on first use. `budget_ms` is the time
    one tick may spend in a single stage; over_budget() reports the stages
    whose p95 exceeds it.
    """

    def __init__(self, window_size: int = 120, budget_ms: float = 1000.0 / 60.0):
        self.window_size = window_size
        self.budget_ms = budget_ms
        self.enabled = True
        self._lock = threading.Lock()
        self._windows: dict[str, deque[float]] = {}
        self._calls: dict[str, int] = {}
        for name in STAGES:
            self._register(name)

    def _register(self, name: str):
        self._windows[name] = deque(maxlen=self.window_size)
        self._calls[name] = 0

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block under `name`, even if it raises."""
        if not self.enabled:
            yield
            return

        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            with self._lock:
                if name not in self._windows:
                    self._register(name)
                self._windows[name].append(elapsed_ms)
                self._calls[name] += 1

    def get_stage_stats(self, name: str) -> StageStats | None:
        with self._lock:
            window = self._windows.get(name)
            if not window:
                return None
            samples = np.fromiter(window, dtype=np.float64)
            calls = self._calls[name]

        return StageStats(
            name=name,
            avg_ms=float(samples.mean()),
            min_ms=float(samples.min()),
            max_ms=float(samples.max()),
            p95_ms=float(np.percentile(samples, 95)),
            call_count=calls,
        )

    def summary(self) -> dict[str, dict]:
        """Stats for every stage that has recorded at least one call."""
        with self._lock:
            names = list(self._windows)
        result = {}
        for name in names:
            stats = self.get_stage_stats(name)
            if stats is not None:
                result[name] = stats.to_dict()
        return result

    def over_budget(self) -> list[str]:
        """Stages whose p95 exceeds the per-tick budget."""
        return [
            name for name, stats in self.summary().items()
            if stats["p95_ms"] > self.budget_ms
        ]

    def reset(self):
        with self._lock:
            for window in self._windows.values():
                window.clear()
            for name in self._calls:
                self._calls[name] = 0
