"""Explicit engine context: one registry shared by both pipelines.

Instead of process-wide manager singletons, an application builds one
EngineContext and hands its parts to whatever needs them. Tests build as
many isolated contexts as they like.

    ctx = EngineContext.from_yaml("cuesense.yml")
    ctx.registry.on_beat(particles.pulse)
    ctx.registry.on_follow(brush.move)

    ctx.gestures.enable()
    # audio cadence
    ctx.spectral.update(bins, sample_rate, active=playing)
    # camera cadence
    ctx.gestures.process(frame)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from cuesense.config import EngineConfig
from cuesense.detector import LandmarkDetector
from cuesense.dispatch import DispatchRegistry
from cuesense.metrics import MetricsCollector
from cuesense.pipeline import GesturePipeline
from cuesense.profiler import PipelineProfiler
from cuesense.spectral import SpectralEngine

logger = logging.getLogger("cuesense.context")


class EngineContext:
    """Owns the registry, both engines, the profiler and the metrics collector.

    Events are counted by the engines themselves, so clearing listeners on
    the registry does not affect the metrics.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        detector_factory: Optional[Callable[[], LandmarkDetector]] = None,
    ):
        self.config = config or EngineConfig()
        self.registry = DispatchRegistry()
        self.profiler = PipelineProfiler()
        self.profiler.enabled = self.config.profiling
        self.metrics = MetricsCollector()

        self.spectral = SpectralEngine(
            config=self.config.spectral,
            registry=self.registry,
            profiler=self.profiler,
            metrics=self.metrics,
        )
        self.gestures = GesturePipeline(
            config=self.config.gestures,
            registry=self.registry,
            detector_factory=detector_factory,
            profiler=self.profiler,
            metrics=self.metrics,
        )

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs) -> EngineContext:
        return cls(config=EngineConfig.from_yaml(path), **kwargs)

    def render_metrics(self) -> str:
        self.metrics.set_listener_errors(self.registry.error_count)
        return self.metrics.render()

    def close(self):
        """Stop gesture recognition and release the detector."""
        self.gestures.disable()
        self.gestures.close()
        logger.debug("Engine context closed")

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
