"""cuesense - audio and gesture signal interpretation for live visuals."""

__version__ = "0.1.0"

from cuesense.config import EngineConfig, GestureConfig, SpectralConfig
from cuesense.context import EngineContext
from cuesense.dispatch import DispatchRegistry
from cuesense.spectral import SpectralEngine, BandEnergy, BeatEvent, PeakEvent
from cuesense.landmarks import LandmarkFrame, LandmarkPreprocessor, HandFeatures
from cuesense.gestures import (
    PinchClassifier, SwipeClassifier, OpenPalmClassifier,
    FollowClassifier, BodyLeanClassifier, GestureState,
)
from cuesense.pipeline import GesturePipeline, GestureSnapshot
from cuesense.profiler import PipelineProfiler
from cuesense.metrics import MetricsCollector
