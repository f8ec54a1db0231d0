"""Camera-cadence gesture pipeline: landmarks -> features -> classifiers -> dispatch."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from cuesense.config import GestureConfig
from cuesense.detector import LandmarkDetector
from cuesense.dispatch import DispatchRegistry
from cuesense.gestures import (
    BodyLeanClassifier,
    FollowClassifier,
    FollowUpdate,
    LeanUpdate,
    OpenPalmClassifier,
    PinchClassifier,
    PinchUpdate,
    ResetEvent,
    SwipeClassifier,
    SwipeEvent,
)
from cuesense.landmarks import (
    NUM_HAND_LANDMARKS,
    NUM_POSE_LANDMARKS,
    LandmarkFrame,
    LandmarkPreprocessor,
    as_landmarks,
)
from cuesense.metrics import MetricsCollector
from cuesense.profiler import PipelineProfiler

logger = logging.getLogger("cuesense.pipeline")

GestureUpdate = PinchUpdate | SwipeEvent | ResetEvent | FollowUpdate | LeanUpdate


@dataclass(frozen=True)
class GestureSnapshot:
    """Latest fully-computed gesture values, safe to read from any cadence."""
    pinch: float = 0.0
    pinching: bool = False
    swipe_cooling: bool = False
    open_palm: bool = False
    follow_x: float = 0.0
    follow_y: float = 0.0
    following: bool = False
    body_lean: float = 0.0
    timestamp: Optional[float] = None


@dataclass
class PipelineStats:
    """Runtime performance statistics."""
    fps: float
    avg_latency_ms: float
    total_frames: int
    skipped_frames: int
    total_updates: int
    profiler_summary: dict = field(default_factory=dict)


class GesturePipeline:
    """Feeds each landmark frame through every classifier and publishes updates.

    The first hand in a frame drives pinch, swipe, open palm and follow; the
    pose drives body lean. Frames with no hand leave the hand classifiers
    untouched, frames with no pose leave body lean untouched.

    Recognition starts disabled. enable() and disable() bracket a session;
    disable() releases the detector and returns every classifier to its
    inactive default so the next session starts cold.
    """

    def __init__(
        self,
        config: Optional[GestureConfig] = None,
        registry: Optional[DispatchRegistry] = None,
        detector_factory: Optional[Callable[[], LandmarkDetector]] = None,
        profiler: Optional[PipelineProfiler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or GestureConfig()
        self.registry = registry or DispatchRegistry()
        self.profiler = profiler or PipelineProfiler()
        self.metrics = metrics
        self._detector_factory = detector_factory
        self.detector: Optional[LandmarkDetector] = None

        self.preprocessor = LandmarkPreprocessor(self.config)
        self.pinch = PinchClassifier(self.config)
        self.swipe = SwipeClassifier(self.config)
        self.open_palm = OpenPalmClassifier(self.config)
        self.follow = FollowClassifier(self.config)
        self.body_lean = BodyLeanClassifier(self.config)

        self._lock = threading.Lock()
        self._enabled = False
        self._snapshot = GestureSnapshot()
        self._frame_times: deque = deque(maxlen=60)
        self._total_frames = 0
        self._skipped_frames = 0
        self._total_updates = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self):
        """Start a recognition session, creating the detector if configured."""
        if self._enabled:
            return
        if self._detector_factory is not None and self.detector is None:
            self.detector = self._detector_factory()
        self._enabled = True
        logger.info("Gesture recognition enabled")
        self._emit("gesture_start")

    def disable(self):
        """Stop recognition, release the detector and clear all gesture state."""
        if not self._enabled:
            return
        self._enabled = False
        self.close()
        self.reset()
        logger.info("Gesture recognition disabled")
        self._emit("gesture_end")

    def toggle(self) -> bool:
        if self._enabled:
            self.disable()
        else:
            self.enable()
        return self._enabled

    def process_image(self, frame_rgb: np.ndarray) -> list[GestureUpdate]:
        """Run the detector on an RGB frame, then classify the landmarks."""
        if not self._enabled or self.detector is None:
            return []
        return self.process(self.detector.detect(frame_rgb))

    def process(self, frame: Optional[LandmarkFrame]) -> list[GestureUpdate]:
        """Classify one landmark frame. Returns the updates that were dispatched.

        A missing frame (None) is counted as skipped, like an empty one.
        """
        if not self._enabled:
            return []

        t_start = time.perf_counter()
        self._total_frames += 1

        if frame is None:
            self._skipped_frames += 1
            logger.debug("Skipping missing landmark frame")
            self._record(t_start, hands=0, skipped=True)
            return []

        now = time.monotonic() if frame.timestamp is None else frame.timestamp

        hand = as_landmarks(frame.primary_hand, NUM_HAND_LANDMARKS)
        pose = as_landmarks(frame.pose, NUM_POSE_LANDMARKS)
        if hand is None and pose is None:
            self._skipped_frames += 1
            logger.debug("Skipping landmark frame with no usable hand or pose")
            self._record(t_start, hands=0, skipped=True)
            return []

        updates: list[GestureUpdate] = []
        with self._lock:
            if hand is not None:
                with self.profiler.stage("preprocess"):
                    features = self.preprocessor.process(hand)

                with self.profiler.stage("classification"):
                    for classifier in (self.pinch, self.swipe, self.open_palm, self.follow):
                        update = classifier.update(features, now)
                        if update is not None:
                            updates.append(update)

            if pose is not None:
                with self.profiler.stage("classification"):
                    update = self.body_lean.update(pose, now)
                    if update is not None:
                        updates.append(update)

            self._snapshot = self._take_snapshot(now)

        with self.profiler.stage("dispatch"):
            for update in updates:
                self._emit(update.slot, *update.args())

        self._total_updates += len(updates)
        self._record(t_start, hands=len(frame.hands), skipped=False)
        return updates

    def _emit(self, slot: str, *args):
        self.registry.emit(slot, *args)
        if self.metrics is not None:
            self.metrics.record_event(slot)

    def _record(self, t_start: float, hands: int, skipped: bool):
        elapsed = time.perf_counter() - t_start
        self._frame_times.append(elapsed)
        if self.metrics is not None:
            self.metrics.record_tick("camera", elapsed, skipped=skipped)
            self.metrics.record_hands(hands)

    def _take_snapshot(self, timestamp: Optional[float]) -> GestureSnapshot:
        fx, fy = self.follow.position
        return GestureSnapshot(
            pinch=self.pinch.state.value,
            pinching=self.pinch.state.active,
            swipe_cooling=self.swipe.state.active,
            open_palm=self.open_palm.state.active,
            follow_x=fx,
            follow_y=fy,
            following=self.follow.state.active,
            body_lean=self.body_lean.state.value,
            timestamp=timestamp,
        )

    @property
    def snapshot(self) -> GestureSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def stats(self) -> PipelineStats:
        """Current performance statistics."""
        if self._frame_times:
            avg_latency = sum(self._frame_times) / len(self._frame_times)
            fps = 1.0 / avg_latency if avg_latency > 0 else 0
        else:
            avg_latency = 0
            fps = 0

        return PipelineStats(
            fps=fps,
            avg_latency_ms=avg_latency * 1000,
            total_frames=self._total_frames,
            skipped_frames=self._skipped_frames,
            total_updates=self._total_updates,
            profiler_summary=self.profiler.summary(),
        )

    def reset(self):
        """Return every classifier and the preprocessor to defaults."""
        with self._lock:
            self.preprocessor.reset()
            for classifier in (self.pinch, self.swipe, self.open_palm, self.follow, self.body_lean):
                classifier.reset()
            self._snapshot = GestureSnapshot()

    def close(self):
        """Release the detector, if one is attached."""
        if self.detector is not None:
            self.detector.close()
            self.detector = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.disable()
        self.close()
