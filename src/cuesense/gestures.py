"""Gesture classifiers: pinch, swipe, open palm, follow and body lean.

Each classifier owns a private GestureState, is fed once per camera frame,
and returns at most one update per frame (or None). Classifiers never touch
each other's state; the pipeline forwards their updates to the dispatch
registry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

import numpy as np

from cuesense.config import GestureConfig
from cuesense.landmarks import LEFT_SHOULDER, RIGHT_SHOULDER, HandFeatures
from cuesense.smoothing import ExponentialSmoother, PointSmoother, clamp, ema, to_centered


class FingerState(Enum):
    """Binary finger state based on landmark positions."""
    EXTENDED = "extended"
    CURLED = "curled"
    ANY = "any"  # don't care


@dataclass(frozen=True)
class HandPose:
    """A static hand shape defined by per-finger states."""
    name: str
    thumb: FingerState = FingerState.ANY
    index: FingerState = FingerState.ANY
    middle: FingerState = FingerState.ANY
    ring: FingerState = FingerState.ANY
    pinky: FingerState = FingerState.ANY

    def matches(self, extended: dict[str, bool]) -> bool:
        for finger in ("thumb", "index", "middle", "ring", "pinky"):
            expected = getattr(self, finger)
            if expected == FingerState.ANY:
                continue
            actual = FingerState.EXTENDED if extended.get(finger) else FingerState.CURLED
            if actual != expected:
                return False
        return True


POINTING = HandPose(
    name="pointing",
    index=FingerState.EXTENDED,
    middle=FingerState.CURLED,
    ring=FingerState.CURLED,
    pinky=FingerState.CURLED,
)


@dataclass
class GestureState:
    """Per-classifier state, reset to these defaults when recognition stops."""
    active: bool = False
    value: float = 0.0
    last_position: Optional[tuple[float, float]] = None
    last_time: Optional[float] = None
    cooldown_until: float = float("-inf")

    def cooling(self, timestamp: float) -> bool:
        return timestamp < self.cooldown_until


# Updates. `slot` names the dispatch slot, `args()` the callback arguments.

@dataclass
class PinchUpdate:
    slot: ClassVar[str] = "pinch"
    strength: float  # smoothed
    raw_strength: float
    timestamp: float

    def args(self) -> tuple:
        return (self.strength,)


@dataclass
class SwipeEvent:
    slot: ClassVar[str] = "swipe"
    direction: str  # left, right, up, down
    velocity: float
    timestamp: float

    def args(self) -> tuple:
        return (self.direction, self.velocity)


@dataclass
class ResetEvent:
    slot: ClassVar[str] = "reset"
    extended_fingers: int
    timestamp: float

    def args(self) -> tuple:
        return ()


@dataclass
class FollowUpdate:
    slot: ClassVar[str] = "follow"
    x: float
    y: float
    active: bool
    timestamp: float
    transition: Optional[str] = None  # "enter", "exit" or None

    def args(self) -> tuple:
        return (self.x, self.y, self.active)


@dataclass
class LeanUpdate:
    slot: ClassVar[str] = "body_lean"
    lean: float  # smoothed
    raw_lean: float
    timestamp: float

    def args(self) -> tuple:
        return (self.lean,)


class PinchClassifier:
    """Thumb-index pinch as a continuous strength.

    strength = clamp(1 - distance * scale); the pinch is active above the
    activation threshold and only active frames update the smoothed value.
    """

    name = "pinch"

    def __init__(self, config: Optional[GestureConfig] = None):
        self.config = config or GestureConfig()
        self.state = GestureState()

    def strength(self, distance: float) -> float:
        return clamp(1.0 - distance * self.config.pinch_scale)

    def update(self, features: HandFeatures, timestamp: float) -> Optional[PinchUpdate]:
        raw = self.strength(features.pinch_distance)
        self.state.last_time = timestamp

        if raw <= self.config.pinch_activation:
            self.state.active = False
            return None

        self.state.active = True
        self.state.value = clamp(ema(self.state.value, raw, self.config.smoothing))
        return PinchUpdate(strength=self.state.value, raw_strength=raw, timestamp=timestamp)

    def reset(self):
        self.state = GestureState()


class SwipeClassifier:
    """Fast index-tip flick along one dominant axis, with a cooldown.

    Displacement is the frame-to-frame index-tip delta. A swipe needs the
    magnitude above `swipe_velocity` and one axis dominating the other by
    `swipe_axis_ratio`; diagonal motion is ignored.
    """

    name = "swipe"

    def __init__(self, config: Optional[GestureConfig] = None):
        self.config = config or GestureConfig()
        self.state = GestureState()

    def direction(self, dx: float, dy: float) -> Optional[str]:
        ratio = self.config.swipe_axis_ratio
        if abs(dx) > abs(dy) * ratio:
            return "right" if dx > 0 else "left"
        if abs(dy) > abs(dx) * ratio:
            # image y grows downward
            return "down" if dy > 0 else "up"
        return None

    def update(self, features: HandFeatures, timestamp: float) -> Optional[SwipeEvent]:
        dx, dy = features.velocity
        self.state.last_position = features.index_tip
        self.state.last_time = timestamp
        self.state.active = self.state.cooling(timestamp)

        if self.state.active:
            return None

        velocity = math.hypot(dx, dy)
        if velocity <= self.config.swipe_velocity:
            return None

        direction = self.direction(dx, dy)
        if direction is None:
            return None

        self.state.active = True
        self.state.value = velocity
        self.state.cooldown_until = timestamp + self.config.swipe_cooldown
        return SwipeEvent(direction=direction, velocity=velocity, timestamp=timestamp)

    def reset(self):
        self.state = GestureState()


class OpenPalmClassifier:
    """Open hand (at least `open_palm_min_fingers` extended) requests a reset.

    Fires on every qualifying frame unless `reset_cooldown` is set, so
    listeners should be idempotent.
    """

    name = "open_palm"

    def __init__(self, config: Optional[GestureConfig] = None):
        self.config = config or GestureConfig()
        self.state = GestureState()

    def update(self, features: HandFeatures, timestamp: float) -> Optional[ResetEvent]:
        count = features.extended_count
        self.state.value = float(count)
        self.state.last_time = timestamp
        self.state.active = count >= self.config.open_palm_min_fingers

        if not self.state.active:
            return None
        if self.config.reset_cooldown > 0 and self.state.cooling(timestamp):
            return None

        self.state.cooldown_until = timestamp + self.config.reset_cooldown
        return ResetEvent(extended_fingers=count, timestamp=timestamp)

    def reset(self):
        self.state = GestureState()


class FollowClassifier:
    """Pointing pose drives a cursor in centered [-1, 1] coordinates.

    The index tip passes through two EMA stages: the shared gesture
    smoothing, then a second follow stage. Enter and exit are edge
    triggered: the first qualifying frame carries transition="enter", and
    exactly one inactive update with transition="exit" is produced when the
    pose is released.
    """

    name = "follow"

    def __init__(self, config: Optional[GestureConfig] = None, pose: HandPose = POINTING):
        self.config = config or GestureConfig()
        self.pose = pose
        self.state = GestureState()
        self._raw = PointSmoother(alpha=self.config.smoothing)
        self._follow = PointSmoother(alpha=self.config.follow_smoothing)

    def update(self, features: HandFeatures, timestamp: float) -> Optional[FollowUpdate]:
        self.state.last_time = timestamp

        if self.pose.matches(features.extended):
            cx, cy = to_centered(*features.index_tip)
            sx, sy = self._raw.update(clamp(cx, -1.0, 1.0), clamp(cy, -1.0, 1.0))
            fx, fy = self._follow.update(sx, sy)
            transition = None if self.state.active else "enter"
            self.state.active = True
            self.state.last_position = (fx, fy)
            return FollowUpdate(x=fx, y=fy, active=True, timestamp=timestamp, transition=transition)

        if self.state.active:
            self.state.active = False
            return FollowUpdate(
                x=self._follow.x,
                y=self._follow.y,
                active=False,
                timestamp=timestamp,
                transition="exit",
            )
        return None

    @property
    def position(self) -> tuple[float, float]:
        return self._follow.x, self._follow.y

    def reset(self):
        self.state = GestureState()
        self._raw.reset()
        self._follow.reset()


class BodyLeanClassifier:
    """Shoulder-line tilt as a smoothed lean value.

    lean = sin(atan2(dy, dx)) * amplification, measured from the left to the
    right shoulder. Level shoulders give 0.
    """

    name = "body_lean"

    def __init__(self, config: Optional[GestureConfig] = None):
        self.config = config or GestureConfig()
        self.state = GestureState()
        self._smoother = ExponentialSmoother(alpha=self.config.smoothing)

    def lean(self, pose: np.ndarray) -> Optional[float]:
        left = pose[LEFT_SHOULDER]
        right = pose[RIGHT_SHOULDER]
        dx = float(right[0] - left[0])
        dy = float(right[1] - left[1])
        if not (math.isfinite(dx) and math.isfinite(dy)):
            return None
        return math.sin(math.atan2(dy, dx)) * self.config.lean_amplification

    def update(self, pose: np.ndarray, timestamp: float) -> Optional[LeanUpdate]:
        raw = self.lean(pose)
        if raw is None:
            return None
        self.state.value = self._smoother.update(raw)
        self.state.active = True
        self.state.last_time = timestamp
        return LeanUpdate(lean=self.state.value, raw_lean=raw, timestamp=timestamp)

    def reset(self):
        self.state = GestureState()
        self._smoother.reset()
