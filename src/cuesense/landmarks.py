"""Landmark frames and the per-hand features every classifier reads.

Hand landmarks follow the MediaPipe Hands layout (21 points) and pose
landmarks the MediaPipe Pose layout (33 points). Coordinates are in [0, 1]
image space with y pointing down.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from cuesense.config import GestureConfig

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_HAND_LANDMARKS = 21
NUM_POSE_LANDMARKS = 33

# MediaPipe pose landmark indices
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12

FINGERS = ("thumb", "index", "middle", "ring", "pinky")
FINGER_TIPS = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
FINGER_MCPS = (THUMB_MCP, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)


def as_landmarks(points, expected: int) -> Optional[np.ndarray]:
    """Coerce landmarks to a float array of shape (expected, 2 or 3).

    Accepts numpy arrays, nested sequences, or objects exposing `.x`/`.y`.
    Returns None when the data does not describe `expected` points.
    """
    if points is None:
        return None
    try:
        if not isinstance(points, np.ndarray):
            points = list(points)
            if points and hasattr(points[0], "x"):
                points = [[p.x, p.y, getattr(p, "z", 0.0)] for p in points]
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 2 or arr.shape[0] != expected or arr.shape[1] < 2:
        return None
    return arr


@dataclass
class LandmarkFrame:
    """One inference result: zero or more hands and at most one pose."""
    hands: list[np.ndarray] = field(default_factory=list)
    pose: Optional[np.ndarray] = None
    timestamp: Optional[float] = None  # seconds; None means "now"

    @classmethod
    def from_points(
        cls,
        hands: Sequence = (),
        pose=None,
        timestamp: Optional[float] = None,
    ) -> LandmarkFrame:
        """Build a frame, silently dropping hands or pose of the wrong shape."""
        valid_hands = []
        for hand in hands or ():
            arr = as_landmarks(hand, NUM_HAND_LANDMARKS)
            if arr is not None:
                valid_hands.append(arr)
        return cls(
            hands=valid_hands,
            pose=as_landmarks(pose, NUM_POSE_LANDMARKS),
            timestamp=timestamp,
        )

    @property
    def primary_hand(self) -> Optional[np.ndarray]:
        return self.hands[0] if self.hands else None

    @property
    def is_empty(self) -> bool:
        return not self.hands and self.pose is None


@dataclass
class HandFeatures:
    """Derived features for a single hand on a single frame."""
    landmarks: np.ndarray
    extended: dict[str, bool]
    pinch_distance: float
    index_tip: tuple[float, float]
    velocity: tuple[float, float]  # index-tip delta since previous frame

    @property
    def extended_count(self) -> int:
        return sum(self.extended.values())

    @property
    def speed(self) -> float:
        return math.hypot(*self.velocity)


class LandmarkPreprocessor:
    """Extracts finger extension, key distances and fingertip velocity.

    Performs no smoothing; each classifier applies its own time constants.
    The only state kept is the previous index-tip position.
    """

    def __init__(self, config: Optional[GestureConfig] = None):
        self.config = config or GestureConfig()
        self._last_tip: Optional[tuple[float, float]] = None

    def finger_states(self, landmarks: np.ndarray) -> dict[str, bool]:
        """Extension flag per finger.

        The thumb extends sideways, so it is tested on x against its MCP.
        The other fingers extend upward in image space, so the tip must sit
        above its MCP by a small margin.
        """
        states = {}
        for name, tip_idx, mcp_idx in zip(FINGERS, FINGER_TIPS, FINGER_MCPS):
            tip = landmarks[tip_idx]
            mcp = landmarks[mcp_idx]
            if name == "thumb":
                extended = abs(tip[0] - mcp[0]) > self.config.thumb_extension_margin
            else:
                extended = tip[1] < mcp[1] - self.config.finger_extension_margin
            states[name] = bool(extended)
        return states

    def extended_count(self, landmarks: np.ndarray) -> int:
        return sum(self.finger_states(landmarks).values())

    @staticmethod
    def distance(landmarks: np.ndarray, a: int, b: int) -> float:
        """2-D Euclidean distance between two landmarks."""
        return float(np.linalg.norm(landmarks[a, :2] - landmarks[b, :2]))

    def process(self, landmarks: np.ndarray) -> HandFeatures:
        tip = (float(landmarks[INDEX_TIP, 0]), float(landmarks[INDEX_TIP, 1]))
        if self._last_tip is None:
            velocity = (0.0, 0.0)
        else:
            velocity = (tip[0] - self._last_tip[0], tip[1] - self._last_tip[1])
        self._last_tip = tip

        return HandFeatures(
            landmarks=landmarks,
            extended=self.finger_states(landmarks),
            pinch_distance=self.distance(landmarks, THUMB_TIP, INDEX_TIP),
            index_tip=tip,
            velocity=velocity,
        )

    def reset(self):
        self._last_tip = None
