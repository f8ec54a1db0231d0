"""Shared smoothing and coordinate helpers.

Every smoothed value in the library follows the same exponential law:

    smoothed <- smoothed * alpha + raw * (1 - alpha)

so a higher alpha means more inertia.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp `value` to [lo, hi]. NaN maps to `lo`."""
    if math.isnan(value):
        return lo
    return max(lo, min(hi, value))


def ema(current: float, target: float, alpha: float) -> float:
    return current * alpha + target * (1.0 - alpha)


def to_centered(x: float, y: float) -> tuple[float, float]:
    """Map [0, 1] image coordinates to [-1, 1] with y pointing up."""
    return (x - 0.5) * 2.0, (0.5 - y) * 2.0


@dataclass
class ExponentialSmoother:
    """Scalar EMA filter."""
    alpha: float = 0.8
    value: float = 0.0

    def update(self, target: float) -> float:
        self.value = ema(self.value, target, self.alpha)
        return self.value

    def decay(self, factor: float) -> float:
        self.value *= factor
        return self.value

    def reset(self, value: float = 0.0):
        self.value = value


@dataclass
class PointSmoother:
    """EMA filter over a 2-D point."""
    alpha: float = 0.8
    x: float = 0.0
    y: float = 0.0

    def update(self, x: float, y: float) -> tuple[float, float]:
        self.x = ema(self.x, x, self.alpha)
        self.y = ema(self.y, y, self.alpha)
        return self.x, self.y

    def reset(self):
        self.x = 0.0
        self.y = 0.0


@dataclass
class RollingMean:
    """Fixed-capacity history with a running mean.

    The mean always includes the most recently pushed sample.
    """
    capacity: int = 10
    _values: deque = field(default_factory=deque, repr=False)

    def __post_init__(self):
        self._values = deque(self._values, maxlen=max(1, self.capacity))

    def push(self, value: float) -> float:
        self._values.append(value)
        return self.mean

    @property
    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def resize(self, capacity: int):
        self.capacity = capacity
        self._values = deque(self._values, maxlen=max(1, capacity))

    def clear(self):
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)
