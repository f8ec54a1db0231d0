"""Tests for the shared smoothing helpers."""

import math

import pytest

from cuesense.smoothing import (
    ExponentialSmoother,
    PointSmoother,
    RollingMean,
    clamp,
    ema,
    to_centered,
)


class TestClamp:
    def test_bounds(self):
        assert clamp(-0.5) == 0.0
        assert clamp(1.5) == 1.0
        assert clamp(0.3) == 0.3

    def test_nan_maps_to_lower_bound(self):
        assert clamp(math.nan) == 0.0
        assert clamp(math.nan, -1.0, 1.0) == -1.0


class TestEma:
    def test_alpha_weights_current(self):
        assert ema(1.0, 0.0, 0.8) == pytest.approx(0.8)
        assert ema(0.0, 1.0, 0.8) == pytest.approx(0.2)

    @pytest.mark.parametrize("alpha", [0.1, 0.5, 0.85, 0.95])
    def test_convergence_bound(self, alpha):
        smoother = ExponentialSmoother(alpha=alpha)
        target = 0.7
        for n in range(1, 60):
            value = smoother.update(target)
            assert abs(value - target) <= target * alpha ** n + 1e-12

    def test_monotonic_without_overshoot(self):
        smoother = ExponentialSmoother(alpha=0.85)
        previous = 0.0
        for _ in range(100):
            value = smoother.update(1.0)
            assert previous <= value <= 1.0
            previous = value

    def test_decay(self):
        smoother = ExponentialSmoother(value=1.0)
        assert smoother.decay(0.95) == pytest.approx(0.95)
        smoother.reset()
        assert smoother.value == 0.0


class TestPointSmoother:
    def test_update_and_reset(self):
        point = PointSmoother(alpha=0.5)
        assert point.update(1.0, -1.0) == pytest.approx((0.5, -0.5))
        point.reset()
        assert (point.x, point.y) == (0.0, 0.0)


class TestCentered:
    def test_corners(self):
        assert to_centered(0.5, 0.5) == (0.0, 0.0)
        assert to_centered(1.0, 0.0) == (1.0, 1.0)
        assert to_centered(0.0, 1.0) == (-1.0, -1.0)


class TestRollingMean:
    def test_includes_latest(self):
        history = RollingMean(capacity=3)
        assert history.push(3.0) == 3.0
        assert history.push(0.0) == 1.5

    def test_capacity(self):
        history = RollingMean(capacity=3)
        for v in (1.0, 2.0, 3.0, 4.0):
            history.push(v)
        assert len(history) == 3
        assert history.mean == pytest.approx(3.0)

    def test_empty_mean(self):
        history = RollingMean()
        assert history.mean == 0.0
        history.push(1.0)
        history.clear()
        assert len(history) == 0
