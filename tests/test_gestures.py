"""Tests for the five gesture classifiers."""

import math

import numpy as np
import pytest

from cuesense.config import GestureConfig
from cuesense.gestures import (
    BodyLeanClassifier,
    FingerState,
    FollowClassifier,
    HandPose,
    OpenPalmClassifier,
    PinchClassifier,
    SwipeClassifier,
)
from cuesense.landmarks import LandmarkPreprocessor

FINGER_X = {"index": 0.45, "middle": 0.5, "ring": 0.55, "pinky": 0.6}
TIP = {"index": 8, "middle": 12, "ring": 16, "pinky": 20}
MCP = {"index": 5, "middle": 9, "ring": 13, "pinky": 17}


def make_hand(extended=("index",), index_tip=None, thumb_tip=None):
    """Image-space hand with the named fingers extended, the rest curled."""
    lm = np.zeros((21, 3))
    lm[:, :2] = 0.5
    lm[0] = [0.5, 0.8, 0]  # wrist
    lm[2] = [0.42, 0.6, 0]  # thumb MCP
    lm[4] = [0.3, 0.55, 0] if "thumb" in extended else [0.44, 0.62, 0]
    for finger, x in FINGER_X.items():
        lm[MCP[finger]] = [x, 0.6, 0]
        tip_y = 0.4 if finger in extended else 0.62
        lm[TIP[finger]] = [x, tip_y, 0]
    if index_tip is not None:
        lm[8, :2] = index_tip
    if thumb_tip is not None:
        lm[4, :2] = thumb_tip
    return lm


def make_pose(left=(0.4, 0.5), right=(0.6, 0.5)):
    pose = np.zeros((33, 3))
    pose[:, :2] = 0.5
    pose[11, :2] = left
    pose[12, :2] = right
    return pose


def features_for(*hands):
    """Run hands through one preprocessor and return features for the last."""
    pre = LandmarkPreprocessor()
    feats = None
    for hand in hands:
        feats = pre.process(hand)
    return feats


class TestHandPose:
    def test_any_ignored(self):
        pose = HandPose(name="test", index=FingerState.EXTENDED)
        assert pose.matches({"thumb": True, "index": True, "middle": True})

    def test_curled_required(self):
        pose = HandPose(name="test", index=FingerState.EXTENDED, middle=FingerState.CURLED)
        assert not pose.matches({"index": True, "middle": True})


class TestPinch:
    def test_strength_mapping(self):
        pinch = PinchClassifier()
        assert pinch.strength(0.0) == 1.0
        assert pinch.strength(0.05) == pytest.approx(0.5)
        assert pinch.strength(0.5) == 0.0

    def test_monotonic_in_distance(self):
        pinch = PinchClassifier()
        distances = np.linspace(0.0, 0.2, 41)
        strengths = [pinch.strength(d) for d in distances]
        for a, b in zip(strengths, strengths[1:]):
            assert a >= b
        assert all(0.0 <= s <= 1.0 for s in strengths)

    def test_active_pinch_is_smoothed(self):
        pinch = PinchClassifier()
        hand = make_hand(index_tip=(0.5, 0.4), thumb_tip=(0.5, 0.42))
        update = pinch.update(features_for(hand), timestamp=0.0)
        assert update is not None
        assert update.raw_strength == pytest.approx(0.8)
        assert update.strength == pytest.approx(0.8 * 0.2)
        assert pinch.state.active

    def test_below_activation_emits_nothing(self):
        pinch = PinchClassifier()
        update = pinch.update(features_for(make_hand()), timestamp=0.0)
        assert update is None
        assert not pinch.state.active

    def test_strength_converges_toward_raw(self):
        pinch = PinchClassifier()
        hand = make_hand(index_tip=(0.5, 0.4), thumb_tip=(0.5, 0.42))
        feats = features_for(hand)
        values = [pinch.update(feats, timestamp=i * 0.033).strength for i in range(30)]
        assert all(b >= a for a, b in zip(values, values[1:]))
        assert values[-1] <= 0.8
        assert values[-1] == pytest.approx(0.8, abs=0.01)


class TestSwipe:
    def test_horizontal_dominance(self):
        swipe = SwipeClassifier()
        assert swipe.direction(0.10, 0.05) == "right"
        assert swipe.direction(-0.10, 0.05) == "left"

    def test_diagonal_is_none(self):
        swipe = SwipeClassifier()
        assert swipe.direction(0.10, 0.08) is None

    def test_vertical_uses_screen_up(self):
        swipe = SwipeClassifier()
        assert swipe.direction(0.0, -0.10) == "up"
        assert swipe.direction(0.01, 0.10) == "down"

    def test_fires_right(self):
        swipe = SwipeClassifier()
        feats = features_for(make_hand(index_tip=(0.5, 0.4)), make_hand(index_tip=(0.6, 0.45)))
        event = swipe.update(feats, timestamp=0.033)
        assert event is not None
        assert event.direction == "right"
        assert event.velocity == pytest.approx(math.hypot(0.1, 0.05))

    def test_ambiguous_displacement_does_not_fire(self):
        swipe = SwipeClassifier()
        feats = features_for(make_hand(index_tip=(0.5, 0.4)), make_hand(index_tip=(0.6, 0.48)))
        assert swipe.update(feats, timestamp=0.033) is None

    def test_slow_motion_does_not_fire(self):
        swipe = SwipeClassifier()
        feats = features_for(make_hand(index_tip=(0.5, 0.4)), make_hand(index_tip=(0.52, 0.4)))
        assert swipe.update(feats, timestamp=0.033) is None

    def test_cooldown_blocks_refire(self):
        swipe = SwipeClassifier(GestureConfig(swipe_cooldown=0.5))
        pre = LandmarkPreprocessor()
        positions = [(0.3, 0.4), (0.4, 0.4), (0.5, 0.4), (0.6, 0.4)]
        times = [0.0, 0.033, 0.066, 0.6]
        fired = []
        for pos, t in zip(positions, times):
            event = swipe.update(pre.process(make_hand(index_tip=pos)), timestamp=t)
            if event:
                fired.append(t)
        assert fired == [0.033, 0.6]

    def test_reset_clears_cooldown(self):
        swipe = SwipeClassifier()
        feats = features_for(make_hand(index_tip=(0.5, 0.4)), make_hand(index_tip=(0.6, 0.4)))
        assert swipe.update(feats, timestamp=0.0) is not None
        swipe.reset()
        assert swipe.update(feats, timestamp=0.01) is not None


class TestOpenPalm:
    def test_three_fingers_no_reset(self):
        palm = OpenPalmClassifier()
        feats = features_for(make_hand(extended=("index", "middle", "ring")))
        assert feats.extended_count == 3
        assert palm.update(feats, timestamp=0.0) is None

    def test_four_fingers_resets(self):
        palm = OpenPalmClassifier()
        feats = features_for(make_hand(extended=("index", "middle", "ring", "pinky")))
        event = palm.update(feats, timestamp=0.0)
        assert event is not None
        assert event.extended_fingers == 4

    def test_fires_every_frame_by_default(self):
        palm = OpenPalmClassifier()
        feats = features_for(make_hand(extended=("thumb", "index", "middle", "ring", "pinky")))
        events = [palm.update(feats, timestamp=i * 0.033) for i in range(5)]
        assert all(e is not None for e in events)

    def test_optional_cooldown(self):
        palm = OpenPalmClassifier(GestureConfig(reset_cooldown=1.0))
        feats = features_for(make_hand(extended=("thumb", "index", "middle", "ring", "pinky")))
        fired = [palm.update(feats, timestamp=t) is not None for t in (0.0, 0.5, 1.0)]
        assert fired == [True, False, True]


class TestFollow:
    def test_pointing_activates(self):
        follow = FollowClassifier()
        update = follow.update(features_for(make_hand(extended=("index",))), timestamp=0.0)
        assert update is not None
        assert update.active
        assert update.transition == "enter"

    def test_index_and_middle_is_inactive(self):
        follow = FollowClassifier()
        update = follow.update(features_for(make_hand(extended=("index", "middle"))), timestamp=0.0)
        assert update is None
        assert not follow.state.active

    def test_thumb_does_not_matter(self):
        follow = FollowClassifier()
        update = follow.update(features_for(make_hand(extended=("thumb", "index"))), timestamp=0.0)
        assert update is not None and update.active

    def test_enter_and_exit_fire_once(self):
        follow = FollowClassifier()
        pointing = features_for(make_hand(extended=("index",)))
        fist = features_for(make_hand(extended=()))

        updates = [
            follow.update(pointing, 0.0),
            follow.update(pointing, 0.033),
            follow.update(fist, 0.066),
            follow.update(fist, 0.1),
        ]
        assert [u.transition if u else None for u in updates] == ["enter", None, "exit", None]
        assert updates[2].active is False
        assert updates[3] is None

    def test_position_is_centered_and_double_smoothed(self):
        follow = FollowClassifier()
        # index tip at the right edge, top of frame
        feats = features_for(make_hand(extended=("index",), index_tip=(1.0, 0.0)))
        update = follow.update(feats, timestamp=0.0)
        # raw stage: 0 * 0.8 + 1 * 0.2, follow stage: 0 * 0.7 + 0.2 * 0.3
        assert update.x == pytest.approx(0.06)
        assert update.y == pytest.approx(0.06)

        for i in range(200):
            update = follow.update(feats, timestamp=i * 0.033)
        assert update.x == pytest.approx(1.0, abs=1e-3)
        assert update.y == pytest.approx(1.0, abs=1e-3)
        assert -1.0 <= update.x <= 1.0


class TestBodyLean:
    def test_level_shoulders(self):
        lean = BodyLeanClassifier()
        update = lean.update(make_pose(), timestamp=0.0)
        assert update.raw_lean == pytest.approx(0.0)

    def test_tilted_shoulders(self):
        lean = BodyLeanClassifier()
        update = lean.update(make_pose(left=(0.4, 0.5), right=(0.6, 0.6)), timestamp=0.0)
        expected = math.sin(math.atan2(0.1, 0.2)) * 2
        assert update.raw_lean == pytest.approx(expected)
        assert update.lean == pytest.approx(expected * 0.2)

    def test_nan_pose_skipped(self):
        lean = BodyLeanClassifier()
        pose = make_pose()
        pose[11] = np.nan
        assert lean.update(pose, timestamp=0.0) is None
        assert lean.state.value == 0.0

    def test_reset(self):
        lean = BodyLeanClassifier()
        lean.update(make_pose(right=(0.6, 0.7)), timestamp=0.0)
        lean.reset()
        assert lean.state.value == 0.0
        assert not lean.state.active
