"""Hand and pose landmark extraction using MediaPipe.

Only needed when cuesense drives the camera itself; applications that run
their own pose model can build LandmarkFrame objects directly.
"""

import time

import numpy as np

from cuesense.landmarks import LandmarkFrame

try:
    import mediapipe as mp
except ImportError:
    mp = None


class LandmarkDetector:
    """Runs MediaPipe Hands and Pose on RGB frames.

    Each landmark is (x, y, z) normalized to [0, 1] relative to image
    dimensions. Call close() (or use as a context manager) to release the
    inference graphs.
    """

    def __init__(
        self,
        max_hands: int = 2,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        track_pose: bool = True,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install cuesense[camera]"
            )

        self.max_hands = max_hands
        self._hands = mp.solutions.hands.Hands(
            max_num_hands=max_hands,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._pose = None
        if track_pose:
            self._pose = mp.solutions.pose.Pose(
                model_complexity=model_complexity,
                smooth_landmarks=True,
                enable_segmentation=False,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        self._closed = False

    def detect(self, frame_rgb: np.ndarray) -> LandmarkFrame:
        """Detect hands and pose in one RGB frame (H, W, 3), uint8."""
        timestamp = time.monotonic()
        hands = []
        results = self._hands.process(frame_rgb)
        if results.multi_hand_landmarks:
            for hand_landmarks in results.multi_hand_landmarks:
                hands.append(np.array(
                    [[lm.x, lm.y, lm.z] for lm in hand_landmarks.landmark],
                    dtype=np.float64,
                ))

        pose = None
        if self._pose is not None:
            pose_results = self._pose.process(frame_rgb)
            if pose_results.pose_landmarks:
                pose = np.array(
                    [[lm.x, lm.y, lm.z] for lm in pose_results.pose_landmarks.landmark],
                    dtype=np.float64,
                )

        return LandmarkFrame(hands=hands, pose=pose, timestamp=timestamp)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Release MediaPipe resources."""
        if self._closed:
            return
        self._hands.close()
        if self._pose is not None:
            self._pose.close()
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
