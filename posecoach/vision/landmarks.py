"""Landmark types and the landmark sources that feed the live tracker.

A landmark frame is a fixed-size list indexed by mediapipe Pose body-part ids.
Entries are ``None`` when the estimator did not observe that part.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

import cv2
import numpy as np
from loguru import logger


NUM_LANDMARKS = 33

# mediapipe Pose indices used by the tracker
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14
LEFT_WRIST = 15
RIGHT_WRIST = 16
LEFT_HIP = 23
RIGHT_HIP = 24
LEFT_KNEE = 25
RIGHT_KNEE = 26
LEFT_ANKLE = 27
RIGHT_ANKLE = 28


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    visibility: float = 1.0


LandmarkFrame = List[Optional[Landmark]]
FrameCallback = Callable[[Optional[LandmarkFrame]], None]


def empty_frame() -> LandmarkFrame:
    return [None] * NUM_LANDMARKS


def make_frame(points: dict[int, tuple[float, float]]) -> LandmarkFrame:
    """Build a landmark frame from ``{index: (x, y)}``; other entries stay ``None``."""
    frame = empty_frame()
    for idx, (x, y) in points.items():
        frame[int(idx)] = Landmark(float(x), float(y))
    return frame


def landmark_at(frame: Optional[Sequence[Optional[Landmark]]], index: int) -> Optional[Landmark]:
    if not frame or index < 0 or index >= len(frame):
        return None
    return frame[index]


@dataclass(frozen=True)
class EstimatorOptions:
    """Fixed mediapipe Pose options for a tracking session."""

    model_complexity: int = 1
    smooth_landmarks: bool = True
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


class LandmarkSource(Protocol):
    def process_frame(self, frame: np.ndarray) -> Optional[LandmarkFrame]:
        ...

    def subscribe(self, callback: FrameCallback) -> None:
        ...

    def send(self, frame: np.ndarray) -> Optional[LandmarkFrame]:
        ...

    def close(self) -> None:
        ...


class _CallbackMixin:
    _callback: Optional[FrameCallback] = None

    def subscribe(self, callback: FrameCallback) -> None:
        """Register the per-frame results handler."""
        self._callback = callback

    def send(self, frame: np.ndarray) -> Optional[LandmarkFrame]:
        """Process ``frame`` and hand the result to the subscribed callback."""
        result = self.process_frame(frame)  # type: ignore[attr-defined]
        if self._callback is not None:
            self._callback(result)
        return result


class MediaPipeLandmarkSource(_CallbackMixin):
    """Landmark source backed by ``mediapipe.solutions.pose``."""

    def __init__(self, options: EstimatorOptions = EstimatorOptions()) -> None:
        import mediapipe as mp  # heavy import, only needed with a real camera

        self.options = options
        self._pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=int(options.model_complexity),
            smooth_landmarks=bool(options.smooth_landmarks),
            enable_segmentation=False,
            min_detection_confidence=float(options.min_detection_confidence),
            min_tracking_confidence=float(options.min_tracking_confidence),
        )
        logger.info(
            "mediapipe Pose ready complexity={} smooth={}",
            options.model_complexity,
            options.smooth_landmarks,
        )

    def process_frame(self, frame: np.ndarray) -> Optional[LandmarkFrame]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self._pose.process(rgb)
        if not results or not results.pose_landmarks:
            return None
        out = empty_frame()
        for idx, lm in enumerate(results.pose_landmarks.landmark):
            if idx >= NUM_LANDMARKS:
                break
            out[idx] = Landmark(
                x=float(lm.x),
                y=float(lm.y),
                visibility=float(getattr(lm, "visibility", 1.0)),
            )
        return out

    def close(self) -> None:
        if self._pose is not None and hasattr(self._pose, "close"):
            self._pose.close()
        self._pose = None


class ScriptedLandmarkSource(_CallbackMixin):
    """Replays a fixed sequence of landmark frames, one per processed camera frame.

    With ``loop=True`` the sequence repeats forever (used by mock mode); otherwise
    ``None`` is returned once it is exhausted.
    """

    def __init__(self, frames: Iterable[Optional[LandmarkFrame]], loop: bool = False) -> None:
        self._frames: List[Optional[LandmarkFrame]] = list(frames)
        self._loop = loop
        self._index = 0
        self.closed = False

    def process_frame(self, frame: np.ndarray) -> Optional[LandmarkFrame]:
        if not self._frames:
            return None
        if self._index >= len(self._frames):
            if not self._loop:
                return None
            self._index = 0
        out = self._frames[self._index]
        self._index += 1
        return out

    def close(self) -> None:
        self.closed = True


def squat_cycle(steps: int = 30) -> List[LandmarkFrame]:
    """Synthetic standing → squat → standing motion for mock mode."""
    frames: List[LandmarkFrame] = []
    for i in range(steps):
        # depth goes 0 → 1 → 0 across the cycle
        phase = i / max(1, steps - 1)
        depth = 1.0 - abs(2.0 * phase - 1.0)
        hip_y = 0.45 + 0.25 * depth
        frames.append(
            make_frame(
                {
                    NOSE: (0.50, 0.15 + 0.2 * depth),
                    LEFT_SHOULDER: (0.45, 0.28 + 0.2 * depth),
                    RIGHT_SHOULDER: (0.55, 0.28 + 0.2 * depth),
                    LEFT_ELBOW: (0.40, 0.40 + 0.15 * depth),
                    RIGHT_ELBOW: (0.60, 0.40 + 0.15 * depth),
                    LEFT_WRIST: (0.42, 0.50 + 0.1 * depth),
                    RIGHT_WRIST: (0.58, 0.50 + 0.1 * depth),
                    LEFT_HIP: (0.47, hip_y),
                    RIGHT_HIP: (0.53, hip_y),
                    LEFT_KNEE: (0.46, 0.62),
                    RIGHT_KNEE: (0.54, 0.62),
                    LEFT_ANKLE: (0.47, 0.90),
                    RIGHT_ANKLE: (0.53, 0.90),
                }
            )
        )
    return frames
