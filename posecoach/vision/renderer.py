"""Skeleton overlay renderer for the mirrored webcam preview."""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .landmarks import (
    LEFT_ANKLE,
    LEFT_ELBOW,
    LEFT_HIP,
    LEFT_KNEE,
    LEFT_SHOULDER,
    LEFT_WRIST,
    NOSE,
    RIGHT_ANKLE,
    RIGHT_ELBOW,
    RIGHT_HIP,
    RIGHT_KNEE,
    RIGHT_SHOULDER,
    RIGHT_WRIST,
    Landmark,
)

CANVAS_WIDTH = 640
CANVAS_HEIGHT = 480

# BGR
LINE_COLOR = (255, 255, 0)  # cyan
HEAD_COLOR = (0, 0, 255)  # red
LINE_THICKNESS = 3
HEAD_RADIUS = 12

SKELETON_CONNECTIONS: List[Tuple[int, int]] = [
    (LEFT_SHOULDER, LEFT_ELBOW),
    (LEFT_ELBOW, LEFT_WRIST),
    (RIGHT_SHOULDER, RIGHT_ELBOW),
    (RIGHT_ELBOW, RIGHT_WRIST),
    (LEFT_SHOULDER, RIGHT_SHOULDER),
    (LEFT_HIP, RIGHT_HIP),
    (LEFT_SHOULDER, LEFT_HIP),
    (RIGHT_SHOULDER, RIGHT_HIP),
    (LEFT_HIP, LEFT_KNEE),
    (LEFT_KNEE, LEFT_ANKLE),
    (RIGHT_HIP, RIGHT_KNEE),
    (RIGHT_KNEE, RIGHT_ANKLE),
]


def mirror_x(x: float, width: int) -> float:
    return (1.0 - x) * width


def drawable(lm: Optional[Landmark]) -> bool:
    return lm is not None and math.isfinite(lm.x) and math.isfinite(lm.y)


def to_pixel(lm: Landmark, width: int, height: int) -> Tuple[int, int]:
    return int(round(mirror_x(lm.x, width))), int(round(lm.y * height))


class OverlayCanvas:
    """Fixed-size BGR drawing surface backed by a numpy buffer."""

    def __init__(self, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT) -> None:
        self.width = width
        self.height = height
        self.image = np.zeros((height, width, 3), dtype=np.uint8)

    def clear(self) -> None:
        self.image[:] = 0

    def line(self, p1: Tuple[int, int], p2: Tuple[int, int], color, thickness: int) -> None:
        cv2.line(self.image, p1, p2, color, thickness, cv2.LINE_AA)

    def circle(self, center: Tuple[int, int], radius: int, color) -> None:
        cv2.circle(self.image, center, radius, color, thickness=-1, lineType=cv2.LINE_AA)


class FrameRenderer:
    """Draws one landmark frame onto an :class:`OverlayCanvas`.

    Pixel x is mirrored (``(1 - x) * width``) so the overlay lines up with the
    selfie-view preview; y is not mirrored. Missing or non-finite landmarks
    and connection endpoints are skipped, and rendering never raises.
    """

    def __init__(self, canvas: Optional[OverlayCanvas] = None) -> None:
        self.canvas = canvas

    def render(self, landmarks: Optional[Sequence[Optional[Landmark]]]) -> int:
        """Redraw the overlay and return the number of skeleton segments drawn."""
        canvas = self.canvas
        if canvas is None:
            return 0
        canvas.clear()
        if not landmarks:
            return 0

        w, h = canvas.width, canvas.height
        drawn = 0
        for a, b in SKELETON_CONNECTIONS:
            p1 = landmarks[a] if a < len(landmarks) else None
            p2 = landmarks[b] if b < len(landmarks) else None
            if not (drawable(p1) and drawable(p2)):
                continue
            canvas.line(to_pixel(p1, w, h), to_pixel(p2, w, h), LINE_COLOR, LINE_THICKNESS)
            drawn += 1

        head = landmarks[NOSE] if len(landmarks) > NOSE else None
        if drawable(head):
            canvas.circle(to_pixel(head, w, h), HEAD_RADIUS, HEAD_COLOR)
        return drawn

    def compose(self, frame: Optional[np.ndarray]) -> np.ndarray:
        """Return the mirrored camera frame with the current overlay on top."""
        canvas = self.canvas
        if canvas is None:
            raise ValueError("renderer has no canvas")
        if frame is None:
            return canvas.image.copy()
        view = cv2.flip(frame, 1)
        if view.shape[:2] != (canvas.height, canvas.width):
            view = cv2.resize(view, (canvas.width, canvas.height), interpolation=cv2.INTER_AREA)
        mask = canvas.image.any(axis=2)
        view[mask] = canvas.image[mask]
        return view
