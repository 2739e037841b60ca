"""Capture devices for the live tracker."""
from __future__ import annotations

import math
import time
from typing import Optional, Tuple

import cv2
import numpy as np
from loguru import logger


class TrackingError(RuntimeError):
    """Base error for live tracking sessions."""


class CameraUnavailableError(TrackingError):
    """Camera permission denied or device could not be opened."""


class CameraCapture:
    """OpenCV ``VideoCapture`` at a requested resolution."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 480) -> None:
        self.index = index
        self.width = width
        self.height = height
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        if self._cap is not None:
            return
        cap = cv2.VideoCapture(int(self.index))
        if not cap or not cap.isOpened():
            if cap is not None:
                cap.release()
            raise CameraUnavailableError(f"Camera {self.index} could not be opened")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(self.width))
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(self.height))
        # Reduce camera internal buffer to minimize latency
        try:
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        except Exception as exc:
            logger.debug("CAP_PROP_BUFFERSIZE not supported: {}", exc)
        self._cap = cap
        logger.info("Camera {} opened at {}x{}", self.index, self.width, self.height)

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        if self._cap is None:
            return False, None
        ok, frame = self._cap.read()
        if not ok:
            return False, None
        return True, frame

    def release(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera {} released", self.index)


class MockCamera:
    """Headless stand-in producing a moving gradient frame at ~``fps``."""

    def __init__(self, width: int = 640, height: int = 480, fps: float = 15.0) -> None:
        self.width = width
        self.height = height
        self.fps = fps
        self._open = False
        self._t = 0.0

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        if not self._open:
            return False, None
        if self.fps > 0:
            time.sleep(1.0 / self.fps)
        self._t = (self._t + 0.12) % (2 * math.pi)
        shade = int(60 + 40 * (math.sin(self._t) + 1))
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, :] = (25, 25 + shade // 2, 40 + shade)
        return True, frame

    def release(self) -> None:
        self._open = False
