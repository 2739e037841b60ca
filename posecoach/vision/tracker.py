"""Live webcam pose tracker: session lifecycle around the rep counter and renderer.

The tracker owns the camera, the landmark source, one frame-loop thread and the
:class:`TrackingState` struct. Every landmark set is delivered through the
source's subscribed callback and applied under the tracker lock, tagged with
the session generation it was captured in; ``stop()`` bumps the generation, so
results from a session that has already stopped are dropped.
"""
from __future__ import annotations

import dataclasses
import functools
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import cv2
import numpy as np
from loguru import logger

from posecoach.core.config import Settings, get_settings

from .camera import CameraCapture, CameraUnavailableError, MockCamera, TrackingError
from .landmarks import (
    EstimatorOptions,
    LandmarkFrame,
    LandmarkSource,
    MediaPipeLandmarkSource,
    ScriptedLandmarkSource,
    squat_cycle,
)
from .renderer import CANVAS_HEIGHT, CANVAS_WIDTH, FrameRenderer, OverlayCanvas
from .rep_counter import SquatRepCounter

ESTIMATOR_OPTIONS = EstimatorOptions(
    model_complexity=1,
    smooth_landmarks=True,
    min_detection_confidence=0.5,
    min_tracking_confidence=0.5,
)

START_LABEL = "Start Tracking"
STOP_LABEL = "Stop Tracking"


@dataclass
class TrackingState:
    is_tracking: bool = False
    is_squatting: bool = False
    rep_count: int = 0
    frames_processed: int = 0
    started_at: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def toggle_label(self) -> str:
        return STOP_LABEL if self.is_tracking else START_LABEL

    def to_dict(self) -> dict:
        d = dataclasses.asdict(self)
        d["toggle_label"] = self.toggle_label
        return d


class LiveTracker:
    """Start/stop controller for the camera + pose estimator pipeline.

    ``camera_factory`` and ``source_factory`` build a fresh capture device and
    landmark source per session; by default they come from settings (real
    camera + mediapipe, or the synthetic pair when ``VISION_MOCK=1``).
    """

    def __init__(
        self,
        camera_factory: Optional[Callable[[], object]] = None,
        source_factory: Optional[Callable[[], LandmarkSource]] = None,
        settings: Optional[Settings] = None,
        width: int = CANVAS_WIDTH,
        height: int = CANVAS_HEIGHT,
    ) -> None:
        self.settings = settings or get_settings()
        self.width = width
        self.height = height
        self._camera_factory = camera_factory or self._default_camera
        self._source_factory = source_factory or self._default_source
        self.counter = SquatRepCounter()
        self.renderer = FrameRenderer(OverlayCanvas(width, height))
        self.state = TrackingState()
        self._lock = threading.RLock()
        self._toggle_lock = threading.Lock()
        self._generation = 0
        self._camera = None
        self._source: Optional[LandmarkSource] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._latest_view: Optional[np.ndarray] = None

    # --- Public API -----------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self.state.is_tracking

    def snapshot(self) -> TrackingState:
        with self._lock:
            return dataclasses.replace(self.state)

    def start(self, run_loop: bool = True) -> bool:
        """Acquire the camera and estimator and begin frame delivery.

        Returns False when a session is already running. Raises
        :class:`CameraUnavailableError` when the camera cannot be opened; the
        tracker then stays stopped with its count untouched.
        """
        with self._lock:
            if self.state.is_tracking:
                return False
            camera = self._camera_factory()
            try:
                camera.open()
            except CameraUnavailableError:
                raise
            except Exception as exc:
                camera.release()
                raise CameraUnavailableError(str(exc)) from exc
            try:
                source = self._source_factory()
            except Exception as exc:
                camera.release()
                raise TrackingError(f"Pose estimator failed to start: {exc}") from exc

            self._generation += 1
            generation = self._generation
            source.subscribe(functools.partial(self._deliver, generation))
            self._camera = camera
            self._source = source
            self.counter.reset()
            self.state = TrackingState(is_tracking=True, started_at=time.time())
            self._latest_view = None
            self._stop_event = threading.Event()
            if run_loop:
                self._thread = threading.Thread(
                    target=self._run,
                    args=(generation, self._stop_event),
                    name="LiveTracker",
                    daemon=True,
                )
                self._thread.start()
        logger.info("Tracking started ({}x{})", self.width, self.height)
        return True

    def stop(self) -> bool:
        """Halt delivery, release resources and reset the rep state.

        Returns False when no session was running.
        """
        with self._lock:
            if not self.state.is_tracking:
                return False
            self._generation += 1
            self.counter.reset()
            self.state = TrackingState(is_tracking=False, last_error=self.state.last_error)
            self._stop_event.set()
            thread, camera, source = self._thread, self._camera, self._source
            self._thread = None
            self._camera = None
            self._source = None
            self._latest_view = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Frame loop did not exit within 2s")
        if source is not None:
            try:
                source.close()
            except Exception as exc:
                logger.warning("Error closing pose estimator: {}", exc)
        if camera is not None:
            try:
                camera.release()
            except Exception as exc:
                logger.warning("Error releasing camera: {}", exc)
        logger.info("Tracking stopped")
        return True

    def toggle(self) -> bool:
        """Start when stopped, stop when started. Returns the new tracking flag.

        Concurrent toggles are serialized, so each one sees the result of the last.
        """
        with self._toggle_lock:
            if self.state.is_tracking:
                self.stop()
            else:
                self.start()
            return self.state.is_tracking

    def on_frame(self, landmarks: Optional[LandmarkFrame]) -> None:
        """Per-frame results handler: draw the overlay, then update the count."""
        with self._lock:
            if not self.state.is_tracking:
                return
            self.renderer.render(landmarks)
            completed = self.counter.update(landmarks)
            self.state.is_squatting = self.counter.is_squatting
            self.state.rep_count = self.counter.rep_count
            self.state.frames_processed += 1
        if completed:
            logger.info("Rep {} completed", self.state.rep_count)

    def step(self, generation: Optional[int] = None) -> bool:
        """Pull one camera frame through the estimator. Returns True if it was applied."""
        with self._lock:
            if not self.state.is_tracking:
                return False
            if generation is not None and generation != self._generation:
                return False
            generation = self._generation
            camera, source = self._camera, self._source
        ok, frame = camera.read()
        if not ok or frame is None:
            return False
        try:
            source.send(frame)
        except Exception as exc:
            self._fail(generation, exc)
            return False
        with self._lock:
            if generation != self._generation:
                return False
            self._latest_view = self.renderer.compose(frame)
        return True

    def latest_view(self) -> Optional[np.ndarray]:
        """Mirrored camera frame with the overlay, or None before the first frame."""
        with self._lock:
            return None if self._latest_view is None else self._latest_view.copy()

    def latest_overlay_jpeg(self, quality: Optional[int] = None) -> Optional[bytes]:
        view = self.latest_view()
        if view is None:
            return None
        q = max(30, min(95, int(quality or self.settings.tracker_jpeg_quality)))
        ok, buf = cv2.imencode(".jpg", view, [int(cv2.IMWRITE_JPEG_QUALITY), q])
        if not ok:
            return None
        return buf.tobytes()

    # --- context -------------------------------------------------------

    def __enter__(self) -> "LiveTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # --- Internal helpers -----------------------------------------------

    def _default_camera(self):
        if self.settings.vision_mock:
            return MockCamera(self.width, self.height)
        return CameraCapture(self.settings.camera_index, self.width, self.height)

    def _default_source(self) -> LandmarkSource:
        if self.settings.vision_mock:
            return ScriptedLandmarkSource(squat_cycle(), loop=True)
        return MediaPipeLandmarkSource(ESTIMATOR_OPTIONS)

    def _deliver(self, generation: int, landmarks: Optional[LandmarkFrame]) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping landmarks from stale session {}", generation)
                return
            self.on_frame(landmarks)

    def _fail(self, generation: int, exc: Exception) -> None:
        logger.error("Pose estimator failed; stopping session: {}", exc)
        with self._lock:
            if generation != self._generation:
                return
            self.state.last_error = str(exc)
        self.stop()

    def _run(self, generation: int, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            with self._lock:
                if generation != self._generation:
                    break
            if not self.step(generation):
                time.sleep(0.01)
