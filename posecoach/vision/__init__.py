"""Vision package exports."""

from .camera import CameraCapture, CameraUnavailableError, MockCamera, TrackingError
from .landmarks import Landmark, LandmarkFrame, MediaPipeLandmarkSource, ScriptedLandmarkSource, make_frame
from .renderer import FrameRenderer, OverlayCanvas, mirror_x
from .rep_counter import SquatPhase, SquatRepCounter
from .tracker import LiveTracker, TrackingState

__all__ = [
    "CameraCapture",
    "CameraUnavailableError",
    "FrameRenderer",
    "Landmark",
    "LandmarkFrame",
    "LiveTracker",
    "MediaPipeLandmarkSource",
    "MockCamera",
    "OverlayCanvas",
    "ScriptedLandmarkSource",
    "SquatPhase",
    "SquatRepCounter",
    "TrackingError",
    "TrackingState",
    "make_frame",
    "mirror_x",
]
