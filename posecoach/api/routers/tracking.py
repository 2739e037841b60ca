"""Live squat tracking endpoints.

A single shared :class:`LiveTracker` backs every request; the MJPEG stream
serves the mirrored camera view with the skeleton overlay.
"""
from __future__ import annotations

import time
from typing import Callable, Iterator, Optional

import cv2
import numpy as np
from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from loguru import logger

from posecoach.api.schemas import Envelope, TrackingStatusOutput
from posecoach.core.config import get_settings
from posecoach.vision import CameraUnavailableError, LiveTracker, TrackingError

router = APIRouter(prefix="/tracking")

tracker = LiveTracker()


def _status() -> dict:
    return TrackingStatusOutput(**tracker.snapshot().to_dict()).model_dump()


def _placeholder_jpeg() -> bytes:
    placeholder = np.zeros((tracker.height, tracker.width, 3), dtype=np.uint8)
    ok, buf = cv2.imencode(".jpg", placeholder)
    return buf.tobytes() if ok else b""


def mjpeg_frames(limit: Optional[int] = None) -> Iterator[bytes]:
    """Yield multipart JPEG parts; ``limit`` bounds the number of parts."""
    interval = get_settings().tracker_stream_interval
    placeholder = None
    sent = 0
    while limit is None or sent < limit:
        jpg = tracker.latest_overlay_jpeg()
        if jpg is None:
            if placeholder is None:
                placeholder = _placeholder_jpeg()
            jpg = placeholder
            time.sleep(0.5)
        else:
            time.sleep(interval)
        sent += 1
        yield (b"--frame\r\n"
               b"Content-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n")


def _control(action: Callable[[], object]) -> Envelope:
    try:
        action()
    except CameraUnavailableError as exc:
        logger.warning("Camera unavailable: {}", exc)
        return Envelope(success=False, data=_status(), error="camera_unavailable")
    except TrackingError as exc:
        logger.error("Tracking failed to start: {}", exc)
        return Envelope(success=False, data=_status(), error=str(exc))
    return Envelope(success=True, data=_status())


@router.post("/start", response_model=Envelope)
def start_tracking() -> Envelope:
    return _control(tracker.start)


@router.post("/stop", response_model=Envelope)
def stop_tracking() -> Envelope:
    tracker.stop()
    return Envelope(success=True, data=_status())


@router.post("/toggle", response_model=Envelope)
def toggle_tracking() -> Envelope:
    """Flip the session, mirroring the single Start/Stop button."""
    return _control(tracker.toggle)


@router.get("/status", response_model=Envelope)
def tracking_status() -> Envelope:
    return Envelope(success=True, data=_status())


@router.get("/stream")
async def stream(limit: Optional[int] = None) -> StreamingResponse:
    return StreamingResponse(
        mjpeg_frames(limit=limit),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
