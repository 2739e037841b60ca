#!/usr/bin/env python3
"""Run the squat tracker locally in an OpenCV window.

Keys: ``t`` toggles tracking, ``q`` / ``Esc`` quits.
"""
from __future__ import annotations

import argparse
import time

import cv2
import numpy as np
from loguru import logger

from posecoach.core.logging_config import setup_logging
from posecoach.vision import CameraUnavailableError, LiveTracker

WINDOW = "PoseCoach - Live Tracker"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live squat rep counter")
    parser.add_argument("--autostart", action="store_true", help="Start tracking immediately")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def draw_hud(view: np.ndarray, tracker: LiveTracker) -> np.ndarray:
    state = tracker.snapshot()
    cv2.putText(view, f"Reps: {state.rep_count}", (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 255, 255), 2)
    status = "SQUATTING" if state.is_squatting else "STANDING"
    cv2.putText(view, status, (20, 75), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 0), 2)
    cv2.putText(view, f"[t] {state.toggle_label}", (20, view.shape[0] - 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (200, 200, 200), 1)
    if state.last_error:
        cv2.putText(view, state.last_error[:60], (20, 110), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)
    return view


def main() -> None:
    args = parse_args()
    setup_logging(args.log_level)
    with LiveTracker() as tracker:
        if args.autostart:
            tracker.start()
        idle = np.zeros((tracker.height, tracker.width, 3), dtype=np.uint8)
        while True:
            view = tracker.latest_view() if tracker.is_tracking else None
            cv2.imshow(WINDOW, draw_hud(view if view is not None else idle.copy(), tracker))
            key = cv2.waitKey(15) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord("t"):
                try:
                    tracker.toggle()
                except CameraUnavailableError as exc:
                    logger.error("Camera unavailable: {}", exc)
                    time.sleep(0.5)
    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
