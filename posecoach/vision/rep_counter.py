"""Squat rep counting from the left hip and knee landmarks.

Single-axis, single-side hysteresis: the hip dropping below the knee (larger
image ``y``) enters the squat, rising back above it completes a rep. No
smoothing, depth threshold or velocity check is applied.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from .landmarks import LEFT_HIP, LEFT_KNEE, Landmark, landmark_at


class SquatPhase(str, Enum):
    STANDING = "standing"
    SQUATTING = "squatting"


class SquatRepCounter:
    """Edge-triggered squat/stand state machine."""

    def __init__(self) -> None:
        self.is_squatting: bool = False
        self.rep_count: int = 0

    @property
    def phase(self) -> SquatPhase:
        return SquatPhase.SQUATTING if self.is_squatting else SquatPhase.STANDING

    def reset(self) -> None:
        self.is_squatting = False
        self.rep_count = 0

    def update(self, frame: Optional[Sequence[Optional[Landmark]]]) -> bool:
        """Apply one landmark frame. Returns True when it completed a rep."""
        return self.update_points(landmark_at(frame, LEFT_HIP), landmark_at(frame, LEFT_KNEE))

    def update_points(self, hip: Optional[Landmark], knee: Optional[Landmark]) -> bool:
        if hip is None or knee is None:
            return False
        if hip.y > knee.y and not self.is_squatting:
            self.is_squatting = True
            logger.debug("squat entered hip_y={:.3f} knee_y={:.3f}", hip.y, knee.y)
            return False
        if hip.y < knee.y and self.is_squatting:
            self.is_squatting = False
            self.rep_count += 1
            logger.debug("rep completed count={}", self.rep_count)
            return True
        return False
