"""
Gaze Monitor
Flags frames whose gaze point falls outside the calibrated bounds.
"""

import logging
from typing import Optional

from ..sensors.face_mesh.types import FaceObservation
from .session import CalibrationSession, GazeBounds

logger = logging.getLogger(__name__)

# Absorbs float error so a point exactly on the margin edge is in bounds
_EDGE_EPSILON = 1e-9


def is_out_of_bounds(gaze_x: float, gaze_y: float, bounds: GazeBounds, margin: float) -> bool:
    limits = bounds.expanded(margin + _EDGE_EPSILON)
    return (
        gaze_x < limits.min_x
        or gaze_x > limits.max_x
        or gaze_y < limits.min_y
        or gaze_y > limits.max_y
    )


class GazeMonitor:
    """Post-calibration watchdog. Owns session.is_out_of_bounds."""

    def __init__(self, session: CalibrationSession, margin: float = 0.05):
        self.session = session
        self.margin = margin
        self.frames_checked = 0
        self.frames_out = 0

    @property
    def is_active(self) -> bool:
        return self.session.calibration_complete and self.session.gaze_bounds is not None

    def on_observation(self, observation: Optional[FaceObservation]) -> Optional[bool]:
        """
        Re-evaluate the out-of-bounds flag for a frame

        Returns:
            The new flag, or None if the frame was not evaluated
        """
        if not self.is_active or observation is None or observation.gaze is None:
            return None

        out = is_out_of_bounds(
            observation.gaze.gaze_x,
            observation.gaze.gaze_y,
            self.session.gaze_bounds,
            self.margin,
        )
        if out != self.session.is_out_of_bounds:
            if out:
                logger.info(f"Gaze left calibrated area at ({observation.gaze.gaze_x:.3f}, {observation.gaze.gaze_y:.3f})")
            else:
                logger.info("Gaze back inside calibrated area")

        self.session.is_out_of_bounds = out
        self.frames_checked += 1
        if out:
            self.frames_out += 1
        return out

    def get_stats(self) -> dict:
        return {
            'frames_checked': self.frames_checked,
            'frames_out_of_bounds': self.frames_out,
            'out_of_bounds_ratio': self.frames_out / self.frames_checked if self.frames_checked else 0.0,
        }
