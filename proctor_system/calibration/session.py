"""
Calibration Session
The single mutable record of one calibration run, shared by reference
between the orchestrator, gaze monitor and fullscreen proctor.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..sensors.face_mesh.types import COMPASS_DIRECTIONS, HeadDirection

logger = logging.getLogger(__name__)

TOTAL_STEPS = 4

STEP_LIGHTING = 1
STEP_PERSON_COUNT = 2
STEP_HEAD_SWEEP = 3
STEP_GAZE = 4


class StepStatus(str, Enum):
    PENDING = 'pending'
    CHECKING = 'checking'
    PASSED = 'passed'
    FAILED = 'failed'


_ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.CHECKING},
    StepStatus.CHECKING: {StepStatus.PASSED, StepStatus.FAILED},
    StepStatus.FAILED: {StepStatus.CHECKING},
    StepStatus.PASSED: set(),
}


class InvalidTransition(ValueError):
    """Raised when a step status edge is not part of the state machine."""


@dataclass
class StepState:
    """Status and payload of one calibration step."""

    step: int
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None
    directions: Optional[Dict[HeadDirection, bool]] = None

    def transition(self, new_status: StepStatus, error: Optional[str] = None):
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Step {self.step}: {self.status.value} -> {new_status.value} is not allowed"
            )
        logger.debug(f"Step {self.step}: {self.status.value} -> {new_status.value}")
        self.status = new_status
        self.error = error

    def mark_direction(self, direction: HeadDirection) -> bool:
        """Set a direction flag. Returns True only the first time it is seen."""
        if self.directions is None or direction not in self.directions:
            return False
        if self.directions[direction]:
            return False
        self.directions[direction] = True
        return True

    @property
    def all_directions_seen(self) -> bool:
        return self.directions is not None and all(self.directions.values())

    def to_dict(self) -> dict:
        data = {'status': self.status.value, 'error': self.error}
        if self.directions is not None:
            data['directions'] = {d.value: seen for d, seen in self.directions.items()}
        return data


@dataclass(frozen=True)
class GazeBounds:
    """Axis-aligned rectangle of calibrated gaze positions."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @classmethod
    def from_samples(cls, samples: Iterable[Tuple[float, float]]) -> Optional['GazeBounds']:
        """
        Bounding box of pooled gaze samples

        Returns:
            GazeBounds, or None when there are no samples
        """
        points = np.asarray(list(samples), dtype=float)
        if points.size == 0:
            return None
        points = points.reshape(-1, 2)
        mins = points.min(axis=0)
        maxs = points.max(axis=0)
        return cls(
            min_x=float(mins[0]),
            max_x=float(maxs[0]),
            min_y=float(mins[1]),
            max_y=float(maxs[1]),
        )

    def expanded(self, margin: float) -> 'GazeBounds':
        return GazeBounds(
            min_x=self.min_x - margin,
            max_x=self.max_x + margin,
            min_y=self.min_y - margin,
            max_y=self.max_y + margin,
        )

    def to_dict(self) -> dict:
        return {'minX': self.min_x, 'maxX': self.max_x, 'minY': self.min_y, 'maxY': self.max_y}


def _initial_steps() -> Dict[int, StepState]:
    return {
        STEP_LIGHTING: StepState(STEP_LIGHTING),
        STEP_PERSON_COUNT: StepState(STEP_PERSON_COUNT),
        STEP_HEAD_SWEEP: StepState(
            STEP_HEAD_SWEEP,
            directions={d: False for d in COMPASS_DIRECTIONS},
        ),
        STEP_GAZE: StepState(STEP_GAZE),
    }


@dataclass
class CalibrationSession:
    """
    Top-level calibration state.

    Field owners:
    - CalibrationOrchestrator: current_step, steps, gaze_bounds, calibration_complete
    - GazeMonitor: is_out_of_bounds
    - FullscreenProctor: is_fullscreen, fullscreen_violation, violation_count
    """

    current_step: int = 0
    steps: Dict[int, StepState] = field(default_factory=_initial_steps)
    gaze_bounds: Optional[GazeBounds] = None
    is_out_of_bounds: bool = False
    calibration_complete: bool = False
    is_fullscreen: bool = False
    fullscreen_violation: bool = False
    violation_count: int = 0

    @property
    def is_armed(self) -> bool:
        """Fullscreen exits count as violations only while this is True."""
        return self.current_step > 0 and not self.calibration_complete

    @property
    def active_step(self) -> Optional[StepState]:
        return self.steps.get(self.current_step)

    def status_of(self, step: int) -> StepStatus:
        return self.steps[step].status

    def remaining_directions(self) -> List[HeadDirection]:
        directions = self.steps[STEP_HEAD_SWEEP].directions
        return [d for d in COMPASS_DIRECTIONS if not directions[d]]

    def to_dict(self) -> dict:
        return {
            'current_step': self.current_step,
            'steps': {n: s.to_dict() for n, s in self.steps.items()},
            'remaining_directions': [d.value for d in self.remaining_directions()],
            'gaze_bounds': self.gaze_bounds.to_dict() if self.gaze_bounds else None,
            'is_out_of_bounds': self.is_out_of_bounds,
            'calibration_complete': self.calibration_complete,
            'is_fullscreen': self.is_fullscreen,
            'fullscreen_violation': self.fullscreen_violation,
            'violation_count': self.violation_count,
        }

    def __repr__(self):
        return (
            f"<CalibrationSession(step={self.current_step}, "
            f"complete={self.calibration_complete}, violations={self.violation_count})>"
        )
