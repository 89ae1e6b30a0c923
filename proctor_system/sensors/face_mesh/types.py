"""
Face Mesh Types
Per-frame landmark, head pose and gaze records
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple


class HeadDirection(str, Enum):
    CENTER = 'CENTER'
    LEFT = 'LEFT'
    RIGHT = 'RIGHT'
    UP = 'UP'
    DOWN = 'DOWN'


class GazeDirection(str, Enum):
    CENTER = 'CENTER'
    LEFT = 'LEFT'
    RIGHT = 'RIGHT'


# The four head directions the user has to sweep through, in display order
COMPASS_DIRECTIONS: Tuple[HeadDirection, ...] = (
    HeadDirection.LEFT,
    HeadDirection.RIGHT,
    HeadDirection.UP,
    HeadDirection.DOWN,
)


@dataclass(frozen=True)
class Landmark:
    """Normalized landmark; x, y in [0, 1] relative to the frame, z optional depth."""

    x: float
    y: float
    z: Optional[float] = None


@dataclass(frozen=True)
class HeadPose:
    """
    Geometric head pose from five landmarks.

    yaw/pitch are percentages of face width/height, roll is degrees:
    - yaw: left(-) / right(+)
    - pitch: up(-) / down(+)
    - roll: eye-line tilt
    """

    yaw: float
    pitch: float
    roll: float
    direction: HeadDirection


@dataclass(frozen=True)
class Gaze:
    """Iris position within each eye plus the iris midpoint in frame coordinates."""

    left_iris_pos: float
    right_iris_pos: float
    gaze_direction: GazeDirection
    gaze_x: float
    gaze_y: float

    @property
    def avg_iris_pos(self) -> float:
        return (self.left_iris_pos + self.right_iris_pos) / 2


@dataclass(frozen=True)
class FaceObservation:
    """
    Snapshot of one detector frame. Replaced wholesale every frame.

    landmarks/head_pose/gaze describe the first detected face and are None
    when face_count is 0.
    """

    face_count: int = 0
    landmarks: Optional[Sequence[Landmark]] = None
    head_pose: Optional[HeadPose] = None
    gaze: Optional[Gaze] = None
    timestamp: Optional[float] = None

    @property
    def has_face(self) -> bool:
        return self.face_count > 0 and self.landmarks is not None

    @classmethod
    def empty(cls, timestamp: Optional[float] = None) -> 'FaceObservation':
        return cls(face_count=0, timestamp=timestamp)
