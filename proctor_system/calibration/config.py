"""
Calibration Configuration
Step timings, gaze targets and monitoring tolerance
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class GazeTarget:
    """Fixation target in normalized screen coordinates (0-1)."""

    id: str
    x: float
    y: float
    label: str


# Centre first, then the four corners at 10% / 90% margins
DEFAULT_GAZE_TARGETS: Tuple[GazeTarget, ...] = (
    GazeTarget('center', 0.5, 0.5, 'Center'),
    GazeTarget('top-left', 0.1, 0.1, 'Top Left'),
    GazeTarget('top-right', 0.9, 0.1, 'Top Right'),
    GazeTarget('bottom-right', 0.9, 0.9, 'Bottom Right'),
    GazeTarget('bottom-left', 0.1, 0.9, 'Bottom Left'),
)


@dataclass
class CalibrationConfig:
    """Calibration flow configuration"""

    # Steps 1 and 2: delay before face presence / count is evaluated
    check_delay: float = 2.0

    # Step 4: per-target dwell window and display countdown
    dwell_seconds: float = 5.0
    countdown_start: int = 5
    countdown_interval: float = 1.0
    gaze_targets: Tuple[GazeTarget, ...] = field(default=DEFAULT_GAZE_TARGETS)

    # Step 4 failure (no gaze samples) offers a retry only when enabled
    allow_gaze_retry: bool = False

    # Enter fullscreen when the session begins
    request_fullscreen: bool = True

    # Gaze monitor tolerance around the calibrated bounds (normalized units)
    gaze_margin: float = 0.05

    @classmethod
    def for_calibration(cls) -> 'CalibrationConfig':
        """Default proctoring calibration flow"""
        return cls()

    @classmethod
    def for_testing(cls) -> 'CalibrationConfig':
        """Same flow without touching the display"""
        return cls(request_fullscreen=False)
