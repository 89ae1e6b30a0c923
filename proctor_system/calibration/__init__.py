"""
Calibration Module
Four-step proctoring calibration and post-calibration gaze monitoring

Architecture:
- CalibrationSession:      Shared state record (steps, bounds, violations)
- CalibrationOrchestrator: Step state machine (lighting, person count, head sweep, gaze)
- GazeTargetSequencer:     Five-target dwell sampling for the gaze bounds
- GazeMonitor:             Out-of-bounds flag after calibration
- status:                  Header text / button projections for the UI
"""

from .config import CalibrationConfig, GazeTarget, DEFAULT_GAZE_TARGETS
from .session import (
    CalibrationSession,
    GazeBounds,
    InvalidTransition,
    StepState,
    StepStatus,
)
from .orchestrator import CalibrationOrchestrator
from .sequencer import GazeTargetSequencer
from .monitor import GazeMonitor, is_out_of_bounds

__all__ = [
    'CalibrationConfig',
    'GazeTarget',
    'DEFAULT_GAZE_TARGETS',
    'CalibrationSession',
    'GazeBounds',
    'InvalidTransition',
    'StepState',
    'StepStatus',
    'CalibrationOrchestrator',
    'GazeTargetSequencer',
    'GazeMonitor',
    'is_out_of_bounds',
]
