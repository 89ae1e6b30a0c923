"""
Proctor System
Pre-exam proctoring calibration: face presence, single person, head sweep,
gaze-bounds calibration, then continuous looking-away and fullscreen checks.
"""

from .coordinator.coordinator import SessionCoordinator
from .pipeline import CalibrationPipeline

__all__ = [
    'SessionCoordinator',
    'CalibrationPipeline',
]

__version__ = '1.0.0'
