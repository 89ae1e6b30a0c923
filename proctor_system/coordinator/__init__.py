"""
Proctor System Coordinator
Clock and timers shared by every calibration component.
SessionCoordinator lives in .coordinator and is exported from the package root.
"""

from .clock import CentralClock, ManualClock
from .timers import TimerHandle, TimerScheduler

__all__ = [
    'CentralClock',
    'ManualClock',
    'TimerHandle',
    'TimerScheduler',
]

__version__ = '1.0.0'
