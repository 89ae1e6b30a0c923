"""
Central Clock System
Provides the monotonic time reference that drives every calibration timer
"""

import threading
import time
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class CentralClock:
    """
    Thread-safe monotonic clock for the calibration session

    Guarantees:
    - Thread-safe access (capture thread and UI thread can call simultaneously)
    - Monotonic readings (never goes backwards)
    - Seconds as float, relative to an arbitrary origin
    """

    def __init__(self):
        """Initialize central clock"""
        self._lock = threading.Lock()
        self._last_reading: Optional[float] = None
        self._call_count = 0

        logger.info("Central clock initialized")

    def _read(self) -> float:
        return time.monotonic()

    def now(self) -> float:
        """
        Get current clock reading

        Returns:
            float: Seconds since an arbitrary, fixed origin
        """
        with self._lock:
            current = self._read()

            if self._last_reading is not None and current < self._last_reading:
                current = self._last_reading
                logger.debug("Clamped clock reading to maintain monotonic sequence")

            self._last_reading = current
            self._call_count += 1

            return current

    def reset(self):
        """Reset clock statistics (useful for testing)"""
        with self._lock:
            self._last_reading = None
            self._call_count = 0
            logger.info("Central clock reset")

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Clock usage statistics
        """
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_reading': self._last_reading,
            }

    def __repr__(self):
        return f"<CentralClock(calls={self._call_count})>"


class ManualClock(CentralClock):
    """
    Clock that only moves when told to.
    Lets tests and replays step timers deterministically.
    """

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._manual_time = float(start)

    def _read(self) -> float:
        return self._manual_time

    def advance(self, seconds: float) -> float:
        """
        Move the clock forward

        Args:
            seconds: Non-negative amount of time to add

        Returns:
            float: The new clock reading
        """
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._manual_time += seconds
            return self._manual_time

    def __repr__(self):
        return f"<ManualClock(t={self._manual_time:.3f})>"
