"""
Timer Scheduler
Keyed, cancellable one-shot and repeating timers driven by the central clock.
Timers only fire from run_due(), on the thread that owns the session.
"""

import itertools
import logging
from typing import Callable, Dict, Optional

from .clock import CentralClock

logger = logging.getLogger(__name__)


class TimerHandle:
    """A single scheduled callback. Cancelled handles never fire."""

    def __init__(self, key: str, deadline: float, callback: Callable[[], None],
                 interval: Optional[float], seq: int):
        self.key = key
        self.deadline = deadline
        self.callback = callback
        self.interval = interval
        self.seq = seq
        self.cancelled = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        state = "cancelled" if self.cancelled else f"due={self.deadline:.3f}"
        return f"<TimerHandle({self.key}, {state})>"


class TimerScheduler:
    """
    Owns every pending timer of a calibration session.

    Each timer lives in a named slot. Scheduling into an occupied slot
    cancels the previous timer first, so a step or target can never hold
    two live timers of the same kind.
    """

    def __init__(self, clock: CentralClock):
        self.clock = clock
        self._slots: Dict[str, TimerHandle] = {}
        self._seq = itertools.count()
        self._firing_at: Optional[float] = None
        self.fired_count = 0

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule a one-shot timer

        Args:
            key: Slot name (e.g. 'step.check', 'gaze.dwell')
            delay: Seconds from now
            callback: Called with no arguments when due

        Returns:
            TimerHandle for the new timer
        """
        return self._put(key, delay, callback, None)

    def schedule_repeating(self, key: str, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule a timer that fires every `interval` seconds until cancelled."""
        if interval <= 0:
            raise ValueError(f"Repeating interval must be positive, got {interval}")
        return self._put(key, interval, callback, interval)

    def _put(self, key, delay, callback, interval) -> TimerHandle:
        self.cancel(key)
        handle = TimerHandle(
            key=key,
            deadline=self._now() + max(0.0, delay),
            callback=callback,
            interval=interval,
            seq=next(self._seq),
        )
        self._slots[key] = handle
        logger.debug(f"Scheduled {handle}")
        return handle

    def _now(self) -> float:
        # Timers set from inside a callback count from that callback's deadline
        if self._firing_at is not None:
            return self._firing_at
        return self.clock.now()

    def cancel(self, key: str) -> bool:
        """
        Cancel the timer in a slot

        Returns:
            True if a live timer was cancelled
        """
        handle = self._slots.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Cancelled timer '{key}'")
        return True

    def cancel_all(self) -> int:
        count = len(self._slots)
        for handle in self._slots.values():
            handle.cancel()
        self._slots.clear()
        if count:
            logger.debug(f"Cancelled {count} pending timers")
        return count

    def is_scheduled(self, key: str) -> bool:
        return key in self._slots

    def time_remaining(self, key: str) -> Optional[float]:
        handle = self._slots.get(key)
        if handle is None:
            return None
        return max(0.0, handle.deadline - self.clock.now())

    @property
    def pending(self) -> int:
        return len(self._slots)

    def run_due(self, until: Optional[float] = None) -> int:
        """
        Fire every timer whose deadline has passed, earliest first.

        Callbacks may schedule or cancel other timers. A repeating timer that
        fell behind fires once per missed interval.

        Args:
            until: Only fire timers due at or before this reading (capped at now)

        Returns:
            Number of callbacks fired
        """
        fired = 0
        now = self.clock.now()
        if until is not None:
            now = min(now, until)

        while True:
            due = [h for h in self._slots.values() if h.deadline <= now]
            if not due:
                break
            handle = min(due, key=lambda h: (h.deadline, h.seq))
            self._firing_at = handle.deadline

            if handle.repeating:
                handle.deadline += handle.interval
            else:
                del self._slots[handle.key]

            try:
                handle.callback()
            except Exception as e:
                logger.error(f"✗ Timer '{handle.key}' callback failed: {e}", exc_info=True)
            finally:
                self._firing_at = None
            fired += 1

        self.fired_count += fired
        return fired

    def __repr__(self):
        return f"<TimerScheduler(pending={len(self._slots)})>"
