"""
Fullscreen Proctor
Counts fullscreen exits during an active, incomplete calibration session.
"""

import logging
from typing import Optional

from ..calibration.session import CalibrationSession
from .platform import FullscreenPlatform, FullscreenUnavailable, UnsupportedFullscreen

logger = logging.getLogger(__name__)


class FullscreenProctor:
    """
    Owns session.is_fullscreen, fullscreen_violation and violation_count.

    A violation is counted once per distinct exit: repeated not-fullscreen
    notifications for the same exit (several change sources firing for one
    transition) do not add to the count.
    """

    def __init__(self, session: CalibrationSession, platform: Optional[FullscreenPlatform] = None):
        self.session = session
        self.platform = platform or UnsupportedFullscreen()
        self.enforced = True
        self._was_fullscreen: Optional[bool] = None

    def request_fullscreen(self) -> bool:
        """
        Best-effort fullscreen request.

        Returns:
            False if the platform refused; the session then continues
            without fullscreen enforcement.
        """
        try:
            self.platform.request()
            self.enforced = True
            return True
        except FullscreenUnavailable as e:
            logger.warning(f"Fullscreen request failed, continuing without enforcement: {e}")
            self.enforced = False
            return False

    def exit_fullscreen(self) -> bool:
        try:
            self.platform.exit()
            return True
        except FullscreenUnavailable as e:
            logger.warning(f"Exit fullscreen failed: {e}")
            return False

    def on_fullscreen_change(self, is_fullscreen: bool) -> bool:
        """
        Apply a fullscreen-change notification

        Args:
            is_fullscreen: Display state after the change

        Returns:
            True if this notification started a new violation
        """
        session = self.session
        session.is_fullscreen = is_fullscreen
        was_fullscreen = self._was_fullscreen
        self._was_fullscreen = is_fullscreen

        if is_fullscreen or not session.is_armed:
            return False
        if session.fullscreen_violation and not was_fullscreen:
            logger.debug("Duplicate fullscreen exit notification ignored")
            return False

        session.fullscreen_violation = True
        session.violation_count += 1
        logger.warning(f"⚠ Fullscreen violation #{session.violation_count} at step {session.current_step}")
        return True

    def return_to_fullscreen(self) -> bool:
        """Re-enter fullscreen and clear the active violation. The count is kept."""
        if not self.session.fullscreen_violation:
            return False

        self.request_fullscreen()
        self.session.fullscreen_violation = False
        logger.info(f"Returned to fullscreen (violations so far: {self.session.violation_count})")
        return True

    def get_status(self) -> dict:
        return {
            'enforced': self.enforced,
            'is_fullscreen': self.session.is_fullscreen,
            'fullscreen_violation': self.session.fullscreen_violation,
            'violation_count': self.session.violation_count,
        }

    def __repr__(self):
        return f"<FullscreenProctor(violations={self.session.violation_count})>"
