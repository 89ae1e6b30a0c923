"""
Fullscreen Platform Adapters
One capability interface over the display's fullscreen controls:
    is_fullscreen(), request(), exit(), on_change(handler)
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[bool], None]


class FullscreenUnavailable(RuntimeError):
    """The display cannot enter or leave fullscreen."""


class FullscreenPlatform(ABC):
    """Base adapter. Subclasses call _notify() whenever the state flips."""

    def __init__(self):
        self._handlers: List[ChangeHandler] = []

    @abstractmethod
    def is_fullscreen(self) -> bool:
        ...

    @abstractmethod
    def request(self):
        """Enter fullscreen. Raises FullscreenUnavailable if unsupported."""

    @abstractmethod
    def exit(self):
        """Leave fullscreen. Raises FullscreenUnavailable if unsupported."""

    def on_change(self, handler: ChangeHandler):
        self._handlers.append(handler)

    def poll(self):
        """Adapters that cannot push notifications detect changes here."""

    def _notify(self, is_fullscreen: bool):
        for handler in list(self._handlers):
            handler(is_fullscreen)


class UnsupportedFullscreen(FullscreenPlatform):
    """Headless or restricted displays: never fullscreen, requests fail."""

    def is_fullscreen(self) -> bool:
        return False

    def request(self):
        raise FullscreenUnavailable("Fullscreen is not supported on this display")

    def exit(self):
        raise FullscreenUnavailable("Fullscreen is not supported on this display")


class PygameFullscreen(FullscreenPlatform):
    """
    pygame display adapter.

    pygame has no fullscreen-change event, so poll() compares the display
    surface flags with the last seen state once per UI frame.
    """

    def __init__(self, windowed_size: Tuple[int, int] = (1280, 720)):
        super().__init__()
        self.windowed_size = windowed_size
        self._last_state: Optional[bool] = None

    def is_fullscreen(self) -> bool:
        import pygame as pg

        surface = pg.display.get_surface()
        if surface is None:
            return False
        return bool(surface.get_flags() & pg.FULLSCREEN)

    def request(self):
        if self.is_fullscreen():
            return
        self._toggle()

    def exit(self):
        if not self.is_fullscreen():
            return
        self._toggle()

    def _toggle(self):
        import pygame as pg

        if pg.display.get_surface() is None:
            raise FullscreenUnavailable("No pygame display surface")
        try:
            ok = pg.display.toggle_fullscreen()
        except pg.error as e:
            raise FullscreenUnavailable(str(e)) from e
        if not ok:
            raise FullscreenUnavailable(f"toggle_fullscreen not supported by driver {pg.display.get_driver()}")
        self.poll()

    def poll(self):
        state = self.is_fullscreen()
        if state != self._last_state:
            self._last_state = state
            logger.debug(f"Display fullscreen state: {state}")
            self._notify(state)
