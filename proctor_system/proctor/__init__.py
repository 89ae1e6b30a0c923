"""
Fullscreen proctoring: platform adapters and the violation tracker.
"""

from .platform import (
    FullscreenPlatform,
    FullscreenUnavailable,
    PygameFullscreen,
    UnsupportedFullscreen,
)
from .proctor import FullscreenProctor

__all__ = [
    'FullscreenPlatform',
    'FullscreenUnavailable',
    'PygameFullscreen',
    'UnsupportedFullscreen',
    'FullscreenProctor',
]
