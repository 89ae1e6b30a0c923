"""
Gaze Target Sequencer
Walks the user's gaze through the fixation targets, samples the iris
midpoint during each dwell window and reports the pooled bounding box.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

from ..coordinator.timers import TimerScheduler
from ..sensors.face_mesh.types import FaceObservation
from .config import CalibrationConfig, GazeTarget
from .session import GazeBounds

logger = logging.getLogger(__name__)

DWELL_TIMER = 'gaze.dwell'
COUNTDOWN_TIMER = 'gaze.countdown'


class GazeTargetSequencer:
    """
    Step-4 gaze calibration.

    Every target gets a fixed dwell window; all gaze samples seen while a
    target is shown are kept. After the last target the samples of every
    target are pooled into one GazeBounds and passed to `on_complete`
    (None if nothing was collected).
    """

    def __init__(
            self,
            scheduler: TimerScheduler,
            on_complete: Callable[[Optional[GazeBounds]], None],
            config: Optional[CalibrationConfig] = None,
    ):
        self.scheduler = scheduler
        self.on_complete = on_complete
        self.config = config or CalibrationConfig()
        self.targets: Tuple[GazeTarget, ...] = tuple(self.config.gaze_targets)

        if not self.targets:
            raise ValueError("GazeTargetSequencer needs at least one target")

        self.index = 0
        self.countdown = self.config.countdown_start
        self.samples: Dict[str, List[Tuple[float, float]]] = {}
        self.rejected_samples = 0
        self.is_running = False
        self.result: Optional[GazeBounds] = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_target(self) -> GazeTarget:
        return self.targets[self.index]

    @property
    def sample_count(self) -> int:
        return sum(len(s) for s in self.samples.values())

    def start(self):
        """Begin at the first target with no samples."""
        self.stop()
        self.index = 0
        self.samples = {t.id: [] for t in self.targets}
        self.rejected_samples = 0
        self.result = None
        self.is_running = True
        logger.info(f"Gaze calibration started ({len(self.targets)} targets, "
                    f"{self.config.dwell_seconds:.0f}s each)")
        self._start_dwell()

    def stop(self):
        """Cancel pending timers. Collected samples are left as they are."""
        self._generation += 1
        self.scheduler.cancel(DWELL_TIMER)
        self.scheduler.cancel(COUNTDOWN_TIMER)
        if self.is_running:
            logger.info(f"Gaze calibration stopped at target {self.index + 1}/{len(self.targets)}")
        self.is_running = False

    def on_observation(self, observation: Optional[FaceObservation]) -> bool:
        """
        Record the gaze point of a frame against the current target

        Returns:
            True if a sample was stored
        """
        if not self.is_running or observation is None or observation.gaze is None:
            return False

        gx, gy = observation.gaze.gaze_x, observation.gaze.gaze_y
        if not (math.isfinite(gx) and math.isfinite(gy)):
            self.rejected_samples += 1
            logger.debug(f"Rejected non-finite gaze sample ({gx}, {gy})")
            return False

        self.samples[self.current_target.id].append((gx, gy))
        return True

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _start_dwell(self):
        generation = self._generation
        self.countdown = self.config.countdown_start
        self.scheduler.schedule_repeating(
            COUNTDOWN_TIMER,
            self.config.countdown_interval,
            lambda: self._on_countdown_tick(generation),
        )
        self.scheduler.schedule(
            DWELL_TIMER,
            self.config.dwell_seconds,
            lambda: self._on_dwell_elapsed(generation),
        )
        target = self.current_target
        logger.debug(f"Target {self.index + 1}/{len(self.targets)}: {target.label} ({target.x}, {target.y})")

    def _on_countdown_tick(self, generation: int):
        if generation != self._generation or not self.is_running:
            return
        self.countdown = max(0, self.countdown - 1)

    def _on_dwell_elapsed(self, generation: int):
        if generation != self._generation or not self.is_running:
            logger.debug("Ignoring stale dwell timer")
            return

        target = self.current_target
        logger.info(f"  ✓ {target.label}: {len(self.samples[target.id])} samples")

        if self.index < len(self.targets) - 1:
            self.index += 1
            self._start_dwell()
            return

        self.scheduler.cancel(COUNTDOWN_TIMER)
        self.is_running = False
        self._generation += 1

        pooled = [p for target_samples in self.samples.values() for p in target_samples]
        self.result = GazeBounds.from_samples(pooled)
        if self.result is None:
            logger.warning("Gaze calibration collected no samples")
        else:
            logger.info(f"✓ Gaze bounds from {len(pooled)} samples: {self.result.to_dict()}")
        self.on_complete(self.result)

    def __repr__(self):
        state = "running" if self.is_running else "idle"
        return f"<GazeTargetSequencer({state}, target={self.index + 1}/{len(self.targets)}, samples={self.sample_count})>"
