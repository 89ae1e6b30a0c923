"""
Calibration Orchestrator
Four-step calibration state machine:
  1. Lighting     - a face is visible after a short delay
  2. Person count - exactly one face after a short delay
  3. Head sweep   - the head has been turned LEFT, RIGHT, UP and DOWN
  4. Gaze         - GazeTargetSequencer produces the gaze bounds

Actions (begin/advance/retry) are safe no-ops outside the state that
enables them and return False in that case.
"""

import logging
from typing import Callable, Optional

from ..coordinator.timers import TimerScheduler
from ..sensors.face_mesh.types import FaceObservation
from .config import CalibrationConfig
from .sequencer import GazeTargetSequencer
from .session import (
    STEP_GAZE,
    STEP_HEAD_SWEEP,
    STEP_LIGHTING,
    STEP_PERSON_COUNT,
    TOTAL_STEPS,
    CalibrationSession,
    GazeBounds,
    StepStatus,
)

logger = logging.getLogger(__name__)

CHECK_TIMER = 'step.check'

STEP_LABELS = {
    STEP_LIGHTING: 'Check Lighting',
    STEP_PERSON_COUNT: 'Person Count',
    STEP_HEAD_SWEEP: 'Head Direction',
    STEP_GAZE: 'Gaze Calibration',
}


class CalibrationOrchestrator:
    """
    Drives the calibration steps over a shared CalibrationSession.

    Reads the latest FaceObservation through `observation_source` so that
    timed checks judge the frame present when the timer fires, not the one
    present when the check was started.
    """

    def __init__(
            self,
            session: CalibrationSession,
            scheduler: TimerScheduler,
            observation_source: Callable[[], Optional[FaceObservation]],
            config: Optional[CalibrationConfig] = None,
    ):
        self.session = session
        self.scheduler = scheduler
        self.observation_source = observation_source
        self.config = config or CalibrationConfig()

        self.sequencer: Optional[GazeTargetSequencer] = None
        self._check_token = 0

        logger.info("Calibration orchestrator initialised")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def begin(self) -> bool:
        """Start step 1. Only valid before the session has started."""
        if self.session.current_step != 0 or self._blocked:
            return False

        self.session.current_step = STEP_LIGHTING
        logger.info("Calibration session started")
        self._start_check(STEP_LIGHTING)
        return True

    def advance(self) -> bool:
        """Move past a passed step; after step 4 this completes calibration."""
        session = self.session
        if self._blocked or session.calibration_complete or session.current_step == 0:
            return False
        if session.active_step.status != StepStatus.PASSED:
            return False

        if session.current_step < TOTAL_STEPS:
            self.scheduler.cancel(CHECK_TIMER)
            session.current_step += 1
            logger.info(f"→ Step {session.current_step}: {STEP_LABELS[session.current_step]}")
            self._enter_step(session.current_step)
        else:
            self._finish()
        return True

    def retry(self) -> bool:
        """Re-run a failed step 1/2 check, or step 4 when gaze retry is enabled."""
        session = self.session
        if self._blocked or session.calibration_complete or session.current_step == 0:
            return False
        if session.active_step.status != StepStatus.FAILED:
            return False

        step = session.current_step
        if step in (STEP_LIGHTING, STEP_PERSON_COUNT):
            logger.info(f"Retrying step {step}")
            self._start_check(step)
            return True

        if step == STEP_GAZE and self.config.allow_gaze_retry:
            logger.info("Retrying gaze calibration")
            session.steps[STEP_GAZE].transition(StepStatus.CHECKING)
            self._start_sequencer()
            return True

        return False

    @property
    def can_retry(self) -> bool:
        session = self.session
        if session.current_step == 0 or session.calibration_complete:
            return False
        if session.active_step.status != StepStatus.FAILED:
            return False
        return session.current_step != STEP_GAZE or self.config.allow_gaze_retry

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_observation(self, observation: Optional[FaceObservation]):
        if self._blocked or self.session.calibration_complete:
            return

        step = self.session.current_step
        if step == STEP_HEAD_SWEEP:
            self._track_head_direction(observation)
        elif step == STEP_GAZE and self.sequencer is not None:
            self.sequencer.on_observation(observation)

    def on_violation_changed(self, active: bool):
        """
        Suspend the gaze sequencer while a fullscreen violation is shown and
        restart it from the first target once the violation is cleared.
        """
        if self.session.current_step != STEP_GAZE:
            return
        if self.session.status_of(STEP_GAZE) != StepStatus.CHECKING:
            return

        if active:
            if self.sequencer is not None:
                self.sequencer.stop()
            logger.warning("Gaze calibration suspended by fullscreen violation")
        else:
            logger.info("Gaze calibration restarting after fullscreen violation")
            self._start_sequencer()

    def shutdown(self):
        """Release every timer owned by the calibration steps."""
        self.scheduler.cancel(CHECK_TIMER)
        self._check_token += 1
        if self.sequencer is not None:
            self.sequencer.stop()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @property
    def _blocked(self) -> bool:
        return self.session.fullscreen_violation

    def _enter_step(self, step: int):
        if step == STEP_PERSON_COUNT:
            self._start_check(STEP_PERSON_COUNT)
        elif step == STEP_HEAD_SWEEP:
            self.session.steps[STEP_HEAD_SWEEP].transition(StepStatus.CHECKING)
            self._track_head_direction(self.observation_source())
        elif step == STEP_GAZE:
            self.session.steps[STEP_GAZE].transition(StepStatus.CHECKING)
            self._start_sequencer()

    def _start_check(self, step: int):
        self.session.steps[step].transition(StepStatus.CHECKING)
        self._check_token += 1
        token = self._check_token
        self.scheduler.schedule(
            CHECK_TIMER,
            self.config.check_delay,
            lambda: self._finish_check(step, token),
        )

    def _finish_check(self, step: int, token: int):
        state = self.session.steps[step]
        if (token != self._check_token
                or self.session.current_step != step
                or state.status != StepStatus.CHECKING):
            logger.debug(f"Ignoring stale check for step {step}")
            return

        observation = self.observation_source()

        if step == STEP_LIGHTING:
            if observation is not None and observation.has_face:
                state.transition(StepStatus.PASSED)
                logger.info("✓ Step 1: face detected")
            else:
                state.transition(StepStatus.FAILED, error="No face detected")
                logger.warning("✗ Step 1: no face detected")

        elif step == STEP_PERSON_COUNT:
            count = observation.face_count if observation is not None else 0
            if count == 1:
                state.transition(StepStatus.PASSED)
                logger.info("✓ Step 2: single person confirmed")
            else:
                state.transition(StepStatus.FAILED, error=f"Detected {count} faces")
                logger.warning(f"✗ Step 2: detected {count} faces")

    def _track_head_direction(self, observation: Optional[FaceObservation]):
        state = self.session.steps[STEP_HEAD_SWEEP]
        if state.status != StepStatus.CHECKING:
            return
        if observation is None or observation.head_pose is None:
            return

        direction = observation.head_pose.direction
        if state.mark_direction(direction):
            logger.info(f"  ✓ Head turned {direction.value}")

        if state.all_directions_seen:
            state.transition(StepStatus.PASSED)
            logger.info("✓ Step 3: all head directions checked")

    def _start_sequencer(self):
        if self.sequencer is not None:
            self.sequencer.stop()
        self.sequencer = GazeTargetSequencer(
            scheduler=self.scheduler,
            on_complete=self._on_gaze_calibrated,
            config=self.config,
        )
        self.sequencer.start()

    def _on_gaze_calibrated(self, bounds: Optional[GazeBounds]):
        state = self.session.steps[STEP_GAZE]
        if self.session.current_step != STEP_GAZE or state.status != StepStatus.CHECKING:
            logger.debug("Ignoring stale gaze calibration result")
            return

        if bounds is None:
            state.transition(StepStatus.FAILED, error="No gaze data")
            logger.warning("✗ Step 4: no gaze data")
            return

        if self.session.gaze_bounds is not None:
            logger.warning("Gaze bounds already set for this session, keeping the first result")
        else:
            self.session.gaze_bounds = bounds
        state.transition(StepStatus.PASSED)
        logger.info("✓ Step 4: gaze calibrated")

    def _finish(self):
        self.shutdown()
        self.session.calibration_complete = True
        logger.info("✓ Calibration complete")

    def __repr__(self):
        return f"<CalibrationOrchestrator(step={self.session.current_step})>"
