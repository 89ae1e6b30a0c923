"""
Calibration Status Projection
Pure functions deriving display text and button state from the session.
Nothing here is stored; recompute after every handled event.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..sensors.face_mesh.types import FaceObservation
from .orchestrator import STEP_LABELS
from .session import (
    STEP_GAZE,
    STEP_HEAD_SWEEP,
    STEP_LIGHTING,
    STEP_PERSON_COUNT,
    CalibrationSession,
    StepStatus,
)

STEP_DESCRIPTIONS = {
    STEP_LIGHTING: 'Detecting face...',
    STEP_PERSON_COUNT: 'Checking single person...',
    STEP_HEAD_SWEEP: 'Look in all directions',
    STEP_GAZE: 'Follow the red ball',
}

ACTION_BEGIN = 'begin'
ACTION_ADVANCE = 'advance'
ACTION_RETRY = 'retry'
ACTION_RETURN_FULLSCREEN = 'return_to_fullscreen'


@dataclass(frozen=True)
class ButtonConfig:
    text: str
    action: Optional[str]
    enabled: bool
    style: str = 'primary'  # primary | success | danger | idle


@dataclass(frozen=True)
class StepItem:
    step: int
    label: str
    status: StepStatus
    active: bool


def header_text(session: CalibrationSession, face_count: int = 0) -> str:
    """Headline for the current step and status."""
    if session.fullscreen_violation:
        return "Fullscreen Required!"
    if session.calibration_complete:
        return "Calibration Complete!"
    if session.current_step == 0:
        return "Press Start to Begin Calibration"

    step = session.current_step
    status = session.status_of(step)

    if step == STEP_LIGHTING:
        if status == StepStatus.CHECKING:
            return "Checking lighting..."
        if status == StepStatus.FAILED:
            return "Face not detected. Please ensure good lighting."
        if status == StepStatus.PASSED:
            return "Lighting OK!"
    elif step == STEP_PERSON_COUNT:
        if status == StepStatus.CHECKING:
            return "Checking for single person..."
        if status == StepStatus.FAILED:
            return f"Detected {face_count} faces. Only 1 person allowed."
        if status == StepStatus.PASSED:
            return "Single person confirmed!"
    elif step == STEP_HEAD_SWEEP:
        remaining = session.remaining_directions()
        if not remaining:
            return "All directions checked!"
        return "Look: " + ", ".join(d.value for d in remaining)
    elif step == STEP_GAZE:
        if status == StepStatus.FAILED:
            return "No gaze data collected."
        if status == StepStatus.PASSED:
            return "Gaze calibrated!"
        return "Follow the red ball with your eyes"

    return STEP_DESCRIPTIONS.get(step, "")


def button_config(session: CalibrationSession, camera_ready: bool = True, can_retry: bool = True) -> ButtonConfig:
    """
    Single action button for the current state.

    Args:
        session: Calibration session
        camera_ready: Start stays disabled until the camera delivers frames
        can_retry: Whether a failed active step offers a retry
    """
    if session.fullscreen_violation:
        return ButtonConfig("Return to Fullscreen", ACTION_RETURN_FULLSCREEN, True, 'danger')
    if session.calibration_complete:
        return ButtonConfig("Complete", None, False, 'success')
    if session.current_step == 0:
        return ButtonConfig("Start", ACTION_BEGIN, camera_ready, 'primary')

    status = session.status_of(session.current_step)
    if status == StepStatus.CHECKING:
        return ButtonConfig("Checking...", None, False, 'idle')
    if status == StepStatus.FAILED:
        if can_retry:
            return ButtonConfig("Retry", ACTION_RETRY, True, 'danger')
        return ButtonConfig("Reload to retry", None, False, 'danger')
    if status == StepStatus.PASSED:
        text = "Finish" if session.current_step == STEP_GAZE else "Next"
        return ButtonConfig(text, ACTION_ADVANCE, True, 'success')

    return ButtonConfig("Waiting...", None, False, 'idle')


def step_items(session: CalibrationSession) -> List[StepItem]:
    return [
        StepItem(
            step=n,
            label=STEP_LABELS[n],
            status=session.status_of(n),
            active=session.current_step == n,
        )
        for n in sorted(session.steps)
    ]


def face_overlay_lines(observation: Optional[FaceObservation], calibration_complete: bool = False) -> List[str]:
    """Head/gaze readout shown over the camera image; empty without a face or once calibrated."""
    if calibration_complete or observation is None or not observation.has_face:
        return []
    lines = []
    if observation.head_pose is not None:
        lines.append(f"Head: {observation.head_pose.direction.value}")
    if observation.gaze is not None:
        lines.append(f"Gaze: {observation.gaze.gaze_direction.value}")
    lines.append(f"Faces: {observation.face_count}")
    return lines


def violation_counter_text(session: CalibrationSession) -> Optional[str]:
    if session.violation_count == 0:
        return None
    return f"Fullscreen violations: {session.violation_count}"


def show_alert_background(session: CalibrationSession) -> bool:
    return session.is_out_of_bounds or session.fullscreen_violation
