"""
Session Coordinator
Single inbound event channel for a calibration session. Frames from the
detector thread, fullscreen changes and user actions are queued, then
applied one at a time on the owning thread, followed by any due timers.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from ..calibration.config import CalibrationConfig
from ..calibration.monitor import GazeMonitor
from ..calibration.orchestrator import CalibrationOrchestrator
from ..calibration.session import CalibrationSession
from ..calibration import status as status_projection
from ..proctor.platform import FullscreenPlatform
from ..proctor.proctor import FullscreenProctor
from ..sensors.face_mesh.config import FaceMeshConfig
from ..sensors.face_mesh.features import extract_observation
from ..sensors.face_mesh.types import FaceObservation, Landmark
from .clock import CentralClock
from .timers import TimerScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameEvent:
    observation: FaceObservation


@dataclass(frozen=True)
class FullscreenEvent:
    is_fullscreen: bool
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class ActionEvent:
    action: str
    timestamp: Optional[float] = None


Event = Union[FrameEvent, FullscreenEvent, ActionEvent]

ACTIONS = (
    status_projection.ACTION_BEGIN,
    status_projection.ACTION_ADVANCE,
    status_projection.ACTION_RETRY,
    status_projection.ACTION_RETURN_FULLSCREEN,
)


class SessionCoordinator:
    """
    Wires the calibration components around one CalibrationSession

    Responsibilities:
    - Hold the latest FaceObservation (written only from frame events)
    - Dispatch events in the order they happened on one thread
    - Fire each due timer before any event stamped later than its deadline
    - Expose the session as plain queryable state
    """

    def __init__(
            self,
            clock: Optional[CentralClock] = None,
            config: Optional[CalibrationConfig] = None,
            face_config: Optional[FaceMeshConfig] = None,
            platform: Optional[FullscreenPlatform] = None,
    ):
        """
        Args:
            clock: Time reference for every timer (ManualClock in tests)
            config: Calibration flow settings
            face_config: Landmark indices and thresholds for feature extraction
            platform: Fullscreen adapter; headless sessions run unenforced
        """
        self.clock = clock or CentralClock()
        self.config = config or CalibrationConfig.for_calibration()
        self.face_config = face_config or FaceMeshConfig.for_calibration()

        self.session = CalibrationSession()
        self.scheduler = TimerScheduler(self.clock)
        self._observation: Optional[FaceObservation] = None
        self._events: "queue.Queue[Tuple[float, Event]]" = queue.Queue()

        self.orchestrator = CalibrationOrchestrator(
            session=self.session,
            scheduler=self.scheduler,
            observation_source=lambda: self._observation,
            config=self.config,
        )
        self.monitor = GazeMonitor(self.session, margin=self.config.gaze_margin)
        self.proctor = FullscreenProctor(self.session, platform)
        self.proctor.platform.on_change(self.post_fullscreen_change)

        self.frames_processed = 0
        self.frames_dropped = 0

        logger.info("Session coordinator initialized")

    # ------------------------------------------------------------------
    # Inbound (any thread)
    # ------------------------------------------------------------------

    def post(self, event: Event):
        """Queue an event. Events without a timestamp are stamped with the clock now."""
        self._events.put((self._event_time(event), event))

    def submit_faces(self, faces: Sequence[Sequence[Landmark]]):
        """
        Detector callback: build the observation for one frame and queue it

        Args:
            faces: Landmark sequences of every detected face, first is primary
        """
        try:
            observation = extract_observation(faces, self.face_config, timestamp=self.clock.now())
        except ValueError as e:
            self.frames_dropped += 1
            logger.warning(f"Dropping frame: {e}")
            return
        self.post(FrameEvent(observation))

    def post_fullscreen_change(self, is_fullscreen: bool):
        self.post(FullscreenEvent(bool(is_fullscreen), timestamp=self.clock.now()))

    # ------------------------------------------------------------------
    # Dispatch (owning thread)
    # ------------------------------------------------------------------

    def process_pending(self) -> int:
        """
        Apply queued events and due timers in the order they happened.
        Timers due at or before an event's timestamp fire before that event.

        Returns:
            Number of events applied
        """
        handled = 0
        while True:
            try:
                event_time, event = self._events.get_nowait()
            except queue.Empty:
                break
            self.scheduler.run_due(until=event_time)
            self.dispatch(event)
            handled += 1

        self.scheduler.run_due()
        return handled

    def _event_time(self, event: Event) -> float:
        if isinstance(event, FrameEvent):
            stamp = event.observation.timestamp
        else:
            stamp = getattr(event, 'timestamp', None)
        return self.clock.now() if stamp is None else stamp

    def dispatch(self, event: Event) -> bool:
        """Apply one event immediately. Returns the handler's result."""
        if isinstance(event, FrameEvent):
            self._on_frame(event.observation)
            return True
        if isinstance(event, FullscreenEvent):
            return self._on_fullscreen(event.is_fullscreen)
        if isinstance(event, ActionEvent):
            return self._on_action(event.action)
        raise TypeError(f"Unknown event type: {type(event).__name__}")

    def _on_frame(self, observation: FaceObservation):
        self._observation = observation
        self.frames_processed += 1
        self.orchestrator.on_observation(observation)
        self.monitor.on_observation(observation)

    def _on_fullscreen(self, is_fullscreen: bool) -> bool:
        started = self.proctor.on_fullscreen_change(is_fullscreen)
        if started:
            self.orchestrator.on_violation_changed(True)
        return started

    def _on_action(self, action: str) -> bool:
        if action == status_projection.ACTION_BEGIN:
            if self.session.current_step != 0:
                return False
            if self.config.request_fullscreen:
                self.proctor.request_fullscreen()
            return self.orchestrator.begin()
        if action == status_projection.ACTION_ADVANCE:
            return self.orchestrator.advance()
        if action == status_projection.ACTION_RETRY:
            return self.orchestrator.retry()
        if action == status_projection.ACTION_RETURN_FULLSCREEN:
            cleared = self.proctor.return_to_fullscreen()
            if cleared:
                self.orchestrator.on_violation_changed(False)
            return cleared

        logger.warning(f"Unknown action '{action}' ignored")
        return False

    # ------------------------------------------------------------------
    # Actions (owning thread, applied immediately after anything earlier)
    # ------------------------------------------------------------------

    def begin(self) -> bool:
        return self._act_now(status_projection.ACTION_BEGIN)

    def advance(self) -> bool:
        return self._act_now(status_projection.ACTION_ADVANCE)

    def retry(self) -> bool:
        return self._act_now(status_projection.ACTION_RETRY)

    def return_to_fullscreen(self) -> bool:
        return self._act_now(status_projection.ACTION_RETURN_FULLSCREEN)

    def _act_now(self, action: str) -> bool:
        self.process_pending()
        return self.dispatch(ActionEvent(action, timestamp=self.clock.now()))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def latest_observation(self) -> Optional[FaceObservation]:
        return self._observation

    @property
    def face_count(self) -> int:
        return self._observation.face_count if self._observation is not None else 0

    def header_text(self) -> str:
        return status_projection.header_text(self.session, self.face_count)

    def button_config(self, camera_ready: bool = True) -> status_projection.ButtonConfig:
        return status_projection.button_config(
            self.session,
            camera_ready=camera_ready,
            can_retry=self.orchestrator.can_retry,
        )

    def get_status(self) -> dict:
        """
        Plain snapshot of the session for display or logging

        Returns:
            dict: Session fields plus derived header text and button state
        """
        button = self.button_config()
        status = self.session.to_dict()
        status.update({
            'header': self.header_text(),
            'button': {'text': button.text, 'action': button.action, 'enabled': button.enabled},
            'face_count': self.face_count,
            'frames_processed': self.frames_processed,
            'frames_dropped': self.frames_dropped,
            'fullscreen_enforced': self.proctor.enforced,
            'pending_timers': self.scheduler.pending,
        })
        sequencer = self.orchestrator.sequencer
        if sequencer is not None and sequencer.is_running:
            status['gaze_target'] = {
                'index': sequencer.index,
                'id': sequencer.current_target.id,
                'countdown': sequencer.countdown,
                'samples': sequencer.sample_count,
            }
        return status

    def shutdown(self):
        """Cancel every timer and drop queued events."""
        self.orchestrator.shutdown()
        cancelled = self.scheduler.cancel_all()
        dropped = 0
        while True:
            try:
                self._events.get_nowait()
                dropped += 1
            except queue.Empty:
                break
        logger.info(f"✓ Session coordinator shut down ({cancelled} timers cancelled, {dropped} events dropped)")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - cleanup"""
        self.shutdown()

    def __repr__(self):
        return f"<SessionCoordinator(step={self.session.current_step}, frames={self.frames_processed})>"
