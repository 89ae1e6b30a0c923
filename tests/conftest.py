"""Shared fixtures and helpers for the proctor calibration tests."""

from typing import List, Optional

import pytest

from proctor_system import SessionCoordinator
from proctor_system.calibration.config import CalibrationConfig
from proctor_system.coordinator.clock import ManualClock
from proctor_system.coordinator.coordinator import FrameEvent
from proctor_system.proctor.platform import FullscreenPlatform, FullscreenUnavailable
from proctor_system.sensors.face_mesh.types import (
    FaceObservation,
    Gaze,
    GazeDirection,
    HeadDirection,
    HeadPose,
    Landmark,
)

LANDMARK_COUNT = 478


def make_landmarks(yaw: float = 0.0, pitch: float = 0.0, iris_offset: float = 0.0,
                   iris_y: float = 0.4, count: int = LANDMARK_COUNT) -> List[Landmark]:
    """
    Synthetic face: eye corners at x=0.40/0.46 and 0.54/0.60 on y=0.4, chin at
    y=0.7. Face width 0.2 and height 0.3, so the nose lands on the requested
    yaw/pitch percentages. Both irises sit mid-eye when iris_offset is 0.
    """
    points = [Landmark(0.5, 0.5, 0.0) for _ in range(count)]

    def put(idx, x, y):
        if idx < count:
            points[idx] = Landmark(x, y, 0.0)

    put(33, 0.40, 0.40)
    put(133, 0.46, 0.40)
    put(362, 0.54, 0.40)
    put(263, 0.60, 0.40)
    put(152, 0.50, 0.70)
    put(1, 0.5 + yaw / 100 * 0.2, 0.49 + pitch / 100 * 0.3)
    put(468, 0.43 + iris_offset, iris_y)
    put(473, 0.57 + iris_offset, iris_y)
    return points


def make_observation(gaze_x: float = 0.5, gaze_y: float = 0.4, face_count: int = 1,
                     direction: HeadDirection = HeadDirection.CENTER,
                     timestamp: Optional[float] = None) -> FaceObservation:
    """Observation with a fixed gaze point, bypassing landmark geometry."""
    if face_count == 0:
        return FaceObservation.empty(timestamp)
    return FaceObservation(
        face_count=face_count,
        landmarks=(),
        head_pose=HeadPose(yaw=0.0, pitch=0.0, roll=0.0, direction=direction),
        gaze=Gaze(
            left_iris_pos=0.5,
            right_iris_pos=0.5,
            gaze_direction=GazeDirection.CENTER,
            gaze_x=gaze_x,
            gaze_y=gaze_y,
        ),
        timestamp=timestamp,
    )


class FakeFullscreen(FullscreenPlatform):
    """In-memory display that notifies synchronously, like a browser change event."""

    def __init__(self, supported: bool = True):
        super().__init__()
        self.supported = supported
        self.state = False
        self.requests = 0

    def is_fullscreen(self) -> bool:
        return self.state

    def request(self):
        if not self.supported:
            raise FullscreenUnavailable("fake display has no fullscreen")
        self.requests += 1
        self.set_state(True)

    def exit(self):
        if not self.supported:
            raise FullscreenUnavailable("fake display has no fullscreen")
        self.set_state(False)

    def set_state(self, state: bool):
        self.state = state
        self._notify(state)


# ---------------------------------------------------------------------------
# Driving helpers
# ---------------------------------------------------------------------------

def feed(coordinator: SessionCoordinator, observation: FaceObservation):
    coordinator.post(FrameEvent(observation))
    coordinator.process_pending()


def feed_faces(coordinator: SessionCoordinator, *faces):
    coordinator.submit_faces(list(faces))
    coordinator.process_pending()


def wait(coordinator: SessionCoordinator, seconds: float):
    coordinator.clock.advance(seconds)
    coordinator.process_pending()


def pass_first_three_steps(coordinator: SessionCoordinator):
    """Drive a fresh session to the start of step 4."""
    feed_faces(coordinator, make_landmarks())
    assert coordinator.begin()
    wait(coordinator, 2.0)
    assert coordinator.advance()
    wait(coordinator, 2.0)
    assert coordinator.advance()
    for yaw, pitch in ((-20, 0), (20, 0), (0, -20), (0, 20)):
        feed_faces(coordinator, make_landmarks(yaw=yaw, pitch=pitch))
    assert coordinator.advance()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def coordinator(clock):
    coord = SessionCoordinator(clock=clock, config=CalibrationConfig.for_testing())
    yield coord
    coord.shutdown()


@pytest.fixture
def display():
    return FakeFullscreen()


@pytest.fixture
def proctored(clock, display):
    """Coordinator that requests fullscreen on Start."""
    coord = SessionCoordinator(clock=clock, config=CalibrationConfig(), platform=display)
    yield coord
    coord.shutdown()
