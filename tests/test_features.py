"""Tests for head pose / gaze feature extraction."""

import pytest

from proctor_system.sensors.face_mesh.config import FaceMeshConfig
from proctor_system.sensors.face_mesh.features import (
    calculate_gaze,
    calculate_head_pose,
    classify_gaze_direction,
    classify_head_direction,
    extract_observation,
    iris_position,
)
from proctor_system.sensors.face_mesh.types import GazeDirection, HeadDirection, Landmark

from conftest import make_landmarks


class TestClassifyHeadDirection:

    @pytest.mark.parametrize("yaw, pitch, expected", [
        (-16.0, 0.0, HeadDirection.LEFT),
        (16.0, 0.0, HeadDirection.RIGHT),
        (0.0, -16.0, HeadDirection.UP),
        (0.0, 16.0, HeadDirection.DOWN),
        (0.0, 0.0, HeadDirection.CENTER),
    ])
    def test_directions(self, yaw, pitch, expected):
        assert classify_head_direction(yaw, pitch) == expected

    def test_threshold_is_exclusive(self):
        """Exactly ±15 stays CENTER."""
        assert classify_head_direction(15.0, 0.0) == HeadDirection.CENTER
        assert classify_head_direction(-15.0, 0.0) == HeadDirection.CENTER
        assert classify_head_direction(0.0, 15.0) == HeadDirection.CENTER
        assert classify_head_direction(0.0, -15.0) == HeadDirection.CENTER

    def test_yaw_wins_over_pitch(self):
        assert classify_head_direction(-30.0, 40.0) == HeadDirection.LEFT
        assert classify_head_direction(30.0, -40.0) == HeadDirection.RIGHT

    def test_custom_threshold(self):
        assert classify_head_direction(12.0, 0.0, threshold=10.0) == HeadDirection.RIGHT


class TestClassifyGazeDirection:

    def test_bands(self):
        assert classify_gaze_direction(0.3) == GazeDirection.LEFT
        assert classify_gaze_direction(0.5) == GazeDirection.CENTER
        assert classify_gaze_direction(0.7) == GazeDirection.RIGHT

    def test_band_edges_are_center(self):
        assert classify_gaze_direction(0.4) == GazeDirection.CENTER
        assert classify_gaze_direction(0.6) == GazeDirection.CENTER


class TestHeadPose:

    def test_neutral_face(self):
        pose = calculate_head_pose(make_landmarks())
        assert pose.yaw == pytest.approx(0.0, abs=1e-6)
        assert pose.pitch == pytest.approx(0.0, abs=1e-6)
        assert pose.roll == pytest.approx(0.0, abs=1e-6)
        assert pose.direction == HeadDirection.CENTER

    @pytest.mark.parametrize("yaw, pitch, expected", [
        (-20, 0, HeadDirection.LEFT),
        (20, 0, HeadDirection.RIGHT),
        (0, -20, HeadDirection.UP),
        (0, 20, HeadDirection.DOWN),
    ])
    def test_turned_head(self, yaw, pitch, expected):
        pose = calculate_head_pose(make_landmarks(yaw=yaw, pitch=pitch))
        assert pose.yaw == pytest.approx(yaw, abs=1e-6)
        assert pose.pitch == pytest.approx(pitch, abs=1e-6)
        assert pose.direction == expected

    def test_roll_follows_eye_line(self):
        landmarks = make_landmarks()
        landmarks[263] = Landmark(0.60, 0.60)
        pose = calculate_head_pose(landmarks)
        assert pose.roll == pytest.approx(45.0)

    def test_degenerate_geometry_is_neutral(self):
        """All landmarks on one point: zero width and height give 0, not an error."""
        landmarks = [Landmark(0.5, 0.5)] * 478
        pose = calculate_head_pose(landmarks)
        assert pose.yaw == 0.0
        assert pose.pitch == 0.0
        assert pose.direction == HeadDirection.CENTER

    def test_short_landmark_list_raises(self):
        with pytest.raises(ValueError):
            calculate_head_pose(make_landmarks(count=100))


class TestGaze:

    def test_centered_iris(self):
        gaze = calculate_gaze(make_landmarks())
        assert gaze.left_iris_pos == pytest.approx(0.5)
        assert gaze.right_iris_pos == pytest.approx(0.5)
        assert gaze.gaze_direction == GazeDirection.CENTER
        assert gaze.gaze_x == pytest.approx(0.5)
        assert gaze.gaze_y == pytest.approx(0.4)

    def test_looking_sideways(self):
        right = calculate_gaze(make_landmarks(iris_offset=0.03))
        left = calculate_gaze(make_landmarks(iris_offset=-0.03))
        assert right.avg_iris_pos == pytest.approx(1.0)
        assert right.gaze_direction == GazeDirection.RIGHT
        assert left.avg_iris_pos == pytest.approx(0.0)
        assert left.gaze_direction == GazeDirection.LEFT

    def test_gaze_point_is_unclamped(self):
        gaze = calculate_gaze(make_landmarks(iris_offset=0.6, iris_y=1.2))
        assert gaze.gaze_x == pytest.approx(1.1)
        assert gaze.gaze_y == pytest.approx(1.2)

    def test_zero_width_eye_is_mid(self):
        corner = Landmark(0.4, 0.4)
        assert iris_position(Landmark(0.9, 0.4), corner, corner) == 0.5

    def test_short_landmark_list_raises(self):
        """468 points (no refined iris landmarks) cannot produce gaze."""
        with pytest.raises(ValueError):
            calculate_gaze(make_landmarks(count=468))


class TestExtractObservation:

    def test_no_faces(self):
        obs = extract_observation([], timestamp=1.5)
        assert obs.face_count == 0
        assert not obs.has_face
        assert obs.head_pose is None
        assert obs.gaze is None
        assert obs.timestamp == 1.5

    def test_first_face_is_analysed(self):
        obs = extract_observation([make_landmarks(yaw=-20), make_landmarks(yaw=20)])
        assert obs.face_count == 2
        assert obs.has_face
        assert obs.head_pose.direction == HeadDirection.LEFT

    def test_required_landmarks(self):
        assert FaceMeshConfig().required_landmarks == 474
