"""
Face Mesh Feature Extraction
Head pose and gaze estimates from a single frame's landmarks.
Pure functions: no state, no use of previous frames.
"""

import math
from typing import Optional, Sequence

from .config import FaceMeshConfig
from .types import (
    FaceObservation,
    Gaze,
    GazeDirection,
    HeadDirection,
    HeadPose,
    Landmark,
)

_DEFAULT_CONFIG = FaceMeshConfig()


def classify_head_direction(yaw: float, pitch: float, threshold: float = 15.0) -> HeadDirection:
    """
    Coarse head direction. Yaw is checked before pitch, so a head turned
    strongly sideways and tilted is reported as LEFT/RIGHT.

    Args:
        yaw: Horizontal nose offset (% of face width)
        pitch: Vertical nose offset (% of face height)
        threshold: Exclusive limit; exactly ±threshold is CENTER

    Returns:
        HeadDirection
    """
    if yaw < -threshold:
        return HeadDirection.LEFT
    if yaw > threshold:
        return HeadDirection.RIGHT
    if pitch < -threshold:
        return HeadDirection.UP
    if pitch > threshold:
        return HeadDirection.DOWN
    return HeadDirection.CENTER


def classify_gaze_direction(avg_iris_pos: float, low: float = 0.4, high: float = 0.6) -> GazeDirection:
    if avg_iris_pos < low:
        return GazeDirection.LEFT
    if avg_iris_pos > high:
        return GazeDirection.RIGHT
    return GazeDirection.CENTER


def calculate_head_pose(landmarks: Sequence[Landmark], config: Optional[FaceMeshConfig] = None) -> HeadPose:
    """
    Estimate head pose from nose tip, chin and outer eye corners

    Args:
        landmarks: Ordered landmark sequence of one face
        config: Landmark indices and thresholds

    Returns:
        HeadPose with yaw/pitch in % units, roll in degrees
    """
    cfg = config or _DEFAULT_CONFIG
    _check_length(landmarks, cfg)

    nose = landmarks[cfg.nose_tip_idx]
    chin = landmarks[cfg.chin_idx]
    left_eye = landmarks[cfg.left_eye_outer]
    right_eye = landmarks[cfg.right_eye_outer]

    face_width = abs(right_eye.x - left_eye.x)
    eye_mid_x = (left_eye.x + right_eye.x) / 2
    yaw = (nose.x - eye_mid_x) / face_width * 100 if face_width > 0 else 0.0

    eye_mid_y = (left_eye.y + right_eye.y) / 2
    face_height = abs(chin.y - eye_mid_y)
    expected_nose_y = eye_mid_y + face_height * cfg.nose_drop_ratio
    pitch = (nose.y - expected_nose_y) / face_height * 100 if face_height > 0 else 0.0

    roll = math.degrees(math.atan2(right_eye.y - left_eye.y, right_eye.x - left_eye.x))

    return HeadPose(
        yaw=yaw,
        pitch=pitch,
        roll=roll,
        direction=classify_head_direction(yaw, pitch, cfg.head_turn_threshold),
    )


def iris_position(iris: Landmark, corner_a: Landmark, corner_b: Landmark) -> float:
    """
    Horizontal iris position between two eye corners

    Args:
        iris: Iris centre landmark
        corner_a: Corner mapped to 0.0
        corner_b: Corner mapped to 1.0

    Returns:
        Interpolated position, nominally [0, 1] but unclamped.
        0.5 when the corners coincide.
    """
    eye_width = corner_b.x - corner_a.x
    if eye_width == 0:
        return 0.5
    return (iris.x - corner_a.x) / eye_width


def calculate_gaze(landmarks: Sequence[Landmark], config: Optional[FaceMeshConfig] = None) -> Gaze:
    """
    Estimate gaze from the eye corners and iris centres

    Args:
        landmarks: Ordered landmark sequence of one face (refined, >= 474 points)
        config: Landmark indices and thresholds

    Returns:
        Gaze with per-eye iris positions and the unclamped iris midpoint
    """
    cfg = config or _DEFAULT_CONFIG
    _check_length(landmarks, cfg)

    left_iris = landmarks[cfg.left_iris_idx]
    right_iris = landmarks[cfg.right_iris_idx]

    left_pos = iris_position(left_iris, landmarks[cfg.left_eye_outer], landmarks[cfg.left_eye_inner])
    right_pos = iris_position(right_iris, landmarks[cfg.right_eye_inner], landmarks[cfg.right_eye_outer])
    avg_pos = (left_pos + right_pos) / 2

    return Gaze(
        left_iris_pos=left_pos,
        right_iris_pos=right_pos,
        gaze_direction=classify_gaze_direction(avg_pos, cfg.gaze_left_threshold, cfg.gaze_right_threshold),
        gaze_x=(left_iris.x + right_iris.x) / 2,
        gaze_y=(left_iris.y + right_iris.y) / 2,
    )


def extract_observation(
        faces: Sequence[Sequence[Landmark]],
        config: Optional[FaceMeshConfig] = None,
        timestamp: Optional[float] = None,
) -> FaceObservation:
    """
    Build the per-frame observation from all detected faces.
    Only the first face is analysed; the rest are counted.

    Raises:
        ValueError: first face has fewer landmarks than the configured indices need
    """
    cfg = config or _DEFAULT_CONFIG
    if not faces:
        return FaceObservation.empty(timestamp)

    landmarks = tuple(faces[0])
    return FaceObservation(
        face_count=len(faces),
        landmarks=landmarks,
        head_pose=calculate_head_pose(landmarks, cfg),
        gaze=calculate_gaze(landmarks, cfg),
        timestamp=timestamp,
    )


def landmarks_from_mediapipe(face_landmarks) -> tuple:
    """Convert a MediaPipe NormalizedLandmarkList into Landmark records."""
    return tuple(Landmark(lm.x, lm.y, lm.z) for lm in face_landmarks.landmark)


def _check_length(landmarks: Sequence[Landmark], cfg: FaceMeshConfig):
    if len(landmarks) < cfg.required_landmarks:
        raise ValueError(
            f"Expected at least {cfg.required_landmarks} landmarks, got {len(landmarks)} "
            f"(is refine_landmarks enabled?)"
        )
