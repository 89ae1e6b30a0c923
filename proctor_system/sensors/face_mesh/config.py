"""
Face Mesh Sensor Configuration
Landmark indices, classification thresholds, MediaPipe and camera settings
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FaceMeshConfig:
    """Face mesh configuration - MediaPipe FaceMesh with refined iris landmarks"""

    # Head pose landmarks
    nose_tip_idx: int = 1
    chin_idx: int = 152
    left_eye_outer: int = 33
    right_eye_outer: int = 263

    # Gaze landmarks (refine_landmarks=True adds 468-477)
    left_eye_inner: int = 133
    right_eye_inner: int = 362
    left_iris_idx: int = 468
    right_iris_idx: int = 473

    # Head pose: expected nose drop below the eye line, as a share of face height
    nose_drop_ratio: float = 0.3
    # Yaw/pitch beyond this (exclusive) counts as a turned head
    head_turn_threshold: float = 15.0

    # Average iris position outside [low, high] counts as looking sideways
    gaze_left_threshold: float = 0.4
    gaze_right_threshold: float = 0.6

    # MediaPipe FaceMesh settings
    mp_static_image_mode: bool = False
    mp_max_num_faces: int = 2      # >1 so a second person can be counted
    mp_refine_landmarks: bool = True
    mp_min_detection_confidence: float = 0.5
    mp_min_tracking_confidence: float = 0.5

    # Camera settings (OpenCV)
    camera_index: int = 0
    preview_width: int = 640
    preview_height: int = 480
    camera_flip_code: Optional[int] = 1   # 1 = mirror, None = no flip

    # Mesh overlay
    show_mesh: bool = True
    mesh_point_radius: int = 1
    iris_point_radius: int = 3

    @property
    def required_landmarks(self) -> int:
        """Smallest landmark count that covers every configured index."""
        return max(
            self.nose_tip_idx, self.chin_idx,
            self.left_eye_outer, self.right_eye_outer,
            self.left_eye_inner, self.right_eye_inner,
            self.left_iris_idx, self.right_iris_idx,
        ) + 1

    @classmethod
    def for_calibration(cls) -> 'FaceMeshConfig':
        """Configuration for the calibration flow (counts up to two faces)"""
        return cls()
