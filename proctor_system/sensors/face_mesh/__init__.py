"""
Face Mesh Sensor Module
Head pose and gaze features from MediaPipe FaceMesh landmarks

Architecture:
- FaceMeshProcessor: Webcam + FaceMesh background thread, hands landmarks to a callback
- features:          Stateless head pose / gaze extraction from one frame's landmarks
- FaceMeshConfig:    Landmark indices, thresholds, camera settings
- types:             Landmark, HeadPose, Gaze, FaceObservation

Usage:
    processor = FaceMeshProcessor(on_faces=coordinator.submit_faces)
    processor.start()
    frame = processor.get_latest_frame()
    processor.stop()
"""

from .config import FaceMeshConfig
from .features import (
    calculate_gaze,
    calculate_head_pose,
    classify_gaze_direction,
    classify_head_direction,
    extract_observation,
)
from .processor import FaceMeshProcessor, draw_mesh
from .types import (
    COMPASS_DIRECTIONS,
    FaceObservation,
    Gaze,
    GazeDirection,
    HeadDirection,
    HeadPose,
    Landmark,
)

__all__ = [
    'FaceMeshProcessor',
    'FaceMeshConfig',
    'FaceObservation',
    'HeadPose',
    'Gaze',
    'Landmark',
    'HeadDirection',
    'GazeDirection',
    'COMPASS_DIRECTIONS',
    'calculate_head_pose',
    'calculate_gaze',
    'classify_head_direction',
    'classify_gaze_direction',
    'extract_observation',
    'draw_mesh',
]

__version__ = '1.0.0'
