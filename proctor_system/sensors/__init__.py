"""
Proctor System Sensors

Available Sensors:
- Face Mesh: webcam + MediaPipe FaceMesh (~30 Hz), head pose and gaze features
"""

from .face_mesh import FaceMeshProcessor, FaceMeshConfig, FaceObservation

__all__ = [
    'FaceMeshProcessor',
    'FaceMeshConfig',
    'FaceObservation',
]

__version__ = '1.0.0'
