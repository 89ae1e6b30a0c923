"""
Face Mesh Processor
Webcam capture + MediaPipe FaceMesh in a background thread.
Every processed frame hands the detected faces' landmarks to a callback;
the latest camera image is kept for display with an optional mesh overlay.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from .config import FaceMeshConfig
from .features import landmarks_from_mediapipe
from .types import Landmark

logger = logging.getLogger(__name__)

FacesCallback = Callable[[List[Sequence[Landmark]]], None]


def draw_mesh(frame: np.ndarray, landmarks: Sequence[Landmark], config: FaceMeshConfig) -> np.ndarray:
    """
    Draw landmark points (green) and iris centres (red) onto a BGR frame

    Args:
        frame: Image to draw on (modified in place)
        landmarks: Normalized landmarks of one face
        config: Point radii and iris indices

    Returns:
        The same frame
    """
    import cv2

    h, w = frame.shape[:2]
    for point in landmarks:
        cv2.circle(frame, (int(point.x * w), int(point.y * h)),
                   config.mesh_point_radius, (0, 255, 0), -1)

    for idx in (config.left_iris_idx, config.right_iris_idx):
        if idx < len(landmarks):
            point = landmarks[idx]
            cv2.circle(frame, (int(point.x * w), int(point.y * h)),
                       config.iris_point_radius, (0, 0, 255), -1)
    return frame


class FaceMeshProcessor:
    """
    Landmark source for the calibration session.

    is_ready flips to True once the first camera frame has been read
    (the camera "loading -> ready" signal).
    """

    def __init__(self, on_faces: FacesCallback, config: Optional[FaceMeshConfig] = None):
        """
        Initialise the FaceMeshProcessor.

        Args:
            on_faces: Called from the processing thread with the landmark
                      sequences of every face detected in a frame.
            config:   FaceMeshConfig instance. Defaults to FaceMeshConfig.for_calibration().
        """
        self.on_faces = on_faces
        self.config = config or FaceMeshConfig.for_calibration()

        # OpenCV capture
        self.capture = None

        # MediaPipe
        self.face_mesh = None

        # Threading
        self.is_running = False
        self.is_ready = False
        self.processing_thread = None
        self.stop_event = threading.Event()

        # Latest frame for display
        self._frame_lock = threading.Lock()
        self._latest_frame: Optional[np.ndarray] = None
        self._latest_faces: List[Sequence[Landmark]] = []

        self.show_mesh = self.config.show_mesh
        self.frame_count = 0
        self.error_count = 0

        logger.info("FaceMeshProcessor initialised")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self):
        """
        Open the camera, initialise MediaPipe FaceMesh, and start the processing thread.

        Raises:
            RuntimeError if already running or the camera cannot be opened.
        """
        if self.is_running:
            raise RuntimeError("FaceMeshProcessor already running")

        try:
            import cv2
            import mediapipe as mp

            self.capture = cv2.VideoCapture(self.config.camera_index)
            if not self.capture.isOpened():
                raise RuntimeError(f"Cannot open camera {self.config.camera_index}")
            self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.preview_width)
            self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.preview_height)

            self.face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=self.config.mp_static_image_mode,
                max_num_faces=self.config.mp_max_num_faces,
                refine_landmarks=self.config.mp_refine_landmarks,
                min_detection_confidence=self.config.mp_min_detection_confidence,
                min_tracking_confidence=self.config.mp_min_tracking_confidence,
            )

            self.is_running = True
            self.is_ready = False
            self.stop_event.clear()
            self.frame_count = 0

            self.processing_thread = threading.Thread(
                target=self._processing_loop,
                name="FaceMesh-Thread",
                daemon=True,
            )
            self.processing_thread.start()
            logger.info("✓ FaceMeshProcessor started")

        except Exception as e:
            logger.error(f"✗ Failed to start FaceMeshProcessor: {e}", exc_info=True)
            self._release()
            self.is_running = False
            raise

    def stop(self):
        """Stop the processing thread and release camera and MediaPipe resources."""
        if not self.is_running:
            return

        self.stop_event.set()
        if self.processing_thread and self.processing_thread.is_alive():
            self.processing_thread.join(timeout=5)

        self._release()
        self.is_running = False
        self.is_ready = False
        logger.info(f"✓ FaceMeshProcessor stopped — {self.frame_count} frames")

    def toggle_mesh(self) -> bool:
        self.show_mesh = not self.show_mesh
        return self.show_mesh

    def get_latest_frame(self) -> Optional[np.ndarray]:
        """
        Copy of the most recent camera frame (BGR), with the mesh of the
        primary face drawn on it when show_mesh is enabled.
        """
        with self._frame_lock:
            if self._latest_frame is None:
                return None
            frame = self._latest_frame.copy()
            faces = list(self._latest_faces)

        if self.show_mesh and faces:
            draw_mesh(frame, faces[0], self.config)
        return frame

    def process_frame(self, frame: np.ndarray) -> List[Sequence[Landmark]]:
        """
        Run FaceMesh on one BGR frame

        Returns:
            Landmark sequences of every detected face (empty if none)
        """
        import cv2

        if self.face_mesh is None:
            raise RuntimeError("Call start() before process_frame()")

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.face_mesh.process(rgb)
        if not results.multi_face_landmarks:
            return []
        return [landmarks_from_mediapipe(face) for face in results.multi_face_landmarks]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _processing_loop(self):
        import cv2

        logger.info("FaceMesh processing loop started")

        while not self.stop_event.is_set():
            try:
                ok, frame = self.capture.read()
                if not ok:
                    time.sleep(0.05)
                    continue

                if self.config.camera_flip_code is not None:
                    frame = cv2.flip(frame, self.config.camera_flip_code)

                if not self.is_ready:
                    self.is_ready = True
                    logger.info("✓ Camera ready")

                faces = self.process_frame(frame)
                with self._frame_lock:
                    self._latest_frame = frame
                    self._latest_faces = faces
                self.frame_count += 1

                self.on_faces(faces)

            except Exception as e:
                self.error_count += 1
                logger.error(f"Error in FaceMesh loop: {e}", exc_info=True)
                time.sleep(0.1)

        logger.info("FaceMesh processing loop stopped")

    def _release(self):
        if self.face_mesh is not None:
            try:
                self.face_mesh.close()
            except Exception as e:
                logger.warning(f"Error closing FaceMesh: {e}")
            self.face_mesh = None
        if self.capture is not None:
            self.capture.release()
            self.capture = None

    def get_status(self) -> dict:
        return {
            'running': self.is_running,
            'ready': self.is_ready,
            'frames': self.frame_count,
            'errors': self.error_count,
            'show_mesh': self.show_mesh,
        }

    def __repr__(self):
        state = "ready" if self.is_ready else "running" if self.is_running else "stopped"
        return f"<FaceMeshProcessor({state}, frames={self.frame_count})>"
