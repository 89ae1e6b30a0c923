"""
Proctor System - Calibration Pipeline
======================================
Owns the lifecycle of the landmark source and the session coordinator.

Usage in run.py:
    pipeline = CalibrationPipeline(clock=clock, platform=PygameFullscreen())
    pipeline.start()
    while running:
        pipeline.tick()          # apply frames/timers on the UI thread
        ...
    pipeline.stop()

Failure policy:
    If the camera or FaceMesh fails to start, the failure is recorded in
    the pipeline's init log and the coordinator keeps running without
    frames. The calibration flow then fails step 1 and offers a retry.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .calibration.config import CalibrationConfig
from .coordinator.clock import CentralClock
from .coordinator.coordinator import SessionCoordinator
from .proctor.platform import FullscreenPlatform
from .sensors.face_mesh.config import FaceMeshConfig
from .sensors.face_mesh.processor import FaceMeshProcessor

logger = logging.getLogger(__name__)


SOURCE_FACE_MESH = 'face_mesh'


class CalibrationPipeline:
    """
    Wires a FaceMeshProcessor into a SessionCoordinator.

    Responsibilities:
      - Create the coordinator around a shared clock
      - Start/stop the landmark source, recording init outcomes
      - Drain coordinator events on the caller's thread via tick()
      - Report which sources are active via get_status()
    """

    def __init__(
        self,
        clock: Optional[CentralClock] = None,
        config: Optional[CalibrationConfig] = None,
        face_config: Optional[FaceMeshConfig] = None,
        platform: Optional[FullscreenPlatform] = None,
        processor: Optional[FaceMeshProcessor] = None,
    ):
        """
        Args:
            clock       : Shared clock for every timer
            config      : Calibration flow settings
            face_config : Camera / FaceMesh settings
            platform    : Fullscreen adapter for the proctor
            processor   : Pre-built landmark source (tests inject a fake)
        """
        self.clock = clock or CentralClock()
        self.face_config = face_config or FaceMeshConfig.for_calibration()

        self.coordinator = SessionCoordinator(
            clock=self.clock,
            config=config,
            face_config=self.face_config,
            platform=platform,
        )

        self.processor = processor or FaceMeshProcessor(
            on_faces=self.coordinator.submit_faces,
            config=self.face_config,
        )

        self._active_sources: List[str] = []
        self._failed_sources: List[str] = []
        self.init_log: List[dict] = []

        logger.info("CalibrationPipeline created")

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def start(self):
        """Start the landmark source. Failure is logged and recorded, not raised."""
        logger.info("=" * 55)
        logger.info("  Proctor Calibration Pipeline — starting")
        logger.info("=" * 55)

        try:
            self.processor.start()
            self._active_sources.append(SOURCE_FACE_MESH)
            self._record(SOURCE_FACE_MESH, 'active', params={
                'camera_index': self.face_config.camera_index,
                'resolution': f"{self.face_config.preview_width}x{self.face_config.preview_height}",
                'max_faces': self.face_config.mp_max_num_faces,
            })
            logger.info("✓ Face mesh source initialised")
        except Exception as e:
            self._failed_sources.append(SOURCE_FACE_MESH)
            self._record(SOURCE_FACE_MESH, 'failed', notes=f"{type(e).__name__}: {e}")
            logger.warning(f"⚠ {SOURCE_FACE_MESH} failed to initialise — continuing without frames. Error: {e}")

        logger.info(
            f"Pipeline ready — active: {self._active_sources or 'none'} | "
            f"failed: {self._failed_sources or 'none'}"
        )

    def stop(self):
        """Stop the landmark source and release every session timer."""
        logger.info("Stopping calibration pipeline...")
        try:
            self.processor.stop()
        except Exception as e:
            logger.error(f"✗ Error stopping face mesh source: {e}", exc_info=True)
        self.coordinator.shutdown()
        logger.info("✓ Calibration pipeline stopped")

    def tick(self) -> int:
        """Apply queued frames and fire due timers. Call once per UI frame."""
        self.coordinator.proctor.platform.poll()
        return self.coordinator.process_pending()

    @property
    def camera_ready(self) -> bool:
        return bool(getattr(self.processor, 'is_ready', False))

    def get_status(self) -> dict:
        return {
            'active_sources': list(self._active_sources),
            'failed_sources': list(self._failed_sources),
            'camera_ready': self.camera_ready,
            'session': self.coordinator.get_status(),
        }

    # -----------------------------------------------------------------------
    # Private
    # -----------------------------------------------------------------------

    def _record(self, source: str, status: str, params: Optional[dict] = None, notes: Optional[str] = None):
        self.init_log.append({
            'source': source,
            'status': status,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'params': params or {},
            'notes': notes,
        })

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __repr__(self):
        return (
            f"<CalibrationPipeline("
            f"active={self._active_sources}, "
            f"failed={self._failed_sources})>"
        )
