"""
Proctor Calibration - Main Entry Point
Runs the pre-exam calibration flow:
  1. Start central clock
  2. Open the pygame window
  3. Start webcam + FaceMesh
  4. Run the calibration screen (lighting, person count, head sweep, gaze)
  5. Stop the camera and report the session
"""

import sys
import signal
import logging
import pygame as pg

from proctor_system import CalibrationPipeline
from proctor_system.calibration.config import CalibrationConfig
from proctor_system.coordinator.clock import CentralClock
from proctor_system.proctor.platform import PygameFullscreen
from proctor_system.sensors.face_mesh.config import FaceMeshConfig
from proctor_app.calibration.calibration_screen import CalibrationScreen

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger('proctor')


def _force_exit(sig, frame):
    """SIGINT/SIGTERM: close the window and exit."""
    logger.info("Force exit requested")
    pg.quit()
    sys.exit(0)


signal.signal(signal.SIGINT,  _force_exit)
signal.signal(signal.SIGTERM, _force_exit)

# ------------------------------------------------------------------
# Config: change these per machine
# ------------------------------------------------------------------

WINDOW_SIZE      = (1280, 720)
CAMERA_INDEX     = 0
ALLOW_GAZE_RETRY = False   # Offer Retry when gaze calibration collects nothing


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------

def main():
    print()
    print("=" * 50)
    print("  Proctor Calibration")
    print("=" * 50)
    print()

    clock = CentralClock()
    logger.info(f"✓ Central clock started: {clock}")

    pipeline = None
    try:
        pg.init()
        pg.display.set_caption("Proctor Calibration")
        window = pg.display.set_mode(WINDOW_SIZE)

        face_config = FaceMeshConfig.for_calibration()
        face_config.camera_index = CAMERA_INDEX

        pipeline = CalibrationPipeline(
            clock=clock,
            config=CalibrationConfig(allow_gaze_retry=ALLOW_GAZE_RETRY),
            face_config=face_config,
            platform=PygameFullscreen(windowed_size=WINDOW_SIZE),
        )
        pipeline.start()

        CalibrationScreen(pipeline=pipeline, window=window).run()

        session = pipeline.coordinator.session
        logger.info(
            f"Session finished — complete: {session.calibration_complete}, "
            f"violations: {session.violation_count}, "
            f"bounds: {session.gaze_bounds.to_dict() if session.gaze_bounds else None}"
        )

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)

    finally:
        if pipeline is not None:
            pipeline.stop()
        pg.quit()
        print("\n✓ Proctor calibration closed.")


if __name__ == '__main__':
    main()
