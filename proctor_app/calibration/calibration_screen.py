"""
Proctor Calibration Screen
Camera preview with the face mesh, step checklist and a single action button.
Step 4 replaces the preview with the red calibration ball.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import pygame as pg

from proctor_system.calibration import status as status_projection
from proctor_system.calibration.session import STEP_GAZE, STEP_HEAD_SWEEP, StepStatus
from proctor_system.coordinator.coordinator import ActionEvent
from proctor_system.pipeline import CalibrationPipeline

logger = logging.getLogger(__name__)

BG     = (10,  10,  10)
ALERT  = (90,  10,  10)
FG     = (0,   255, 0)
WHITE  = (220, 220, 220)
DIM    = (110, 110, 110)
YELLOW = (255, 255, 0)
RED    = (255, 60,  60)
CYAN   = (0,   255, 255)
BALL   = (230, 30,  30)

BUTTON_COLOURS = {
    'primary': (40,  110, 220),
    'success': (30,  160, 70),
    'danger':  (200, 40,  40),
    'idle':    (70,  70,  70),
}

STATUS_MARKS = {
    StepStatus.PENDING:  ('[ ]', DIM),
    StepStatus.CHECKING: ('[~]', YELLOW),
    StepStatus.PASSED:   ('[✓]', FG),
    StepStatus.FAILED:   ('[✗]', RED),
}

BALL_RADIUS = 24
FPS = 30


def frame_to_surface(frame: np.ndarray, size: Tuple[int, int]) -> pg.Surface:
    """Convert a BGR camera frame into a pygame surface scaled to `size`."""
    import cv2

    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    h, w = rgb.shape[:2]
    surf = pg.image.frombuffer(rgb.tobytes(), (w, h), 'RGB')
    return pg.transform.smoothscale(surf, size)


class CalibrationScreen:
    """
    Renders the calibration session and turns clicks/keys into actions.

    Keys:
        M    toggle mesh overlay
        F11  enter fullscreen
        ESC  leave fullscreen (counted as a violation once started)
        Q    quit
    """

    def __init__(self, pipeline: CalibrationPipeline, window: pg.Surface):
        self.pipeline    = pipeline
        self.coordinator = pipeline.coordinator
        self.window      = window
        self.running     = False
        self._button_rect: Optional[pg.Rect] = None

        pg.font.init()
        self._font_large = pg.font.SysFont('couriernew', 28, bold=True)
        self._font_med   = pg.font.SysFont('couriernew', 20)
        self._font_small = pg.font.SysFont('couriernew', 16)

    # ── Loop ───────────────────────────────────────────────────────────────

    def run(self):
        """Blocks until the window is closed or Q is pressed."""
        self.running = True
        clock = pg.time.Clock()
        logger.info("Calibration screen running")

        while self.running:
            for event in pg.event.get():
                self._handle_event(event)

            self.pipeline.tick()
            self._render()
            clock.tick(FPS)

        logger.info(f"Calibration screen closed: {self.coordinator.session}")

    def _handle_event(self, event):
        if event.type == pg.QUIT:
            self.running = False
        elif event.type == pg.KEYDOWN:
            if event.key == pg.K_q:
                self.running = False
            elif event.key == pg.K_m:
                shown = self.pipeline.processor.toggle_mesh()
                logger.info(f"Mesh overlay {'on' if shown else 'off'}")
            elif event.key == pg.K_ESCAPE:
                self.coordinator.proctor.exit_fullscreen()
            elif event.key == pg.K_F11:
                self.coordinator.proctor.request_fullscreen()
        elif event.type == pg.MOUSEBUTTONDOWN and event.button == 1:
            self._click(event.pos)

    def _click(self, pos):
        if self._button_rect is None or not self._button_rect.collidepoint(pos):
            return
        button = self.coordinator.button_config(self.pipeline.camera_ready)
        if not button.enabled or button.action is None:
            return
        self.coordinator.post(ActionEvent(button.action, timestamp=self.coordinator.clock.now()))
        logger.debug(f"Button '{button.text}' -> {button.action}")

    # ── Rendering ──────────────────────────────────────────────────────────

    def _render(self):
        session = self.coordinator.session
        w, h = self.window.get_size()
        self.window.fill(ALERT if status_projection.show_alert_background(session) else BG)

        if session.fullscreen_violation:
            self._draw_violation(w, h)
        elif self._gaze_ball_visible():
            self._draw_gaze_ball(w, h)
        else:
            self._draw_calibration(w, h)

        pg.display.flip()

    def _gaze_ball_visible(self) -> bool:
        session = self.coordinator.session
        sequencer = self.coordinator.orchestrator.sequencer
        return (
            session.current_step == STEP_GAZE
            and session.status_of(STEP_GAZE) == StepStatus.CHECKING
            and sequencer is not None
            and sequencer.is_running
        )

    def _draw_calibration(self, w: int, h: int):
        session = self.coordinator.session

        # Camera preview on the left
        preview_w, preview_h = int(w * 0.6), int(w * 0.6 * 3 / 4)
        preview_h = min(preview_h, h - 120)
        preview_rect = pg.Rect(20, 80, preview_w, preview_h)

        header = self._font_large.render(self.coordinator.header_text(), True, CYAN)
        self.window.blit(header, (20, 24))

        violations = status_projection.violation_counter_text(session)
        if violations:
            count = self._font_small.render(violations, True, RED)
            self.window.blit(count, (20, 58))

        frame = self.pipeline.processor.get_latest_frame()
        if frame is not None:
            self.window.blit(frame_to_surface(frame, preview_rect.size), preview_rect.topleft)
        else:
            pg.draw.rect(self.window, (30, 30, 30), preview_rect)
            msg = self._font_med.render("Loading camera...", True, DIM)
            self.window.blit(msg, msg.get_rect(center=preview_rect.center))

        y = preview_rect.top + 8
        overlay = status_projection.face_overlay_lines(
            self.coordinator.latest_observation, session.calibration_complete)
        for line in overlay:
            txt = self._font_small.render(line, True, FG)
            self.window.blit(txt, (preview_rect.left + 8, y))
            y += 20

        if session.is_out_of_bounds:
            warn = self._font_med.render("Looking away from screen!", True, RED)
            self.window.blit(warn, (preview_rect.left + 8, preview_rect.bottom - 32))

        # Step list on the right
        x = preview_rect.right + 30
        y = preview_rect.top
        for item in status_projection.step_items(session):
            mark, colour = STATUS_MARKS[item.status]
            font = self._font_med if item.active else self._font_small
            txt = font.render(f"{mark} {item.step}. {item.label}", True, colour if item.active else DIM)
            self.window.blit(txt, (x, y))
            y += 30

            if item.active and item.step == STEP_HEAD_SWEEP:
                directions = session.steps[STEP_HEAD_SWEEP].directions
                for direction, seen in directions.items():
                    sub = self._font_small.render(
                        f"    {'✓' if seen else '·'} {direction.value}", True, FG if seen else WHITE)
                    self.window.blit(sub, (x, y))
                    y += 22

            error = session.steps[item.step].error
            if item.active and error:
                err = self._font_small.render(f"    {error}", True, RED)
                self.window.blit(err, (x, y))
                y += 22

        self._draw_button(x, y + 20)

    def _draw_gaze_ball(self, w: int, h: int):
        sequencer = self.coordinator.orchestrator.sequencer
        target = sequencer.current_target
        centre = (int(target.x * w), int(target.y * h))

        pg.draw.circle(self.window, BALL, centre, BALL_RADIUS)
        count = self._font_med.render(str(sequencer.countdown), True, WHITE)
        self.window.blit(count, count.get_rect(center=centre))

        hint = self._font_small.render(
            f"Follow the red ball with your eyes  ({sequencer.index + 1}/{len(sequencer.targets)})",
            True, DIM)
        self.window.blit(hint, hint.get_rect(center=(w // 2, h - 30)))
        self._button_rect = None

    def _draw_violation(self, w: int, h: int):
        session = self.coordinator.session
        title = self._font_large.render(self.coordinator.header_text(), True, WHITE)
        self.window.blit(title, title.get_rect(center=(w // 2, h // 2 - 60)))

        detail = self._font_med.render(
            f"You left fullscreen mode. Violations: {session.violation_count}", True, WHITE)
        self.window.blit(detail, detail.get_rect(center=(w // 2, h // 2 - 20)))

        self._draw_button(w // 2 - 130, h // 2 + 20)

    def _draw_button(self, x: int, y: int):
        button = self.coordinator.button_config(self.pipeline.camera_ready)
        rect = pg.Rect(x, y, 260, 48)
        colour = BUTTON_COLOURS.get(button.style, BUTTON_COLOURS['idle'])
        if not button.enabled:
            colour = tuple(c // 2 for c in colour)

        pg.draw.rect(self.window, colour, rect, border_radius=6)
        txt = self._font_med.render(button.text, True, WHITE if button.enabled else DIM)
        self.window.blit(txt, txt.get_rect(center=rect.center))
        self._button_rect = rect
