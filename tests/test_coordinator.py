"""End-to-end tests for the session coordinator and calibration pipeline."""

import pytest

from proctor_system import CalibrationPipeline, SessionCoordinator
from proctor_system.calibration.config import CalibrationConfig
from proctor_system.calibration.session import STEP_GAZE, StepStatus
from proctor_system.coordinator.coordinator import ActionEvent, FrameEvent

from conftest import (
    FakeFullscreen,
    feed,
    feed_faces,
    make_landmarks,
    make_observation,
    pass_first_three_steps,
    wait,
)


class TestSessionCoordinator:

    def test_full_calibration_then_monitoring(self, coordinator):
        pass_first_three_steps(coordinator)
        assert coordinator.session.current_step == STEP_GAZE

        # Dwell at each target, looking roughly at it
        for x, y in ((0.50, 0.45), (0.42, 0.40), (0.58, 0.40), (0.58, 0.50), (0.42, 0.50)):
            feed(coordinator, make_observation(x, y))
            wait(coordinator, 5.0)

        assert coordinator.session.status_of(STEP_GAZE) == StepStatus.PASSED
        assert coordinator.session.gaze_bounds.to_dict() == {
            'minX': 0.42, 'maxX': 0.58, 'minY': 0.40, 'maxY': 0.50,
        }
        assert coordinator.advance()
        assert coordinator.header_text() == "Calibration Complete!"

        feed(coordinator, make_observation(0.70, 0.45))
        assert coordinator.session.is_out_of_bounds
        feed(coordinator, make_observation(0.50, 0.45))
        assert not coordinator.session.is_out_of_bounds

    def test_frame_after_last_dwell_not_pooled(self, coordinator):
        """A frame queued after the final window closed is not part of the bounds."""
        pass_first_three_steps(coordinator)
        feed(coordinator, make_observation(0.5, 0.5))

        coordinator.clock.advance(25.02)
        coordinator.post(FrameEvent(make_observation(0.95, 0.95)))
        coordinator.process_pending()

        assert coordinator.session.status_of(STEP_GAZE) == StepStatus.PASSED
        assert coordinator.session.gaze_bounds.to_dict() == {
            'minX': 0.5, 'maxX': 0.5, 'minY': 0.5, 'maxY': 0.5,
        }

    def test_queued_frames_credited_to_target_shown_at_their_time(self, coordinator):
        pass_first_three_steps(coordinator)
        sequencer = coordinator.orchestrator.sequencer

        coordinator.clock.advance(4.9)
        coordinator.post(FrameEvent(make_observation(0.3, 0.3)))
        coordinator.clock.advance(0.2)
        coordinator.post(FrameEvent(make_observation(0.7, 0.7)))
        coordinator.process_pending()

        assert sequencer.samples['center'] == [(0.3, 0.3)]
        assert sequencer.samples['top-left'] == [(0.7, 0.7)]

    def test_latest_observation_replaced_each_frame(self, coordinator):
        feed_faces(coordinator, make_landmarks(), make_landmarks())
        assert coordinator.face_count == 2
        feed_faces(coordinator)
        assert coordinator.face_count == 0
        assert coordinator.latest_observation.timestamp == 0.0

    def test_events_applied_in_order(self, coordinator):
        coordinator.post(FrameEvent(make_observation()))
        coordinator.post(ActionEvent('begin'))
        coordinator.post(FrameEvent(make_observation(face_count=0)))
        assert coordinator.process_pending() == 3
        assert coordinator.session.current_step == 1
        assert coordinator.face_count == 0

    def test_short_landmark_frame_dropped(self, coordinator):
        feed_faces(coordinator, make_landmarks(count=100))
        assert coordinator.frames_dropped == 1
        assert coordinator.frames_processed == 0
        assert coordinator.latest_observation is None

    def test_unknown_action_ignored(self, coordinator):
        assert not coordinator.dispatch(ActionEvent('jump'))

    def test_unknown_event_type_raises(self, coordinator):
        with pytest.raises(TypeError):
            coordinator.dispatch(object())

    def test_status_snapshot(self, coordinator):
        pass_first_three_steps(coordinator)
        status = coordinator.get_status()
        assert status['current_step'] == STEP_GAZE
        assert status['header'] == "Follow the red ball with your eyes"
        assert status['button'] == {'text': "Checking...", 'action': None, 'enabled': False}
        assert status['gaze_target'] == {'index': 0, 'id': 'center', 'countdown': 5, 'samples': 0}
        assert status['remaining_directions'] == []

    def test_context_manager_shuts_down(self, clock):
        with SessionCoordinator(clock=clock, config=CalibrationConfig.for_testing()) as coord:
            coord.begin()
            assert coord.scheduler.pending == 1
        assert coord.scheduler.pending == 0


class _FakeProcessor:

    def __init__(self, fail=False):
        self.fail = fail
        self.is_ready = False
        self.stopped = False

    def start(self):
        if self.fail:
            raise RuntimeError("Cannot open camera 0")
        self.is_ready = True

    def stop(self):
        self.stopped = True


class TestCalibrationPipeline:

    def test_start_records_active_source(self, clock):
        processor = _FakeProcessor()
        pipeline = CalibrationPipeline(clock=clock, config=CalibrationConfig.for_testing(), processor=processor)
        pipeline.start()
        assert pipeline.get_status()['active_sources'] == ['face_mesh']
        assert pipeline.camera_ready
        assert pipeline.init_log[0]['status'] == 'active'

        pipeline.stop()
        assert processor.stopped

    def test_camera_failure_is_recorded_not_raised(self, clock):
        pipeline = CalibrationPipeline(clock=clock, config=CalibrationConfig.for_testing(),
                                       processor=_FakeProcessor(fail=True))
        pipeline.start()
        status = pipeline.get_status()
        assert status['failed_sources'] == ['face_mesh']
        assert not status['camera_ready']
        assert "Cannot open camera" in pipeline.init_log[0]['notes']

        # The flow still runs and fails step 1 for lack of frames
        pipeline.coordinator.begin()
        clock.advance(2.0)
        pipeline.tick()
        assert pipeline.coordinator.session.steps[1].status == StepStatus.FAILED
        pipeline.stop()

    def test_tick_polls_display(self, clock):
        display = FakeFullscreen()
        polls = []
        display.poll = lambda: polls.append(1)
        with CalibrationPipeline(clock=clock, platform=display, processor=_FakeProcessor()) as pipeline:
            pipeline.tick()
        assert polls == [1]

    def test_frames_from_processor_callback(self, clock):
        pipeline = CalibrationPipeline(clock=clock, config=CalibrationConfig.for_testing(),
                                       processor=_FakeProcessor())
        pipeline.coordinator.submit_faces([make_landmarks()])
        pipeline.tick()
        assert pipeline.coordinator.face_count == 1
