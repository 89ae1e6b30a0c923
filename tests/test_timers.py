"""Tests for the central clock and keyed timer scheduler."""

import pytest

from proctor_system.coordinator.clock import CentralClock, ManualClock
from proctor_system.coordinator.timers import TimerScheduler


@pytest.fixture
def scheduler(clock):
    return TimerScheduler(clock)


class TestClock:

    def test_manual_clock_moves_only_when_advanced(self):
        clock = ManualClock(start=10.0)
        assert clock.now() == 10.0
        assert clock.now() == 10.0
        assert clock.advance(2.5) == 12.5
        assert clock.now() == 12.5

    def test_manual_clock_rejects_negative(self):
        with pytest.raises(ValueError):
            ManualClock().advance(-1.0)

    def test_central_clock_is_monotonic(self):
        clock = CentralClock()
        readings = [clock.now() for _ in range(100)]
        assert readings == sorted(readings)
        assert clock.get_stats()['total_calls'] == 100


class TestTimerScheduler:

    def test_one_shot_fires_once_at_deadline(self, clock, scheduler):
        fired = []
        scheduler.schedule('a', 2.0, lambda: fired.append(clock.now()))

        clock.advance(1.9)
        assert scheduler.run_due() == 0
        clock.advance(0.1)
        assert scheduler.run_due() == 1
        clock.advance(5.0)
        assert scheduler.run_due() == 0
        assert fired == [2.0]
        assert not scheduler.is_scheduled('a')

    def test_rescheduling_a_key_replaces_the_timer(self, clock, scheduler):
        fired = []
        scheduler.schedule('check', 2.0, lambda: fired.append('first'))
        scheduler.schedule('check', 3.0, lambda: fired.append('second'))
        assert scheduler.pending == 1

        clock.advance(5.0)
        scheduler.run_due()
        assert fired == ['second']

    def test_cancel(self, clock, scheduler):
        fired = []
        scheduler.schedule('a', 1.0, lambda: fired.append('a'))
        assert scheduler.cancel('a')
        assert not scheduler.cancel('a')

        clock.advance(2.0)
        scheduler.run_due()
        assert fired == []

    def test_cancel_all(self, scheduler):
        scheduler.schedule('gaze.dwell', 5.0, lambda: None)
        scheduler.schedule_repeating('gaze.countdown', 1.0, lambda: None)
        scheduler.schedule('step.check', 2.0, lambda: None)

        assert scheduler.cancel_all() == 3
        assert scheduler.pending == 0

    def test_run_due_until_stops_at_reading(self, clock, scheduler):
        fired = []
        scheduler.schedule('early', 1.0, lambda: fired.append('early'))
        scheduler.schedule('late', 3.0, lambda: fired.append('late'))

        clock.advance(5.0)
        assert scheduler.run_due(until=2.0) == 1
        assert fired == ['early']
        assert scheduler.run_due() == 1
        assert fired == ['early', 'late']

    def test_run_due_until_is_capped_at_now(self, clock, scheduler):
        scheduler.schedule('a', 2.0, lambda: None)
        clock.advance(1.0)
        assert scheduler.run_due(until=10.0) == 0
        assert scheduler.is_scheduled('a')

    def test_fires_in_deadline_order(self, clock, scheduler):
        fired = []
        scheduler.schedule('late', 3.0, lambda: fired.append('late'))
        scheduler.schedule('early', 1.0, lambda: fired.append('early'))
        scheduler.schedule('mid', 2.0, lambda: fired.append('mid'))

        clock.advance(10.0)
        assert scheduler.run_due() == 3
        assert fired == ['early', 'mid', 'late']

    def test_equal_deadlines_fire_in_schedule_order(self, clock, scheduler):
        fired = []
        scheduler.schedule('b', 1.0, lambda: fired.append('b'))
        scheduler.schedule('a', 1.0, lambda: fired.append('a'))

        clock.advance(1.0)
        scheduler.run_due()
        assert fired == ['b', 'a']

    def test_repeating_timer_catches_up(self, clock, scheduler):
        ticks = []
        scheduler.schedule_repeating('tick', 1.0, lambda: ticks.append(1))

        clock.advance(3.5)
        assert scheduler.run_due() == 3
        assert scheduler.time_remaining('tick') == pytest.approx(0.5)

    def test_repeating_interval_must_be_positive(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.schedule_repeating('tick', 0.0, lambda: None)

    def test_timer_set_in_callback_counts_from_its_deadline(self, clock, scheduler):
        fired = []

        def first():
            fired.append(('first', clock.now()))
            scheduler.schedule('second', 1.0, lambda: fired.append(('second', clock.now())))

        scheduler.schedule('first', 1.0, first)

        # Both due within a single late run: second is due at 2.0, not 5.0 + 1.0
        clock.advance(5.0)
        assert scheduler.run_due() == 2
        assert [name for name, _ in fired] == ['first', 'second']

    def test_failing_callback_does_not_stop_others(self, clock, scheduler, caplog):
        fired = []

        def boom():
            raise RuntimeError("boom")

        scheduler.schedule('bad', 1.0, boom)
        scheduler.schedule('good', 1.0, lambda: fired.append('good'))

        clock.advance(1.0)
        assert scheduler.run_due() == 2
        assert fired == ['good']
        assert "Timer 'bad' callback failed" in caplog.text

    def test_time_remaining(self, clock, scheduler):
        scheduler.schedule('a', 2.0, lambda: None)
        clock.advance(0.5)
        assert scheduler.time_remaining('a') == pytest.approx(1.5)
        assert scheduler.time_remaining('missing') is None
