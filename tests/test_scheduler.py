"""
Tests for the daily scheduler.
"""

import threading
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from worklog_bot.config import Config, SchedulerConfig
from worklog_bot.exceptions import SchedulerBusyError
from worklog_bot.models import STATUS_ERROR
from worklog_bot.scheduler import Scheduler, SchedulerStatus, next_run_time


MONDAY_1800 = datetime(2024, 6, 3, 18, 0)
FRIDAY_1900 = datetime(2024, 6, 7, 19, 0)
SATURDAY_1800 = datetime(2024, 6, 8, 18, 0)


def scheduled_config(enabled=True, time='18:00', skip_weekends=True):
    return Config(scheduler=SchedulerConfig(enabled=enabled, time=time, skip_weekends=skip_weekends))


@pytest.fixture
def pipeline():
    return MagicMock()


def make_scheduler(config, pipeline, now=MONDAY_1800, **kwargs):
    return Scheduler(lambda: config, pipeline=pipeline, clock=lambda: now, **kwargs)


class TestNextRunTime:
    """Tests for next_run_time."""

    def test_later_today(self):
        """Test that a time later today is today."""
        assert next_run_time(datetime(2024, 6, 3, 9, 0), '18:00', True) == MONDAY_1800

    def test_exactly_now_is_tomorrow(self):
        """Test that the next run is strictly after now."""
        assert next_run_time(MONDAY_1800, '18:00', True) == datetime(2024, 6, 4, 18, 0)

    def test_saturday_skips_to_monday(self):
        """Test that Saturday 18:00 with skip_weekends points at Monday 18:00."""
        assert next_run_time(SATURDAY_1800, '18:00', True) == datetime(2024, 6, 10, 18, 0)

    def test_friday_evening_skips_weekend(self):
        """Test that Friday after the run time skips to Monday."""
        assert next_run_time(FRIDAY_1900, '18:00', True) == datetime(2024, 6, 10, 18, 0)

    def test_weekend_allowed(self):
        """Test that weekends are kept when not skipped."""
        assert next_run_time(FRIDAY_1900, '18:00', False) == SATURDAY_1800


class TestTick:
    """Tests for Scheduler.tick."""

    def test_fires_at_configured_time(self, pipeline):
        """Test that a weekday tick at the configured minute runs the pipeline for the current week."""
        config = scheduled_config()
        scheduler = make_scheduler(config, pipeline)

        assert scheduler.tick(MONDAY_1800) is True

        pipeline.assert_called_once()
        args, kwargs = pipeline.call_args
        assert args == (date(2024, 6, 3), config)
        assert 'on_progress' in kwargs
        assert isinstance(kwargs['cancel_event'], threading.Event)

    def test_saturday_does_not_fire(self, pipeline):
        """Test that Saturday 18:00 with skip_weekends does not run."""
        scheduler = make_scheduler(scheduled_config(), pipeline, now=SATURDAY_1800)

        assert scheduler.tick(SATURDAY_1800) is False
        pipeline.assert_not_called()
        assert scheduler.get_status() == SchedulerStatus(enabled=True, next_run=datetime(2024, 6, 10, 18, 0))

    def test_weekend_fires_when_not_skipped(self, pipeline):
        """Test that weekends run when skip_weekends is off, for that week's Monday."""
        scheduler = make_scheduler(scheduled_config(skip_weekends=False), pipeline)

        assert scheduler.tick(SATURDAY_1800) is True
        assert pipeline.call_args[0][0] == date(2024, 6, 3)

    def test_once_per_day(self, pipeline):
        """Test that a second tick in the same minute does not run again."""
        scheduler = make_scheduler(scheduled_config(), pipeline)

        assert scheduler.tick(MONDAY_1800) is True
        assert scheduler.tick(datetime(2024, 6, 3, 18, 0, 30)) is False
        assert scheduler.tick(datetime(2024, 6, 4, 18, 0)) is True
        assert pipeline.call_count == 2

    def test_other_minute(self, pipeline):
        """Test that other times of day do not fire."""
        scheduler = make_scheduler(scheduled_config(), pipeline)

        assert scheduler.tick(datetime(2024, 6, 3, 18, 1)) is False
        assert scheduler.tick(datetime(2024, 6, 3, 17, 59)) is False
        pipeline.assert_not_called()

    def test_disabled(self, pipeline):
        """Test that a disabled schedule never fires."""
        scheduler = make_scheduler(scheduled_config(enabled=False), pipeline)

        assert scheduler.tick(MONDAY_1800) is False
        assert scheduler.get_status() == SchedulerStatus(enabled=False, next_run=None)

    def test_no_overlapping_runs(self, pipeline):
        """Test that nothing else starts while a run is in progress."""
        scheduler = make_scheduler(scheduled_config(), pipeline)
        observed = {}

        def run(week_start, config, on_progress=None, cancel_event=None):
            observed['running'] = scheduler.is_running
            observed['tick'] = scheduler.tick(datetime(2024, 6, 4, 18, 0))
            with pytest.raises(SchedulerBusyError):
                scheduler.run_now()

        pipeline.side_effect = run
        scheduler.tick(MONDAY_1800)

        assert observed == {'running': True, 'tick': False}
        assert pipeline.call_count == 1
        assert scheduler.is_running is False

    def test_failed_run_reported(self, pipeline):
        """Test that a failing run emits an error snapshot and the scheduler recovers."""
        pipeline.side_effect = RuntimeError("Login failed: timeout")
        scheduler = make_scheduler(scheduled_config(), pipeline)
        snapshots = []
        scheduler.on_progress(snapshots.append)

        assert scheduler.tick(MONDAY_1800) is True

        assert snapshots[-1].status == STATUS_ERROR
        assert snapshots[-1].error == "Login failed: timeout"
        assert snapshots[-1].logs[0].message == "Scheduler run failed: Login failed: timeout"
        assert scheduler.is_running is False
        assert scheduler.tick(datetime(2024, 6, 4, 18, 0)) is True

    def test_progress_forwarded(self, pipeline):
        """Test that pipeline progress reaches subscribed listeners."""
        def run(week_start, config, on_progress=None, cancel_event=None):
            on_progress('snapshot')

        pipeline.side_effect = run
        scheduler = make_scheduler(scheduled_config(), pipeline)
        received = []
        unsubscribe = scheduler.on_progress(received.append)

        scheduler.tick(MONDAY_1800)
        unsubscribe()
        scheduler.tick(datetime(2024, 6, 4, 18, 0))

        assert received == ['snapshot']

    def test_status_notified_after_run(self, pipeline):
        """Test that status listeners hear about the next run after a run."""
        scheduler = make_scheduler(scheduled_config(), pipeline)
        statuses = []
        scheduler.on_status_change(statuses.append)

        scheduler.tick(MONDAY_1800)

        assert statuses == [SchedulerStatus(enabled=True, next_run=datetime(2024, 6, 4, 18, 0))]


class TestRunNow:
    """Tests for Scheduler.run_now."""

    def test_defaults_to_current_week(self, pipeline):
        """Test that a manual run uses the Monday of the current week."""
        scheduler = make_scheduler(scheduled_config(enabled=False), pipeline, now=datetime(2024, 6, 6, 10, 0))

        assert scheduler.run_now() is True
        assert pipeline.call_args[0][0] == date(2024, 6, 3)

    def test_explicit_week(self, pipeline):
        """Test that a manual run can target another week."""
        scheduler = make_scheduler(scheduled_config(), pipeline)

        scheduler.run_now(date(2024, 5, 27))
        assert pipeline.call_args[0][0] == date(2024, 5, 27)

    def test_failure_returns_false(self, pipeline):
        """Test that a failed manual run returns False."""
        pipeline.side_effect = RuntimeError("boom")
        assert make_scheduler(scheduled_config(), pipeline).run_now() is False


class TestLifecycle:
    """Tests for start, stop and restart."""

    def test_timer_fires_and_stops(self, pipeline):
        """Test that the background timer ticks until stopped."""
        fired = threading.Event()
        pipeline.side_effect = lambda *args, **kwargs: fired.set()
        scheduler = make_scheduler(scheduled_config(), pipeline, check_interval=0.01)

        scheduler.start()
        try:
            assert fired.wait(timeout=5)
        finally:
            scheduler.stop()

        assert scheduler.is_started is False
        assert pipeline.call_count == 1

    def test_start_is_idempotent(self, pipeline):
        """Test that starting twice keeps a single timer."""
        scheduler = make_scheduler(scheduled_config(), pipeline, check_interval=60)

        scheduler.start()
        thread = scheduler._thread
        scheduler.start()

        assert scheduler._thread is thread
        scheduler.stop()

    def test_restart_when_disabled(self, pipeline):
        """Test that restart leaves the timer stopped when disabled."""
        config = scheduled_config()
        scheduler = make_scheduler(config, pipeline, check_interval=60)
        scheduler.start()

        config.scheduler.enabled = False
        statuses = []
        scheduler.on_status_change(statuses.append)
        scheduler.restart()

        assert scheduler.is_started is False
        assert statuses[-1] == SchedulerStatus(enabled=False)

    def test_restart_when_enabled(self, pipeline):
        """Test that restart recreates the timer when enabled."""
        scheduler = make_scheduler(scheduled_config(), pipeline, check_interval=60)

        scheduler.restart()
        try:
            assert scheduler.is_started is True
        finally:
            scheduler.stop()

    def test_restart_during_run_retires_old_timer(self, pipeline):
        """Test that a timer restarted mid-run exits once its run finishes."""
        started = threading.Event()
        release = threading.Event()

        def blocking_run(*args, **kwargs):
            started.set()
            release.wait(timeout=5)

        pipeline.side_effect = blocking_run
        scheduler = make_scheduler(scheduled_config(), pipeline, check_interval=0.01)

        scheduler.start()
        old_thread = scheduler._thread
        try:
            assert started.wait(timeout=5)
            scheduler.restart()
            new_thread = scheduler._thread
            assert new_thread is not old_thread

            release.set()
            old_thread.join(timeout=5)

            assert old_thread.is_alive() is False
            assert new_thread.is_alive() is True
            timers = [t for t in threading.enumerate() if t.name == 'worklog-scheduler']
            assert timers == [new_thread]
        finally:
            release.set()
            scheduler.stop()

        assert pipeline.call_count == 1
