"""
Daily scheduler for the full pipeline.

A background thread calls tick() every check_interval seconds. A tick fires
the pipeline at most once per calendar day, at the configured local time,
and never while another run is in progress. Configuration is reloaded on
every tick, so schedule changes apply without a restart.
"""

import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from .config import Config, load_config
from .exceptions import SchedulerBusyError
from .logging_utils import get_logger, log_error, log_step, log_success
from .models import AutomationProgress, LogEntry, LEVEL_ERROR, STATUS_ERROR
from .orchestrator import execute_full_pipeline
from .progress import ProgressCallback, ProgressPublisher
from .week_utils import is_weekend, monday_of


@dataclass(frozen=True)
class SchedulerStatus:
    """
    What the scheduler will do next.

    Attributes:
        enabled: Whether scheduled runs are active
        next_run: Next time a run would fire (None when disabled)
    """
    enabled: bool
    next_run: Optional[datetime] = None


StatusListener = Callable[[SchedulerStatus], None]


def _parse_hhmm(value: str):
    hours, minutes = value.split(':')
    return int(hours), int(minutes)


def next_run_time(now: datetime, time_of_day: str, skip_weekends: bool) -> datetime:
    """
    Compute the next firing time strictly after now.

    Args:
        now: Current local time
        time_of_day: Scheduled time in HH:MM format
        skip_weekends: Whether Saturdays and Sundays are skipped

    Returns:
        Next matching local datetime
    """
    hours, minutes = _parse_hhmm(time_of_day)
    candidate = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)

    if candidate <= now:
        candidate += timedelta(days=1)

    if skip_weekends:
        while is_weekend(candidate.date()):
            candidate += timedelta(days=1)

    return candidate


class Scheduler:
    """
    Runs the full pipeline once a day at the configured time.
    """

    def __init__(
        self,
        config_loader: Callable[[], Config] = load_config,
        pipeline: Callable = execute_full_pipeline,
        clock: Callable[[], datetime] = datetime.now,
        check_interval: float = 60,
    ):
        """
        Initialize the scheduler.

        Args:
            config_loader: Returns the current configuration (called on every tick)
            pipeline: Called as pipeline(week_start, config, on_progress=..., cancel_event=...)
            clock: Returns the current local time
            check_interval: Seconds between ticks
        """
        self.config_loader = config_loader
        self.pipeline = pipeline
        self.clock = clock
        self.check_interval = float(check_interval)
        self.logger = get_logger('scheduler')

        self._progress = ProgressPublisher()
        self._status_listeners: List[StatusListener] = []

        self._lock = threading.Lock()
        self._running = False
        self._last_run_date: Optional[date] = None
        self._cancel_event = threading.Event()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # Listeners

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a status listener.

        Returns:
            A function that removes the listener again
        """
        with self._lock:
            self._status_listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._status_listeners:
                    self._status_listeners.remove(listener)

        return unsubscribe

    def on_progress(self, listener: ProgressCallback) -> Callable[[], None]:
        """
        Register a listener for the progress of scheduled runs.

        Returns:
            A function that removes the listener again
        """
        return self._progress.subscribe(listener)

    def _notify_status(self):
        try:
            status = self.get_status()
        except Exception as e:
            self.logger.warning(f"Could not compute scheduler status: {e}")
            return

        with self._lock:
            listeners = list(self._status_listeners)

        for listener in listeners:
            try:
                listener(status)
            except Exception:
                self.logger.exception("Status listener failed")

    # Lifecycle

    @property
    def is_running(self) -> bool:
        """True while a pipeline run is in progress."""
        with self._lock:
            return self._running

    @property
    def is_started(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """
        Start the timer thread. Does nothing if it is already running.
        """
        if self.is_started:
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(self._stop_event,),
            name='worklog-scheduler',
            daemon=True,
        )
        self._thread.start()
        log_step(f"Scheduler started (checking every {self.check_interval:g}s)", self.logger)
        self._notify_status()

    def stop(self, timeout: float = 1.0):
        """
        Stop the timer thread.

        A run already in progress finishes on its own; use cancel() to stop it
        at its next checkpoint.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def restart(self):
        """
        Recreate the timer from the current configuration.

        The timer is only started again when scheduling is enabled.
        """
        self.stop()
        config = self.config_loader()
        if config.scheduler.enabled:
            self.start()
        self._notify_status()

    def cancel(self):
        """Ask the run in progress to stop at its next checkpoint."""
        self._cancel_event.set()

    def get_status(self) -> SchedulerStatus:
        """
        Get the current schedule.

        Returns:
            SchedulerStatus with the next run time when enabled
        """
        config = self.config_loader()
        if not config.scheduler.enabled:
            return SchedulerStatus(enabled=False)
        return SchedulerStatus(
            enabled=True,
            next_run=next_run_time(self.clock(), config.scheduler.time, config.scheduler.skip_weekends),
        )

    # Firing

    def _loop(self, stop_event: threading.Event):
        # Bound to the event current at start(); restart() swaps in a new one
        while not stop_event.wait(self.check_interval):
            try:
                self.tick()
            except Exception:
                # The timer must survive any single tick
                self.logger.exception("Scheduler tick failed")

    def _is_due(self, config: Config, now: datetime) -> bool:
        schedule = config.scheduler
        if not schedule.enabled:
            return False
        if schedule.skip_weekends and is_weekend(now.date()):
            return False
        if now.strftime('%H:%M') != schedule.time:
            return False
        return self._last_run_date != now.date()

    def tick(self, now: Optional[datetime] = None) -> bool:
        """
        Fire the pipeline if it is due.

        Args:
            now: Current local time (defaults to the scheduler's clock)

        Returns:
            True if a run was started by this tick
        """
        now = now or self.clock()

        with self._lock:
            if self._running:
                return False

            config = self.config_loader()
            if not self._is_due(config, now):
                return False

            self._last_run_date = now.date()
            self._running = True

        log_step(f"Scheduled run at {now.strftime('%Y-%m-%d %H:%M')}", self.logger)
        self._execute(monday_of(now.date()), config)
        return True

    def run_now(self, week_start: Optional[date] = None) -> bool:
        """
        Run the pipeline immediately, outside the schedule.

        Args:
            week_start: Monday of the week to run (defaults to the current week)

        Returns:
            True if the run succeeded

        Raises:
            SchedulerBusyError: If a run is already in progress
        """
        with self._lock:
            if self._running:
                raise SchedulerBusyError("A run is already in progress")
            self._running = True

        try:
            config = self.config_loader()
        except Exception:
            with self._lock:
                self._running = False
            raise

        return self._execute(week_start or monday_of(self.clock().date()), config)

    def _execute(self, week_start: date, config: Config) -> bool:
        self._cancel_event = threading.Event()
        try:
            self.pipeline(
                week_start,
                config,
                on_progress=self._progress,
                cancel_event=self._cancel_event,
            )
            log_success(f"Run for week {week_start.isoformat()} finished", self.logger)
            return True
        except Exception as e:
            message = str(e) or e.__class__.__name__
            log_error(f"Scheduler run failed: {message}", self.logger)
            self._progress(AutomationProgress(
                status=STATUS_ERROR,
                logs=(LogEntry(timestamp=datetime.now(), level=LEVEL_ERROR,
                               message=f"Scheduler run failed: {message}"),),
                error=message,
            ))
            return False
        finally:
            with self._lock:
                self._running = False
            self._notify_status()
