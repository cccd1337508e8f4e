"""
Progress reporting for collection, summarization and automation runs.

A RunTracker owns the mutable state of one stage (status, day counters and
the running log) and pushes an immutable AutomationProgress snapshot to its
callback after every change. ProgressPublisher fans snapshots out to any
number of subscribers.
"""

import threading
from datetime import date, datetime
from typing import Callable, List, Optional

from .logging_utils import get_logger, log_run_entry
from .models import (
    AutomationProgress,
    LogEntry,
    LEVEL_ERROR,
    LEVEL_INFO,
    LEVEL_SUCCESS,
    LEVEL_WARN,
    LEVELS,
    STATUS_DONE,
    STATUS_ERROR,
    STATUSES,
)


ProgressCallback = Callable[[AutomationProgress], None]


class ProgressPublisher:
    """
    Delivers progress snapshots to a set of subscribers.

    The publisher is itself a ProgressCallback, so it can be handed to any
    stage that accepts one.
    """

    def __init__(self, *listeners: ProgressCallback):
        self._listeners: List[ProgressCallback] = list(listeners)
        self._lock = threading.Lock()
        self.logger = get_logger('progress')

    def subscribe(self, listener: ProgressCallback) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Called with every published snapshot

        Returns:
            A function that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, progress: AutomationProgress):
        """Send a snapshot to every current listener, in subscription order."""
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(progress)
            except Exception:
                # A broken listener must not abort the run it is watching
                self.logger.exception("Progress listener failed")

    __call__ = publish


class RunTracker:
    """
    Tracks one stage of a run and emits a snapshot after every change.

    Logs are append-only for the lifetime of the tracker and completed_days
    never decreases or exceeds total_days.
    """

    def __init__(
        self,
        status: str,
        total_days: int = 0,
        on_progress: Optional[ProgressCallback] = None,
        logger=None,
    ):
        """
        Initialize the tracker.

        Args:
            status: Initial status (one of models.STATUSES)
            total_days: Number of days this stage works through
            on_progress: Callback receiving each snapshot
            logger: Console logger the run log is mirrored to
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status!r}")
        if total_days < 0:
            raise ValueError("total_days cannot be negative")

        self.status = status
        self.total_days = total_days
        self.completed_days = 0
        self.current_day: Optional[date] = None
        self.current_step: Optional[str] = None
        self.error_message: Optional[str] = None
        self.on_progress = on_progress
        self.logger = logger or get_logger()
        self._logs: List[LogEntry] = []

    @property
    def logs(self):
        return tuple(self._logs)

    def snapshot(self) -> AutomationProgress:
        """Build an immutable snapshot of the current state."""
        return AutomationProgress(
            status=self.status,
            total_days=self.total_days,
            completed_days=self.completed_days,
            logs=tuple(self._logs),
            current_day=self.current_day,
            current_step=self.current_step,
            error=self.error_message,
        )

    def emit(self):
        if self.on_progress is not None:
            self.on_progress(self.snapshot())

    def log(self, level: str, message: str) -> LogEntry:
        """
        Append an entry to the run log, mirror it to the console and emit.

        Args:
            level: info, warn, error or success
            message: Entry text

        Returns:
            The appended entry
        """
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level!r}")

        entry = LogEntry(timestamp=datetime.now(), level=level, message=message)
        self._logs.append(entry)
        log_run_entry(level, message, self.logger)
        self.emit()
        return entry

    def info(self, message: str) -> LogEntry:
        return self.log(LEVEL_INFO, message)

    def warn(self, message: str) -> LogEntry:
        return self.log(LEVEL_WARN, message)

    def error(self, message: str) -> LogEntry:
        return self.log(LEVEL_ERROR, message)

    def success(self, message: str) -> LogEntry:
        return self.log(LEVEL_SUCCESS, message)

    def set_step(self, step: Optional[str]):
        self.current_step = step

    def set_status(self, status: str):
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status!r}")
        self.status = status
        self.emit()

    def start_day(self, day: date):
        """Mark a day as the one currently being processed."""
        self.current_day = day
        self.emit()

    def complete_day(self):
        """Count the current day as done."""
        self.completed_days = min(self.completed_days + 1, self.total_days)
        self.emit()

    def finish(self, status: str = STATUS_DONE):
        """Emit the terminal snapshot of a successful stage."""
        self.completed_days = self.total_days
        self.current_step = None
        self.set_status(status)

    def fail(self, message: str):
        """Emit the terminal error snapshot."""
        self.error_message = message
        self.set_status(STATUS_ERROR)
