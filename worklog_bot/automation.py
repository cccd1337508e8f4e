"""
Timesheet automation engine.

Drives the remote time-tracking page through the whole weekly workflow:
authenticate, open the timesheet, reopen it if needed, write the AM and PM
notes of every workday, resubmit, and persist the refreshed session.
"""

import threading
from typing import List, Optional

from .config import Config
from .driver import BrowserDriver, BrowserSession, StatePath
from .entry_filler import EntryFiller
from .exceptions import AutomationError, RunCancelledError
from .logging_utils import get_logger
from .models import (
    AutomationSummary,
    DailySummary,
    DayFillResult,
    WeeklySummary,
    PERIOD_AM,
    PERIOD_PM,
    STATUS_AUTOMATING,
)
from .progress import ProgressCallback, RunTracker
from .retry import RetryPolicy
from .selectors import RemoteSelectors, RemoteURLs, Timeouts
from .session import SessionManager
from .week_utils import in_week, is_weekend


NETWORK_ERROR_MARKERS = ('ERR_NAME_NOT_RESOLVED', 'ERR_CONNECTION', 'ERR_TUNNEL_CONNECTION_FAILED', 'net::')


def select_workdays(summary: WeeklySummary) -> List[DailySummary]:
    """
    Pick the days of a summary that automation works through.

    Weekend days, days outside the summary's week and repeated dates are
    dropped; the rest are returned in date order.

    Args:
        summary: Weekly summary

    Returns:
        Workday summaries sorted by date
    """
    seen = set()
    workdays = []
    for day in sorted(summary.days, key=lambda d: d.date):
        if day.date in seen or is_weekend(day.date) or not in_week(day.date, summary.week_start):
            continue
        seen.add(day.date)
        workdays.append(day)
    return workdays


class TimesheetAutomation:
    """
    Runs one timesheet automation.

    Only one run may drive the browser at a time; callers serialize runs.
    """

    def __init__(
        self,
        config: Config,
        driver: BrowserDriver,
        state_path: Optional[StatePath] = None,
        on_progress: Optional[ProgressCallback] = None,
        retry_policy: Optional[RetryPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the automation.

        Args:
            config: Application configuration
            driver: Browser driver (already started or startable)
            state_path: Session state file (defaults to config.auth_state_path)
            on_progress: Callback receiving progress snapshots
            retry_policy: Retry policy for each entry edit
            cancel_event: When set, the run stops at the next checkpoint
        """
        self.config = config
        self.driver = driver
        self.state_path = state_path or config.auth_state_path
        self.on_progress = on_progress
        self.retry_policy = retry_policy or RetryPolicy()
        self.cancel_event = cancel_event
        self.logger = get_logger('automation')

    def _check_cancelled(self, tracker: RunTracker, where: str):
        if self.cancel_event is not None and self.cancel_event.is_set():
            tracker.warn(f"Cancellation requested, stopping {where}")
            raise RunCancelledError("Run cancelled")

    def run(self, summary: WeeklySummary) -> AutomationSummary:
        """
        Realize a weekly summary in the remote timesheet.

        Args:
            summary: Notes to write

        Returns:
            Per-day results of the run

        Raises:
            AuthenticationError: If logging in fails
            RunCancelledError: If cancellation was requested mid-run
            Exception: Any other failure outside a single entry edit
        """
        workdays = select_workdays(summary)
        tracker = RunTracker(
            STATUS_AUTOMATING,
            total_days=len(workdays),
            on_progress=self.on_progress,
            logger=self.logger,
        )
        result = AutomationSummary(week_start=summary.week_start)

        try:
            tracker.set_step('authenticate')
            SessionManager(self.driver, self.config.remote, self.state_path).ensure_authenticated()
            tracker.info("Authentication verified")

            with self.driver.open_session(storage_state=self.state_path) as session:
                self._open_timesheet(session, tracker)
                result.reopened = self._reopen_timesheet(session, tracker)

                filler = EntryFiller(session, tracker, self.retry_policy)
                for day in workdays:
                    self._check_cancelled(tracker, "before the next day")
                    result.day_results.append(self._fill_day(filler, day, tracker))

                self._check_cancelled(tracker, "before resubmitting")
                result.resubmitted = self._resubmit_timesheet(session, tracker)

                session.save_state(self.state_path)

            tracker.success("Automation completed successfully")
            tracker.finish()
            return result

        except Exception as e:
            message = str(e) or e.__class__.__name__
            tracker.error(f"Automation failed: {message}")
            tracker.fail(message)
            raise

    def _open_timesheet(self, session: BrowserSession, tracker: RunTracker):
        tracker.set_step('navigate')
        tracker.info("Navigating to time tracking page")
        try:
            session.goto(RemoteURLs.TIME_TRACKING, timeout=Timeouts.NAVIGATION)
        except Exception as e:
            if any(marker in str(e) for marker in NETWORK_ERROR_MARKERS):
                raise AutomationError(
                    f"Cannot reach the time tracking page ({e}). "
                    "Check your connection, VPN or proxy."
                ) from e
            raise
        session.wait(Timeouts.PAGE_SETTLE)

        if not session.is_visible(RemoteSelectors.DAY_CONTAINER, timeout=Timeouts.CONTROL_PROBE):
            raise AutomationError(
                "No day rows found on the time tracking page; the page layout may have changed"
            )

    def _reopen_timesheet(self, session: BrowserSession, tracker: RunTracker) -> bool:
        tracker.set_step('reopen')
        tracker.info("Reopening timesheet")
        if session.is_visible(RemoteSelectors.REOPEN_BUTTON, timeout=Timeouts.CONTROL_PROBE):
            session.click(RemoteSelectors.REOPEN_BUTTON)
            session.wait(Timeouts.PAGE_SETTLE)
            tracker.success("Timesheet reopened")
            return True

        tracker.info("Timesheet already open for editing")
        return False

    def _fill_day(self, filler: EntryFiller, day: DailySummary, tracker: RunTracker) -> DayFillResult:
        tracker.set_step('fill')
        tracker.start_day(day.date)
        tracker.info(f"Processing {day.date}")

        day_result = DayFillResult(date=day.date)
        day_result.am_filled = filler.fill_entry(day, PERIOD_AM)
        day_result.pm_filled = filler.fill_entry(day, PERIOD_PM)

        if day_result.any_filled:
            tracker.success(f"Completed {day.date}")
        else:
            tracker.warn(f"No editable entries found for {day.date}")

        tracker.complete_day()
        return day_result

    def _resubmit_timesheet(self, session: BrowserSession, tracker: RunTracker) -> bool:
        tracker.set_step('resubmit')
        tracker.info("Resubmitting timesheet")
        if not session.is_visible(RemoteSelectors.RESUBMIT_BUTTON, timeout=Timeouts.CONTROL_PROBE):
            tracker.warn("No resubmit button found - timesheet may not need resubmission")
            return False

        session.click(RemoteSelectors.RESUBMIT_BUTTON)
        session.wait_for(
            RemoteSelectors.RESUBMIT_CONFIRM_BUTTON, 'visible', timeout=Timeouts.MODAL_APPEAR
        )
        session.click(RemoteSelectors.RESUBMIT_CONFIRM_BUTTON)
        session.wait(Timeouts.PAGE_SETTLE)
        tracker.success("Timesheet resubmitted")
        return True
