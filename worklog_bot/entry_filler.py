"""
Writes notes into one half-day time entry.
"""

from typing import Dict, Optional, Tuple

from .driver import BrowserSession
from .logging_utils import get_logger
from .models import DailySummary, PERIODS
from .progress import RunTracker
from .retry import RetryPolicy
from .selectors import RemoteSelectors, TIME_RANGES, Timeouts


class EntryFiller:
    """
    Fills the AM or PM entry of a day through the edit dialog.

    fill_entry never leaves the edit dialog open when it returns.
    """

    def __init__(
        self,
        session: BrowserSession,
        tracker: RunTracker,
        retry_policy: Optional[RetryPolicy] = None,
        time_ranges: Optional[Dict[str, Tuple[str, ...]]] = None,
    ):
        """
        Initialize the entry filler.

        Args:
            session: Open browser session on the time-tracking page
            tracker: Run tracker receiving per-entry log lines
            retry_policy: Policy for the edit sequence (3 attempts, 1s base delay)
            time_ranges: Acceptable time-range labels per period
        """
        self.session = session
        self.tracker = tracker
        self.retry_policy = retry_policy or RetryPolicy()
        self.time_ranges = time_ranges or TIME_RANGES
        self.logger = get_logger('entry_filler')

    def find_edit_button(self, day: DailySummary, period: str) -> Optional[str]:
        """
        Find the edit control for a half-day entry.

        Labels are tried in preference order; the first visible one wins.

        Returns:
            Selector of the visible edit button, or None if the day has no such entry
        """
        for time_range in self.time_ranges[period]:
            selector = RemoteSelectors.edit_entry_button(day.date, time_range)
            if self.session.is_visible(selector, timeout=Timeouts.ENTRY_PROBE):
                self.logger.debug(f"Found {period.upper()} entry '{time_range}' for {day.date}")
                return selector
        return None

    def fill_entry(self, day: DailySummary, period: str) -> bool:
        """
        Write the day's notes for one period into its time entry.

        Args:
            day: Summary holding the notes
            period: 'am' or 'pm'

        Returns:
            True if an entry was found and saved, False otherwise
        """
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period!r}")

        label = period.upper()
        notes = day.notes_for(period)

        edit_button = self.find_edit_button(day, period)
        if edit_button is None:
            self.tracker.info(f"No editable {label} entry for {day.date}")
            return False

        def on_retry(attempt: int, error: Exception):
            self.logger.warning(
                f"{label} entry for {day.date}: attempt {attempt} failed ({error}), retrying"
            )
            self._close_edit_dialog()

        try:
            self.retry_policy.run(lambda: self._edit_entry(edit_button, notes), on_retry=on_retry)
        except Exception as e:
            self.tracker.error(f"Failed to fill {label} entry for {day.date}: {e}")
            self._dismiss_error_dialog()
            self._close_edit_dialog()
            return False

        self.logger.debug(f"{label} entry for {day.date} saved")
        return True

    def _edit_entry(self, edit_button: str, notes: str):
        session = self.session

        session.click(edit_button)
        session.wait_for(RemoteSelectors.EDIT_DIALOG, 'visible', timeout=Timeouts.MODAL_APPEAR)

        session.wait_for(RemoteSelectors.NOTES_FIELD, 'visible', timeout=Timeouts.NOTES_FIELD)
        session.fill(RemoteSelectors.NOTES_FIELD, notes)

        session.click(RemoteSelectors.SAVE_BUTTON)
        session.wait_for(RemoteSelectors.EDIT_DIALOG, 'hidden', timeout=Timeouts.MODAL_DISAPPEAR)

        # Let the backend settle before the next entry
        session.wait(Timeouts.ENTRY_SETTLE)

    def _dismiss_error_dialog(self):
        try:
            if self.session.is_visible(RemoteSelectors.DISMISS_BUTTON, timeout=Timeouts.DISMISS_PROBE):
                self.session.click(RemoteSelectors.DISMISS_BUTTON)
                self.session.wait(Timeouts.DISMISS_SETTLE)
        except Exception as e:
            self.logger.debug(f"Could not dismiss error dialog: {e}")

    def _close_edit_dialog(self):
        try:
            if self.session.is_visible(RemoteSelectors.CANCEL_BUTTON, timeout=Timeouts.DISMISS_PROBE):
                self.session.click(RemoteSelectors.CANCEL_BUTTON)
                self.session.wait_for(
                    RemoteSelectors.EDIT_DIALOG, 'hidden', timeout=Timeouts.MODAL_DISAPPEAR
                )
        except Exception as e:
            self.logger.debug(f"Could not close edit dialog: {e}")
