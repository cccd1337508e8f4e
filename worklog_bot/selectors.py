"""
URLs, DOM selectors and timeouts for the remote time-tracking UI.

Selectors use Playwright locator syntax. Edit buttons are looked up inside
a per-day container carrying a `data-date` attribute; the automation checks
that such containers exist before editing anything. If the page structure
changes, this module is the only place that needs updating.
"""

from datetime import date
from typing import Dict, Tuple

from .models import PERIOD_AM, PERIOD_PM


class RemoteURLs:
    """Pages the automation visits."""

    LOGIN = 'https://employ.remote.com/login'
    TIME_TRACKING = 'https://employ.remote.com/dashboard/time-tracking/'

    # Fragment present in the URL whenever the session is not authenticated
    LOGIN_FRAGMENT = '/login'


class RemoteSelectors:
    """
    Centralized selectors for the remote UI.
    """

    # Login page
    EMAIL_INPUT = 'input[type="email"]'
    PASSWORD_INPUT = 'input[type="password"]'
    LOGIN_BUTTON = 'button[type="submit"]'

    # Timesheet-level controls
    REOPEN_BUTTON = 'button:has-text("Reopen timesheet")'
    RESUBMIT_BUTTON = 'button:has-text("Resubmit timesheet")'
    RESUBMIT_CONFIRM_BUTTON = 'button:has-text("Resubmit hours")'

    # Edit dialog
    EDIT_DIALOG = '[role="dialog"]'
    NOTES_FIELD = '[role="dialog"] [placeholder="Add notes"]'
    SAVE_BUTTON = '[data-testid="modal-save-button"]'
    CANCEL_BUTTON = '[role="dialog"] button:has-text("Cancel")'
    DISMISS_BUTTON = 'button:has-text("Dismiss")'

    # Any per-day block of time entries
    DAY_CONTAINER = '[data-date]'

    @staticmethod
    def day_container(day: date) -> str:
        """
        Get selector for the block holding one day's time entries.

        Example:
            >>> RemoteSelectors.day_container(date(2024, 6, 3))
            '[data-date="2024-06-03"]'
        """
        return f'[data-date="{day.isoformat()}"]'

    @staticmethod
    def edit_entry_button(day: date, time_range: str) -> str:
        """
        Get selector for the edit button of one time entry of one day.

        Args:
            day: Calendar date of the entry
            time_range: Label as shown by the UI (e.g. "09:00 to 12:00")

        Returns:
            Playwright selector string

        Example:
            >>> RemoteSelectors.edit_entry_button(date(2024, 6, 3), "09:00 to 12:00")
            '[data-date="2024-06-03"] button:has-text("Edit time entry for 09:00 to 12:00")'
        """
        container = RemoteSelectors.day_container(day)
        return f'{container} button:has-text("Edit time entry for {time_range}")'


# Acceptable time-range labels per period, in preference order. Accounts and
# shifts surface slightly different labels for the same half-day.
TIME_RANGES: Dict[str, Tuple[str, ...]] = {
    PERIOD_AM: ('09:00 to 12:00', '9:00 to 12:00'),
    PERIOD_PM: ('13:00 to 18:00', '13:00 to 17:00', '14:00 to 18:00'),
}


class Timeouts:
    """Per-operation timeouts and settle delays (milliseconds)."""

    NAVIGATION = 30000
    LOGIN_COMPLETE = 30000
    MODAL_APPEAR = 10000
    MODAL_DISAPPEAR = 10000
    NOTES_FIELD = 3000
    CONTROL_PROBE = 3000
    ENTRY_PROBE = 1000
    DISMISS_PROBE = 1000

    PAGE_SETTLE = 2000
    ENTRY_SETTLE = 500
    DISMISS_SETTLE = 500
