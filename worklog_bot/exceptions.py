"""
Exception hierarchy for the work-log automation tool.
"""


class WorklogBotError(Exception):
    """Base exception for all worklog_bot errors."""
    pass


class AuthenticationError(WorklogBotError):
    """Raised when a fresh login to the remote service fails."""
    pass


class AutomationError(WorklogBotError):
    """Raised when the timesheet workflow cannot continue."""
    pass


class RunCancelledError(WorklogBotError):
    """Raised at a checkpoint when the caller requested cancellation."""
    pass


class SummarizerError(WorklogBotError):
    """Raised when the language model call fails or returns nothing."""
    pass


class SchedulerBusyError(WorklogBotError):
    """Raised when a run is requested while another one is in progress."""
    pass


class SummaryCSVError(WorklogBotError):
    """Raised when a summary CSV file is malformed."""
    pass
