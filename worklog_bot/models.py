"""
Data models for work-log automation.

This module defines the data structures used throughout the application:
collected activity, generated summaries, progress snapshots and the
result of an automation run.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple


# Progress status values
STATUS_IDLE = 'idle'
STATUS_COLLECTING = 'collecting'
STATUS_SUMMARIZING = 'summarizing'
STATUS_PREVIEWING = 'previewing'
STATUS_AUTOMATING = 'automating'
STATUS_DONE = 'done'
STATUS_ERROR = 'error'

STATUSES = (
    STATUS_IDLE,
    STATUS_COLLECTING,
    STATUS_SUMMARIZING,
    STATUS_PREVIEWING,
    STATUS_AUTOMATING,
    STATUS_DONE,
    STATUS_ERROR,
)

# Log levels
LEVEL_INFO = 'info'
LEVEL_WARN = 'warn'
LEVEL_ERROR = 'error'
LEVEL_SUCCESS = 'success'

LEVELS = (LEVEL_INFO, LEVEL_WARN, LEVEL_ERROR, LEVEL_SUCCESS)

# Half-day periods
PERIOD_AM = 'am'
PERIOD_PM = 'pm'

PERIODS = (PERIOD_AM, PERIOD_PM)


@dataclass(frozen=True)
class GitCommit:
    """A single commit authored by the worker."""
    sha: str
    message: str
    timestamp: datetime
    repo: str


@dataclass(frozen=True)
class SlackMessage:
    """A single chat message sent by the worker."""
    text: str
    channel: str
    channel_name: str
    timestamp: datetime
    permalink: Optional[str] = None


@dataclass(frozen=True)
class DailyWorkData:
    """
    Activity collected for one calendar day.

    Attributes:
        date: Calendar date
        day_of_week: Short label (Mon, Tue, ...)
        commits: Commits made that day
        messages: Chat messages sent that day
    """
    date: date
    day_of_week: str
    commits: Tuple[GitCommit, ...] = ()
    messages: Tuple[SlackMessage, ...] = ()


@dataclass(frozen=True)
class WeeklyWorkData:
    """Activity collected for one week, one entry per collected weekday."""
    week_start: date
    week_end: date
    days: Tuple[DailyWorkData, ...] = ()


@dataclass(frozen=True)
class PeriodActivity:
    """Raw commits and messages that fall into one half-day."""
    commits: Tuple[GitCommit, ...] = ()
    messages: Tuple[SlackMessage, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.commits and not self.messages


@dataclass
class DailySummary:
    """
    Notes for one day, split into morning and afternoon.

    Attributes:
        date: Calendar date
        am_notes: Notes for the morning entry (before 12:00)
        pm_notes: Notes for the afternoon entry (12:00 and after)
        raw_am: Activity the morning notes were generated from
        raw_pm: Activity the afternoon notes were generated from
    """
    date: date
    am_notes: str
    pm_notes: str
    raw_am: PeriodActivity = field(default_factory=PeriodActivity)
    raw_pm: PeriodActivity = field(default_factory=PeriodActivity)

    def notes_for(self, period: str) -> str:
        """
        Get the notes for one half-day.

        Args:
            period: 'am' or 'pm'

        Returns:
            The notes text

        Raises:
            ValueError: If the period is unknown
        """
        if period == PERIOD_AM:
            return self.am_notes
        if period == PERIOD_PM:
            return self.pm_notes
        raise ValueError(f"Unknown period: {period!r}")


@dataclass
class WeeklySummary:
    """Notes for one week. Editable until automation runs."""
    week_start: date
    week_end: date
    days: List[DailySummary] = field(default_factory=list)


@dataclass(frozen=True)
class LogEntry:
    """One line of a run's audit trail."""
    timestamp: datetime
    level: str
    message: str


@dataclass(frozen=True)
class AutomationProgress:
    """
    Complete status of a run at one point in time.

    Snapshots are immutable and re-emitted after every state change;
    consumers treat each one as authoritative.
    """
    status: str
    total_days: int = 0
    completed_days: int = 0
    logs: Tuple[LogEntry, ...] = ()
    current_day: Optional[date] = None
    current_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def latest_log(self) -> Optional[LogEntry]:
        return self.logs[-1] if self.logs else None


@dataclass
class DayFillResult:
    """
    Result of filling both half-day entries of one day.

    Attributes:
        date: Calendar date
        am_filled: Whether the morning entry was found and saved
        pm_filled: Whether the afternoon entry was found and saved
    """
    date: date
    am_filled: bool = False
    pm_filled: bool = False

    @property
    def any_filled(self) -> bool:
        return self.am_filled or self.pm_filled


@dataclass
class AutomationSummary:
    """
    Summary of one automation run.

    Attributes:
        week_start: Monday of the automated week
        day_results: Per-day fill results, in order
        reopened: Whether the timesheet had to be reopened
        resubmitted: Whether the timesheet was resubmitted
    """
    week_start: date
    day_results: List[DayFillResult] = field(default_factory=list)
    reopened: bool = False
    resubmitted: bool = False

    @property
    def entries_filled(self) -> int:
        return sum(int(r.am_filled) + int(r.pm_filled) for r in self.day_results)

    @property
    def days_without_entries(self) -> List[date]:
        return [r.date for r in self.day_results if not r.any_filled]

    def format_summary(self) -> str:
        """
        Format the summary as a human-readable string.

        Returns:
            Formatted summary text
        """
        lines = [
            "\n" + "="*60,
            "AUTOMATION SUMMARY",
            "="*60,
            f"\nWeek of {self.week_start.isoformat()}",
            f"  Reopened: {'yes' if self.reopened else 'no'}",
            f"  Resubmitted: {'yes' if self.resubmitted else 'no'}",
            f"\nEntries filled: {self.entries_filled}/{len(self.day_results) * 2}",
        ]

        for result in self.day_results:
            am = 'AM ok' if result.am_filled else 'AM --'
            pm = 'PM ok' if result.pm_filled else 'PM --'
            lines.append(f"  {result.date.isoformat()}: {am}, {pm}")

        if self.days_without_entries:
            lines.append(f"\nDays without editable entries:")
            for day in self.days_without_entries:
                lines.append(f"  - {day.isoformat()}")

        lines.append("="*60 + "\n")
        return "\n".join(lines)
