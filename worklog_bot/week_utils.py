"""
Week utility functions.

This module provides functions for parsing week start dates, finding the
Monday of a week, listing the workdays of a week and testing for weekends.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from .exceptions import WorklogBotError


DAY_NAMES = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

WORKDAYS_PER_WEEK = 5


class WeekStartParseError(WorklogBotError):
    """Exception raised when a week start date cannot be parsed."""
    pass


def parse_week_start(value: str) -> date:
    """
    Parse a week start date in YYYY-MM-DD format.

    Args:
        value: Date string, must fall on a Monday

    Returns:
        Parsed date

    Raises:
        WeekStartParseError: If the format is invalid or the date is not a Monday

    Examples:
        >>> parse_week_start("2024-06-03")
        datetime.date(2024, 6, 3)
    """
    if not value or not value.strip():
        raise WeekStartParseError("Week start cannot be empty")

    try:
        parsed = datetime.strptime(value.strip(), '%Y-%m-%d').date()
    except ValueError:
        raise WeekStartParseError(
            f"Invalid week start: '{value}'. Expected format: YYYY-MM-DD"
        )

    if parsed.weekday() != 0:
        raise WeekStartParseError(
            f"Week start {parsed.isoformat()} is a {DAY_NAMES[parsed.weekday()]}, not a Monday"
        )

    return parsed


def monday_of(day: Optional[date] = None) -> date:
    """
    Get the Monday of the week containing a date.

    Args:
        day: Any date (defaults to today)

    Returns:
        The Monday on or before the date
    """
    if day is None:
        day = date.today()
    return day - timedelta(days=day.weekday())


def is_weekend(day: date) -> bool:
    """Return True for Saturdays and Sundays."""
    return day.weekday() >= 5


def day_label(day: date) -> str:
    """Short weekday label (Mon, Tue, ...) for a date."""
    return DAY_NAMES[day.weekday()]


def week_end_of(week_start: date) -> date:
    """Last calendar day (Sunday) of the week starting at week_start."""
    return week_start + timedelta(days=6)


def get_workdays(week_start: date) -> List[date]:
    """
    List the workdays (Monday to Friday) of a week.

    Args:
        week_start: Monday of the week

    Returns:
        Five consecutive dates starting at week_start
    """
    return [week_start + timedelta(days=i) for i in range(WORKDAYS_PER_WEEK)]


def in_week(day: date, week_start: date) -> bool:
    """Return True if the date falls in the 7-day range starting at week_start."""
    return week_start <= day <= week_end_of(week_start)
