"""
Summary CSV export and import.

A weekly summary can be written to CSV, edited by hand and loaded back for
automation. Expected format:

    date,day_of_week,am_notes,pm_notes
    2024-06-03,Mon,Reviewed API design,Implemented login flow
    2024-06-04,Tue,일반 업무,Fixed flaky tests
"""

import csv
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from .exceptions import SummaryCSVError
from .models import DailySummary, WeeklySummary
from .week_utils import day_label, in_week, monday_of, week_end_of


DATE = 'date'
DAY_OF_WEEK = 'day_of_week'
AM_NOTES = 'am_notes'
PM_NOTES = 'pm_notes'

HEADERS: List[str] = [DATE, DAY_OF_WEEK, AM_NOTES, PM_NOTES]

# day_of_week is informational and recomputed on load
REQUIRED_HEADERS: List[str] = [DATE, AM_NOTES, PM_NOTES]

ENCODING = 'utf-8'


def write_summary_csv(summary: WeeklySummary, output_path, force: bool = False) -> Path:
    """
    Write a weekly summary to CSV.

    Args:
        summary: Summary to export
        output_path: Destination file
        force: Whether to overwrite an existing file

    Returns:
        Absolute path of the written file

    Raises:
        SummaryCSVError: If the file exists (without force), the summary is
            empty or writing fails
    """
    output_path = Path(output_path)
    if output_path.exists() and not force:
        raise SummaryCSVError(
            f"Output file already exists: {output_path}. Use --force to overwrite."
        )

    if not summary.days:
        raise SummaryCSVError("Summary has no days to export")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding=ENCODING, newline='') as f:
            writer = csv.DictWriter(f, fieldnames=HEADERS)
            writer.writeheader()
            for day in sorted(summary.days, key=lambda d: d.date):
                writer.writerow({
                    DATE: day.date.isoformat(),
                    DAY_OF_WEEK: day_label(day.date),
                    AM_NOTES: day.am_notes,
                    PM_NOTES: day.pm_notes,
                })
    except OSError as e:
        raise SummaryCSVError(f"Failed to write CSV file: {e}")

    return output_path.absolute()


class SummaryCSVLoader:
    """
    Loads a weekly summary from a CSV file.
    """

    def __init__(self, file_path):
        """
        Initialize the loader.

        Raises:
            SummaryCSVError: If the file doesn't exist
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise SummaryCSVError(f"CSV file not found: {file_path}")

    def load(self) -> WeeklySummary:
        """
        Load the summary.

        Returns:
            WeeklySummary covering the week of the earliest date

        Raises:
            SummaryCSVError: If the format is invalid or data is malformed
        """
        try:
            with open(self.file_path, 'r', encoding=ENCODING, newline='') as f:
                reader = csv.DictReader(f)
                self._validate_headers(reader.fieldnames)
                days = self._parse_rows(reader)
        except SummaryCSVError:
            raise
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SummaryCSVError(f"Failed to load CSV: {e}")

        week_start = monday_of(days[0].date)
        for day in days:
            if not in_week(day.date, week_start):
                raise SummaryCSVError(
                    f"Date {day.date.isoformat()} is outside the week of {week_start.isoformat()}"
                )

        return WeeklySummary(week_start=week_start, week_end=week_end_of(week_start), days=days)

    def _validate_headers(self, headers: Optional[List[str]]):
        if not headers:
            raise SummaryCSVError("CSV file is empty or has no headers")

        normalized = [h.strip().lower() for h in headers if h]
        missing = [h for h in REQUIRED_HEADERS if h not in normalized]
        if missing:
            raise SummaryCSVError(f"CSV missing required headers: {', '.join(missing)}")

    def _parse_rows(self, reader: csv.DictReader) -> List[DailySummary]:
        days = []
        seen = set()

        for line_num, row_dict in enumerate(reader, start=2):  # header is line 1
            row = {k.strip().lower(): (v or '').strip() for k, v in row_dict.items() if k}

            if not row.get(DATE):
                # Blank lines
                continue

            try:
                day = datetime.strptime(row[DATE], '%Y-%m-%d').date()
            except ValueError:
                raise SummaryCSVError(
                    f"Error on line {line_num}: invalid date '{row[DATE]}' (expected YYYY-MM-DD)"
                )

            if day in seen:
                raise SummaryCSVError(f"Error on line {line_num}: duplicate date {day.isoformat()}")
            seen.add(day)

            for column in (AM_NOTES, PM_NOTES):
                if not row.get(column):
                    raise SummaryCSVError(f"Error on line {line_num}: {column} cannot be empty")

            days.append(DailySummary(date=day, am_notes=row[AM_NOTES], pm_notes=row[PM_NOTES]))

        if not days:
            raise SummaryCSVError("CSV file contains no valid data rows")

        return sorted(days, key=lambda d: d.date)


def load_summary_csv(file_path) -> WeeklySummary:
    """
    Convenience function to load a summary CSV file.

    Raises:
        SummaryCSVError: If loading fails
    """
    return SummaryCSVLoader(file_path).load()
