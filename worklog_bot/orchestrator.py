"""
Pipeline orchestration: collect a week's activity, summarize it and fill
the timesheet with the result.

Every stage owns its RunTracker, so each one reports its own status and log
through the shared progress callback.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .automation import TimesheetAutomation
from .collectors import GitHubCollector, SlackCollector
from .config import Config
from .driver import BrowserDriver, PlaywrightDriver
from .exceptions import RunCancelledError
from .logging_utils import get_logger
from .models import (
    AutomationSummary,
    DailyWorkData,
    WeeklySummary,
    WeeklyWorkData,
    STATUS_AUTOMATING,
    STATUS_COLLECTING,
    STATUS_PREVIEWING,
    STATUS_SUMMARIZING,
)
from .progress import ProgressCallback, RunTracker
from .retry import RetryPolicy
from .summarizer import OpenRouterSummarizer, summarize_day
from .week_utils import day_label, get_workdays, week_end_of


logger = get_logger('orchestrator')


@dataclass
class PipelineResult:
    """
    Outcome of a full pipeline run.

    Attributes:
        summary: Notes that were written
        automation: Per-day results of the automation stage
    """
    summary: WeeklySummary
    automation: AutomationSummary


def _shorten(text: str, limit: int = 50) -> str:
    text = ' '.join(text.split())
    return text if len(text) <= limit else text[:limit] + '...'


def _check_cancelled(
    cancel_event: Optional[threading.Event],
    stage: str,
    status: str,
    on_progress: Optional[ProgressCallback],
):
    """Stop before a stage starts, leaving a warning and an error snapshot."""
    if cancel_event is None or not cancel_event.is_set():
        return

    tracker = RunTracker(status, on_progress=on_progress, logger=logger)
    tracker.warn(f"Cancellation requested, not starting {stage}")
    tracker.fail("Run cancelled")
    raise RunCancelledError("Run cancelled")


def collect_week_data(
    week_start: date,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
    github: Optional[GitHubCollector] = None,
    slack: Optional[SlackCollector] = None,
) -> WeeklyWorkData:
    """
    Collect commits and chat messages for the five weekdays of a week.

    Both sources of a day are fetched concurrently; days are collected one
    after another.

    Args:
        week_start: Monday of the week
        config: Application configuration
        on_progress: Callback receiving 'collecting' snapshots
        github: Commit collector (built from config when None)
        slack: Message collector (built from config when None)

    Returns:
        Collected activity, one entry per weekday

    Raises:
        ValueError: If week_start is not a Monday
    """
    if week_start.weekday() != 0:
        raise ValueError(f"Week start must be a Monday, got {week_start.isoformat()}")

    github = github or GitHubCollector(config.github, config.remote.timezone)
    slack = slack or SlackCollector(config.slack)

    dates = get_workdays(week_start)
    tracker = RunTracker(STATUS_COLLECTING, total_days=len(dates), on_progress=on_progress, logger=logger)
    tracker.set_step('collect')
    tracker.info(f"Collecting data for week {week_start.isoformat()}")

    days = []
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix='collect') as pool:
        for day in dates:
            tracker.start_day(day)
            tracker.info(f"Collecting data for {day.isoformat()}")

            commits_future = pool.submit(github.list_commits, day)
            messages_future = pool.submit(slack.list_messages, day)
            commits = commits_future.result()
            messages = messages_future.result()

            days.append(DailyWorkData(
                date=day,
                day_of_week=day_label(day),
                commits=tuple(commits),
                messages=tuple(messages),
            ))
            tracker.info(f"{day.isoformat()}: {len(commits)} commits, {len(messages)} messages")
            tracker.complete_day()

    return WeeklyWorkData(week_start=week_start, week_end=week_end_of(week_start), days=tuple(days))


def generate_summary(
    data: WeeklyWorkData,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
    summarizer=None,
) -> WeeklySummary:
    """
    Summarize every collected day into AM and PM notes.

    Args:
        data: Collected activity
        config: Application configuration
        on_progress: Callback receiving 'summarizing' snapshots
        summarizer: Object with summarize(period, commits, messages)
            (an OpenRouterSummarizer when None)

    Returns:
        Weekly summary, one DailySummary per collected day
    """
    summarizer = summarizer or OpenRouterSummarizer(config.ai)

    tracker = RunTracker(STATUS_SUMMARIZING, total_days=len(data.days), on_progress=on_progress, logger=logger)
    tracker.set_step('summarize')
    tracker.info("Generating AI summaries")

    summaries = []
    for day in data.days:
        tracker.start_day(day.date)
        tracker.info(f"Summarizing {day.date.isoformat()}")

        summary = summarize_day(summarizer, day, config.ai.language, config.remote.timezone)
        summaries.append(summary)

        tracker.success(
            f"{day.date.isoformat()}: AM=\"{_shorten(summary.am_notes)}\" "
            f"PM=\"{_shorten(summary.pm_notes)}\""
        )
        tracker.complete_day()

    return WeeklySummary(week_start=data.week_start, week_end=data.week_end, days=summaries)


def execute_automation(
    summary: WeeklySummary,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
    driver: Optional[BrowserDriver] = None,
    cancel_event: Optional[threading.Event] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> AutomationSummary:
    """
    Write a weekly summary into the remote timesheet.

    Args:
        summary: Notes to write
        config: Application configuration
        on_progress: Callback receiving 'automating' snapshots
        driver: Browser driver (a Playwright driver is started and closed when None)
        cancel_event: When set, the run stops at the next checkpoint
        retry_policy: Retry policy for each entry edit

    Returns:
        Per-day results of the run
    """
    if driver is not None:
        automation = TimesheetAutomation(
            config, driver, config.auth_state_path, on_progress, retry_policy, cancel_event
        )
        return automation.run(summary)

    with PlaywrightDriver(config.general) as playwright_driver:
        automation = TimesheetAutomation(
            config, playwright_driver, config.auth_state_path, on_progress, retry_policy, cancel_event
        )
        return automation.run(summary)


def execute_full_pipeline(
    week_start: date,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    github: Optional[GitHubCollector] = None,
    slack: Optional[SlackCollector] = None,
    summarizer=None,
    driver: Optional[BrowserDriver] = None,
) -> PipelineResult:
    """
    Collect, summarize and automate one week.

    Stages run strictly in order; the first failure stops the pipeline.

    Args:
        week_start: Monday of the week
        config: Application configuration
        on_progress: Callback receiving every stage's snapshots
        cancel_event: Checked between stages and inside automation
        github: Commit collector override
        slack: Message collector override
        summarizer: Summarizer override
        driver: Browser driver override

    Returns:
        The summary that was written and the automation results

    Raises:
        RunCancelledError: If cancellation was requested
    """
    _check_cancelled(cancel_event, "collection", STATUS_COLLECTING, on_progress)
    data = collect_week_data(week_start, config, on_progress, github=github, slack=slack)

    _check_cancelled(cancel_event, "summarization", STATUS_SUMMARIZING, on_progress)
    summary = generate_summary(data, config, on_progress, summarizer=summarizer)

    _check_cancelled(cancel_event, "automation", STATUS_AUTOMATING, on_progress)
    automation = execute_automation(summary, config, on_progress, driver=driver, cancel_event=cancel_event)

    return PipelineResult(summary=summary, automation=automation)


def execute_preview(
    week_start: date,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
    github: Optional[GitHubCollector] = None,
    slack: Optional[SlackCollector] = None,
    summarizer=None,
) -> WeeklySummary:
    """
    Collect and summarize a week without touching the timesheet.

    The final snapshot has status 'previewing': the summary is ready for
    review and editing.

    Returns:
        Weekly summary
    """
    data = collect_week_data(week_start, config, on_progress, github=github, slack=slack)
    summary = generate_summary(data, config, on_progress, summarizer=summarizer)

    tracker = RunTracker(STATUS_PREVIEWING, total_days=len(summary.days), on_progress=on_progress, logger=logger)
    tracker.success(f"Summary ready for week {week_start.isoformat()}")
    tracker.finish(STATUS_PREVIEWING)
    return summary
