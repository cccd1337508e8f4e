"""
Command-line interface for the work-log automation tool.

This module provides the CLI using argparse: preview a week's notes, fill
the remote timesheet, or keep the daily scheduler running.
"""

import argparse
import sys
import threading
from datetime import date
from pathlib import Path

from .config import load_config
from .exceptions import RunCancelledError, SummaryCSVError
from .logging_utils import setup_logging, get_logger, log_section, log_error, log_success
from .models import WeeklySummary
from .orchestrator import execute_automation, execute_full_pipeline, execute_preview
from .scheduler import Scheduler, SchedulerStatus
from .summary_csv import load_summary_csv, write_summary_csv
from .week_utils import WeekStartParseError, monday_of, parse_week_start


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='worklog-bot',
        description='Fill the remote.com timesheet with notes summarized from GitHub and Slack',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview this week's notes without opening a browser
  worklog-bot preview

  # Preview a given week and export the notes for editing
  worklog-bot preview --week 2024-06-03 --out summary.csv

  # Collect, summarize and fill the timesheet for a week
  worklog-bot fill --week 2024-06-03

  # Fill the timesheet from a hand-edited summary, watching the browser
  worklog-bot fill --summary summary.csv --headed

  # Run daily at the configured time until interrupted
  worklog-bot schedule
        """
    )

    # Options shared by every command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--config',
        type=str,
        metavar='PATH',
        default='config.json',
        help='Path to config.json (default: ./config.json)'
    )
    common.add_argument(
        '--env',
        type=str,
        metavar='PATH',
        default='.env',
        help='Path to the .env file with credentials (default: ./.env)'
    )
    common.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging (debug level)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Preview command
    preview_parser = subparsers.add_parser(
        'preview',
        parents=[common],
        help='Collect and summarize a week without touching the timesheet'
    )
    preview_parser.add_argument(
        '--week',
        type=str,
        metavar='YYYY-MM-DD',
        help='Monday of the week (default: current week)'
    )
    preview_parser.add_argument(
        '--out',
        type=str,
        metavar='PATH',
        help='Export the summary to a CSV file'
    )
    preview_parser.add_argument(
        '--force',
        action='store_true',
        help='Overwrite the output file if it exists'
    )

    # Fill command
    fill_parser = subparsers.add_parser(
        'fill',
        parents=[common],
        help='Fill the remote timesheet'
    )
    fill_parser.add_argument(
        '--week',
        type=str,
        metavar='YYYY-MM-DD',
        help='Monday of the week (default: current week)'
    )
    fill_parser.add_argument(
        '--summary',
        type=str,
        metavar='PATH',
        help='Fill from a summary CSV instead of collecting and summarizing'
    )
    fill_parser.add_argument(
        '--headed',
        action='store_true',
        help='Show the browser window'
    )

    # Schedule command
    subparsers.add_parser(
        'schedule',
        parents=[common],
        help='Run the full pipeline daily at the configured time'
    )

    return parser


def validate_args(args: argparse.Namespace) -> bool:
    """
    Validate command-line arguments.

    Args:
        args: Parsed arguments

    Returns:
        True if valid, False otherwise
    """
    logger = get_logger()

    if args.command == 'fill':
        if args.summary and args.week:
            log_error("Cannot use --week with --summary (the CSV defines the week)", logger)
            return False

        if args.summary and not Path(args.summary).exists():
            log_error(f"Summary file not found: {args.summary}", logger)
            return False

    if getattr(args, 'week', None):
        try:
            parse_week_start(args.week)
        except WeekStartParseError as e:
            log_error(str(e), logger)
            return False

    return True


def _week_start(args: argparse.Namespace) -> date:
    if getattr(args, 'week', None):
        return parse_week_start(args.week)
    return monday_of()


def _show_summary(summary: WeeklySummary, logger):
    logger.info(f"Week {summary.week_start.isoformat()} to {summary.week_end.isoformat()}")
    for day in summary.days:
        logger.info("")
        logger.info(f"  {day.date.isoformat()}")
        logger.info(f"    AM: {day.am_notes}")
        logger.info(f"    PM: {day.pm_notes}")


def cmd_preview(args: argparse.Namespace) -> int:
    """
    Execute the preview command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    logger = get_logger()

    try:
        config = load_config(args.config, args.env)
    except ValueError as e:
        log_error(f"Configuration error: {e}", logger)
        return 1

    week_start = _week_start(args)
    log_section(f"Preview for week {week_start.isoformat()}", logger)

    try:
        summary = execute_preview(week_start, config)
    except KeyboardInterrupt:
        logger.info("")
        logger.warning("Operation cancelled by user")
        return 130
    except Exception as e:
        log_error(f"Preview failed: {e}", logger)
        return 1

    log_section("Summary", logger)
    _show_summary(summary, logger)

    if args.out:
        try:
            path = write_summary_csv(summary, args.out, force=args.force)
        except SummaryCSVError as e:
            log_error(str(e), logger)
            return 1
        log_success(f"Summary written to {path}", logger)
        logger.info(f"Edit it, then run: worklog-bot fill --summary {args.out}")

    return 0


def cmd_fill(args: argparse.Namespace) -> int:
    """
    Execute the fill command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    logger = get_logger()

    try:
        config = load_config(args.config, args.env)
    except ValueError as e:
        log_error(f"Configuration error: {e}", logger)
        return 1

    if args.headed:
        config.general.headless = False

    try:
        if args.summary:
            log_section("Loading Summary", logger)
            summary = load_summary_csv(args.summary)
            logger.info(f"Loaded {len(summary.days)} day(s) from {args.summary}")
            _show_summary(summary, logger)

            log_section("Starting Fill Operation", logger)
            result = execute_automation(summary, config)
        else:
            week_start = _week_start(args)
            log_section(f"Starting Full Pipeline for week {week_start.isoformat()}", logger)
            result = execute_full_pipeline(week_start, config).automation

    except SummaryCSVError as e:
        log_error(f"Summary loading failed: {e}", logger)
        return 1

    except (KeyboardInterrupt, RunCancelledError):
        logger.info("")
        logger.warning("Operation cancelled by user")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.info("")
        log_error(f"Operation failed: {e}", logger)
        logger.debug("Traceback:", exc_info=True)
        return 1

    logger.info(result.format_summary())
    if result.days_without_entries:
        logger.warning("Some days had no editable entries")
    log_success("Operation completed", logger)
    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    """
    Execute the schedule command.

    Blocks until interrupted.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    logger = get_logger()

    def config_loader():
        return load_config(args.config, args.env)

    try:
        config = config_loader()
    except ValueError as e:
        log_error(f"Configuration error: {e}", logger)
        return 1

    if not config.scheduler.enabled:
        log_error("Scheduler is disabled. Set scheduler.enabled to true in config.json", logger)
        return 1

    scheduler = Scheduler(config_loader)

    def show_status(status: SchedulerStatus):
        if status.next_run is not None:
            logger.info(f"Next run: {status.next_run.strftime('%Y-%m-%d %H:%M')}")

    scheduler.on_status_change(show_status)
    scheduler.start()

    stop = threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("")
        logger.warning("Scheduler stopped by user")
        scheduler.cancel()
        return 130
    finally:
        scheduler.stop()

    return 0


COMMANDS = {
    'preview': cmd_preview,
    'fill': cmd_fill,
    'schedule': cmd_schedule,
}


def main(argv=None):
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(verbose=getattr(args, 'verbose', False))

    logger = get_logger()

    # Check if command was specified
    if not args.command:
        parser.print_help()
        return 1

    # Show header
    logger.info("")
    logger.info("=" * 70)
    logger.info("  Remote Work-Log Automation")
    logger.info("=" * 70)

    # Validate arguments
    if not validate_args(args):
        return 1

    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
