"""
Worklog Bot - Automated work-log filling for remote.com.

This package collects a worker's GitHub commits and Slack messages, turns
them into morning and afternoon notes with a language model, and writes
the notes into the remote.com time-tracking timesheet.
"""

__version__ = '1.0.0'

from .models import WeeklySummary, DailySummary, AutomationProgress, AutomationSummary
from .config import Config, load_config
from .orchestrator import (
    collect_week_data,
    generate_summary,
    execute_automation,
    execute_full_pipeline,
    execute_preview,
)
from .scheduler import Scheduler

__all__ = [
    'WeeklySummary',
    'DailySummary',
    'AutomationProgress',
    'AutomationSummary',
    'Config',
    'load_config',
    'collect_week_data',
    'generate_summary',
    'execute_automation',
    'execute_full_pipeline',
    'execute_preview',
    'Scheduler',
]
