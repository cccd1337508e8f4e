"""
Shared fixtures for the test-suite.

FakeDriver stands in for Playwright: it records every browser operation,
exposes a configurable set of visible selectors, and can be told to fail
an operation on a selector a given number of times.
"""

import json
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from worklog_bot.config import Config, RemoteConfig
from worklog_bot.driver import BrowserDriver, BrowserSession
from worklog_bot.models import DailySummary, WeeklySummary
from worklog_bot.retry import RetryPolicy
from worklog_bot.selectors import RemoteSelectors, RemoteURLs


class FakeTimeoutError(Exception):
    """Raised by the fake browser when an operation is set up to fail."""
    pass


class FakeSession(BrowserSession):
    """In-memory browser session driven by a FakeDriver."""

    def __init__(self, driver: 'FakeDriver', storage_state):
        self.driver = driver
        self.storage_state = storage_state
        self.closed = False
        self._url = 'about:blank'
        self._open_entry: Optional[str] = None
        self._pending_notes: Optional[str] = None

    def _record(self, op: str, target, *extra):
        self.driver.calls.append((op, target) + extra)
        self.driver.maybe_fail(op, target)

    @property
    def url(self) -> str:
        return self._url

    def goto(self, url: str, timeout: int):
        self._record('goto', url)
        if url == RemoteURLs.TIME_TRACKING and not self.driver.accepts(self.storage_state):
            self._url = RemoteURLs.LOGIN
        else:
            self._url = url

    def is_visible(self, selector: str, timeout: int) -> bool:
        self.driver.calls.append(('is_visible', selector))
        return selector in self.driver.visible

    def click(self, selector: str, timeout: Optional[int] = None):
        self._record('click', selector)
        if 'Edit time entry' in selector:
            self._open_entry = selector
            self._pending_notes = None
        elif selector == RemoteSelectors.SAVE_BUTTON and self._open_entry:
            self.driver.saved[self._open_entry] = self._pending_notes
            self._open_entry = None

    def fill(self, selector: str, text: str, timeout: Optional[int] = None):
        self._record('fill', selector, text)
        if selector == RemoteSelectors.NOTES_FIELD:
            self._pending_notes = text

    def wait_for(self, selector: str, state: str, timeout: int):
        self._record('wait_for', selector, state)

    def wait_for_url_change(self, fragment: str, timeout: int):
        self._record('wait_for_url_change', fragment)
        self._url = RemoteURLs.TIME_TRACKING

    def wait(self, milliseconds: int):
        self.driver.calls.append(('wait', milliseconds))

    def save_state(self, path):
        self._record('save_state', str(path))
        Path(path).write_text(json.dumps({'cookies': [{'name': 'session', 'value': self.driver.state_token}]}))
        self.driver.valid_token = self.driver.state_token

    def close(self):
        self.closed = True


class FakeDriver(BrowserDriver):
    """
    Fake browser driver.

    Attributes:
        visible: Selectors that is_visible reports as present
        calls: Every recorded operation as a tuple (op, target, ...)
        sessions: Sessions opened so far, in order
        saved: Notes saved per edit-button selector
        valid_token: Session token the remote side currently accepts
        state_token: Token written by save_state
    """

    def __init__(self):
        self.visible = set()
        self.calls: List[Tuple] = []
        self.sessions: List[FakeSession] = []
        self.saved: Dict[str, Optional[str]] = {}
        self.valid_token: Optional[str] = None
        self.state_token = 'fresh-token'
        self._failures: Dict[Tuple[str, str], int] = {}
        self._messages: Dict[Tuple[str, str], str] = {}
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def close(self):
        self.closed = True

    def fail(self, op: str, target: str, times: int = 1, message: Optional[str] = None):
        """Make the next `times` calls of op on target raise."""
        self._failures[(op, target)] = times
        if message:
            self._messages[(op, target)] = message

    def maybe_fail(self, op: str, target):
        remaining = self._failures.get((op, target), 0)
        if remaining > 0:
            self._failures[(op, target)] = remaining - 1
            raise FakeTimeoutError(self._messages.get((op, target), f"Timeout 10000ms exceeded waiting for {target}"))

    def accepts(self, storage_state) -> bool:
        if storage_state is None or not Path(storage_state).exists():
            return False
        data = json.loads(Path(storage_state).read_text())
        cookies = data.get('cookies', [])
        return bool(cookies) and cookies[0].get('value') == self.valid_token

    def open_session(self, storage_state=None) -> FakeSession:
        session = FakeSession(self, storage_state)
        self.sessions.append(session)
        return session

    def calls_of(self, op: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == op]

    def show_entries(self, days, am_label='09:00 to 12:00', pm_label='13:00 to 18:00'):
        """Make the AM and PM edit buttons of the given days visible."""
        self.visible.add(RemoteSelectors.DAY_CONTAINER)
        for day in days:
            if am_label:
                self.visible.add(RemoteSelectors.edit_entry_button(day, am_label))
            if pm_label:
                self.visible.add(RemoteSelectors.edit_entry_button(day, pm_label))


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def no_wait_retry():
    """Retry policy that records its delays instead of sleeping."""
    delays = []
    policy = RetryPolicy(sleep=delays.append)
    policy.delays = delays
    return policy


@pytest.fixture
def config(tmp_path):
    return Config(
        remote=RemoteConfig(email='worker@example.com', password='secret'),
        auth_state_path=tmp_path / 'auth.json',
    )


@pytest.fixture
def authenticated(config, fake_driver):
    """Write a session state file the fake remote accepts."""
    config.auth_state_path.write_text(json.dumps({'cookies': [{'name': 'session', 'value': 'stored-token'}]}))
    fake_driver.valid_token = 'stored-token'
    return config.auth_state_path


def make_week_summary(week_start: date, first_am: str = 'Fixed login bug', notes: str = 'General work',
                      days: int = 5) -> WeeklySummary:
    """Weekly summary with placeholder notes except Monday morning."""
    summaries = []
    for offset in range(days):
        day = week_start + timedelta(days=offset)
        summaries.append(DailySummary(
            date=day,
            am_notes=first_am if offset == 0 else notes,
            pm_notes=notes,
        ))
    return WeeklySummary(week_start=week_start, week_end=week_start + timedelta(days=6), days=summaries)
