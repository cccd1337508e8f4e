"""
Browser automation driver.

The automation engine only talks to the small BrowserDriver/BrowserSession
interface defined here, so it can run against a fake driver in tests. The
Playwright implementation uses the sync API.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from playwright.sync_api import (
    sync_playwright,
    Browser,
    BrowserContext,
    Page,
    Locator,
    TimeoutError as PlaywrightTimeoutError,
)

from .config import GeneralConfig
from .logging_utils import get_logger, log_step


StatePath = Union[str, Path]


class BrowserSession(ABC):
    """
    One browsing context with a single page.

    Sessions are context managers and are closed on every exit path.
    """

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    @abstractmethod
    def url(self) -> str:
        """Current page URL."""

    @abstractmethod
    def goto(self, url: str, timeout: int):
        """Navigate to a URL, raising on failure or timeout."""

    @abstractmethod
    def is_visible(self, selector: str, timeout: int) -> bool:
        """Wait up to timeout for the element to be visible. Never raises."""

    @abstractmethod
    def click(self, selector: str, timeout: Optional[int] = None):
        """Click the first element matching the selector."""

    @abstractmethod
    def fill(self, selector: str, text: str, timeout: Optional[int] = None):
        """Clear a text field, then type the text into it."""

    @abstractmethod
    def wait_for(self, selector: str, state: str, timeout: int):
        """Wait for an element to become 'visible' or 'hidden'."""

    @abstractmethod
    def wait_for_url_change(self, fragment: str, timeout: int):
        """Wait until the URL no longer contains the fragment."""

    @abstractmethod
    def wait(self, milliseconds: int):
        """Pause to let the page settle."""

    @abstractmethod
    def save_state(self, path: StatePath):
        """Persist cookies and storage of this context to a file."""

    @abstractmethod
    def close(self):
        """Release the context. Safe to call more than once."""


class BrowserDriver(ABC):
    """Factory for browser sessions."""

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def start(self):
        pass

    def close(self):
        pass

    @abstractmethod
    def open_session(self, storage_state: Optional[StatePath] = None) -> BrowserSession:
        """
        Open a new browsing context.

        Args:
            storage_state: Persisted session state to seed the context with

        Returns:
            An open session
        """


class PlaywrightSession(BrowserSession):
    """BrowserSession backed by a Playwright context and page."""

    def __init__(self, context: BrowserContext, page: Page):
        self.context = context
        self.page = page
        self.logger = get_logger('driver')
        self._closed = False

    def _locate(self, selector: str) -> Locator:
        return self.page.locator(selector).first

    @property
    def url(self) -> str:
        return self.page.url

    def goto(self, url: str, timeout: int):
        self.logger.debug(f"Navigating to {url}")
        self.page.goto(url, timeout=timeout, wait_until='domcontentloaded')

    def is_visible(self, selector: str, timeout: int) -> bool:
        try:
            self._locate(selector).wait_for(state='visible', timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            return False
        except Exception as e:
            self.logger.debug(f"Visibility check failed for {selector}: {e}")
            return False

    def click(self, selector: str, timeout: Optional[int] = None):
        self._locate(selector).click(timeout=timeout)

    def fill(self, selector: str, text: str, timeout: Optional[int] = None):
        field = self._locate(selector)
        field.clear(timeout=timeout)
        field.fill(text, timeout=timeout)

    def wait_for(self, selector: str, state: str, timeout: int):
        self._locate(selector).wait_for(state=state, timeout=timeout)

    def wait_for_url_change(self, fragment: str, timeout: int):
        self.page.wait_for_url(lambda url: fragment not in url, timeout=timeout)

    def wait(self, milliseconds: int):
        self.page.wait_for_timeout(milliseconds)

    def save_state(self, path: StatePath):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.context.storage_state(path=str(path))
        self.logger.debug(f"Session state saved to {path}")

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.context.close()


class PlaywrightDriver(BrowserDriver):
    """
    Launches Chromium through Playwright and hands out sessions.

    The sync API binds Playwright to the creating thread, so a driver must
    be started, used and closed on one thread.
    """

    def __init__(self, config: Optional[GeneralConfig] = None):
        """
        Initialize the driver.

        Args:
            config: Browser settings (headless, slow_mo)
        """
        self.config = config or GeneralConfig()
        self.logger = get_logger('driver')
        self.playwright = None
        self.browser: Optional[Browser] = None

    def start(self):
        """
        Start Playwright and launch the browser.
        """
        if self.browser is not None:
            return

        log_step("Starting browser...", self.logger)

        self.playwright = sync_playwright().start()
        self.browser = self.playwright.chromium.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
        )

        self.logger.debug(f"Browser launched (headless={self.config.headless})")

    def close(self):
        """
        Close the browser and stop Playwright.
        """
        if self.browser:
            self.browser.close()
            self.browser = None
        if self.playwright:
            self.playwright.stop()
            self.playwright = None

        self.logger.debug("Browser closed")

    def open_session(self, storage_state: Optional[StatePath] = None) -> PlaywrightSession:
        if self.browser is None:
            self.start()

        if storage_state is not None:
            context = self.browser.new_context(storage_state=str(storage_state))
        else:
            context = self.browser.new_context()

        try:
            page = context.new_page()
        except Exception:
            context.close()
            raise

        return PlaywrightSession(context, page)
