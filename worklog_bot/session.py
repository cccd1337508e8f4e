"""
Authenticated browser session management.

At most one session exists: its state lives in a single file and is reused
until the remote service stops accepting it.
"""

from pathlib import Path

from .config import RemoteConfig
from .driver import BrowserDriver, StatePath
from .exceptions import AuthenticationError
from .logging_utils import get_logger, log_step, log_success, log_warning
from .selectors import RemoteSelectors, RemoteURLs, Timeouts


class SessionManager:
    """
    Makes sure a valid session state exists before automation starts.
    """

    def __init__(self, driver: BrowserDriver, remote_config: RemoteConfig, state_path: StatePath):
        """
        Initialize the session manager.

        Args:
            driver: Browser driver used for the probe and for logging in
            remote_config: Credentials for the remote service
            state_path: File holding the persisted session state
        """
        self.driver = driver
        self.remote_config = remote_config
        self.state_path = Path(state_path)
        self.logger = get_logger('session')

    def ensure_authenticated(self) -> bool:
        """
        Guarantee a valid session state at state_path.

        Returns:
            True if a fresh login was performed, False if the stored session was reused

        Raises:
            AuthenticationError: If the fresh login fails
        """
        if self.state_path.exists():
            if self.validate_existing_session():
                log_success("Stored session is still valid", self.logger)
                return False
            log_warning("Stored session was rejected, logging in again", self.logger)
        else:
            self.logger.info("No stored session found, logging in")

        self.perform_fresh_login()
        return True

    def validate_existing_session(self) -> bool:
        """
        Probe the stored session against the time-tracking page.

        Any failure counts as an invalid session and is never raised.

        Returns:
            True if the page did not redirect to the login page
        """
        log_step("Validating stored session...", self.logger)

        try:
            with self.driver.open_session(storage_state=self.state_path) as probe:
                probe.goto(RemoteURLs.TIME_TRACKING, timeout=Timeouts.NAVIGATION)
                return RemoteURLs.LOGIN_FRAGMENT not in probe.url
        except Exception as e:
            self.logger.debug(f"Session probe failed: {e}")
            return False

    def perform_fresh_login(self):
        """
        Log in with e-mail and password and persist the new session state.

        Raises:
            AuthenticationError: If credentials are missing or the login does not complete
        """
        if not self.remote_config.email or not self.remote_config.password:
            raise AuthenticationError(
                "Remote credentials not configured. Set REMOTE_EMAIL and REMOTE_PASSWORD in .env"
            )

        log_step(f"Logging in as {self.remote_config.email}...", self.logger)

        try:
            with self.driver.open_session() as session:
                session.goto(RemoteURLs.LOGIN, timeout=Timeouts.NAVIGATION)
                session.fill(RemoteSelectors.EMAIL_INPUT, self.remote_config.email)
                session.fill(RemoteSelectors.PASSWORD_INPUT, self.remote_config.password)
                session.click(RemoteSelectors.LOGIN_BUTTON)
                session.wait_for_url_change(
                    RemoteURLs.LOGIN_FRAGMENT,
                    timeout=Timeouts.LOGIN_COMPLETE,
                )
                session.save_state(self.state_path)
        except Exception as e:
            raise AuthenticationError(f"Login failed: {e}") from e

        log_success("Logged in and saved session state", self.logger)
