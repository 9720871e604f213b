#!/usr/bin/env python3
"""
Get a browser page that is logged into Claude.ai.

Four interchangeable strategies, one per run:

    login    Open a visible Chrome, wait for you to log in, save the auth state
    saved    Replay the saved auth state (cookies + localStorage)
    cdp      Attach to a Chrome you started with --remote-debugging-port
    profile  Launch Chrome on your real profile directory (Chrome must be closed)

Cloudflare blocks Playwright's bundled headless Chromium, so by default the
installed Chrome is used in a visible window.

Whatever the strategy, the page is only handed out once its URL is confirmed
not to be a login/OAuth page. Every handle a strategy opens is closed again on
failure, and by AuthenticatedSession.close() on success.
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from scraper_config import ScraperConfig
from session_errors import (
    AttachUnavailable,
    LoginTimeout,
    NavigationTimeout,
    ProfileLocked,
    SessionExpired,
)
from session_state import SessionStateStore

# Module-level logger
logger = logging.getLogger(__name__)

# Substrings of Chrome's launch error when the profile is in use
PROFILE_LOCK_MARKERS = (
    "singletonlock",
    "profile lock",
    "processsingleton",
    "already running",
    "profile appears to be in use",
)


class SessionStrategy(Enum):
    LOGIN = "login"
    SAVED = "saved"
    CDP = "cdp"
    PROFILE = "profile"


EXPIRED_HINTS = {
    SessionStrategy.LOGIN: "Login did not complete. Run save_auth.py and try again.",
    SessionStrategy.SAVED: "Saved session expired. Re-run save_auth.py to refresh it.",
    SessionStrategy.CDP: "Log into claude.ai in the Chrome window you started with remote debugging.",
    SessionStrategy.PROFILE: "Not logged into claude.ai in this Chrome profile. Log in with Chrome first.",
}


def wait_until(predicate: Callable[[], bool], timeout: float,
               clock: Callable[[], float] = time.monotonic,
               sleep: Callable[[float], None] = time.sleep,
               interval: float = 1.0) -> bool:
    """Poll predicate until it is true or the deadline passes.

    Args:
        predicate: Condition to wait for
        timeout: Seconds until giving up
        clock: Monotonic clock in seconds
        sleep: Waits for the given number of seconds
        interval: Seconds between checks

    Returns:
        True if the condition was met, False on timeout
    """
    deadline = clock() + timeout
    while True:
        if predicate():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(interval, remaining))


class AuthenticatedSession:
    """A page on the usage URL plus the handles needed to release it."""

    def __init__(self, strategy: SessionStrategy, config: ScraperConfig,
                 store: Optional[SessionStateStore] = None):
        self.strategy = strategy
        self.config = config
        self.store = store
        self.page = None
        self.context = None
        self.persist_state = False
        self.response_status: Optional[int] = None
        self.snapshot_age_hours: Optional[float] = None
        self._closers: List[tuple] = []
        self.closed = False

    def on_close(self, description: str, closer: Callable[[], None]):
        """Register a cleanup step. Steps run in reverse order."""
        self._closers.append((description, closer))

    def ensure_authenticated(self):
        """Raise SessionExpired if the page sits on a login/OAuth URL."""
        url = self.page.url
        if self.config.rules.is_auth_url(url):
            raise SessionExpired(f"Redirected to {url}", hint=EXPIRED_HINTS[self.strategy])

    def settle(self, seconds: float):
        """Give client-side rendering time to finish, then re-check auth."""
        if seconds > 0:
            logger.debug(f"Waiting {seconds:.1f}s for the page to render")
            self.page.wait_for_timeout(seconds * 1000)
        self.ensure_authenticated()

    def click_refresh(self, wait: Optional[float] = None) -> bool:
        """Click the page's refresh control if it is there."""
        wait = self.config.refresh_wait if wait is None else wait
        button = self.page.locator(self.config.rules.refresh_button_selector)
        if not button.is_visible():
            logger.info("Refresh button not found.")
            return False
        logger.info("Clicking refresh button...")
        button.click()
        self.page.wait_for_timeout(wait * 1000)
        logger.info("Data refreshed.")
        return True

    def save_state(self) -> bool:
        """Re-snapshot cookies for strategies that own the auth file."""
        if not (self.persist_state and self.store and self.context):
            return False
        self.store.capture(self.context)
        return True

    def close(self):
        if self.closed:
            return
        self.closed = True
        for description, closer in reversed(self._closers):
            try:
                closer()
                logger.debug(f"Closed {description}")
            except PlaywrightError as e:
                logger.warning(f"Error closing {description}: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class SessionProvider:
    """Acquire an AuthenticatedSession with one of the four strategies."""

    PROBE_TIMEOUT = 5  # seconds, CDP endpoint check

    def __init__(self, playwright, config: Optional[ScraperConfig] = None,
                 store: Optional[SessionStateStore] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            playwright: The object yielded by sync_playwright()
            config: Run settings (defaults if omitted)
            store: Auth state file (defaults to config.auth_file)
            clock: Monotonic clock used for the login deadline
        """
        self.playwright = playwright
        self.config = config or ScraperConfig()
        self.store = store or SessionStateStore(self.config.auth_file)
        self.clock = clock

    def acquire(self, strategy) -> AuthenticatedSession:
        """Return a logged-in page on the usage URL, or raise a ScraperError."""
        strategy = SessionStrategy(strategy)
        handlers = {
            SessionStrategy.LOGIN: self.capture_login,
            SessionStrategy.SAVED: self.replay_saved,
            SessionStrategy.CDP: self.attach,
            SessionStrategy.PROFILE: self.reuse_profile,
        }
        logger.info(f"Acquiring session with strategy: {strategy.value}")
        return handlers[strategy]()

    # -- strategies --------------------------------------------------------

    def capture_login(self) -> AuthenticatedSession:
        """Open Chrome at the login page and wait for a manual login."""
        config = self.config
        rules = config.rules
        session = AuthenticatedSession(SessionStrategy.LOGIN, config, self.store)

        logger.info("Opening Chrome for manual login...")
        browser = self._launch(headless=False)
        session.on_close("browser", browser.close)

        try:
            session.context = browser.new_context()
            session.page = page = session.context.new_page()
            self._goto(page, rules.login_url, wait_until="load")

            logger.info("Please log into Claude.ai in the browser window.")
            logger.info(f"Waiting up to {config.login_timeout / 60:.0f} minutes...")
            logged_in = wait_until(
                lambda: rules.is_logged_in_url(page.url),
                timeout=config.login_timeout,
                clock=self.clock,
                sleep=lambda seconds: page.wait_for_timeout(seconds * 1000),
            )
            if not logged_in:
                raise LoginTimeout(
                    f"Login not completed within {config.login_timeout:.0f} seconds"
                )

            logger.info("Login detected! Navigating to usage page to capture all relevant cookies...")
            self._open_usage_page(session, wait_until="networkidle")
            self.store.capture(session.context)
            session.persist_state = True
        except Exception:
            session.close()
            raise
        return session

    def replay_saved(self) -> AuthenticatedSession:
        """Launch Chrome seeded with the saved auth state."""
        config = self.config
        state = self.store.load()
        session = AuthenticatedSession(SessionStrategy.SAVED, config, self.store)

        age = self.store.age_hours()
        session.snapshot_age_hours = age
        logger.info(f"Auth state age: {age:.1f} hours")
        if age > config.stale_after_hours:
            logger.warning(
                f"Auth state is over {config.stale_after_hours:.0f} hours old. "
                f"Tokens may have expired; re-run save_auth.py if scraping fails."
            )

        browser = self._launch(headless=config.headless)
        session.on_close("browser", browser.close)

        try:
            session.context = browser.new_context(storage_state=state)
            session.page = session.context.new_page()
            self._open_usage_page(session, wait_until=config.wait_until)
            # Keep any cookies the server rotated during this visit
            self.store.capture(session.context)
            session.persist_state = True
        except Exception:
            session.close()
            raise
        return session

    def attach(self) -> AuthenticatedSession:
        """Connect to an already running Chrome over CDP."""
        config = self.config
        endpoint = config.cdp_endpoint
        session = AuthenticatedSession(SessionStrategy.CDP, config)

        logger.info(f"Connecting to Chrome via CDP on port {config.cdp_port}...")
        self._probe_cdp(endpoint)
        try:
            browser = self.playwright.chromium.connect_over_cdp(endpoint)
        except PlaywrightError as e:
            raise AttachUnavailable(f"Failed to connect to {endpoint}: {e}") from e
        # Disconnects only; the external Chrome keeps running
        session.on_close("CDP connection", browser.close)

        try:
            contexts = browser.contexts
            if not contexts:
                raise AttachUnavailable(f"Chrome at {endpoint} has no browser context to reuse")
            session.context = contexts[0]
            logger.info(f"Connected to Chrome! Found {len(session.context.pages)} open tabs")

            session.page = session.context.new_page()
            session.on_close("page", session.page.close)
            self._open_usage_page(session, wait_until=config.wait_until)
        except Exception:
            session.close()
            raise
        return session

    def reuse_profile(self) -> AuthenticatedSession:
        """Launch Chrome on the user's own profile directory."""
        config = self.config
        session = AuthenticatedSession(SessionStrategy.PROFILE, config)

        logger.info(f"Using Chrome user data dir: {config.chrome_user_data_dir}")
        logger.info(f"Profile: {config.profile_name}")
        try:
            context = self.playwright.chromium.launch_persistent_context(
                str(config.chrome_user_data_dir),
                headless=False,
                channel=config.browser_channel,
                args=[f"--profile-directory={config.profile_name}"],
            )
        except PlaywrightError as e:
            message = str(e).lower()
            if any(marker in message for marker in PROFILE_LOCK_MARKERS):
                raise ProfileLocked(
                    f"Chrome profile {config.chrome_user_data_dir} is in use by a running Chrome"
                ) from e
            raise
        session.context = context
        session.on_close("browser context", context.close)

        try:
            session.page = context.pages[0] if context.pages else context.new_page()
            self._open_usage_page(session, wait_until=config.wait_until)
        except Exception:
            session.close()
            raise
        return session

    # -- helpers -----------------------------------------------------------

    def _launch(self, headless: bool):
        return self.playwright.chromium.launch(
            headless=headless,
            channel=self.config.browser_channel,
        )

    def _probe_cdp(self, endpoint: str):
        """Check the debugging endpoint answers before connecting."""
        try:
            response = requests.get(f"{endpoint}/json/version", timeout=self.PROBE_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise AttachUnavailable(
                f"No Chrome remote debugging endpoint at {endpoint}: {e}"
            ) from e

        try:
            logger.debug(f"CDP endpoint: {response.json().get('Browser', 'unknown browser')}")
        except ValueError:
            logger.debug("CDP endpoint returned non-JSON version info")

    def _goto(self, page, url: str, wait_until: str):
        timeout = self.config.navigation_timeout
        logger.info(f"Navigating to {url}...")
        try:
            response = page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(
                f"{url} did not reach '{wait_until}' within {timeout:.0f} seconds"
            ) from e
        return response

    def _open_usage_page(self, session: AuthenticatedSession, wait_until: str):
        response = self._goto(session.page, self.config.rules.usage_url, wait_until)
        if response is not None:
            session.response_status = response.status
            logger.info(f"Response status: {response.status}")
        logger.info(f"Final URL: {session.page.url}")
        session.ensure_authenticated()
