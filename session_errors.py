#!/usr/bin/env python3
"""
Failure kinds for acquiring an authenticated Claude.ai session.

Every error is terminal for the current run. Each one carries a short
diagnosis, a remediation hint for the user, and the process exit code the
command line tools use for it.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper failures."""

    exit_code = 1
    hint = ""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class LoginTimeout(ScraperError):
    """Interactive login was not completed within the wait window."""

    exit_code = 2
    hint = "Run save_auth.py again and finish logging in before the timeout."


class NoSavedSession(ScraperError):
    """Saved-state replay requested but no snapshot exists."""

    exit_code = 3
    hint = "Run save_auth.py first (or use --strategy login) to create the auth state."


class SessionExpired(ScraperError):
    """The usage page redirected to login/OAuth."""

    exit_code = 4
    hint = "Re-run save_auth.py to refresh the saved session."


class AttachUnavailable(ScraperError):
    """The remote debugging endpoint could not be reached."""

    exit_code = 5
    hint = (
        "Start Chrome with --remote-debugging-port=9222, log into claude.ai "
        "in that window, then try again."
    )


class ProfileLocked(ScraperError):
    """The Chrome profile directory is held by a running browser."""

    exit_code = 6
    hint = "Close Chrome completely (all windows) and try again."


class NavigationTimeout(ScraperError):
    """The page did not reach the required load state in time."""

    exit_code = 7
    hint = "Check your connection or raise --timeout."
