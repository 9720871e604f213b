#!/usr/bin/env python3
"""
Save auth state from a manual Claude.ai login session.

This will:
1. Open a real Chrome browser window to claude.ai/login
2. Wait for you to log in (up to 5 minutes)
3. Save all cookies + localStorage to .auth-state.json
4. Close the browser

After this, run scrape_usage.py to scrape with the saved auth.
"""

import argparse
import logging
import sys

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright
from rich.console import Console

from scrape_usage import report_error, setup_logging
from scraper_config import ScraperConfig
from session_errors import ScraperError
from session_provider import SessionProvider, SessionStrategy
from version import __version__, __title__

logger = logging.getLogger(__name__)


def save_auth(config: ScraperConfig, console: Console, playwright_factory=None) -> int:
    """Run the interactive login and write the auth file."""
    console.print("=" * 60)
    console.print("Claude.ai Session Saver")
    console.print("=" * 60)
    console.print(f"Auth file: {config.auth_file}", markup=False)
    console.print()

    with (playwright_factory or sync_playwright)() as playwright:
        provider = SessionProvider(playwright, config)
        with provider.acquire(SessionStrategy.LOGIN):
            pass

    console.print()
    console.print("=" * 60)
    console.print("✓ Auth state saved successfully!")
    console.print("=" * 60)
    console.print(f"Saved to: {config.auth_file}", markup=False)
    console.print()
    console.print("Now run scrape_usage.py to scrape your usage data.")
    console.print("Rerun this script anytime the session expires.")
    return 0


def main(argv=None) -> int:
    """Entry point for claude-usage-save-auth."""
    parser = argparse.ArgumentParser(
        prog='claude-usage-save-auth',
        description='Log into Claude.ai in Chrome and save the session for later scraping',
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'{__title__} {__version__}'
    )
    parser.add_argument('--auth-file', help='Where to save the auth state')
    parser.add_argument('--channel', help='Browser channel: chrome, msedge, chromium')
    parser.add_argument('--login-timeout', type=float,
                        help='Seconds to wait for the login (default: 300)')
    parser.add_argument('--timeout', type=float, help='Navigation timeout in seconds')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug)
    config = ScraperConfig.from_args(args)

    try:
        return save_auth(config, Console())
    except (ScraperError, PlaywrightError, OSError) as e:
        logger.debug("Login capture failed", exc_info=True)
        return report_error(e, Console(stderr=True))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 130


if __name__ == "__main__":
    sys.exit(main())
