#!/usr/bin/env python3
"""
Scrape Claude.ai usage data with a real Chrome browser.

Setup (one-time, for the default 'saved' strategy):
    python3 save_auth.py

Usage:
    python3 scrape_usage.py                      # saved auth state
    python3 scrape_usage.py --strategy cdp       # attach to Chrome on port 9222
    python3 scrape_usage.py --strategy profile --profile "Profile 1"
    python3 scrape_usage.py --output json --save

Options:
    --refresh      Click the refresh button before scraping
    --output json  Print JSON to stdout (for piping)
    --save         Save JSON to a timestamped file
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright
from rich.console import Console

from scraper_config import ScraperConfig
from session_errors import ScraperError
from session_provider import SessionProvider, SessionStrategy
from usage_extractor import UsageExtractor
from usage_report import render_summary, save_record, to_json
from version import __version__, __title__, __description__

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False, log_file: Optional[Path] = None, quiet: bool = False):
    """Set up logging to stderr and optionally a file.

    Args:
        debug: If True, set log level to DEBUG
        log_file: Also write the log here
        quiet: Only warnings and errors on the console (JSON output mode)
    """
    level = logging.DEBUG if debug else logging.INFO

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING if quiet and not debug else level)
    handlers = [console_handler]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def report_error(error: Exception, console: Console) -> int:
    """Print a diagnosis for a failed run and return the exit code."""
    if isinstance(error, ScraperError):
        console.print(f"❌ {type(error).__name__}: {error}", style="red", markup=False)
        if error.hint:
            console.print(f"   {error.hint}", markup=False)
        return error.exit_code
    console.print(f"❌ Error: {error}", style="red", markup=False)
    if isinstance(error, OSError):
        console.print("   Check that the auth file and output directory are writable.", markup=False)
    return 1


def scrape(args: argparse.Namespace, config: ScraperConfig,
           stdout: Optional[Console] = None, playwright_factory=None) -> int:
    """Acquire a session, extract the usage record and report it."""
    stdout = stdout or Console()
    json_output = args.output == "json"
    extractor = UsageExtractor(config.rules)

    with (playwright_factory or sync_playwright)() as playwright:
        provider = SessionProvider(playwright, config)
        with provider.acquire(args.strategy) as session:
            session.settle(config.settle_delay)
            if args.refresh:
                session.click_refresh()

            record = extractor.extract(session.page)

            if json_output:
                print(to_json(record), file=stdout.file)
            else:
                render_summary(record, stdout)

            if args.save:
                out_file = save_record(record, config.output_dir, datetime.now(timezone.utc))
                if not json_output:
                    stdout.print(f"\nSaved to: {out_file}")

            # Update auth state in case cookies were refreshed during the session
            session.save_state()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='claude-usage-scrape',
        description=__description__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'{__title__} {__version__}'
    )
    parser.add_argument(
        '--strategy',
        choices=[s.value for s in SessionStrategy],
        default=SessionStrategy.SAVED.value,
        help='How to get a logged-in browser (default: saved)'
    )
    parser.add_argument(
        '--output',
        choices=['text', 'json'],
        default='text',
        help='Human readable summary or JSON on stdout'
    )
    parser.add_argument('--refresh', action='store_true',
                        help='Click the refresh button before scraping')
    parser.add_argument('--save', action='store_true',
                        help='Save JSON to a timestamped file')
    parser.add_argument('--output-dir', help='Directory for --save files')
    parser.add_argument('--auth-file', help='Saved auth state file')
    parser.add_argument('--port', type=int, help='Chrome remote debugging port (cdp strategy)')
    parser.add_argument('--profile', help='Chrome profile name, e.g. "Profile 1" (profile strategy)')
    parser.add_argument('--user-data-dir', help='Chrome user data directory (profile strategy)')
    parser.add_argument('--channel', help='Browser channel: chrome, msedge, chromium')
    parser.add_argument('--headless', action='store_true',
                        help='Run headless (usually blocked by Cloudflare)')
    parser.add_argument('--timeout', type=float, help='Navigation timeout in seconds')
    parser.add_argument('--login-timeout', type=float,
                        help='Seconds to wait for a manual login (login strategy, default: 300)')
    parser.add_argument('--settle-delay', type=float,
                        help='Seconds to wait for the page to render before scraping')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--log-file', help='Also write the log to this file')
    return parser


def main(argv=None) -> int:
    """Entry point for claude-usage-scrape."""
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file, quiet=args.output == 'json')
    config = ScraperConfig.from_args(args)

    try:
        return scrape(args, config)
    except (ScraperError, PlaywrightError, OSError) as e:
        logger.debug("Run failed", exc_info=True)
        return report_error(e, Console(stderr=True))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 130


if __name__ == "__main__":
    sys.exit(main())
