#!/usr/bin/env python3
"""
Runtime configuration for the usage scraper.

Paths and timeouts are passed around explicitly as a ScraperConfig so tests
can point the auth file and output directory at a temporary location.
"""

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from usage_page_rules import UsagePageRules, DEFAULT_RULES

TOOL_DIR = Path(__file__).resolve().parent


def default_chrome_user_data_dir() -> Path:
    """Chrome's user data directory for the current platform."""
    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "Google" / "Chrome"
    if system == "Windows":
        local_app_data = os.environ.get("LOCALAPPDATA", str(Path.home() / "AppData" / "Local"))
        return Path(local_app_data) / "Google" / "Chrome" / "User Data"
    return Path.home() / ".config" / "google-chrome"


@dataclass
class ScraperConfig:
    """Settings for one scraper run."""

    NAVIGATION_TIMEOUT = 30.0   # seconds
    LOGIN_TIMEOUT = 300.0       # seconds
    SETTLE_DELAY = 5.0          # seconds, client-side hydration
    REFRESH_WAIT = 3.0          # seconds after clicking refresh
    STALE_AFTER_HOURS = 24.0
    CDP_PORT = 9222
    AUTH_FILE = TOOL_DIR / ".auth-state.json"

    rules: UsagePageRules = DEFAULT_RULES
    auth_file: Path = AUTH_FILE
    output_dir: Path = TOOL_DIR
    navigation_timeout: float = NAVIGATION_TIMEOUT
    login_timeout: float = LOGIN_TIMEOUT
    settle_delay: float = SETTLE_DELAY
    refresh_wait: float = REFRESH_WAIT
    stale_after_hours: float = STALE_AFTER_HOURS
    # Real Chrome, visible: Cloudflare challenges the bundled headless Chromium
    browser_channel: Optional[str] = "chrome"
    headless: bool = False
    wait_until: str = "domcontentloaded"
    cdp_port: int = CDP_PORT
    chrome_user_data_dir: Path = field(default_factory=default_chrome_user_data_dir)
    profile_name: str = "Default"

    @property
    def cdp_endpoint(self) -> str:
        return f"http://localhost:{self.cdp_port}"

    @classmethod
    def from_args(cls, args) -> "ScraperConfig":
        """Build a config from parsed command line arguments.

        Only options that were given on the command line override defaults.
        """
        config = cls()
        overrides = {
            "auth_file": getattr(args, "auth_file", None),
            "output_dir": getattr(args, "output_dir", None),
            "navigation_timeout": getattr(args, "timeout", None),
            "login_timeout": getattr(args, "login_timeout", None),
            "settle_delay": getattr(args, "settle_delay", None),
            "cdp_port": getattr(args, "port", None),
            "chrome_user_data_dir": getattr(args, "user_data_dir", None),
            "profile_name": getattr(args, "profile", None),
            "browser_channel": getattr(args, "channel", None),
        }
        for name, value in overrides.items():
            if value is None:
                continue
            if name in ("auth_file", "output_dir", "chrome_user_data_dir"):
                value = Path(value).expanduser()
            if name == "browser_channel" and value == "chromium":
                # Playwright's bundled build has no channel
                value = None
            setattr(config, name, value)

        if getattr(args, "headless", False):
            config.headless = True
        return config
