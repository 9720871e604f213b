#!/usr/bin/env python3
"""
Everything this tool knows about Claude.ai's markup.

URLs, CSS selectors, data attributes and text patterns for the usage
settings page all live here. When the page changes, this is the file to edit.
"""

import re
from dataclasses import dataclass
from typing import Tuple
from urllib.parse import urlparse

MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"


@dataclass(frozen=True)
class BucketRule:
    """One quota bucket on the usage page."""
    key: str                # attribute name on PlanUsage
    label: str              # visible section label
    reset_key: str          # JSON key for the reset descriptor
    pattern: re.Pattern


@dataclass(frozen=True)
class UsagePageRules:
    """Selectors and patterns for the Claude.ai usage settings page."""

    base_url: str = "https://claude.ai"
    login_url: str = "https://claude.ai/login"
    usage_url: str = "https://claude.ai/settings/usage"
    host: str = "claude.ai"
    auth_url_markers: Tuple[str, ...] = ("/login", "/oauth")

    buckets: Tuple[BucketRule, ...] = (
        BucketRule(
            key="current_session",
            label="Current session",
            reset_key="resetIn",
            pattern=re.compile(r"Current session\s*Resets in ([^\n]+)\s*(\d+)% used"),
        ),
        BucketRule(
            key="all_models",
            label="All models",
            reset_key="resetsAt",
            pattern=re.compile(r"All models\s*Resets ([^\n]+)\s*(\d+)% used"),
        ),
        BucketRule(
            key="sonnet_only",
            label="Sonnet only",
            reset_key="resetsAt",
            pattern=re.compile(r"Sonnet only\s*Resets ([^\n]+)\s*(\d+)% used"),
        ),
    )
    last_updated_pattern: re.Pattern = re.compile(r"Last updated:\s*([^\n]+)")

    # Progress bar fills, in document order. The fourth one is the extra
    # usage spend bar.
    progress_bar_selector: str = ".h-full.rounded.bg-accent-secondary-200"
    extra_spend_label: str = "Extra usage"

    extra_section_selector: str = '[data-testid="extra-usage-section"]'
    amount_spent_pattern: re.Pattern = re.compile(r"([\w$\d,.]+)\s*spent")
    spend_limit_pattern: re.Pattern = re.compile(r"([\w$\d,.]+)\s*\n\s*Monthly spend limit")
    current_balance_pattern: re.Pattern = re.compile(r"([\w$\d,.]+)\s*\n\s*Current balance")
    reset_date_pattern: re.Pattern = re.compile(r"Resets\s+((?:%s)\s+\d+)" % MONTHS)
    auto_reload_off: str = "Auto-reload off"
    auto_reload_on: str = "Auto-reload on"

    # <html data-org-plan="..." data-cf-country="...">
    plan_attribute: str = "data-org-plan"
    country_attribute: str = "data-cf-country"

    refresh_button_selector: str = '[aria-label="Refresh usage limits"]'

    @property
    def bar_labels(self) -> Tuple[str, ...]:
        """Labels in the order of the exact percentage slots."""
        return tuple(b.label for b in self.buckets) + (self.extra_spend_label,)

    def is_claude_url(self, url: str) -> bool:
        """True if the URL's host is claude.ai or one of its subdomains."""
        hostname = (urlparse(url).hostname or "").lower()
        return hostname == self.host or hostname.endswith("." + self.host)

    def is_auth_url(self, url: str) -> bool:
        """True if the URL path is a login or OAuth page."""
        path = urlparse(url).path
        return any(marker in path for marker in self.auth_url_markers)

    def is_logged_in_url(self, url: str) -> bool:
        """True once the browser has left the login flow for a Claude page."""
        return self.is_claude_url(url) and not self.is_auth_url(url)


DEFAULT_RULES = UsagePageRules()
