#!/usr/bin/env python3
"""
Extract plan usage data from a rendered Claude.ai usage settings page.

The page is read once with a single page.evaluate() call into a PageSnapshot
(body text, progress bars, extra usage section text, root data attributes).
Everything after that is plain regex matching in Python, so a missing
section just leaves the matching field empty.

Example page text:
    Current session
    Resets in 3 hours
    42% used

    All models
    Resets Thu 9:00 AM
    17% used

    Last updated: less than a minute ago
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from usage_page_rules import UsagePageRules, DEFAULT_RULES

# Module-level logger
logger = logging.getLogger(__name__)

_WIDTH_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")

# Walks the body in document order so every progress bar can be tagged with
# the last bucket label seen before it.
SNAPSHOT_SCRIPT = """
(rules) => {
  const root = document.documentElement;
  const body = document.body;
  const extraSection = document.querySelector(rules.extraSelector);
  const snapshot = {
    bodyText: body ? body.innerText : '',
    bars: [],
    extraText: extraSection ? extraSection.innerText : null,
    plan: root.getAttribute(rules.planAttribute),
    country: root.getAttribute(rules.countryAttribute),
  };
  if (!body) return snapshot;

  const bars = new Set(document.querySelectorAll(rules.barSelector));
  const walker = document.createTreeWalker(body, NodeFilter.SHOW_ELEMENT | NodeFilter.SHOW_TEXT);
  let label = null;
  let node = walker.currentNode;
  while (node) {
    if (node.nodeType === Node.TEXT_NODE) {
      const text = node.textContent.trim();
      if (rules.labels.includes(text)) label = text;
    } else if (bars.has(node)) {
      const inExtra = extraSection !== null && extraSection.contains(node);
      snapshot.bars.push({
        width: node.style.width,
        label: inExtra ? rules.extraLabel : label,
      });
    }
    node = walker.nextNode();
  }
  return snapshot;
}
"""


@dataclass(frozen=True)
class QuotaUsage:
    """Usage of one quota bucket."""
    resets: str
    percent_used: int


@dataclass(frozen=True)
class PlanUsage:
    """The three quota buckets plus the page's 'Last updated' marker."""
    current_session: Optional[QuotaUsage] = None
    all_models: Optional[QuotaUsage] = None
    sonnet_only: Optional[QuotaUsage] = None
    last_updated: Optional[str] = None


@dataclass(frozen=True)
class ExtraUsage:
    """Extra usage (pay as you go) section."""
    amount_spent: Optional[str] = None
    spend_limit: Optional[str] = None
    current_balance: Optional[str] = None
    reset_date: Optional[str] = None
    auto_reload: Optional[bool] = None


@dataclass(frozen=True)
class AccountInfo:
    plan: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class UsageRecord:
    """Everything scraped from the usage page in one run."""
    timestamp: str
    plan_usage: PlanUsage = field(default_factory=PlanUsage)
    # [current session, all models, sonnet only, extra usage spend]
    exact_percentages: Tuple[Optional[float], ...] = ()
    extra_usage: Optional[ExtraUsage] = None
    account: AccountInfo = field(default_factory=AccountInfo)

    def to_dict(self, rules: UsagePageRules = DEFAULT_RULES) -> Dict[str, Any]:
        """JSON-ready dictionary with the camelCase keys of the page data."""
        plan_usage: Dict[str, Any] = {}
        for bucket in rules.buckets:
            quota = getattr(self.plan_usage, bucket.key)
            plan_usage[_camel(bucket.key)] = (
                {bucket.reset_key: quota.resets, "percentUsed": quota.percent_used}
                if quota else None
            )
        plan_usage["lastUpdated"] = self.plan_usage.last_updated

        extra = None
        if self.extra_usage is not None:
            extra = {_camel(k): v for k, v in asdict(self.extra_usage).items()}

        return {
            "planUsage": plan_usage,
            "exactPercentages": list(self.exact_percentages),
            "extraUsage": extra,
            "account": asdict(self.account),
            "timestamp": self.timestamp,
        }


@dataclass
class PageSnapshot:
    """Raw values read from the DOM."""
    body_text: str = ""
    bars: List[Dict[str, Any]] = field(default_factory=list)
    extra_text: Optional[str] = None
    plan: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "PageSnapshot":
        if not isinstance(raw, dict):
            return cls()
        bars = raw.get("bars") or []
        return cls(
            body_text=raw.get("bodyText") or "",
            bars=[b for b in bars if isinstance(b, dict)],
            extra_text=raw.get("extraText"),
            plan=raw.get("plan"),
            country=raw.get("country"),
        )


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def parse_width(width: Any) -> Optional[float]:
    """Parse an inline CSS width like '42.5%' into 42.5."""
    if width is None:
        return None
    match = _WIDTH_RE.match(str(width))
    return float(match.group(1)) if match else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UsageExtractor:
    """Turn a loaded usage page into a UsageRecord.

    Never navigates and never raises: anything not found on the page is left
    empty in the record.
    """

    def __init__(self, rules: UsagePageRules = DEFAULT_RULES,
                 now: Callable[[], datetime] = utc_now):
        self.rules = rules
        self.now = now

    def extract(self, page) -> UsageRecord:
        """Read the page and parse it into a UsageRecord."""
        return self.parse(self.read_snapshot(page))

    def read_snapshot(self, page) -> PageSnapshot:
        rules = self.rules
        try:
            raw = page.evaluate(SNAPSHOT_SCRIPT, {
                "labels": list(rules.bar_labels),
                "extraLabel": rules.extra_spend_label,
                "barSelector": rules.progress_bar_selector,
                "extraSelector": rules.extra_section_selector,
                "planAttribute": rules.plan_attribute,
                "countryAttribute": rules.country_attribute,
            })
        except PlaywrightError as e:
            logger.warning(f"Could not read usage page content: {e}")
            return PageSnapshot()
        return PageSnapshot.from_dict(raw)

    def parse(self, snapshot: PageSnapshot) -> UsageRecord:
        """Parse a PageSnapshot. Pure function of its input and the clock."""
        timestamp = self.now().astimezone(timezone.utc)

        record = UsageRecord(
            timestamp=timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            plan_usage=self.parse_plan_usage(snapshot.body_text),
            exact_percentages=tuple(self.parse_progress_bars(snapshot.bars)),
            extra_usage=self.parse_extra_usage(snapshot.extra_text),
            account=AccountInfo(plan=snapshot.plan or None, country=snapshot.country or None),
        )
        logger.debug(f"Parsed usage record: {record}")
        return record

    def parse_plan_usage(self, text: str) -> PlanUsage:
        buckets: Dict[str, Optional[QuotaUsage]] = {}
        for bucket in self.rules.buckets:
            match = bucket.pattern.search(text)
            if match:
                buckets[bucket.key] = QuotaUsage(
                    resets=match.group(1).strip(),
                    percent_used=int(match.group(2)),
                )
                logger.debug(f"✓ {bucket.label}: {match.group(2)}% used")
            else:
                buckets[bucket.key] = None
                logger.debug(f"✗ {bucket.label} not found")

        last_updated = self.rules.last_updated_pattern.search(text)
        return PlanUsage(
            last_updated=last_updated.group(1).strip() if last_updated else None,
            **buckets,
        )

    def parse_progress_bars(self, bars: List[Dict[str, Any]]) -> List[Optional[float]]:
        """Place each bar's width in the slot of its label.

        A bar without a recognised label falls back to its position on the
        page.
        """
        if not bars:
            return []

        labels = self.rules.bar_labels
        slots: List[Optional[float]] = [None] * len(labels)
        filled = set()

        for position, bar in enumerate(bars):
            label = bar.get("label")
            if label in labels:
                index = labels.index(label)
                if index != position:
                    logger.warning(
                        f"Progress bar #{position} is labelled '{label}' "
                        f"(slot {index}); page layout differs from the usual order"
                    )
            elif position < len(slots):
                index = position
            else:
                logger.warning(f"Ignoring unlabelled progress bar #{position}")
                continue

            if index in filled:
                logger.warning(f"Ignoring second progress bar for '{labels[index]}'")
                continue
            filled.add(index)
            slots[index] = parse_width(bar.get("width"))

        return slots

    def parse_extra_usage(self, text: Optional[str]) -> Optional[ExtraUsage]:
        if text is None:
            return None

        rules = self.rules

        def first_group(pattern: re.Pattern) -> Optional[str]:
            match = pattern.search(text)
            return match.group(1) if match else None

        if rules.auto_reload_off in text:
            auto_reload = False
        elif rules.auto_reload_on in text:
            auto_reload = True
        else:
            auto_reload = None

        return ExtraUsage(
            amount_spent=first_group(rules.amount_spent_pattern),
            spend_limit=first_group(rules.spend_limit_pattern),
            current_balance=first_group(rules.current_balance_pattern),
            reset_date=first_group(rules.reset_date_pattern),
            auto_reload=auto_reload,
        )
