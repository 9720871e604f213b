#!/usr/bin/env python3
"""
Print and save UsageRecords.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from usage_extractor import UsageRecord

# Module-level logger
logger = logging.getLogger(__name__)

BAR_LEN = 30


def _bar(percent: float) -> str:
    filled = min(max(int((percent / 100) * BAR_LEN), 0), BAR_LEN)  # Cap at 100%
    return "█" * filled + "░" * (BAR_LEN - filled)


def to_json(record: UsageRecord) -> str:
    return json.dumps(record.to_dict(), indent=2)


def render_summary(record: UsageRecord, console: Optional[Console] = None) -> None:
    """Print the human readable summary."""
    console = console or Console()
    plan_usage = record.plan_usage
    account = record.account

    console.print()
    console.print("[bold]=== Claude.ai Usage Data ===[/bold]")
    console.print(f"Timestamp: {record.timestamp}")
    console.print(f"Plan: {account.plan or 'unknown'} ({account.country or 'unknown'})")
    console.print()

    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_column(justify="right")
    table.add_column(style="dim")

    rows = [
        ("Current Session:", plan_usage.current_session, "resets in"),
        ("All Models:", plan_usage.all_models, "resets"),
        ("Sonnet Only:", plan_usage.sonnet_only, "resets"),
    ]
    exact = list(record.exact_percentages) + [None] * 4
    for (name, quota, verb), precise in zip(rows, exact):
        if quota is None:
            continue
        table.add_row(
            name,
            f"[cyan]{_bar(precise if precise is not None else quota.percent_used)}[/cyan]",
            f"{quota.percent_used}% used",
            f"({verb} {quota.resets})",
        )
    console.print(table)

    if plan_usage.last_updated:
        console.print(f"[dim]Last Updated:    {plan_usage.last_updated}[/dim]")

    extra = record.extra_usage
    if extra:
        auto_reload = {True: "on", False: "off", None: "unknown"}[extra.auto_reload]
        console.print()
        console.print(f"[bold magenta]Extra Usage:[/bold magenta]     "
                      f"{extra.amount_spent or '?'} spent of {extra.spend_limit or '?'} limit")
        if exact[3] is not None:
            console.print(f"                 [magenta]{_bar(exact[3])}[/magenta] {exact[3]:.1f}%")
        console.print(f"Balance:         {extra.current_balance or 'unknown'}")
        console.print(f"Resets:          {extra.reset_date or 'unknown'}")
        console.print(f"Auto-reload:     {auto_reload}")

    if not any((plan_usage.current_session, plan_usage.all_models,
                plan_usage.sonnet_only, extra)):
        console.print("[yellow]⚠️  No usage data found on the page[/yellow]")


def output_filename(now: datetime) -> str:
    """usage-2026-01-31T14-05-09.json"""
    return f"usage-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


def save_record(record: UsageRecord, directory: Path, now: Optional[datetime] = None) -> Path:
    """Write the record to a timestamped JSON file in directory."""
    now = now or datetime.now()
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    out_file = directory / output_filename(now)
    with open(out_file, 'w') as f:
        f.write(to_json(record))
    logger.info(f"Saved to: {out_file}")
    return out_file
