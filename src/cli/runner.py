# src/cli/runner.py

"""Headless monitor runner: wires collaborators and reports the run."""

import logging

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.errors import ConfigError
from src.feeds.sitemap_reader import SitemapReader
from src.notifications.discord_notifier import DiscordNotifier
from src.scrapers.product_observer import ProductObserver
from src.services.monitor_orchestrator import (
    MonitorOrchestrator,
    RunReport,
)
from src.services.reconciler import OutcomeStatus, Reconciler
from src.storage.game_store import GameStore

logger = logging.getLogger("stock_monitor.cli")

# Stderr console so stdout stays free for cron piping
_err = Console(stderr=True)

_STATUS_STYLES: dict[OutcomeStatus, str] = {
    OutcomeStatus.CREATED: "cyan",
    OutcomeStatus.UPDATED: "yellow",
    OutcomeStatus.UNCHANGED: "green",
    OutcomeStatus.SKIPPED: "red",
}


def print_summary(report: RunReport) -> None:
    """Render the per-status totals of a run as a Rich table."""
    table = Table(
        title="Monitor Run",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Outcome", style="bold")
    table.add_column("Products", justify="right")

    for status, style in _STATUS_STYLES.items():
        table.add_row(
            f"[{style}]{status.value}[/{style}]",
            str(report.count(status)),
        )
    table.add_row("total", str(report.total))

    _err.print(table)
    finished = (
        report.finished_at.strftime("%d/%m/%Y %H:%M:%S")
        if report.finished_at
        else "—"
    )
    _err.print(
        f"[dim]Started {report.started_at:%d/%m/%Y %H:%M:%S}"
        f" · finished {finished}[/dim]"
    )


async def run_monitor() -> int:
    """Run one monitoring pass and return an exit code.

    Only a missing mandatory setting yields a non-zero code; product
    level failures are reported but never fail the run.
    """
    try:
        Settings.validate()
    except ConfigError as exc:
        logger.critical("Fatal configuration error: %s", exc)
        _err.print(f"[red]Configuration error: {exc}[/red]")
        return 1
    feed_url = str(Settings.FEED_URL)

    notifier: DiscordNotifier | None = None
    if Settings.DISCORD_WEBHOOK_URL:
        notifier = DiscordNotifier(Settings.DISCORD_WEBHOOK_URL)
    else:
        logger.warning(
            "DISCORD_WEBHOOK_URL not set, notifications disabled"
        )

    store = GameStore()
    try:
        reconciler = Reconciler(
            observer=ProductObserver(),
            store=store,
            notifier=notifier,
        )
        orchestrator = MonitorOrchestrator(
            feed_reader=SitemapReader(),
            reconciler=reconciler,
            feed_url=feed_url,
        )
        _err.print(f"[bold]Monitoring:[/bold] {feed_url}")
        report = await orchestrator.run()
    finally:
        store.close()

    print_summary(report)
    return 0
