# tests/test_runner.py

"""Tests for the headless monitor runner."""

import unittest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

from src.cli.runner import run_monitor
from src.config.settings import Settings
from src.services.monitor_orchestrator import RunReport
from src.services.reconciler import ReconcileOutcome

FEED_URL = "https://loja.example.com/sitemap.xml"
RUNNER = "src.cli.runner"


def _report(*outcomes: ReconcileOutcome) -> RunReport:
    report = RunReport(started_at=datetime(2026, 3, 14, 9, 0))
    report.outcomes.extend(outcomes)
    report.finished_at = datetime(2026, 3, 14, 9, 5)
    return report


class TestRunMonitor(unittest.IsolatedAsyncioTestCase):
    """Exit codes and collaborator wiring."""

    async def test_missing_feed_url_exits_1(self) -> None:
        """Fatal config error returns exit code 1 without a run."""
        with patch.object(Settings, "FEED_URL", None), patch(
            f"{RUNNER}.MonitorOrchestrator"
        ) as orch_cls:
            self.assertEqual(await run_monitor(), 1)
        orch_cls.assert_not_called()

    @patch(f"{RUNNER}.ProductObserver")
    @patch(f"{RUNNER}.SitemapReader")
    @patch(f"{RUNNER}.MonitorOrchestrator")
    async def test_item_failures_exit_0(
        self,
        orch_cls: MagicMock,
        _reader_cls: MagicMock,
        _observer_cls: MagicMock,
    ) -> None:
        """Skipped products never change the exit code."""
        orch_cls.return_value.run = AsyncMock(return_value=_report(
            ReconcileOutcome.skipped("https://x/produtos/a", "scrape-failed"),
        ))
        with patch.object(Settings, "FEED_URL", FEED_URL):
            self.assertEqual(await run_monitor(), 0)

    @patch(f"{RUNNER}.DiscordNotifier")
    @patch(f"{RUNNER}.ProductObserver")
    @patch(f"{RUNNER}.SitemapReader")
    @patch(f"{RUNNER}.MonitorOrchestrator")
    async def test_no_webhook_disables_notifier(
        self,
        orch_cls: MagicMock,
        _reader_cls: MagicMock,
        _observer_cls: MagicMock,
        notifier_cls: MagicMock,
    ) -> None:
        """Without a webhook the reconciler gets no notifier."""
        orch_cls.return_value.run = AsyncMock(return_value=_report())
        with patch.object(Settings, "FEED_URL", FEED_URL), patch.object(
            Settings, "DISCORD_WEBHOOK_URL", None,
        ):
            await run_monitor()
        notifier_cls.assert_not_called()
        reconciler = orch_cls.call_args.kwargs["reconciler"]
        self.assertIsNone(reconciler.notifier)

    @patch(f"{RUNNER}.DiscordNotifier")
    @patch(f"{RUNNER}.ProductObserver")
    @patch(f"{RUNNER}.SitemapReader")
    @patch(f"{RUNNER}.MonitorOrchestrator")
    async def test_webhook_enables_notifier(
        self,
        orch_cls: MagicMock,
        _reader_cls: MagicMock,
        _observer_cls: MagicMock,
        notifier_cls: MagicMock,
    ) -> None:
        """A configured webhook is wired into the reconciler."""
        orch_cls.return_value.run = AsyncMock(return_value=_report())
        webhook = "https://discord.com/api/webhooks/1/abc"
        with patch.object(Settings, "FEED_URL", FEED_URL), patch.object(
            Settings, "DISCORD_WEBHOOK_URL", webhook,
        ):
            await run_monitor()
        notifier_cls.assert_called_once_with(webhook)
        self.assertEqual(
            orch_cls.call_args.kwargs["feed_url"], FEED_URL,
        )


if __name__ == "__main__":
    unittest.main()
