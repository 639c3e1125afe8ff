# tests/test_monitor_orchestrator.py

"""Tests for the sequential batch driver."""

import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

from src.models.tracked_field import TrackedField
from src.services.monitor_orchestrator import MonitorOrchestrator, RunReport
from src.services.reconciler import (
    OutcomeStatus,
    ReconcileOutcome,
    Reconciler,
)
from src.storage.game_store import GameStore
from tests.fakes import (
    PRODUCT_URL,
    FakeNotifier,
    FakeObserver,
    InMemoryStore,
    make_observation,
    make_record,
)

FEED_URL = "https://loja.example.com/sitemap.xml"
URL_A = "https://loja.example.com/produtos/jogo-a/"
URL_B = "https://loja.example.com/produtos/jogo-b/"
URL_C = "https://loja.example.com/produtos/jogo-c/"


class _StaticFeed:
    """Feed reader stub returning a fixed URL list."""

    def __init__(self, urls: list[str]) -> None:
        self.urls = urls
        self.calls: list[str] = []

    def get_product_urls(self, feed_url: str) -> list[str]:
        self.calls.append(feed_url)
        return list(self.urls)


class TestMonitorOrchestrator(unittest.IsolatedAsyncioTestCase):
    """MonitorOrchestrator.run integration tests."""

    async def test_empty_feed_is_noop(self) -> None:
        """No URLs: no reconciler calls, clean report."""
        reconciler = MagicMock(spec=Reconciler)
        orch = MonitorOrchestrator(_StaticFeed([]), reconciler, FEED_URL)

        report = await orch.run()

        self.assertIsInstance(report, RunReport)
        self.assertEqual(report.total, 0)
        self.assertIsNotNone(report.finished_at)
        reconciler.reconcile.assert_not_called()

    async def test_feed_fetched_once(self) -> None:
        """The feed is read exactly once per run with the feed URL."""
        feed = _StaticFeed([URL_A])
        reconciler = MagicMock(spec=Reconciler)
        reconciler.reconcile.return_value = ReconcileOutcome.unchanged(URL_A)
        await MonitorOrchestrator(feed, reconciler, FEED_URL).run()
        self.assertEqual(feed.calls, [FEED_URL])

    async def test_preserves_feed_order(self) -> None:
        """URLs are reconciled in feed order, one call each."""
        observer = FakeObserver({
            URL_A: make_observation(url=URL_A),
            URL_B: make_observation(url=URL_B),
            URL_C: make_observation(url=URL_C),
        })
        reconciler = Reconciler(observer=observer, store=InMemoryStore())
        report = await MonitorOrchestrator(
            _StaticFeed([URL_A, URL_B, URL_C]), reconciler, FEED_URL,
        ).run()

        self.assertEqual(observer.calls, [URL_A, URL_B, URL_C])
        self.assertEqual([o.url for o in report.outcomes], [URL_A, URL_B, URL_C])
        self.assertEqual(report.count(OutcomeStatus.CREATED), 3)

    async def test_failed_middle_url_isolated(self) -> None:
        """B's scrape fails; A and C are still reconciled."""
        store = InMemoryStore()
        store.seed(make_record(url=URL_A, game_id=1))
        notifier = FakeNotifier()
        observer = FakeObserver({
            URL_A: make_observation(url=URL_A, primary=("$11", True)),
            URL_B: None,
            URL_C: make_observation(url=URL_C),
        })
        reconciler = Reconciler(
            observer=observer, store=store, notifier=notifier,
        )

        report = await MonitorOrchestrator(
            _StaticFeed([URL_A, URL_B, URL_C]), reconciler, FEED_URL,
        ).run()

        statuses = [o.status for o in report.outcomes]
        self.assertEqual(
            statuses,
            [
                OutcomeStatus.UPDATED,
                OutcomeStatus.SKIPPED,
                OutcomeStatus.CREATED,
            ],
        )
        self.assertEqual(report.outcomes[1].reason, "scrape-failed")
        self.assertIn(URL_C, store.records)
        self.assertEqual(len(notifier.delivered), 1)

    async def test_crashing_reconciler_does_not_abort(self) -> None:
        """An exception escaping reconcile is recorded as Skipped."""
        reconciler = MagicMock(spec=Reconciler)
        reconciler.reconcile.side_effect = [
            RuntimeError("boom"),
            ReconcileOutcome.unchanged(URL_B),
        ]
        report = await MonitorOrchestrator(
            _StaticFeed([URL_A, URL_B]), reconciler, FEED_URL,
        ).run()

        self.assertEqual(report.total, 2)
        self.assertEqual(report.outcomes[0].reason, "error")
        self.assertEqual(report.outcomes[1].status, OutcomeStatus.UNCHANGED)

    async def test_report_timestamps_ordered(self) -> None:
        """finished_at is never before started_at."""
        report = await MonitorOrchestrator(
            _StaticFeed([]), MagicMock(spec=Reconciler), FEED_URL,
        ).run()
        assert report.finished_at is not None
        self.assertLessEqual(report.started_at, report.finished_at)


class TestMonitorWithGameStore(unittest.IsolatedAsyncioTestCase):
    """Full passes against a real SQLite store on disk."""

    def setUp(self) -> None:
        """Open a fresh store in a temp dir."""
        self.tmp_dir = tempfile.mkdtemp()
        self.store = GameStore(db_path=Path(self.tmp_dir) / "monitor.db")
        self.notifier = FakeNotifier()
        self.observer = FakeObserver({PRODUCT_URL: make_observation()})
        self.orchestrator = MonitorOrchestrator(
            _StaticFeed([PRODUCT_URL]),
            Reconciler(
                observer=self.observer,
                store=self.store,
                notifier=self.notifier,
            ),
            FEED_URL,
        )

    def tearDown(self) -> None:
        """Close the database."""
        self.store.close()

    async def _single_outcome(self) -> ReconcileOutcome:
        report = await self.orchestrator.run()
        self.assertEqual(report.total, 1)
        return report.outcomes[0]

    async def test_first_sight_creates_record(self) -> None:
        """A new URL is stored without logs or alerts."""
        outcome = await self._single_outcome()

        self.assertEqual(outcome.status, OutcomeStatus.CREATED)
        record = self.store.find_by_url(PRODUCT_URL)
        assert record is not None
        self.assertEqual(record.primary_price, "$10")
        self.assertEqual(self.store.get_change_log(record.id), [])
        self.assertEqual(self.notifier.delivered, [])

    async def test_change_then_idle_pass(self) -> None:
        """Create, then update two primary fields, then no change."""
        first = await self._single_outcome()
        self.assertEqual(first.status, OutcomeStatus.CREATED)

        self.observer.observations[PRODUCT_URL] = make_observation(
            primary=("$11", False),
        )
        second = await self._single_outcome()
        self.assertEqual(second.status, OutcomeStatus.UPDATED)

        record = self.store.find_by_url(PRODUCT_URL)
        assert record is not None
        self.assertEqual(record.primary_price, "$11")
        self.assertIs(record.primary_stock, False)

        log = self.store.get_change_log(record.id)
        self.assertEqual(
            [(e.changed_field, e.old_value, e.new_value) for e in log],
            [
                (TrackedField.PRIMARY_PRICE, "$10", "$11"),
                (TrackedField.PRIMARY_STOCK, "true", "false"),
            ],
        )
        self.assertEqual(len(self.notifier.delivered), 1)

        third = await self._single_outcome()
        self.assertEqual(third.status, OutcomeStatus.UNCHANGED)
        self.assertEqual(len(self.store.get_change_log(record.id)), 2)
        self.assertEqual(len(self.notifier.delivered), 1)


class TestRunReport(unittest.TestCase):
    """Aggregate counting helpers."""

    def test_count_by_status(self) -> None:
        """count() tallies outcomes per status."""
        report = RunReport(started_at=datetime(2026, 3, 14, 9, 0))
        report.outcomes.extend([
            ReconcileOutcome.created(URL_A),
            ReconcileOutcome.skipped(URL_B, "scrape-failed"),
            ReconcileOutcome.skipped(URL_C, "lookup-failed"),
        ])
        self.assertEqual(report.total, 3)
        self.assertEqual(report.count(OutcomeStatus.SKIPPED), 2)
        self.assertEqual(report.count(OutcomeStatus.UPDATED), 0)


if __name__ == "__main__":
    unittest.main()
