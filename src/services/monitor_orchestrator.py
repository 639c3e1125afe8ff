# src/services/monitor_orchestrator.py

"""Drives one monitoring pass over every product in the feed."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from src.services.reconciler import (
    OutcomeStatus,
    ReconcileOutcome,
    Reconciler,
)

logger = logging.getLogger("stock_monitor.orchestrator")


class FeedReader(Protocol):
    def get_product_urls(self, feed_url: str) -> list[str]: ...


@dataclass
class RunReport:
    """Aggregate result of one monitoring pass."""

    started_at: datetime
    finished_at: datetime | None = None
    outcomes: list[ReconcileOutcome] = field(
        default_factory=lambda: list[ReconcileOutcome]()
    )

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def count(self, status: OutcomeStatus) -> int:
        """Number of URLs that ended in *status*."""
        return sum(1 for o in self.outcomes if o.status is status)


class MonitorOrchestrator:
    """Reconciles feed URLs one at a time, in feed order."""

    def __init__(
        self,
        feed_reader: FeedReader,
        reconciler: Reconciler,
        feed_url: str,
    ) -> None:
        self.feed_reader = feed_reader
        self.reconciler = reconciler
        self.feed_url = feed_url

    async def _reconcile_one(self, url: str) -> ReconcileOutcome:
        try:
            return await asyncio.to_thread(
                self.reconciler.reconcile, url
            )
        except Exception as exc:
            logger.error(
                "Reconciliation crashed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
            return ReconcileOutcome.skipped(url, "error")

    async def run(self) -> RunReport:
        """Run a full pass and return its report.

        Each URL is awaited to completion (scrape, log writes, update
        and notification) before the next one starts.
        """
        report = RunReport(started_at=datetime.now())
        logger.info(
            "Monitor run started at %s", report.started_at.isoformat(),
        )

        urls = await asyncio.to_thread(
            self.feed_reader.get_product_urls, self.feed_url
        )
        if not urls:
            logger.warning("No products found in the sitemap")
        else:
            logger.info("%d products to process", len(urls))

        for idx, url in enumerate(urls, 1):
            logger.info("[%d/%d] %s", idx, len(urls), url)
            report.outcomes.append(await self._reconcile_one(url))

        report.finished_at = datetime.now()
        logger.info(
            "Monitor run finished at %s: %d created, %d updated, "
            "%d unchanged, %d skipped",
            report.finished_at.isoformat(),
            report.count(OutcomeStatus.CREATED),
            report.count(OutcomeStatus.UPDATED),
            report.count(OutcomeStatus.UNCHANGED),
            report.count(OutcomeStatus.SKIPPED),
        )
        return report
