# src/services/reconciler.py

"""Per-URL reconciliation: observe, look up, detect, persist, notify.

Each stage either hands a value to the next stage or returns a
terminal :class:`ReconcileOutcome`.  Collaborators are injected so the
store, observer and notifier can be swapped for fakes in tests.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from src.errors import StoreError
from src.models.change import Change
from src.models.game_record import GameRecord
from src.models.observation import Observation
from src.models.tracked_field import TrackedField, stringify_value
from src.services.change_detector import detect_changes

logger = logging.getLogger("stock_monitor.reconciler")


# ── Collaborator contracts ───────────────────────────────


class Observer(Protocol):
    def observe(self, url: str) -> Observation | None: ...


class RecordStore(Protocol):
    def find_by_url(self, url: str) -> GameRecord | None: ...

    def insert(
        self, observation: Observation, now: datetime,
    ) -> GameRecord | None: ...

    def update(
        self, game_id: int, observation: Observation, now: datetime,
    ) -> bool: ...

    def append_log(
        self,
        game_id: int,
        field: TrackedField,
        old_value: object,
        new_value: object,
        changed_at: datetime,
    ) -> None: ...


class Notifier(Protocol):
    def render(
        self,
        url: str,
        old_record: GameRecord,
        observation: Observation,
        changes: list[Change],
    ) -> str: ...

    def deliver(self, message: str) -> bool: ...


# ── Outcomes ─────────────────────────────────────────────


class OutcomeStatus(Enum):
    """Terminal state of one reconciliation pass."""

    SKIPPED = "skipped"
    CREATED = "created"
    UNCHANGED = "unchanged"
    UPDATED = "updated"


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of reconciling a single URL."""

    url: str
    status: OutcomeStatus
    reason: str = ""
    changes: tuple[Change, ...] = field(default_factory=tuple)

    @classmethod
    def skipped(cls, url: str, reason: str) -> "ReconcileOutcome":
        return cls(url=url, status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def created(cls, url: str) -> "ReconcileOutcome":
        return cls(url=url, status=OutcomeStatus.CREATED)

    @classmethod
    def unchanged(cls, url: str) -> "ReconcileOutcome":
        return cls(url=url, status=OutcomeStatus.UNCHANGED)

    @classmethod
    def updated(
        cls, url: str, changes: list[Change],
    ) -> "ReconcileOutcome":
        return cls(
            url=url,
            status=OutcomeStatus.UPDATED,
            changes=tuple(changes),
        )


@dataclass(frozen=True)
class _Lookup:
    """Lookup stage result; ``record`` is None for an unseen URL."""

    record: GameRecord | None


# ── Reconciler ───────────────────────────────────────────


class Reconciler:
    """Applies one observation to the record store for a URL."""

    def __init__(
        self,
        observer: Observer,
        store: RecordStore,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.observer = observer
        self.store = store
        self.notifier = notifier
        self._clock = clock

    def reconcile(self, url: str) -> ReconcileOutcome:
        """Reconcile *url*; never raises."""
        try:
            outcome = self._run_pipeline(url)
        except Exception as exc:
            logger.error(
                "Unexpected error reconciling %s: %s",
                url,
                exc,
                exc_info=True,
            )
            outcome = ReconcileOutcome.skipped(url, "error")
        logger.debug("Outcome for %s: %s", url, outcome.status.value)
        return outcome

    def _run_pipeline(self, url: str) -> ReconcileOutcome:
        observation = self._observe(url)
        if isinstance(observation, ReconcileOutcome):
            return observation

        lookup = self._lookup(url)
        if isinstance(lookup, ReconcileOutcome):
            return lookup

        if lookup.record is None:
            return self._create(observation)

        changes = detect_changes(lookup.record, observation)
        if not changes:
            logger.info("No changes for %s", url)
            return ReconcileOutcome.unchanged(url)

        return self._apply_changes(lookup.record, observation, changes)

    # ── Stages ───────────────────────────────────────────

    def _observe(self, url: str) -> Observation | ReconcileOutcome:
        try:
            observation = self.observer.observe(url)
        except Exception as exc:
            logger.error(
                "Observer raised for %s: %s", url, exc, exc_info=True,
            )
            observation = None
        if observation is None:
            logger.warning("Could not scrape %s, skipping", url)
            return ReconcileOutcome.skipped(url, "scrape-failed")
        return observation

    def _lookup(self, url: str) -> _Lookup | ReconcileOutcome:
        try:
            return _Lookup(record=self.store.find_by_url(url))
        except StoreError as exc:
            logger.error("Record lookup failed for %s: %s", url, exc)
            return ReconcileOutcome.skipped(url, "lookup-failed")

    def _create(self, observation: Observation) -> ReconcileOutcome:
        url = observation.url
        logger.info("New product %s, creating record", url)
        try:
            record = self.store.insert(observation, self._clock())
        except StoreError as exc:
            logger.error("Record insert failed for %s: %s", url, exc)
            record = None
        if record is None:
            return ReconcileOutcome.skipped(url, "insert-failed")
        return ReconcileOutcome.created(url)

    def _apply_changes(
        self,
        record: GameRecord,
        observation: Observation,
        changes: list[Change],
    ) -> ReconcileOutcome:
        url = observation.url
        logger.info("%d change(s) detected for %s", len(changes), url)

        now = self._clock()
        for change in changes:
            logger.info(
                "  %s: %s → %s",
                change.field.value,
                stringify_value(change.old_value),
                stringify_value(change.new_value),
            )
            self._write_log(record.id, change, now)

        try:
            updated = self.store.update(record.id, observation, now)
        except StoreError as exc:
            logger.error("Record update failed for %s: %s", url, exc)
            updated = False
        if not updated:
            return ReconcileOutcome.skipped(url, "update-failed")

        self._notify(record, observation, changes)
        return ReconcileOutcome.updated(url, changes)

    def _write_log(
        self, game_id: int, change: Change, now: datetime,
    ) -> None:
        try:
            self.store.append_log(
                game_id,
                change.field,
                change.old_value,
                change.new_value,
                now,
            )
        except Exception as exc:
            logger.error(
                "Change log write failed for record %d (%s): %s",
                game_id,
                change.field.value,
                exc,
            )

    def _notify(
        self,
        record: GameRecord,
        observation: Observation,
        changes: list[Change],
    ) -> None:
        if self.notifier is None:
            logger.debug("No notification channel configured")
            return
        try:
            message = self.notifier.render(
                observation.url, record, observation, changes,
            )
            self.notifier.deliver(message)
        except Exception as exc:
            logger.error(
                "Notification failed for %s: %s",
                observation.url,
                exc,
                exc_info=True,
            )
