# src/storage/game_store.py

"""SQLite-backed record store: one row per product URL plus a change log."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.errors import StoreError
from src.models.change import observation_columns
from src.models.game_record import ChangeLogEntry, GameRecord
from src.models.observation import Observation
from src.models.tracked_field import TrackedField, stringify_value

logger = logging.getLogger("stock_monitor.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS games (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    url             TEXT    NOT NULL UNIQUE,
    primary_price   TEXT    NOT NULL,
    primary_stock   INTEGER NOT NULL,
    secondary_price TEXT    NOT NULL,
    secondary_stock INTEGER NOT NULL,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS games_logs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    game_id       INTEGER NOT NULL REFERENCES games(id),
    changed_field TEXT    NOT NULL,
    old_value     TEXT    NOT NULL,
    new_value     TEXT    NOT NULL,
    changed_at    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_games_logs_game_date
    ON games_logs(game_id, changed_at);
"""

_GAME_COLUMNS = (
    "id, url, primary_price, primary_stock, "
    "secondary_price, secondary_stock, created_at, updated_at"
)


def _row_to_record(row: tuple[Any, ...]) -> GameRecord:
    return GameRecord(
        id=row[0],
        url=row[1],
        primary_price=row[2],
        primary_stock=bool(row[3]),
        secondary_price=row[4],
        secondary_stock=bool(row[5]),
        created_at=datetime.fromisoformat(row[6]),
        updated_at=datetime.fromisoformat(row[7]),
    )


class GameStore:
    """SQLite store for product records and their change history.

    Reads raise :class:`StoreError` so callers can tell a missing
    record from a failed lookup.  Writes report failure through their
    return value; ``append_log`` never raises.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        # Opened on the event loop, used from to_thread workers one URL
        # at a time
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("GameStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Records ──────────────────────────────────────────

    def find_by_url(self, url: str) -> GameRecord | None:
        """Return the record for *url*, or None if it was never seen."""
        try:
            row = self._conn.execute(
                f"SELECT {_GAME_COLUMNS} FROM games WHERE url = ?",
                (url,),
            ).fetchone()
        except sqlite3.Error as exc:
            logger.error(
                "Lookup failed for %s: %s", url, exc, exc_info=True,
            )
            raise StoreError(f"lookup failed for {url}: {exc}") from exc
        return _row_to_record(row) if row else None

    def insert(
        self, observation: Observation, now: datetime,
    ) -> GameRecord | None:
        """Create a record from a first observation.

        ``created_at`` and ``updated_at`` are both set to *now*.
        Returns None when the insert fails.
        """
        columns = observation_columns(observation)
        ts = now.isoformat()
        try:
            cur = self._conn.execute(
                "INSERT INTO games (url, primary_price, primary_stock, "
                "secondary_price, secondary_stock, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    observation.url,
                    columns["primary_price"],
                    int(columns["primary_stock"]),
                    columns["secondary_price"],
                    int(columns["secondary_stock"]),
                    ts,
                    ts,
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.error(
                "Failed to create record for %s: %s",
                observation.url,
                exc,
                exc_info=True,
            )
            return None

        game_id = cur.lastrowid
        if game_id is None:
            return None
        logger.debug("Created record %d for %s", game_id, observation.url)
        return GameRecord(
            id=game_id,
            url=observation.url,
            primary_price=observation.primary.price,
            primary_stock=observation.primary.stock,
            secondary_price=observation.secondary.price,
            secondary_stock=observation.secondary.stock,
            created_at=now,
            updated_at=now,
        )

    def update(
        self, game_id: int, observation: Observation, now: datetime,
    ) -> bool:
        """Overwrite the four tracked fields and bump ``updated_at``."""
        columns = observation_columns(observation)
        try:
            cur = self._conn.execute(
                "UPDATE games SET primary_price = ?, primary_stock = ?, "
                "secondary_price = ?, secondary_stock = ?, updated_at = ? "
                "WHERE id = ?",
                (
                    columns["primary_price"],
                    int(columns["primary_stock"]),
                    columns["secondary_price"],
                    int(columns["secondary_stock"]),
                    now.isoformat(),
                    game_id,
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.error(
                "Failed to update record %d: %s",
                game_id,
                exc,
                exc_info=True,
            )
            return False

        if cur.rowcount == 0:
            logger.error("Update matched no record with id %d", game_id)
            return False
        logger.debug("Updated record %d", game_id)
        return True

    # ── Change log ───────────────────────────────────────

    def append_log(
        self,
        game_id: int,
        field: TrackedField,
        old_value: object,
        new_value: object,
        changed_at: datetime,
    ) -> None:
        """Append one audit row. Failures are logged, never raised."""
        try:
            self._conn.execute(
                "INSERT INTO games_logs "
                "(game_id, changed_field, old_value, new_value, changed_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    game_id,
                    field.value,
                    stringify_value(old_value),
                    stringify_value(new_value),
                    changed_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.error(
                "Failed to log %s change for record %d: %s",
                field.value,
                game_id,
                exc,
                exc_info=True,
            )

    def get_change_log(self, game_id: int) -> list[ChangeLogEntry]:
        """Return all change-log rows for a record, oldest first."""
        try:
            rows = self._conn.execute(
                "SELECT id, game_id, changed_field, old_value, "
                "       new_value, changed_at "
                "FROM games_logs WHERE game_id = ? "
                "ORDER BY changed_at ASC, id ASC",
                (game_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(
                f"change log read failed for {game_id}: {exc}"
            ) from exc
        return [
            ChangeLogEntry(
                id=r[0],
                game_id=r[1],
                changed_field=TrackedField(r[2]),
                old_value=r[3],
                new_value=r[4],
                changed_at=datetime.fromisoformat(r[5]),
            )
            for r in rows
        ]
