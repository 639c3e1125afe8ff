# src/models/game_record.py

"""Persisted product state and its append-only change log."""

from dataclasses import dataclass
from datetime import datetime

from src.models.tracked_field import TrackedField


@dataclass
class GameRecord:
    """Last-known state of a catalog product, keyed by URL."""

    id: int
    url: str
    primary_price: str
    primary_stock: bool
    secondary_price: str
    secondary_stock: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ChangeLogEntry:
    """Immutable audit row for one detected field change."""

    id: int
    game_id: int
    changed_field: TrackedField
    old_value: str
    new_value: str
    changed_at: datetime
