# src/models/change.py

"""Field-level differences between a stored record and a fresh scrape."""

from dataclasses import dataclass

from src.models.game_record import GameRecord
from src.models.observation import Observation
from src.models.tracked_field import FIELD_SPECS, TrackedField


@dataclass(frozen=True)
class Change:
    """One differing field, carrying the typed old and new values."""

    field: TrackedField
    old_value: str | bool
    new_value: str | bool


def record_value(record: GameRecord, field: TrackedField) -> str | bool:
    """Read a tracked field from a persisted record."""
    value: str | bool = getattr(
        record, FIELD_SPECS[field].record_column
    )
    return value


def observed_value(
    observation: Observation, field: TrackedField,
) -> str | bool:
    """Read a tracked field from an observation."""
    spec = FIELD_SPECS[field]
    variant = getattr(observation, spec.variant)
    value: str | bool = getattr(variant, spec.attribute)
    return value


def observation_columns(
    observation: Observation,
) -> dict[str, str | bool]:
    """Map an observation onto the record's four tracked columns."""
    return {
        spec.record_column: observed_value(observation, field)
        for field, spec in FIELD_SPECS.items()
    }
