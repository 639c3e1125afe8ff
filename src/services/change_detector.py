# src/services/change_detector.py

"""Pure field-by-field comparison of a stored record and a fresh scrape."""

from src.models.change import Change, observed_value, record_value
from src.models.game_record import GameRecord
from src.models.observation import Observation
from src.models.tracked_field import TrackedField


def detect_changes(
    record: GameRecord, observation: Observation,
) -> list[Change]:
    """Return one Change per differing field, in TrackedField order.

    Equality is strict: price strings are compared verbatim, so a
    formatting-only difference (``"R$ 10,00"`` vs ``"R$10,00"``)
    counts as a change.  An empty list means nothing to reconcile.
    """
    changes: list[Change] = []
    for field in TrackedField:
        old = record_value(record, field)
        new = observed_value(observation, field)
        if old != new or type(old) is not type(new):
            changes.append(Change(field=field, old_value=old, new_value=new))
    return changes
