# src/models/tracked_field.py

"""The closed set of comparable product fields."""

from dataclasses import dataclass
from enum import Enum


class TrackedField(Enum):
    """Fields compared on every reconciliation pass.

    Declaration order is the canonical order used for detection,
    log writing and notification rendering.
    """

    PRIMARY_PRICE = "primary_price"
    PRIMARY_STOCK = "primary_stock"
    SECONDARY_PRICE = "secondary_price"
    SECONDARY_STOCK = "secondary_stock"


@dataclass(frozen=True)
class FieldSpec:
    """Where a tracked field lives on a Record and an Observation."""

    variant: str       # "primary" | "secondary"
    attribute: str     # "price" | "stock"
    record_column: str

    @property
    def is_stock(self) -> bool:
        return self.attribute == "stock"


FIELD_SPECS: dict[TrackedField, FieldSpec] = {
    TrackedField.PRIMARY_PRICE: FieldSpec(
        "primary", "price", "primary_price",
    ),
    TrackedField.PRIMARY_STOCK: FieldSpec(
        "primary", "stock", "primary_stock",
    ),
    TrackedField.SECONDARY_PRICE: FieldSpec(
        "secondary", "price", "secondary_price",
    ),
    TrackedField.SECONDARY_STOCK: FieldSpec(
        "secondary", "stock", "secondary_stock",
    ),
}


def stringify_value(value: object) -> str:
    """Render a field value for the change log.

    Booleans become ``"true"`` / ``"false"``; strings pass through.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
