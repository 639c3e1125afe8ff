# src/models/observation.py

"""Point-in-time scrape result for a single product page."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VariantObservation:
    """Price and stock for one selectable product variant."""

    price: str
    stock: bool


@dataclass(frozen=True)
class Observation:
    """Fresh scrape of a product URL covering both variants."""

    url: str
    primary: VariantObservation
    secondary: VariantObservation
