# src/scrapers/product_observer.py

"""Observer for storefront product pages with primary/secondary variants."""

import json
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from curl_cffi import requests as curl_requests

from src.errors import ObserveError
from src.models.observation import Observation, VariantObservation
from src.scrapers.base_scraper import BaseScraper


class ProductObserver(BaseScraper):
    """Reads price and stock for both variants of a product page.

    The primary variant is the one the page renders by default: its
    price comes from ``#price_display`` and its stock from the buy
    button label.  The storefront embeds every variant as JSON in a
    ``data-variants`` attribute, which is where the secondary variant
    is read from.
    """

    PRICE_SELECTOR = "#price_display"
    BUY_BUTTON_SELECTOR = '[data-store="product-buy-button"]'
    VARIANTS_SELECTOR = "[data-variants]"

    def __init__(
        self, session: curl_requests.Session | None = None,
    ) -> None:
        super().__init__("observer", session=session)

    def _get_homepage(self, url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}/"

    # ── Primary variant ──────────────────────────────────

    def _read_primary(self, soup: BeautifulSoup) -> VariantObservation:
        price_el = soup.select_one(self.PRICE_SELECTOR)
        if price_el is None:
            raise ObserveError("price element not found")
        price = (
            price_el.get_text(strip=True)
            or self.settings.UNAVAILABLE_PRICE
        )

        button = soup.select_one(self.BUY_BUTTON_SELECTOR)
        button_value = (
            str(button.get("value") or "").lower()
            if isinstance(button, Tag)
            else self.settings.OUT_OF_STOCK_MARKER
        )
        stock = self.settings.OUT_OF_STOCK_MARKER not in button_value
        return VariantObservation(price=price, stock=stock)

    # ── Secondary variant ────────────────────────────────

    def _load_variants(
        self, soup: BeautifulSoup,
    ) -> list[dict[str, Any]]:
        holder = soup.select_one(self.VARIANTS_SELECTOR)
        if not isinstance(holder, Tag):
            return []
        raw = str(holder.get("data-variants") or "")
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError:
            self.logger.warning(
                "[%s] Unparseable data-variants payload",
                self.source_name,
            )
            return []
        if not isinstance(data, list):
            return []
        return [v for v in data if isinstance(v, dict)]

    def _find_variant(
        self, variants: list[dict[str, Any]], label: str,
    ) -> dict[str, Any] | None:
        wanted = label.strip().casefold()
        for variant in variants:
            for key in ("option0", "option1", "option2"):
                option = variant.get(key)
                if option and str(option).strip().casefold() == wanted:
                    return variant
        return None

    def _read_secondary(
        self, soup: BeautifulSoup,
    ) -> VariantObservation:
        label = self.settings.SECONDARY_VARIANT_LABEL
        variant = self._find_variant(self._load_variants(soup), label)
        if variant is None:
            self.logger.info(
                "[%s] Product has no '%s' variant",
                self.source_name,
                label,
            )
            return VariantObservation(
                price=self.settings.UNAVAILABLE_PRICE, stock=False,
            )
        price = str(
            variant.get("price_short") or ""
        ).strip() or self.settings.UNAVAILABLE_PRICE
        return VariantObservation(
            price=price, stock=bool(variant.get("available")),
        )

    # ── Public API ───────────────────────────────────────

    def observe(self, url: str) -> Observation | None:
        """Scrape *url*; return None when the page cannot be read."""
        self.logger.debug("[%s] Fetching %s", self.source_name, url)
        try:
            soup = self._get_page(url)
            primary = self._read_primary(soup)
            secondary = self._read_secondary(soup)
        except ObserveError as exc:
            self.logger.error(
                "[%s] Scrape failed for %s: %s",
                self.source_name,
                url,
                exc,
            )
            return None
        except Exception as exc:
            self.logger.error(
                "[%s] Unexpected scrape error for %s: %s",
                self.source_name,
                url,
                exc,
                exc_info=True,
            )
            return None

        self.logger.info(
            "[%s] primary=%s/%s secondary=%s/%s",
            self.source_name,
            primary.price,
            "in stock" if primary.stock else "out of stock",
            secondary.price,
            "in stock" if secondary.stock else "out of stock",
        )
        return Observation(url=url, primary=primary, secondary=secondary)
