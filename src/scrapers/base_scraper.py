# src/scrapers/base_scraper.py

"""Abstract base class for product page observers."""

import logging
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.errors import ObserveError
from src.models.observation import Observation


class BaseScraper(ABC):
    """Fetches storefront pages with a browser-impersonating session.

    One request per page, no retries: a failed fetch surfaces as
    :class:`ObserveError` and the caller skips that product.
    """

    def __init__(
        self,
        source_name: str,
        session: curl_requests.Session | None = None,
    ) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"stock_monitor.{source_name}"
        )
        self.settings = Settings()
        self.session = session or curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.PAGE_TIMEOUT

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def _validate_response(
        self, resp: curl_requests.Response,
    ) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        lower = resp.text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected "
                    "(marker: '%s')",
                    self.source_name,
                    marker,
                )
                return False

        # Generic CAPTCHA keyword scan (skip if page has
        # real product content to avoid false positives)
        has_body_content = (
            "<body" in lower and len(resp.text) > 5000
        )
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' detected",
                        self.source_name,
                        keyword,
                    )
                    return False
        return True

    def _fetch_get(self, url: str) -> curl_requests.Response:
        """GET *url* once, raising ObserveError on any failure."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(url),
        }
        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            raise ObserveError(f"request failed: {exc}") from exc
        if resp.status_code != 200:
            raise ObserveError(f"HTTP {resp.status_code}")
        if not self._validate_response(resp):
            raise ObserveError("blocked by challenge page")
        return resp

    def _get_page(self, url: str) -> BeautifulSoup:
        """Fetch and parse a page."""
        resp = self._fetch_get(url)
        return BeautifulSoup(resp.text, "lxml")

    @abstractmethod
    def _get_homepage(self, url: str) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def observe(self, url: str) -> Observation | None:
        """Scrape *url*; return None when the page cannot be read."""
        ...
