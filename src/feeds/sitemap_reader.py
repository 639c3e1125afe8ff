# src/feeds/sitemap_reader.py

"""Fetches a storefront sitemap and extracts product page URLs."""

import logging

from curl_cffi import requests as curl_requests
from lxml import etree

from src.config.settings import Settings
from src.errors import FeedError

logger = logging.getLogger("stock_monitor.feed")

# Matches with or without the sitemaps.org default namespace
_URL_LOC_XPATH = "//*[local-name()='url']/*[local-name()='loc']"
_SITEMAP_LOC_XPATH = "//*[local-name()='sitemap']/*[local-name()='loc']"


def is_product_url(url: str) -> bool:
    """Return True for product detail pages.

    The URL must contain the product path marker, must not be the
    bare listing page or a localised listing, and must carry a
    non-empty slug after the marker.
    """
    marker = Settings.PRODUCT_PATH_MARKER
    if marker not in url or url.endswith(marker):
        return False
    if any(p in url for p in Settings.EXCLUDED_LISTING_PREFIXES):
        return False
    slug = url.split(marker, 1)[1]
    return slug.strip().strip("/") != ""


def parse_sitemap(xml_content: bytes) -> tuple[str, list[str]]:
    """Parse sitemap XML into ``(kind, locs)``.

    *kind* is ``"urlset"`` or ``"sitemapindex"``.  Raises FeedError
    when the document is neither.
    """
    if not xml_content.strip():
        raise FeedError("empty sitemap document")
    parser = etree.XMLParser(recover=True, remove_blank_text=True)
    try:
        root = etree.fromstring(xml_content, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise FeedError(f"XML syntax error: {exc}") from exc
    if root is None:
        raise FeedError("sitemap is not valid XML")

    kind = etree.QName(root.tag).localname
    if kind == "sitemapindex":
        xpath = _SITEMAP_LOC_XPATH
    elif kind == "urlset":
        xpath = _URL_LOC_XPATH
    else:
        raise FeedError(f"unexpected root element '{kind}'")

    locs = [
        el.text.strip()
        for el in root.xpath(xpath)
        if el.text and el.text.strip()
    ]
    return kind, locs


class SitemapReader:
    """Turns a sitemap address into an ordered list of product URLs."""

    def __init__(
        self, session: curl_requests.Session | None = None,
    ) -> None:
        self.settings = Settings()
        self.session = session or curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _fetch(self, url: str) -> bytes:
        try:
            resp = self.session.get(
                url,
                headers=self.settings.DEFAULT_HEADERS,
                timeout=self.settings.FEED_TIMEOUT,
            )
        except Exception as exc:
            raise FeedError(f"request failed for {url}: {exc}") from exc
        if resp.status_code != 200:
            raise FeedError(f"HTTP {resp.status_code} for {url}")
        return resp.content

    def _collect_locs(self, feed_url: str) -> list[str]:
        kind, locs = parse_sitemap(self._fetch(feed_url))
        if kind == "urlset":
            return locs

        # Sitemap index: follow one level of child sitemaps
        logger.info(
            "Sitemap index with %d child sitemaps", len(locs),
        )
        page_locs: list[str] = []
        for child_url in locs:
            try:
                child_kind, child_locs = parse_sitemap(
                    self._fetch(child_url)
                )
            except FeedError as exc:
                logger.warning(
                    "Skipping child sitemap %s: %s", child_url, exc,
                )
                continue
            if child_kind == "urlset":
                page_locs.extend(child_locs)
        return page_locs

    def get_product_urls(self, feed_url: str) -> list[str]:
        """Return product URLs from the feed in document order.

        Never raises: any fetch or parse error yields an empty list.
        """
        logger.info("Downloading sitemap %s", feed_url)
        try:
            locs = self._collect_locs(feed_url)
        except FeedError as exc:
            logger.error("Sitemap unavailable: %s", exc)
            return []
        except Exception as exc:
            logger.error(
                "Unexpected sitemap error: %s", exc, exc_info=True,
            )
            return []

        urls = list(dict.fromkeys(u for u in locs if is_product_url(u)))
        logger.info(
            "%d product URLs found (%d entries in sitemap)",
            len(urls),
            len(locs),
        )
        return urls
