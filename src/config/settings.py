# src/config/settings.py

"""Central configuration for the stock_monitor service."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

from src.errors import ConfigError

load_dotenv()


def _env(name: str) -> str | None:
    """Return a stripped environment value, or None when blank/unset."""
    value = os.getenv(name, "").strip()
    return value or None


class Settings:
    """Central configuration for the stock_monitor service."""

    # --- Sources ---
    FEED_URL: str | None = _env("SITEMAP_URL")
    DISCORD_WEBHOOK_URL: str | None = _env("DISCORD_WEBHOOK_URL")

    # --- Timeouts (seconds) ---
    FEED_TIMEOUT: int = 15
    PAGE_TIMEOUT: int = 30
    WEBHOOK_TIMEOUT: int = 10

    # --- Catalog rules ---
    PRODUCT_PATH_MARKER: str = "/produtos/"
    EXCLUDED_LISTING_PREFIXES: list[str] = ["/br/produtos/"]
    SECONDARY_VARIANT_LABEL: str = "SECUNDÁRIA"
    UNAVAILABLE_PRICE: str = "Indisponível"
    OUT_OF_STOCK_MARKER: str = "sem estoque"

    # --- Block detection ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Notifications ---
    DISCORD_MAX_CONTENT: int = 2000
    STOCK_LABELS: dict[bool, str] = {
        True: "✅ In stock",
        False: "❌ Out of stock",
    }

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DB_PATH: Path = Path(
        _env("MONITOR_DB_PATH") or BASE_DIR / "data" / "monitor.db"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    @classmethod
    def validate(cls) -> None:
        """Fail fast when mandatory configuration is missing.

        The webhook is optional: without it reconciliation still runs
        and the notification step is skipped.
        """
        if not cls.FEED_URL:
            raise ConfigError(
                "SITEMAP_URL must be set (environment or .env)."
            )
