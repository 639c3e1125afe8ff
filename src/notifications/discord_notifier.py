# src/notifications/discord_notifier.py

"""Render change diffs and deliver them to a Discord webhook."""

import logging
from datetime import datetime
from urllib.parse import urlparse

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.errors import NotifyError
from src.models.change import Change, observed_value
from src.models.game_record import GameRecord
from src.models.observation import Observation
from src.models.tracked_field import FIELD_SPECS, TrackedField, stringify_value

logger = logging.getLogger("stock_monitor.notifier")

_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"

_SECTIONS: list[tuple[str, TrackedField, TrackedField]] = [
    ("PRIMARY", TrackedField.PRIMARY_PRICE, TrackedField.PRIMARY_STOCK),
    (
        "SECONDARY",
        TrackedField.SECONDARY_PRICE,
        TrackedField.SECONDARY_STOCK,
    ),
]


def product_display_name(url: str) -> str:
    """Derive a readable name from the URL's trailing slug.

    ``.../produtos/fifa-23-ps4/`` becomes ``FIFA 23 PS4``.
    """
    segments = [s for s in urlparse(url).path.split("/") if s]
    if not segments:
        return "PRODUCT"
    return segments[-1].replace("-", " ").upper()


def stock_label(value: str) -> str:
    """Map a stringified stock flag to its human label.

    Unrecognised values are shown verbatim instead of being read as
    out of stock.
    """
    normalised = value.strip().lower()
    if normalised == "true":
        return Settings.STOCK_LABELS[True]
    if normalised == "false":
        return Settings.STOCK_LABELS[False]
    return value


def _display(field: TrackedField, value: object) -> str:
    text = stringify_value(value)
    return stock_label(text) if FIELD_SPECS[field].is_stock else text


def _render_field(
    label: str,
    field: TrackedField,
    observation: Observation,
    by_field: dict[TrackedField, Change],
) -> str:
    change = by_field.get(field)
    if change is not None:
        old = _display(field, change.old_value)
        new = _display(field, change.new_value)
        return f"{label}: {old} → **{new}**"
    current = _display(field, observed_value(observation, field))
    return f"{label}: {current} (no change)"


def render_message(
    url: str,
    old_record: GameRecord,
    observation: Observation,
    changes: list[Change],
    now: datetime | None = None,
) -> str:
    """Build the Markdown alert for one reconciled product."""
    by_field = {c.field: c for c in changes}
    stamp = (now or datetime.now()).strftime(_TIMESTAMP_FORMAT)

    lines: list[str] = [
        "🔔 **CHANGE DETECTED!**",
        "",
        f"🎮 **Product:** {product_display_name(url)}",
        f"🔗 **URL:** {url}",
    ]
    for title, price_field, stock_field in _SECTIONS:
        lines.append("")
        lines.append(f"📌 **{title}:**")
        lines.append(
            _render_field("Price", price_field, observation, by_field)
        )
        lines.append(
            _render_field("Stock", stock_field, observation, by_field)
        )

    lines.append("")
    lines.append(
        "🕑 **Previous check:** "
        f"{old_record.updated_at.strftime(_TIMESTAMP_FORMAT)}"
    )
    lines.append(f"⏰ **Date:** {stamp}")
    return "\n".join(lines)


class DiscordNotifier:
    """Posts rendered messages to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str,
        session: curl_requests.Session | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.session = session or curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    def render(
        self,
        url: str,
        old_record: GameRecord,
        observation: Observation,
        changes: list[Change],
    ) -> str:
        """Render the alert for *url*, stamped with the current time."""
        return render_message(url, old_record, observation, changes)

    def _post(self, content: str) -> None:
        try:
            resp = self.session.post(
                self.webhook_url,
                json={"content": content},
                headers={"Content-Type": "application/json"},
                timeout=Settings.WEBHOOK_TIMEOUT,
            )
        except Exception as exc:
            raise NotifyError(f"webhook request failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise NotifyError(f"webhook returned HTTP {resp.status_code}")

    def deliver(self, message: str) -> bool:
        """Send *message*; failures are logged and reported as False."""
        limit = Settings.DISCORD_MAX_CONTENT
        if len(message) > limit:
            message = message[: limit - 1] + "…"
        try:
            self._post(message)
        except NotifyError as exc:
            logger.error("Discord alert not delivered: %s", exc)
            return False
        logger.info("Discord alert delivered")
        return True
