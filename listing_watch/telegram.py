"""
Telegram notification helpers.

This module implements sending messages through the Telegram Bot API and
the helpers that format every message the watcher sends: listing cards,
the batch summary, the first-run announcement, the zero-listings warning
and the failure report.  Messages use Telegram's HTML parse mode, so any
text scraped from a site is escaped before it is embedded.
"""

from __future__ import annotations

import html
import logging
from typing import Optional

import requests

from .errors import NotifyFailure
from .models import Listing, site_label
from .settings import Settings

logger = logging.getLogger(__name__)


def format_listing_message(listing: Listing) -> str:
    """Construct the notification text for a single listing.

    The message includes the title, the price, the location when the site
    provides one, and a link labelled with the name of the site it came
    from.
    """
    lines = [
        "\U0001f3e0 <b>New Listing!</b>",
        "",
        f"<b>{html.escape(listing.title, quote=False)}</b>",
        f"\U0001f4b0 {html.escape(listing.price, quote=False)}",
    ]
    if listing.location:
        lines.append(f"\U0001f4cd {html.escape(listing.location, quote=False)}")
    lines.append("")
    lines.append(
        f'\U0001f517 <a href="{html.escape(listing.url)}">View on {site_label(listing.url)}</a>'
    )
    return "\n".join(lines)


def format_summary_message(count: int) -> str:
    return f"\U0001f4ca <b>{count} new listings found!</b> Sending details..."


def format_initialized_message(listing_count: int, url_count: int) -> str:
    return (
        f"\U0001f680 <b>Scraper initialized!</b> Monitoring {listing_count} existing "
        f"listings across {url_count} search(es). You'll be notified of new ones."
    )


def format_zero_listings_message() -> str:
    return "⚠️ <b>Zero listings found</b>: page structure may have changed."


def format_error_message(error: str) -> str:
    return f"⚠️ <b>Scrape failed:</b> {html.escape(error, quote=False)}"


class TelegramNotifier:
    """Send messages to a single chat through the Telegram Bot API."""

    ENDPOINT_TEMPLATE = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def send(self, text: str, html_formatting: bool = True, link_preview: bool = True) -> None:
        """Send one message.

        Raises ``NotifyFailure`` when the transport is not configured or the
        API rejects the request.  Callers decide whether that is fatal.
        """
        token = self.settings.TELEGRAM_BOT_TOKEN
        chat_id = self.settings.TELEGRAM_CHAT_ID
        if not token or not chat_id:
            raise NotifyFailure("Telegram transport is not configured")

        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": not link_preview,
        }
        if html_formatting:
            payload["parse_mode"] = "HTML"
        try:
            resp = self.session.post(
                self.ENDPOINT_TEMPLATE.format(token=token), json=payload, timeout=10
            )
        except requests.RequestException as exc:
            raise NotifyFailure(f"Telegram request failed: {exc}") from exc
        if not resp.ok:
            raise NotifyFailure(f"Telegram API error {resp.status_code}: {resp.text}")
