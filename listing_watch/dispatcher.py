"""
Delivery of new-listing notifications.

The dispatcher never fails a run: each message is sent on its own and a
failed send is logged before moving on to the next one.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List

from .models import Listing
from .telegram import format_listing_message, format_summary_message

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Send one message per new listing, preceded by a summary for big batches.

    ``transport`` is anything with a ``send(text, html_formatting=...,
    link_preview=...)`` method.  Whatever it raises is logged and the next
    message is attempted.
    Consecutive listing messages are separated by ``pacing_seconds`` to stay
    under the transport's rate limits.
    """

    def __init__(
        self,
        transport,
        pacing_seconds: float = 0.5,
        summary_threshold: int = 5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.pacing_seconds = pacing_seconds
        self.summary_threshold = summary_threshold
        self.sleep = sleep

    def _send(self, text: str, what: str) -> bool:
        try:
            self.transport.send(text, html_formatting=True, link_preview=True)
            return True
        except Exception as exc:
            logger.error("Failed to send notification for %s: %s", what, exc)
            return False

    def dispatch(self, listings: List[Listing]) -> int:
        """Notify about ``listings`` in order and return how many were delivered."""
        delivered = 0
        if len(listings) >= self.summary_threshold:
            if self._send(format_summary_message(len(listings)), "batch summary"):
                delivered += 1
        for index, listing in enumerate(listings):
            if index:
                self.sleep(self.pacing_seconds)
            if self._send(format_listing_message(listing), f"listing {listing.id}"):
                delivered += 1
                logger.info("Notification sent for %s", listing.id)
        return delivered
