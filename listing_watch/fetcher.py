"""
Fetching search pages with a bounded retry.

The orchestrator picks the adapter for an address from its host, then gives
it up to ``FETCH_ATTEMPTS`` tries (two by default) with a fixed pause in
between.  There is no exponential backoff: runs are scheduled hourly and
must finish well inside the scheduler's own timeout.  Each attempt gets its
own browser session, released on every exit path.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, ContextManager, List, Optional, Sequence

from .errors import SourceUnavailable, UnsupportedSource
from .index_fetcher import IndexOglasiAdapter
from .models import Listing
from .nekretnine_fetcher import NekretnineAdapter
from .njuskalo_fetcher import NjuskaloAdapter
from .oglasnik_fetcher import OglasnikAdapter
from .settings import Settings
from .source_adapter import BrowserSession, SourceAdapter, open_browser_session

logger = logging.getLogger(__name__)

ADAPTERS: Sequence[SourceAdapter] = (
    NjuskaloAdapter(),
    IndexOglasiAdapter(),
    OglasnikAdapter(),
    NekretnineAdapter(),
)


def adapter_for(address: str, adapters: Sequence[SourceAdapter] = ADAPTERS) -> SourceAdapter:
    """Return the adapter that handles ``address``."""
    for adapter in adapters:
        if adapter.handles(address):
            return adapter
    raise UnsupportedSource(address)


class FetchOrchestrator:
    """Run a source adapter with retries and uniform failure reporting."""

    def __init__(
        self,
        settings: Settings,
        session_factory: Optional[Callable[[], ContextManager[BrowserSession]]] = None,
        adapters: Sequence[SourceAdapter] = ADAPTERS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.attempts = max(settings.FETCH_ATTEMPTS, 1)
        self.retry_delay = settings.RETRY_DELAY_SECONDS
        self.session_factory = session_factory or (lambda: open_browser_session(settings))
        self.adapters = adapters
        self.sleep = sleep

    def fetch(self, address: str) -> List[Listing]:
        """Return the listings currently on ``address``.

        Raises ``UnsupportedSource`` straight away for unknown sites and
        ``SourceUnavailable`` once every attempt has failed.  A page that
        renders the site's "no results" marker is a valid empty result and
        is not retried.
        """
        adapter = adapter_for(address, self.adapters)
        last_error: Optional[Exception] = None
        for attempt in range(1, self.attempts + 1):
            logger.info("[Attempt %d] Navigating to: %s", attempt, address)
            try:
                with self.session_factory() as session:
                    return adapter.fetch_page(session, address)
            except Exception as exc:
                last_error = exc
                logger.error("[Attempt %d] Scrape of %s failed: %s", attempt, address, exc)
            if attempt < self.attempts:
                logger.info("Retrying in %ss...", self.retry_delay)
                self.sleep(self.retry_delay)
        raise SourceUnavailable(address, self.attempts, last_error)
