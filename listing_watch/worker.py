"""
Single-run worker: fetch, classify, notify, persist.

An external scheduler starts one process per interval; the process runs
exactly one cycle and exits.  The exit status is the only signal the
scheduler gets: 0 for every non-fatal outcome (including "nothing new" and
"zero listings"), 1 after a fatal error has been reported to the chat.

The order of writes matters.  Ids of new listings are stored before any
notification is attempted, so a crash half way through sending never leads
to the same listing being announced twice.  Fingerprints of the whole batch
are re-synced after every comparison so that listings known only by id
become repost-detectable too.
"""

from __future__ import annotations

import enum
import logging
import sys
import time
from typing import Callable, List, Optional

from dotenv import load_dotenv

from .dedup import Classification, aggregate, classify
from .dispatcher import NotificationDispatcher
from .errors import NotifyFailure
from .fetcher import FetchOrchestrator
from .models import RunOutcome, fingerprint
from .seen_store import SeenStore, make_seen_store
from .settings import Settings, get_settings
from .telegram import (
    TelegramNotifier,
    format_error_message,
    format_initialized_message,
    format_zero_listings_message,
)

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    START = "start"
    VALIDATING = "validating"
    FETCHING = "fetching"
    ZERO_LISTINGS = "zero-listings"
    FIRST_RUN = "first-run"
    COMPARING = "comparing"
    NOTIFYING = "notifying"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class RunController:
    """Sequence one watcher run.

    Collaborators are injected so tests can substitute fakes; anything left
    as ``None`` is built from ``settings`` once validation has passed.
    """

    def __init__(
        self,
        settings: Settings,
        transport=None,
        store: Optional[SeenStore] = None,
        fetcher: Optional[FetchOrchestrator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.transport = transport or TelegramNotifier(settings)
        self.store = store
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.clock = clock
        self.state = RunState.START
        self.history: List[RunState] = [RunState.START]

    def _enter(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _send(self, text: str) -> None:
        self.transport.send(text, html_formatting=True, link_preview=True)

    def run(self) -> RunOutcome:
        """Perform one cycle.  Fatal errors propagate to the caller."""
        started = self.clock()
        logger.info("Scraper started")

        self._enter(RunState.VALIDATING)
        self.settings.validate()
        urls = self.settings.search_urls
        store = self.store or make_seen_store(self.settings)
        fetcher = self.fetcher or FetchOrchestrator(self.settings)
        dispatcher = self.dispatcher or NotificationDispatcher(
            self.transport,
            pacing_seconds=self.settings.MESSAGE_PACING_MS / 1000,
            summary_threshold=self.settings.SUMMARY_THRESHOLD,
        )
        logger.info("Monitoring %d search URL(s)", len(urls))

        self._enter(RunState.FETCHING)
        listings = aggregate(fetcher.fetch(url) for url in urls)
        logger.info("Total unique listings scraped: %d", len(listings))

        if not listings:
            self._enter(RunState.ZERO_LISTINGS)
            logger.warning("Zero listings found; page structure may have changed")
            self._send(format_zero_listings_message())
            return self._finish(RunOutcome(result="zero-listings"), started)

        if not store.has_seen_ids():
            self._enter(RunState.FIRST_RUN)
            classification = classify(listings, True, set(), set())
            self._enter(RunState.PERSISTING)
            store.add_seen_ids(listing.id for listing in classification.seeded)
            store.add_seen_fingerprints(fingerprint(listing) for listing in classification.seeded)
            logger.info("First run: seeded %d existing listings", len(classification.seeded))
            self._enter(RunState.NOTIFYING)
            self._send(format_initialized_message(len(listings), len(urls)))
            return self._finish(
                RunOutcome(result=classification.kind, listings=listings), started
            )

        self._enter(RunState.COMPARING)
        classification = classify(
            listings, False, store.get_seen_ids(), store.get_seen_fingerprints()
        )
        self._log_classification(classification)
        # Ids first: a crash while sending must not re-notify next run.
        store.add_seen_ids(listing.id for listing in classification.new_by_id)

        self._enter(RunState.NOTIFYING)
        notified = 0
        if classification.genuinely_new:
            notified = dispatcher.dispatch(classification.genuinely_new)

        self._enter(RunState.PERSISTING)
        store.add_seen_fingerprints(fingerprint(listing) for listing in listings)

        return self._finish(
            RunOutcome(
                result=classification.kind,
                listings=listings,
                notified=notified,
                reposts=len(classification.reposts),
            ),
            started,
        )

    def _log_classification(self, classification: Classification) -> None:
        for listing in classification.reposts:
            logger.info("Repost detected, skipping: %s (%s)", listing.id, listing.title)
        if classification.genuinely_new:
            logger.info(
                "Found %d new listing(s), %d repost(s)",
                len(classification.genuinely_new),
                len(classification.reposts),
            )
        else:
            logger.info("No new listings found (%d repost(s))", len(classification.reposts))

    def _finish(self, outcome: RunOutcome, started: float) -> RunOutcome:
        self._enter(RunState.DONE)
        outcome.elapsed_seconds = self.clock() - started
        logger.info("Scraper finished in %.1fs (%s)", outcome.elapsed_seconds, outcome.result)
        return outcome

    def fail(self, exc: BaseException) -> None:
        """Enter the failed state and report ``exc`` to the chat if possible."""
        self._enter(RunState.FAILED)
        logger.error("Fatal error: %s", exc, exc_info=exc)
        try:
            self._send(format_error_message(str(exc)))
        except NotifyFailure as notify_exc:
            logger.error("Failed to send error notification to Telegram: %s", notify_exc)


def run_once(settings: Settings, controller: Optional[RunController] = None) -> int:
    """Perform a single run and return the process exit code."""
    controller = controller or RunController(settings)
    try:
        controller.run()
    except Exception as exc:
        controller.fail(exc)
        return 1
    return 0


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(message)s")
    load_dotenv()
    try:
        sys.exit(run_once(get_settings()))
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
