"""
Browser sessions and the base class for per-site listing extraction.

Every supported classifieds site renders its search results client-side or
behind anti-bot checks, so pages are loaded in headless Chromium through
Playwright.  Once the results are on screen, the rendered HTML is handed to
BeautifulSoup and each site adapter picks the listing cards apart.

A ``BrowserSession`` lives for exactly one fetch attempt.  The fetch
orchestrator opens it with ``open_browser_session`` and the browser is
closed when the ``with`` block exits, whatever happened inside.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .models import Listing
from .settings import Settings

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

# Hide the most obvious automation tells from bot-detection scripts.
STEALTH_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
    "Object.defineProperty(navigator, 'languages', { get: () => ['hr-HR', 'hr', 'en'] });"
    "Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 8 });"
    "window.chrome = { runtime: {} };"
    "Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3] });"
)

_CSS_URL_RE = re.compile(r"url\([\"']?(.*?)[\"']?\)")


class BrowserSession:
    """Thin wrapper around a Playwright page with the watcher's timeouts."""

    def __init__(self, page, settings: Settings) -> None:
        self.page = page
        self.settings = settings

    def goto(self, url: str) -> None:
        self.page.goto(url, wait_until="domcontentloaded", timeout=self.settings.NAV_TIMEOUT_MS)

    def dismiss_cookie_banner(self, button_name: str) -> bool:
        """Click the consent button if the banner shows up."""
        try:
            self.page.get_by_role("button", name=button_name).click(
                timeout=self.settings.COOKIE_TIMEOUT_MS
            )
        except PlaywrightTimeoutError:
            return False
        logger.info("Cookie consent dismissed.")
        return True

    def wait_for(self, selector: str) -> None:
        """Wait for ``selector`` to appear.

        A timeout propagates as ``PlaywrightTimeoutError``: a page stuck on
        an anti-bot challenge loads fine but never renders its results.
        """
        self.page.wait_for_selector(selector, timeout=self.settings.SELECTOR_TIMEOUT_MS)

    def content(self) -> str:
        return self.page.content()


@contextmanager
def open_browser_session(settings: Settings) -> Iterator[BrowserSession]:
    """Launch a fresh headless browser and close it on exit."""
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=settings.HEADLESS, args=BROWSER_ARGS)
        try:
            context = browser.new_context(locale="hr-HR")
            context.add_init_script(STEALTH_SCRIPT)
            yield BrowserSession(context.new_page(), settings)
        finally:
            browser.close()


def text_of(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    return found.get_text(strip=True) if found else ""


def background_image(element: Optional[Tag]) -> Optional[str]:
    """Extract the url from an inline ``background-image`` style."""
    if element is None:
        return None
    match = _CSS_URL_RE.search(element.get("style", ""))
    return (match.group(1) or None) if match else None


class SourceAdapter:
    """Extracts listings from the first results page of one site.

    Subclasses describe the site through class attributes and implement
    ``parse_item`` for a single listing card.  Listing ids are prefixed
    with ``id_prefix`` so they stay unique across sites.
    """

    name: str = ""
    domain: str = ""
    base_url: str = ""
    id_prefix: str = ""
    ready_selector: str = ""
    item_selector: str = ""
    cookie_button: Optional[str] = None
    # marks a rendered results page that has no matches
    empty_selector: Optional[str] = None

    def handles(self, address: str) -> bool:
        host = (urlparse(address).hostname or "").lower()
        return host == self.domain or host.endswith("." + self.domain)

    def wait_selector(self) -> str:
        if self.empty_selector:
            return f"{self.ready_selector}, {self.empty_selector}"
        return self.ready_selector

    def fetch_page(self, session: BrowserSession, address: str) -> List[Listing]:
        """Load ``address`` in ``session`` and return the listings on it.

        Navigation failures and a results page that never renders both
        propagate, so the caller can retry.  Only a page showing the site's
        own "no results" marker yields an empty list.
        """
        session.goto(address)
        if self.cookie_button:
            session.dismiss_cookie_banner(self.cookie_button)
        session.wait_for(self.wait_selector())
        listings = self.parse(session.content())
        if not listings:
            logger.warning("No listing cards rendered on %s", address)
        logger.info("Extracted %d listings from %s", len(listings), address)
        return listings

    def parse(self, html: str) -> List[Listing]:
        soup = BeautifulSoup(html, "html.parser")
        items: List[Listing] = []
        for element in soup.select(self.item_selector):
            try:
                listing = self.parse_item(element)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping %s item due to parse error: %s", self.name, exc)
                continue
            if listing is not None:
                items.append(listing)
        return items

    def parse_item(self, element: Tag) -> Optional[Listing]:
        raise NotImplementedError

    def make_id(self, raw_id: Optional[str]) -> Optional[str]:
        if not raw_id:
            return None
        return f"{self.id_prefix}-{raw_id}"

    def absolute(self, href: str) -> str:
        if href.startswith("//"):
            return "https:" + href
        return urljoin(self.base_url, href)
