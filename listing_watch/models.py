"""
Data types shared by the fetchers, the deduplication engine and the notifier.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")

# Host suffix -> human readable site name used in notification links.
SITE_LABELS = {
    "njuskalo.hr": "Njuškalo",
    "index.hr": "Index Oglasi",
    "oglasnik.hr": "Oglasnik",
    "nekretnine.hr": "Nekretnine.hr",
}


@dataclass(frozen=True)
class Listing:
    """One classified ad as observed on a results page.

    ``id`` is already namespaced by source (for example ``idx-6478169``) so
    that identifiers coming from different sites never collide.  ``price``
    is the display string exactly as rendered by the site.
    """

    id: str
    title: str
    price: str
    url: str
    location: Optional[str] = None
    image_url: Optional[str] = None


def fingerprint(listing: Listing) -> str:
    """Return the content fingerprint used for repost detection.

    The title is lower-cased with runs of whitespace collapsed; the price has
    all whitespace removed.  Two listings with the same fingerprint are
    considered the same ad even when their ids differ.
    """
    title = _WHITESPACE_RE.sub(" ", listing.title.lower()).strip()
    price = _WHITESPACE_RE.sub("", listing.price)
    return f"{title}|{price}"


def site_label(url: str) -> str:
    """Derive the site name shown next to a listing link from its host."""
    host = (urlparse(url).hostname or "").lower()
    for suffix, label in SITE_LABELS.items():
        if host == suffix or host.endswith("." + suffix):
            return label
    return host or "source"


@dataclass
class RunOutcome:
    """In-memory summary of a single run, used for logging only."""

    result: str
    listings: List[Listing] = field(default_factory=list)
    notified: int = 0
    reposts: int = 0
    elapsed_seconds: float = 0.0
