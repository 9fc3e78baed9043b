"""
FastAPI application exposing a health check and a dry run.

The dry run classifies a small set of hard-coded listings against an
in-memory seen state and returns the messages a real run would send.  It
never touches the seen-state store or the Telegram transport, which makes it
useful for checking message formatting locally.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import Depends, FastAPI

from .dedup import classify
from .models import Listing, fingerprint
from .settings import Settings, get_settings
from .telegram import format_listing_message, format_summary_message

app = FastAPI(title="Listing Watch")

SAMPLE_LISTINGS: List[Listing] = [
    Listing(
        id="njk-1001",
        title="Zaprešić, kuća, 95 m2",
        price="200.000 €",
        url="https://www.njuskalo.hr/nekretnine/zapresic-kuca-oglas-1001",
        location="Zaprešić",
    ),
    Listing(
        id="ogl-9999",
        title="Sveta Nedelja,  kuća, 150 m2",
        price="300.000 €",
        url="https://oglasnik.hr/prodaja-kuca/sveta-nedelja-oglas-9999",
    ),
    Listing(
        id="idx-2001",
        title="Bregana, kuća, 200 m2",
        price="250.000 €",
        url="https://www.index.hr/oglasi/bregana-kuca/oid/2001",
        location="Samobor",
    ),
]

# Pretend state: 1001 is known by id, 9999 is a repost of an earlier ad.
SAMPLE_SEEN_IDS = {"njk-1001", "njk-1002"}
SAMPLE_SEEN_FINGERPRINTS = {
    fingerprint(
        Listing(id="njk-1002", title="Sveta Nedelja, kuća, 150 m2", price="300.000 €", url="")
    )
}


@app.get("/health")
async def health() -> Dict[str, str]:
    """Return a simple health indicator."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.post("/dry-run")
async def dry_run(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Classify the sample listings and render the resulting messages."""
    classification = classify(
        SAMPLE_LISTINGS, False, SAMPLE_SEEN_IDS, SAMPLE_SEEN_FINGERPRINTS
    )
    messages: List[str] = []
    if len(classification.genuinely_new) >= settings.SUMMARY_THRESHOLD:
        messages.append(format_summary_message(len(classification.genuinely_new)))
    messages.extend(format_listing_message(listing) for listing in classification.genuinely_new)
    return {
        "result": classification.kind,
        "already_seen": [listing.id for listing in classification.already_seen],
        "reposts": [listing.id for listing in classification.reposts],
        "genuinely_new": [listing.id for listing in classification.genuinely_new],
        "messages": messages,
    }
