"""
Unit tests for fingerprints, site labels and message formatting.

These tests exercise the pure helpers shared by the deduplication engine
and the notifier to make sure reposts are recognised and messages are
assembled as expected.
"""

from __future__ import annotations

from listing_watch.models import Listing, fingerprint, site_label
from listing_watch.telegram import (
    format_error_message,
    format_initialized_message,
    format_listing_message,
    format_summary_message,
    format_zero_listings_message,
)


def test_fingerprint_normalises_title_and_price() -> None:
    first = Listing(id="a", title="  Sveta Nedelja,\tKUĆA,  150 m2 ", price="300.000 €", url="")
    second = Listing(id="b", title="sveta nedelja, kuća, 150 m2", price=" 300.000 €", url="")
    assert fingerprint(first) == "sveta nedelja, kuća, 150 m2|300.000€"
    assert fingerprint(first) == fingerprint(second)


def test_fingerprint_differs_on_price() -> None:
    listing = Listing(id="a", title="Kuća", price="200.000 €", url="")
    cheaper = Listing(id="a", title="Kuća", price="190.000 €", url="")
    assert fingerprint(listing) != fingerprint(cheaper)


def test_site_label_from_host() -> None:
    assert site_label("https://www.njuskalo.hr/nekretnine/oglas-1") == "Njuškalo"
    assert site_label("https://www.index.hr/oglasi/x/oid/1") == "Index Oglasi"
    assert site_label("https://oglasnik.hr/oglas-1") == "Oglasnik"
    assert site_label("https://www.nekretnine.hr/oglasi/1/") == "Nekretnine.hr"
    assert site_label("https://example.com/ad/1") == "example.com"


def test_format_listing_message_structure() -> None:
    listing = Listing(
        id="idx-1",
        title="Kuća <novo>",
        price="250.000 €",
        url="https://www.index.hr/oglasi/kuca/oid/1",
        location="Samobor & okolica",
    )
    message = format_listing_message(listing)
    assert "<b>New Listing!</b>" in message
    assert "<b>Kuća &lt;novo&gt;</b>" in message
    assert "250.000 €" in message
    assert "Samobor &amp; okolica" in message
    assert '<a href="https://www.index.hr/oglasi/kuca/oid/1">View on Index Oglasi</a>' in message


def test_format_listing_message_omits_missing_location() -> None:
    listing = Listing(id="nek-1", title="Stan", price="90.000 €", url="https://www.nekretnine.hr/oglasi/1/")
    message = format_listing_message(listing)
    assert "\U0001f4cd" not in message
    assert "View on Nekretnine.hr" in message


def test_operational_messages() -> None:
    assert "6 new listings found!" in format_summary_message(6)
    initialized = format_initialized_message(42, 3)
    assert "Monitoring 42 existing listings across 3 search(es)" in initialized
    assert "Zero listings found" in format_zero_listings_message()
    assert format_error_message("bad <html>").endswith("bad &lt;html&gt;")
