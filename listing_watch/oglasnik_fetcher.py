"""
Oglasnik.hr search results.

Each result is an ``a.classified-box`` whose link ends in ``oglas-<id>``.
Thumbnails are set as a CSS background and may be site-relative.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import Tag

from .models import Listing
from .source_adapter import SourceAdapter, background_image, text_of

_AD_ID_RE = re.compile(r"oglas-(\d+)")


class OglasnikAdapter(SourceAdapter):
    name = "oglasnik"
    domain = "oglasnik.hr"
    base_url = "https://oglasnik.hr"
    id_prefix = "ogl"
    ready_selector = "a.classified-box"
    item_selector = "a.classified-box"
    cookie_button = "Dopusti sve"

    def parse_item(self, element: Tag) -> Optional[Listing]:
        href = element.get("href", "")
        match = _AD_ID_RE.search(href)
        if not match:
            return None
        image_url = background_image(element.select_one(".image-wrapper-bg"))
        return Listing(
            id=self.make_id(match.group(1)),
            title=text_of(element, "h3.classified-title"),
            price=text_of(element, ".price-block .main"),
            url=self.absolute(href),
            location=text_of(element, "span.location") or None,
            image_url=self.absolute(image_url) if image_url else None,
        )
