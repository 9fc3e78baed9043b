"""
Nekretnine.hr search results.

Cards use CSS-module class names, matched by prefix.  The site folds the
location into the title, so listings from here never carry one.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import Tag

from .models import Listing
from .source_adapter import SourceAdapter, text_of

_AD_ID_RE = re.compile(r"/oglasi/(\d+)")


class NekretnineAdapter(SourceAdapter):
    name = "nekretnine"
    domain = "nekretnine.hr"
    base_url = "https://www.nekretnine.hr"
    id_prefix = "nek"
    ready_selector = '[class*="in-listingCardProperty__"]'
    item_selector = 'div.nd-mediaObject[class*="in-listingCardProperty"]'
    cookie_button = "agree & close"

    def parse_item(self, element: Tag) -> Optional[Listing]:
        title_el = element.select_one('a[class*="Title_title"]')
        if title_el is None:
            return None
        href = title_el.get("href", "")
        match = _AD_ID_RE.search(href)
        if not match:
            return None
        image = element.select_one(".nd-slideshow__item img")
        return Listing(
            id=self.make_id(match.group(1)),
            title=title_el.get("title") or title_el.get_text(strip=True),
            price=text_of(element, '[class*="in-listingCardPrice"] span'),
            url=self.absolute(href),
            image_url=(image.get("src") or None) if image else None,
        )
