"""
Index Oglasi search results.

Index.hr is a React single page app with generated class names, so cards
are matched on stable class-name fragments.  The id is the trailing numeric
path segment of the ad link.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import Tag

from .models import Listing
from .source_adapter import SourceAdapter, background_image, text_of

_AD_ID_RE = re.compile(r"/(\d+)$")


class IndexOglasiAdapter(SourceAdapter):
    name = "index"
    domain = "index.hr"
    base_url = "https://www.index.hr"
    id_prefix = "idx"
    ready_selector = 'a[class*="AdLink__link"]'
    item_selector = 'a[class*="AdLink__link"]'

    def parse_item(self, element: Tag) -> Optional[Listing]:
        href = element.get("href", "")
        match = _AD_ID_RE.search(href)
        if not match:
            return None
        return Listing(
            id=self.make_id(match.group(1)),
            title=text_of(element, '[class*="AdSummary__title"]'),
            price=text_of(element, '[data-test="adprice"]'),
            url=self.absolute(href),
            location=text_of(element, '[class*="adLocation__location"]') or None,
            image_url=background_image(element.select_one('[class*="carouselImage"]')),
        )
