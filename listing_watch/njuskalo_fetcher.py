"""
Njuškalo search results.

Regular (non-promoted) results are ``li.EntityList-item--Regular`` cards.
The listing id is carried in the ``data-options`` JSON of the card, with the
``<a name="...">`` anchor as a fallback.
"""

from __future__ import annotations

import json
from typing import Optional

from bs4 import Tag

from .models import Listing
from .source_adapter import SourceAdapter, text_of


class NjuskaloAdapter(SourceAdapter):
    name = "njuskalo"
    domain = "njuskalo.hr"
    base_url = "https://www.njuskalo.hr"
    id_prefix = "njk"
    ready_selector = "li.EntityList-item--Regular"
    item_selector = "li.EntityList-item--Regular"
    cookie_button = "Prihvati i zatvori"

    @staticmethod
    def _raw_id(element: Tag) -> Optional[str]:
        options = element.get("data-options")
        if options:
            try:
                raw = json.loads(options).get("id")
            except ValueError:
                raw = None
            if raw:
                return str(raw)
        anchor = element.select_one("a[name]")
        return anchor.get("name") if anchor else None

    @staticmethod
    def _location(element: Tag) -> Optional[str]:
        caption = element.select_one(".entity-description-main .entity-description-itemCaption")
        if caption is None or "Lokacija" not in caption.get_text():
            return None
        sibling = caption.next_sibling
        text = sibling.get_text(strip=True) if isinstance(sibling, Tag) else str(sibling or "").strip()
        return text or None

    def parse_item(self, element: Tag) -> Optional[Listing]:
        listing_id = self.make_id(self._raw_id(element))
        if not listing_id:
            return None
        title_el = element.select_one("h3.entity-title a.link")
        href = element.get("data-href") or (title_el.get("href", "") if title_el else "")
        image = element.select_one("img.entity-thumbnail-img")
        image_url = image.get("src") if image else None
        return Listing(
            id=listing_id,
            title=title_el.get_text(strip=True) if title_el else "",
            price=text_of(element, "strong.price"),
            url=self.absolute(href),
            location=self._location(element),
            image_url=self.absolute(image_url) if image_url else None,
        )
