"""Generic selector-driven extraction of boat listings from dealer HTML.

Each dealer is described by a SourceConfig holding CSS selectors; this one
routine applies them. Container selectors are tried in order and the first
that yields at least one titled listing wins.
"""

import re
import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from src.api.schemas import Listing, SourceConfig, utcnow
from src.errors import ParseError
from src.pipeline.normalizer import build_listing, normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_PATTERN = r"(\d[\d,]*)\s+(?:results|boats|listings|units|items|vessels)\b"


def _text_or_none(node: Optional[Tag]) -> Optional[str]:
    if node is None:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def _select_text(card: Tag, selector: str) -> Optional[str]:
    text = _text_or_none(card.select_one(selector))
    return normalize_whitespace(text) if text else None


def _select_attr(card: Tag, selector: str, attr: str, base_url: str) -> Optional[str]:
    node = card.select_one(selector)
    if node is None and card.get(attr):
        node = card
    if node is None:
        return None
    value = node.get(attr)
    if not value:
        return None
    return urljoin(base_url, value)


def _extract_card(card: Tag, source: SourceConfig, fetched_at: datetime) -> Optional[Listing]:
    title = _select_text(card, source.title_selector)
    if not title:
        return None

    return build_listing(
        title=title,
        price=_select_text(card, source.price_selector),
        link=_select_attr(card, source.link_selector, "href", source.base_url),
        status=_select_text(card, source.status_selector),
        image=_select_attr(card, source.image_selector, "src", source.base_url),
        fetched_at=fetched_at,
    )


def extract_listings(html: str, source: SourceConfig, fetched_at: Optional[datetime] = None) -> List[Listing]:
    """Extract listings from one page of dealer HTML.

    Raises:
        ParseError: when none of the container selectors match any element.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    fetched_at = fetched_at or utcnow()

    matched_any = False
    for selector in source.listing_selectors:
        cards = soup.select(selector)
        if not cards:
            continue
        matched_any = True

        listings = []
        for card in cards:
            listing = _extract_card(card, source, fetched_at)
            if listing:
                listings.append(listing)

        if listings:
            logger.debug("%s: selector '%s' matched %d listings", source.key, selector, len(listings))
            return listings

    if not matched_any:
        raise ParseError(f"No listing containers found for '{source.key}'")
    return []


def extract_declared_total(html: str, source: SourceConfig) -> Optional[int]:
    """Read the total inventory count a page advertises, if any.

    Uses ``total_selector`` text when configured, otherwise searches the page
    text with ``total_pattern`` (first capture group is the count).
    """
    soup = BeautifulSoup(html or "", "html.parser")

    if source.total_selector:
        text = _text_or_none(soup.select_one(source.total_selector))
    else:
        text = soup.get_text(" ", strip=True)
    if not text:
        return None

    pattern = source.total_pattern or DEFAULT_TOTAL_PATTERN
    match = re.search(pattern, text, re.IGNORECASE)
    if not match:
        return None

    digits = re.sub(r"\D", "", match.group(1))
    return int(digits) if digits else None
