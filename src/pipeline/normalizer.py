"""Text, price and status normalization for scraped boat listings.

Display strings are kept as scraped; the numeric and categorical forms used
for comparison are derived lazily at diff time.
"""

import re
from datetime import datetime
from typing import Optional

from src.api.schemas import Listing, utcnow
from src.pipeline.identity import listing_identity

SOLD_MARKERS = ("sold",)
PENDING_MARKERS = ("pending", "under contract")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs and strip."""
    return re.sub(r"\s+", " ", text).strip()


def clean_text(raw: Optional[str]) -> str:
    """Whitespace-normalize text the HTML parser has already decoded.

    Markup-like characters are kept: "Pontoon <22ft>" is a literal title.
    """
    if not raw:
        return ""
    return normalize_whitespace(raw)


def numeric_price(display_price: Optional[str]) -> str:
    """Reduce a display price to its digits and decimal points.

    "$54,995.00" -> "54995.00". Returns "" when nothing numeric is present
    ("Call for price").
    """
    if not display_price:
        return ""
    return re.sub(r"[^\d.]", "", display_price)


def status_category(title: Optional[str], status: Optional[str]) -> str:
    """Classify a listing as sold, pending or available from its text."""
    text = f"{title or ''} {status or ''}".lower()

    if any(marker in text for marker in SOLD_MARKERS):
        return "sold"
    if any(marker in text for marker in PENDING_MARKERS):
        return "pending"
    return "available"


def listing_status_category(listing: Listing) -> str:
    return status_category(listing.title, listing.status)


def build_listing(
    title: Optional[str],
    price: Optional[str],
    link: Optional[str] = None,
    status: Optional[str] = None,
    image: Optional[str] = None,
    fetched_at: Optional[datetime] = None,
) -> Listing:
    """Create a Listing from raw extracted fields, computing its identity."""
    title = clean_text(title)
    price = clean_text(price)
    status = clean_text(status).lower() or "available"

    return Listing(
        identity=listing_identity(title, price),
        title=title,
        price=price,
        link=link or None,
        status=status,
        image=image or None,
        fetched_at=fetched_at or utcnow(),
    )
