"""Change detection between two listing snapshots.

Compares the stored snapshot of a source against the one just crawled,
keyed by listing identity, and classifies every difference as added,
removed, price-changed or status-changed.
"""

import logging
from typing import Dict, List, Optional

from src.api.schemas import ChangeSet, Listing, PriceChange, StatusChange
from src.pipeline.normalizer import numeric_price, listing_status_category

logger = logging.getLogger(__name__)


def _index(listings: List[Listing]) -> Dict[str, Listing]:
    index: Dict[str, Listing] = {}
    for listing in listings:
        index.setdefault(listing.identity, listing)
    return index


def diff_snapshots(previous: Optional[List[Listing]], current: List[Listing]) -> ChangeSet:
    """Diff two snapshots of the same source.

    Args:
        previous: Snapshot from the last cycle, or None on the first run.
        current: Snapshot from this cycle.

    Returns:
        ChangeSet whose buckets follow the iteration order of ``current``
        (added, price_changed, status_changed) or ``previous`` (removed).
    """
    if not previous:
        return ChangeSet(added=list(current))

    old_map = _index(previous)
    new_map = _index(current)

    added = [listing for identity, listing in new_map.items() if identity not in old_map]
    removed = [listing for identity, listing in old_map.items() if identity not in new_map]

    price_changed = []
    status_changed = []
    for identity, new in new_map.items():
        old = old_map.get(identity)
        if old is None:
            continue

        old_price = numeric_price(old.price)
        new_price = numeric_price(new.price)
        if not old_price or not new_price:
            logger.debug("Skipping price comparison for %s: unparseable price", identity)
        elif old_price != new_price:
            price_changed.append(PriceChange(
                listing=new, old_price=old.price, new_price=new.price,
            ))

        old_status = listing_status_category(old)
        new_status = listing_status_category(new)
        if old_status != new_status:
            status_changed.append(StatusChange(
                listing=new, old_status=old_status, new_status=new_status,
            ))

    return ChangeSet(
        added=added,
        removed=removed,
        price_changed=price_changed,
        status_changed=status_changed,
    )


def build_change_summary(changes: ChangeSet) -> Dict[str, int]:
    """Summarize a change set into counts for logs and run results."""
    return {
        "added_count": len(changes.added),
        "removed_count": len(changes.removed),
        "price_changed_count": len(changes.price_changed),
        "status_changed_count": len(changes.status_changed),
        "sold_count": len(changes.sold),
        "pending_count": len(changes.pending),
    }
