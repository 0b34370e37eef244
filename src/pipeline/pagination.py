"""Paginated crawl with termination guards.

Dealer inventory pages are fetched one at a time, in increasing page order.
The number of pages is planned from the total the first page declares and
clamped to a hard ceiling. Some dealer sites answer an out-of-range page
number by serving an earlier page again, so a page that contributes nothing
new ends the crawl instead of being treated as an empty page.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from src.api.schemas import Listing, PageResult
from src.config import MAX_PAGES
from src.errors import FetchError, ParseError

logger = logging.getLogger(__name__)

FetchPage = Callable[[int], Awaitable[PageResult]]
Delay = Callable[[], Awaitable[None]]


@dataclass
class CrawlState:
    """Running state of a single crawl. Discarded when the crawl returns."""
    collected: List[Listing] = field(default_factory=list)
    seen_identities: Set[str] = field(default_factory=set)
    pages_fetched: int = 0
    declared_total: Optional[int] = None

    def merge(self, listings: List[Listing]) -> int:
        """Add unseen listings in order. Returns how many were new."""
        added = 0
        for listing in listings:
            if listing.identity in self.seen_identities:
                continue
            self.seen_identities.add(listing.identity)
            self.collected.append(listing)
            added += 1
        return added


def planned_pages(declared_total: Optional[int], page_size: Optional[int], max_pages: int = MAX_PAGES) -> int:
    """Number of pages to request, clamped to [1, max_pages].

    Without both a declared total and a page size only page 1 is fetched.
    """
    if not declared_total or not page_size or declared_total <= 0 or page_size <= 0:
        pages = 1
    else:
        pages = math.ceil(declared_total / page_size)
    return max(1, min(pages, max_pages))


class PaginationController:
    """Drives repeated page fetches for one source into one snapshot."""

    def __init__(
        self,
        max_pages: int = MAX_PAGES,
        page_size: Optional[int] = None,
        delay: Optional[Delay] = None,
        empty_first_page_retries: int = 0,
    ):
        self.max_pages = max(1, min(max_pages, MAX_PAGES))
        self.page_size = page_size
        self.delay = delay
        self.empty_first_page_retries = max(0, empty_first_page_retries)

    async def _wait(self):
        if self.delay is not None:
            await self.delay()

    async def _fetch_first_page(self, fetch_page: FetchPage) -> PageResult:
        # FetchError on page 1 propagates: an empty result here must not be
        # confused with a failed request.
        attempts = 1 + self.empty_first_page_retries
        result = PageResult()
        for attempt in range(1, attempts + 1):
            if attempt > 1:
                logger.info("Page 1 empty, retrying (%d/%d)", attempt - 1, self.empty_first_page_retries)
                await self._wait()
            try:
                result = await fetch_page(1)
            except ParseError as e:
                logger.warning("Page 1 unparseable: %s", e)
                result = PageResult()
            if result.listings:
                break
        return result

    async def crawl(self, fetch_page: FetchPage) -> List[Listing]:
        """Fetch pages until the plan is exhausted or a guard trips.

        Args:
            fetch_page: Async callable returning the PageResult for a page number.

        Returns:
            Deduplicated listings in fetch order.
        """
        state = CrawlState()

        first = await self._fetch_first_page(fetch_page)
        state.pages_fetched = 1
        if not first.listings:
            logger.info("Page 1 returned no listings, snapshot is empty")
            return []

        state.merge(first.listings)
        state.declared_total = first.declared_total
        page_size = first.page_size or self.page_size
        total_pages = planned_pages(state.declared_total, page_size, self.max_pages)
        logger.info(
            "Page 1: %d listings, declared total %s, page size %s, planning %d page(s)",
            len(state.collected), state.declared_total, page_size, total_pages,
        )

        for page in range(2, total_pages + 1):
            await self._wait()
            try:
                result = await fetch_page(page)
            except (FetchError, ParseError) as e:
                logger.warning("Page %d failed, keeping %d listings: %s", page, len(state.collected), e)
                break
            state.pages_fetched += 1

            if not result.listings:
                logger.info("Page %d returned no listings, stopping", page)
                break

            new_count = state.merge(result.listings)
            if new_count == 0:
                logger.warning(
                    "Page %d repeated already-seen listings (pagination redirect), stopping", page
                )
                break
            logger.info("Page %d: %d new listings", page, new_count)

        logger.info(
            "Crawl finished: %d listings from %d page(s)", len(state.collected), state.pages_fetched
        )
        return state.collected
