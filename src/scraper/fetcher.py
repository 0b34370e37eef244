"""HTTP page fetcher for dealer inventory pages.

Fetches one page per call with httpx and runs the generic extractor over it.
Transport errors, timeouts and non-2xx responses become FetchError. A page
whose structure cannot be parsed is returned as an empty PageResult.
"""

import httpx
import logging
from typing import Optional

from src.api.schemas import PageResult, SourceConfig, utcnow
from src.errors import FetchError, ParseError
from src.scraper.extractor import extract_listings, extract_declared_total

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class DealerPageFetcher:
    """PageFetcher for one dealer source.

    Use as an async context manager so the underlying client is closed.
    A client can be injected (tests pass one built on httpx.MockTransport).
    """

    def __init__(self, source: SourceConfig, client: Optional[httpx.AsyncClient] = None):
        self.source = source
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "DealerPageFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.source.timeout_seconds,
                headers={**DEFAULT_HEADERS, **self.source.request_headers},
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_page(self, page: int) -> PageResult:
        if self._client is None:
            raise RuntimeError("DealerPageFetcher used outside 'async with'")

        url = self.source.page_url(page)
        logger.info("Fetching %s page %d: %s", self.source.key, page, url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        html = response.text
        try:
            listings = extract_listings(html, self.source, fetched_at=utcnow())
        except ParseError as e:
            logger.warning("%s page %d: %s", self.source.key, page, e)
            return PageResult()

        return PageResult(
            listings=listings,
            declared_total=extract_declared_total(html, self.source),
            page_size=self.source.page_size,
        )
