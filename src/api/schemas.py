"""Pydantic models for listings, change sets, source configs and API responses."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Listing(BaseModel):
    """One boat listing as observed on a dealer page during one crawl."""
    identity: str
    title: str
    price: str = ""
    link: Optional[str] = None
    status: str = "available"
    image: Optional[str] = None
    fetched_at: datetime = Field(default_factory=utcnow)


class PageResult(BaseModel):
    """What a PageFetcher returns for a single page number."""
    listings: List[Listing] = []
    declared_total: Optional[int] = None
    page_size: Optional[int] = None


class PriceChange(BaseModel):
    listing: Listing
    old_price: str
    new_price: str


class StatusChange(BaseModel):
    listing: Listing
    old_status: str
    new_status: str


class ChangeSet(BaseModel):
    """Categorized delta between two snapshots of one source."""
    added: List[Listing] = []
    removed: List[Listing] = []
    price_changed: List[PriceChange] = []
    status_changed: List[StatusChange] = []

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.price_changed or self.status_changed)

    @property
    def sold(self) -> List[StatusChange]:
        return [c for c in self.status_changed if c.new_status == "sold"]

    @property
    def pending(self) -> List[StatusChange]:
        return [c for c in self.status_changed if c.new_status == "pending"]


class SourceConfig(BaseModel):
    """Per-dealer crawl settings and extraction selectors.

    Every dealer site is described by one of these records; a single generic
    extractor consumes them.
    """
    key: str
    name: str
    base_url: str
    page_url_template: str
    first_page_url: Optional[str] = None
    page_size: Optional[int] = None
    max_pages: int = 20
    page_delay_seconds: float = 2.0
    page_delay_jitter: float = 0.0
    timeout_seconds: float = 10.0
    notify_policy: Literal["always", "on-change", "on-change-only"] = "on-change"
    empty_first_page_retries: int = 0
    request_headers: Dict[str, str] = {}

    listing_selectors: List[str] = [
        ".boat-listing",
        ".inventory-item",
        ".boat-item",
        "[class*='boat']",
        "[data-boat]",
        ".product-item",
        ".listing",
    ]
    title_selector: str = "h2, h3, .title, [class*='title']"
    price_selector: str = ".price, [class*='price']"
    status_selector: str = ".status, [class*='status']"
    link_selector: str = "a[href]"
    image_selector: str = "img[src]"
    total_selector: Optional[str] = None
    total_pattern: Optional[str] = None

    def page_url(self, page: int) -> str:
        if page == 1 and self.first_page_url:
            return self.first_page_url
        return self.page_url_template.format(page=page)


class CycleResult(BaseModel):
    """Outcome of one completed monitor cycle for one source."""
    source: str
    name: str
    total: int
    changes: ChangeSet
    summary: Dict[str, int] = {}
    notified: bool = False
    completed_at: datetime = Field(default_factory=utcnow)


class CompetitorSnapshot(BaseModel):
    """Stored snapshot of one source as served by the dashboard."""
    key: str
    name: Optional[str] = None
    boats: List[Listing] = []
    last_updated: Optional[datetime] = None


class InventoryResponse(BaseModel):
    timestamp: Optional[datetime] = None
    competitors: Dict[str, CompetitorSnapshot] = {}


class RunRecord(BaseModel):
    """Archived outcome of one run across all sources."""
    started_at: datetime
    completed_at: datetime = Field(default_factory=utcnow)
    results: Dict[str, dict] = {}
