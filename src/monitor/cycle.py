"""One monitor cycle for one dealer source.

load previous snapshot -> crawl -> diff -> save (full replace) -> notify.

States per source go idle -> crawling -> reconciling -> idle. Cycles for the
same source are mutually exclusive: starting one while another is active
raises CycleInProgressError instead of queueing, so two writers never race on
the stored snapshot. Cycles for different sources may run concurrently.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict

from src.api.schemas import CycleResult, SourceConfig
from src.config import MAX_PAGES
from src.db.store import SnapshotStore
from src.errors import CycleInProgressError
from src.notify.notifier import NotificationSink, should_notify
from src.pipeline.change_detector import diff_snapshots, build_change_summary
from src.pipeline.pagination import PaginationController
from src.scraper.humanizer import Humanizer

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = "idle"
    CRAWLING = "crawling"
    RECONCILING = "reconciling"


class MonitorCycle:
    """Runs monitor cycles against injected store, notifier and fetchers.

    ``fetcher_factory(source)`` must return an async context manager whose
    ``fetch_page(page)`` returns a PageResult.
    """

    def __init__(
        self,
        store: SnapshotStore,
        notifier: NotificationSink,
        fetcher_factory: Callable,
        max_pages: int = MAX_PAGES,
    ):
        self.store = store
        self.notifier = notifier
        self.fetcher_factory = fetcher_factory
        self.max_pages = max_pages
        self._locks: Dict[str, asyncio.Lock] = {}
        self._states: Dict[str, CycleState] = {}

    def state(self, source_key: str) -> CycleState:
        return self._states.get(source_key, CycleState.IDLE)

    def _lock_for(self, source_key: str) -> asyncio.Lock:
        if source_key not in self._locks:
            self._locks[source_key] = asyncio.Lock()
        return self._locks[source_key]

    async def run(self, source: SourceConfig) -> CycleResult:
        """Run one cycle for ``source``.

        Raises:
            CycleInProgressError: a cycle for this source is already active.
            FetchError: page 1 could not be fetched.
            StoreError: the snapshot could not be loaded or saved.
        """
        lock = self._lock_for(source.key)
        if lock.locked():
            raise CycleInProgressError(source.key)

        async with lock:
            try:
                return await self._run_locked(source)
            finally:
                self._states[source.key] = CycleState.IDLE

    async def _run_locked(self, source: SourceConfig) -> CycleResult:
        self._states[source.key] = CycleState.CRAWLING
        previous = await self.store.load(source.key)
        if previous is None:
            logger.info("%s: no previous snapshot, first run", source.key)

        controller = PaginationController(
            max_pages=min(source.max_pages, self.max_pages),
            page_size=source.page_size,
            delay=Humanizer(source.page_delay_seconds, source.page_delay_jitter).delay,
            empty_first_page_retries=source.empty_first_page_retries,
        )
        async with self.fetcher_factory(source) as fetcher:
            snapshot = await controller.crawl(fetcher.fetch_page)

        self._states[source.key] = CycleState.RECONCILING
        changes = diff_snapshots(previous, snapshot)
        summary = build_change_summary(changes)
        await self.store.save(source.key, snapshot)
        logger.info("%s: %d listings, changes %s", source.key, len(snapshot), summary)

        notified = False
        if should_notify(source.notify_policy, changes):
            try:
                await self.notifier.notify(source, changes)
                notified = True
            except Exception as e:
                logger.error("%s: notification failed: %s", source.key, e)

        return CycleResult(
            source=source.key,
            name=source.name,
            total=len(snapshot),
            changes=changes,
            summary=summary,
            notified=notified,
        )
