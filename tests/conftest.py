"""Shared fakes for monitor tests."""

import pytest

from src.api.schemas import ChangeSet, Listing, PageResult, SourceConfig
from src.db.store import SnapshotStore
from src.errors import NotifyError
from src.notify.notifier import NotificationSink
from src.pipeline.normalizer import build_listing


def boat(title, price="$10,000", **kwargs) -> Listing:
    return build_listing(title=title, price=price, **kwargs)


class ScriptedFetcher:
    """PageFetcher that replays a page-number -> result/exception script."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def fetch_page(self, page):
        self.requested.append(page)
        outcome = self.pages.get(page, PageResult())
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, list):
            return PageResult(listings=outcome)
        return outcome


class MemoryStore(SnapshotStore):
    def __init__(self, fail_save: Exception = None):
        self.snapshots = {}
        self.saves = 0
        self.runs = []
        self.fail_save = fail_save

    async def load(self, source):
        snapshot = self.snapshots.get(source)
        return list(snapshot) if snapshot is not None else None

    async def save(self, source, listings):
        if self.fail_save:
            raise self.fail_save
        self.saves += 1
        self.snapshots[source] = list(listings)

    async def last_updated(self, source):
        return None

    async def list_sources(self):
        return sorted(self.snapshots)

    async def save_run(self, record):
        self.runs.insert(0, record)

    async def list_runs(self, limit=20):
        return self.runs[:limit]


class RecordingNotifier(NotificationSink):
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    async def notify(self, source: SourceConfig, changes: ChangeSet) -> None:
        self.calls.append((source.key, changes))
        if self.fail:
            raise NotifyError("smtp down")


def make_source(**kwargs) -> SourceConfig:
    defaults = {
        "key": "marks",
        "name": "Marks Leisure Time Marine",
        "base_url": "https://marks.example.com",
        "page_url_template": "https://marks.example.com/inventory?page={page}",
        "page_size": 2,
        "max_pages": 10,
        "page_delay_seconds": 0,
    }
    defaults.update(kwargs)
    return SourceConfig(**defaults)


@pytest.fixture
def source():
    return make_source()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()
