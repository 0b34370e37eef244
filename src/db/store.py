"""SnapshotStore interface and backend selection.

A store holds exactly one snapshot per source. ``save`` replaces the whole
snapshot; readers never observe a partially written one.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from src import config
from src.api.schemas import Listing, RunRecord


class SnapshotStore(ABC):
    """Abstract persistence boundary for listing snapshots."""

    @abstractmethod
    async def load(self, source: str) -> Optional[List[Listing]]:
        """Return the stored snapshot, or None if the source was never saved."""
        ...

    @abstractmethod
    async def save(self, source: str, listings: List[Listing]) -> None:
        """Replace the stored snapshot for a source."""
        ...

    @abstractmethod
    async def last_updated(self, source: str) -> Optional[datetime]:
        ...

    @abstractmethod
    async def list_sources(self) -> List[str]:
        ...

    @abstractmethod
    async def save_run(self, record: RunRecord) -> None:
        """Archive the results of one run across all sources."""
        ...

    @abstractmethod
    async def list_runs(self, limit: int = 20) -> List[RunRecord]:
        """Most recent archived runs, newest first."""
        ...

    async def init(self) -> None:
        """Prepare the backing storage. No-op by default."""

    async def last_updated_any(self) -> Optional[datetime]:
        """Most recent save time across all sources."""
        times = [await self.last_updated(s) for s in await self.list_sources()]
        times = [t for t in times if t is not None]
        return max(times) if times else None


def create_store(backend: str = None) -> SnapshotStore:
    """Build the store selected by SNAPSHOT_BACKEND (sqlite or json)."""
    backend = (backend or config.SNAPSHOT_BACKEND).lower()

    if backend == "sqlite":
        from src.db.database import SqliteSnapshotStore
        return SqliteSnapshotStore(config.DB_PATH)
    if backend == "json":
        from src.db.json_store import JsonSnapshotStore
        return JsonSnapshotStore(config.SNAPSHOT_JSON_PATH)

    raise ValueError(f"Unknown snapshot backend: '{backend}'. Available: ['sqlite', 'json']")
