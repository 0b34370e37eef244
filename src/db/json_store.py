"""JSON file snapshot store.

All sources live in a single JSON document shaped like
``{"lastUpdated": ..., "competitors": {key: {"updatedAt": ..., "listings": [...]}}}``.
Writes go to a temporary file in the same directory which then replaces the
document with os.replace, so readers never see a half-written file. Each
archived run is written next to it as ``results-<timestamp>.json``.
File I/O runs in a worker thread.
"""

import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime
from typing import List, Optional

from src.api.schemas import Listing, RunRecord, utcnow
from src.db.store import SnapshotStore
from src.errors import StoreError

logger = logging.getLogger(__name__)

RUN_PREFIX = "results-"


def _atomic_write(path: str, data: dict) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        raise StoreError(f"Failed to write {path}: {e}") from e


def _read_json(path: str) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise StoreError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise StoreError(f"Unexpected document in {path}: {type(data).__name__}")
    return data


class JsonSnapshotStore(SnapshotStore):
    """SnapshotStore backed by one JSON document on disk."""

    def __init__(self, path: str):
        self.path = path
        self.runs_dir = os.path.dirname(os.path.abspath(path))
        # Saves for different sources rewrite the same document
        self._write_lock = asyncio.Lock()

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {"lastUpdated": None, "competitors": {}}
        return _read_json(self.path)

    async def _competitors(self) -> dict:
        data = await asyncio.to_thread(self._read)
        return data.get("competitors") or {}

    async def load(self, source: str) -> Optional[List[Listing]]:
        entry = (await self._competitors()).get(source)
        if entry is None:
            return None
        return [Listing(**item) for item in entry.get("listings", [])]

    async def save(self, source: str, listings: List[Listing]) -> None:
        async with self._write_lock:
            data = await asyncio.to_thread(self._read)
            now = utcnow().isoformat()
            competitors = data.get("competitors") or {}
            competitors[source] = {
                "updatedAt": now,
                "listings": [l.model_dump(mode="json") for l in listings],
            }
            data["competitors"] = competitors
            data["lastUpdated"] = now
            await asyncio.to_thread(_atomic_write, self.path, data)
        logger.info("Saved snapshot for %s (%d listings) to %s", source, len(listings), self.path)

    async def last_updated(self, source: str) -> Optional[datetime]:
        entry = (await self._competitors()).get(source)
        if not entry or not entry.get("updatedAt"):
            return None
        return datetime.fromisoformat(entry["updatedAt"])

    async def list_sources(self) -> List[str]:
        return sorted(await self._competitors())

    async def last_updated_any(self) -> Optional[datetime]:
        value = (await asyncio.to_thread(self._read)).get("lastUpdated")
        return datetime.fromisoformat(value) if value else None

    async def save_run(self, record: RunRecord) -> None:
        stamp = record.started_at.strftime("%Y%m%dT%H%M%S%fZ")
        path = os.path.join(self.runs_dir, f"{RUN_PREFIX}{stamp}.json")
        await asyncio.to_thread(_atomic_write, path, record.model_dump(mode="json"))
        logger.info("Archived run results to %s", path)

    def _read_runs(self, limit: int) -> List[RunRecord]:
        if not os.path.isdir(self.runs_dir):
            return []
        names = sorted(
            (n for n in os.listdir(self.runs_dir) if n.startswith(RUN_PREFIX) and n.endswith(".json")),
            reverse=True,
        )
        return [RunRecord(**_read_json(os.path.join(self.runs_dir, n))) for n in names[:limit]]

    async def list_runs(self, limit: int = 20) -> List[RunRecord]:
        return await asyncio.to_thread(self._read_runs, limit)
