"""SQLite snapshot store.

Each source owns one row in ``snapshots`` and an ordered set of rows in
``snapshot_listings``. A save deletes and reinserts the listings inside one
IMMEDIATE transaction, so a concurrent reader sees either the old snapshot
or the new one.
"""

import aiosqlite
import json
import logging
from datetime import datetime
from typing import List, Optional

from src.api.schemas import Listing, RunRecord, utcnow
from src.db.store import SnapshotStore
from src.errors import StoreError

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS snapshots (
        source TEXT PRIMARY KEY,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS snapshot_listings (
        source TEXT NOT NULL,
        position INTEGER NOT NULL,
        identity TEXT NOT NULL,
        title TEXT NOT NULL,
        price TEXT NOT NULL DEFAULT '',
        link TEXT,
        status TEXT NOT NULL DEFAULT 'available',
        image TEXT,
        fetched_at TEXT NOT NULL,
        PRIMARY KEY (source, position)
    );

    CREATE INDEX IF NOT EXISTS idx_listings_source ON snapshot_listings(source);

    CREATE TABLE IF NOT EXISTS monitor_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        started_at TEXT NOT NULL,
        completed_at TEXT NOT NULL,
        completed_count INTEGER DEFAULT 0,
        failed_count INTEGER DEFAULT 0,
        results TEXT NOT NULL DEFAULT '{}'
    );
"""


async def get_db(db_path: str) -> aiosqlite.Connection:
    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    return db


class SqliteSnapshotStore(SnapshotStore):
    """SnapshotStore backed by a SQLite file via aiosqlite."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._initialized = False

    async def _connect(self) -> aiosqlite.Connection:
        try:
            if not self._initialized:
                await self.init()
            return await get_db(self.db_path)
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(f"Cannot open snapshot database {self.db_path}: {e}") from e

    async def init(self) -> None:
        """Create tables if they don't exist."""
        db = await get_db(self.db_path)
        try:
            await db.executescript(SCHEMA)
            await db.commit()
        finally:
            await db.close()
        self._initialized = True

    async def load(self, source: str) -> Optional[List[Listing]]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT 1 FROM snapshots WHERE source = ?", (source,)
            )
            if await cursor.fetchone() is None:
                return None

            cursor = await db.execute(
                """SELECT identity, title, price, link, status, image, fetched_at
                   FROM snapshot_listings WHERE source = ? ORDER BY position""",
                (source,),
            )
            rows = await cursor.fetchall()
            return [
                Listing(
                    identity=r["identity"], title=r["title"], price=r["price"],
                    link=r["link"], status=r["status"], image=r["image"],
                    fetched_at=datetime.fromisoformat(r["fetched_at"]),
                )
                for r in rows
            ]
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to load snapshot for '{source}': {e}") from e
        finally:
            await db.close()

    async def save(self, source: str, listings: List[Listing]) -> None:
        db = await self._connect()
        try:
            await db.execute("BEGIN IMMEDIATE")
            await db.execute("DELETE FROM snapshot_listings WHERE source = ?", (source,))
            await db.executemany(
                """INSERT INTO snapshot_listings
                   (source, position, identity, title, price, link, status, image, fetched_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        source, position, l.identity, l.title, l.price, l.link,
                        l.status, l.image, l.fetched_at.isoformat(),
                    )
                    for position, l in enumerate(listings)
                ],
            )
            await db.execute(
                """INSERT INTO snapshots (source, updated_at) VALUES (?, ?)
                   ON CONFLICT(source) DO UPDATE SET updated_at=excluded.updated_at""",
                (source, utcnow().isoformat()),
            )
            await db.commit()
            logger.info("Saved snapshot for %s (%d listings)", source, len(listings))
        except aiosqlite.Error as e:
            await db.rollback()
            raise StoreError(f"Failed to save snapshot for '{source}': {e}") from e
        finally:
            await db.close()

    async def last_updated(self, source: str) -> Optional[datetime]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT updated_at FROM snapshots WHERE source = ?", (source,)
            )
            row = await cursor.fetchone()
            return datetime.fromisoformat(row["updated_at"]) if row else None
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read update time for '{source}': {e}") from e
        finally:
            await db.close()

    async def list_sources(self) -> List[str]:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT source FROM snapshots ORDER BY source")
            return [row["source"] for row in await cursor.fetchall()]
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to list snapshot sources: {e}") from e
        finally:
            await db.close()

    async def save_run(self, record: RunRecord) -> None:
        statuses = [r.get("status") for r in record.results.values()]
        db = await self._connect()
        try:
            await db.execute(
                """INSERT INTO monitor_runs
                   (started_at, completed_at, completed_count, failed_count, results)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    record.started_at.isoformat(), record.completed_at.isoformat(),
                    statuses.count("completed"), statuses.count("failed"),
                    json.dumps(record.results),
                ),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to record monitor run: {e}") from e
        finally:
            await db.close()

    async def list_runs(self, limit: int = 20) -> List[RunRecord]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                """SELECT started_at, completed_at, results FROM monitor_runs
                   ORDER BY id DESC LIMIT ?""",
                (limit,),
            )
            return [
                RunRecord(
                    started_at=datetime.fromisoformat(r["started_at"]),
                    completed_at=datetime.fromisoformat(r["completed_at"]),
                    results=json.loads(r["results"]),
                )
                for r in await cursor.fetchall()
            ]
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to list monitor runs: {e}") from e
        finally:
            await db.close()
