"""Tests for the SQLite and JSON snapshot stores."""

import json
import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from conftest import boat
from src.api.schemas import RunRecord
from src.db.database import SqliteSnapshotStore
from src.db.json_store import JsonSnapshotStore
from src.db.store import create_store
from src.errors import StoreError


@pytest_asyncio.fixture(params=["sqlite", "json"])
async def store(request, tmp_path):
    if request.param == "sqlite":
        s = SqliteSnapshotStore(str(tmp_path / "inventory.db"))
    else:
        s = JsonSnapshotStore(str(tmp_path / "data" / "inventory.json"))
    await s.init()
    return s


@pytest.mark.asyncio
async def test_missing_source_loads_none(store):
    assert await store.load("marks") is None
    assert await store.last_updated("marks") is None
    assert await store.last_updated_any() is None


@pytest.mark.asyncio
async def test_round_trip_preserves_order_and_fields(store):
    listings = [
        boat("2024 Lund 1650", "$21,000", link="https://a.com/1", image="https://a.com/1.jpg"),
        boat("2019 Sea Ray", "Call", status="sold"),
    ]
    await store.save("marks", listings)

    loaded = await store.load("marks")
    assert loaded == listings
    assert await store.list_sources() == ["marks"]
    assert await store.last_updated("marks") is not None


@pytest.mark.asyncio
async def test_save_replaces_whole_snapshot(store):
    await store.save("marks", [boat("A"), boat("B"), boat("C")])
    await store.save("marks", [boat("D")])
    loaded = await store.load("marks")
    assert [l.title for l in loaded] == ["D"]


@pytest.mark.asyncio
async def test_empty_snapshot_is_not_missing(store):
    await store.save("marks", [])
    assert await store.load("marks") == []


@pytest.mark.asyncio
async def test_sources_are_independent(store):
    await store.save("marks", [boat("A")])
    await store.save("bryce", [boat("B")])
    await store.save("marks", [boat("C")])
    assert [l.title for l in await store.load("bryce")] == ["B"]
    assert await store.list_sources() == ["bryce", "marks"]
    assert await store.last_updated_any() is not None


@pytest.mark.asyncio
async def test_json_store_leaves_no_temp_files(tmp_path):
    path = tmp_path / "inventory.json"
    store = JsonSnapshotStore(str(path))
    await store.save("marks", [boat("A")])
    await store.save("marks", [boat("B")])

    assert os.listdir(tmp_path) == ["inventory.json"]
    data = json.loads(path.read_text())
    assert data["competitors"]["marks"]["listings"][0]["title"] == "B"
    assert data["lastUpdated"] is not None


@pytest.mark.asyncio
async def test_json_store_corrupt_file_raises_store_error(tmp_path):
    path = tmp_path / "inventory.json"
    path.write_text("{not json")
    with pytest.raises(StoreError):
        await JsonSnapshotStore(str(path)).load("marks")


@pytest.mark.asyncio
async def test_sqlite_unwritable_path_raises_store_error(tmp_path):
    store = SqliteSnapshotStore(str(tmp_path / "missing-dir" / "inventory.db"))
    with pytest.raises(StoreError):
        await store.load("marks")


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_store("redis")


@pytest.mark.asyncio
async def test_run_history_newest_first(store):
    first = RunRecord(
        started_at=datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
        results={"marks": {"status": "completed", "total": 3}},
    )
    second = RunRecord(
        started_at=datetime(2026, 10, 2, 8, 0, tzinfo=timezone.utc),
        results={"marks": {"status": "failed", "error": "HTTP 503"}},
    )
    await store.save_run(first)
    await store.save_run(second)

    runs = await store.list_runs()
    assert [r.started_at for r in runs] == [second.started_at, first.started_at]
    assert runs[0].results["marks"]["error"] == "HTTP 503"
    assert len(await store.list_runs(limit=1)) == 1


@pytest.mark.asyncio
async def test_json_store_runs_written_beside_inventory(tmp_path):
    store = JsonSnapshotStore(str(tmp_path / "inventory.json"))
    await store.save_run(RunRecord(
        started_at=datetime(2026, 10, 19, 6, 30, tzinfo=timezone.utc), results={},
    ))
    assert os.listdir(tmp_path) == ["results-20261019T063000000000Z.json"]


@pytest.mark.asyncio
async def test_json_store_document_without_competitors(tmp_path):
    path = tmp_path / "inventory.json"
    path.write_text(json.dumps({"lastUpdated": None}))
    store = JsonSnapshotStore(str(path))

    assert await store.load("marks") is None
    assert await store.list_sources() == []
    await store.save("marks", [boat("A")])
    assert [l.title for l in await store.load("marks")] == ["A"]


@pytest.mark.asyncio
async def test_json_store_non_object_document_raises_store_error(tmp_path):
    path = tmp_path / "inventory.json"
    path.write_text("[]")
    with pytest.raises(StoreError):
        await JsonSnapshotStore(str(path)).load("marks")
