"""API routes for the inventory monitor dashboard.

Read-only views over the snapshot store, plus manual triggers that run
monitor cycles synchronously and return their change sets.
"""

import logging
from typing import Dict, List
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src import config
from src.api.schemas import CompetitorSnapshot, CycleResult, InventoryResponse, RunRecord, SourceConfig
from src.db.store import SnapshotStore
from src.errors import CycleInProgressError, FetchError, StoreError
from src.monitor.cycle import CycleState, MonitorCycle
from src.monitor.runner import run_all

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def get_cycle(request: Request) -> MonitorCycle:
    return request.app.state.cycle


def get_sources(request: Request) -> Dict[str, SourceConfig]:
    return request.app.state.sources


async def _snapshot_for(store: SnapshotStore, key: str, sources: Dict[str, SourceConfig]):
    listings = await store.load(key)
    if listings is None:
        return None
    source = sources.get(key)
    return CompetitorSnapshot(
        key=key,
        name=source.name if source else None,
        boats=listings,
        last_updated=await store.last_updated(key),
    )


@router.get("/inventory", response_model=InventoryResponse)
async def get_inventory(
    store: SnapshotStore = Depends(get_store),
    sources: Dict[str, SourceConfig] = Depends(get_sources),
):
    """All stored snapshots with the most recent update time."""
    try:
        competitors = {}
        for key in await store.list_sources():
            snapshot = await _snapshot_for(store, key, sources)
            if snapshot is not None:
                competitors[key] = snapshot
        return InventoryResponse(timestamp=await store.last_updated_any(), competitors=competitors)
    except StoreError as e:
        logger.error("Error reading inventory: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/competitor/{key}", response_model=CompetitorSnapshot)
async def get_competitor(
    key: str,
    store: SnapshotStore = Depends(get_store),
    sources: Dict[str, SourceConfig] = Depends(get_sources),
):
    """Stored snapshot for one competitor."""
    try:
        snapshot = await _snapshot_for(store, key, sources)
    except StoreError as e:
        logger.error("Error reading snapshot for %s: %s", key, e)
        raise HTTPException(status_code=500, detail=str(e))
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Competitor not found")
    return snapshot


@router.post("/monitor/run")
async def run_monitor(
    cycle: MonitorCycle = Depends(get_cycle),
    sources: Dict[str, SourceConfig] = Depends(get_sources),
):
    """Run a cycle for every configured source and wait for the results."""
    results = await run_all(
        cycle,
        list(sources.values()),
        concurrent=config.CONCURRENT_SOURCES,
        source_delay=config.SOURCE_DELAY_SECONDS,
    )
    return {"success": True, "message": "Monitor run completed", "results": results}


@router.post("/monitor/run/{key}", response_model=CycleResult)
async def run_monitor_source(
    key: str,
    cycle: MonitorCycle = Depends(get_cycle),
    sources: Dict[str, SourceConfig] = Depends(get_sources),
):
    """Run one cycle for one source and return its change set."""
    source = sources.get(key)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Unknown source '{key}'")

    try:
        return await cycle.run(source)
    except CycleInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except FetchError as e:
        logger.error("Fetch failed for %s: %s", key, e)
        raise HTTPException(status_code=502, detail=str(e))
    except StoreError as e:
        logger.error("Store failed for %s: %s", key, e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/runs", response_model=List[RunRecord])
async def list_runs(
    limit: int = Query(20, ge=1, le=200),
    store: SnapshotStore = Depends(get_store),
):
    """Archived results of recent monitor runs, newest first."""
    try:
        return await store.list_runs(limit)
    except StoreError as e:
        logger.error("Error reading run history: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/health")
async def health(
    cycle: MonitorCycle = Depends(get_cycle),
    sources: Dict[str, SourceConfig] = Depends(get_sources),
):
    running = [key for key in sources if cycle.state(key) != CycleState.IDLE]
    return {"ok": True, "sources": len(sources), "running": running}
