"""Runs monitor cycles across all configured dealer sources.

Sources run sequentially with a politeness pause between them, or
concurrently when enabled. A failing source is recorded and does not stop
the others. Every run is archived through the snapshot store.
"""

import asyncio
import logging
from typing import Dict, List

from src.api.schemas import RunRecord, SourceConfig, utcnow
from src.config import SOURCE_DELAY_SECONDS
from src.errors import CycleInProgressError, StoreError
from src.monitor.cycle import MonitorCycle
from src.scraper.humanizer import Humanizer

logger = logging.getLogger(__name__)


async def run_source(cycle: MonitorCycle, source: SourceConfig) -> dict:
    """Run one cycle and turn its outcome into a result record."""
    try:
        result = await cycle.run(source)
    except CycleInProgressError as e:
        logger.warning("%s: %s", source.key, e)
        return {"status": "skipped", "error": str(e)}
    except Exception as e:
        logger.error("%s: cycle failed: %s", source.key, e, exc_info=True)
        return {"status": "failed", "error": str(e)}

    return {
        "status": "completed",
        "total": result.total,
        "notified": result.notified,
        "changes": result.changes.model_dump(mode="json"),
        **result.summary,
    }


async def run_all(
    cycle: MonitorCycle,
    sources: List[SourceConfig],
    concurrent: bool = False,
    source_delay: float = SOURCE_DELAY_SECONDS,
) -> Dict[str, dict]:
    """Run a cycle for every source. Returns results keyed by source key."""
    started_at = utcnow()
    if concurrent:
        outcomes = await asyncio.gather(*(run_source(cycle, s) for s in sources))
        results = {s.key: outcome for s, outcome in zip(sources, outcomes)}
    else:
        humanizer = Humanizer(base_delay=source_delay)
        results = {}
        for index, source in enumerate(sources):
            if index > 0:
                await humanizer.delay()
            logger.info("Monitoring %s (%s)", source.name, source.key)
            results[source.key] = await run_source(cycle, source)

    # Snapshots are already saved at this point
    try:
        await cycle.store.save_run(RunRecord(started_at=started_at, results=results))
    except StoreError as e:
        logger.error("Failed to archive run results: %s", e)
    return results
