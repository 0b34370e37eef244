"""Dealer inventory monitor.

FastAPI application entry point. Serves the dashboard API over the stored
snapshots and the manual monitor triggers.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from src import config
from src.api.routes import router
from src.db.store import create_store
from src.monitor.cycle import MonitorCycle
from src.notify.notifier import create_notifier
from src.scraper.source_factory import create_fetcher, load_sources

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = create_store()
    await store.init()
    app.state.store = store
    app.state.sources = {s.key: s for s in load_sources(config.MONITOR_SOURCES)}
    app.state.cycle = MonitorCycle(
        store=store,
        notifier=create_notifier(),
        fetcher_factory=create_fetcher,
        max_pages=config.MAX_PAGES,
    )
    logging.getLogger(__name__).info(
        "Snapshot store initialized (%s), %d sources", config.SNAPSHOT_BACKEND, len(app.state.sources)
    )
    yield


app = FastAPI(
    title="Dealer Inventory Monitor",
    description="Crawls marine dealer inventory pages and reports listing changes",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)
