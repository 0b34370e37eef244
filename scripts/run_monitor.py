"""Standalone monitor run for cron or GitHub Actions.

Runs one monitor cycle (crawl -> diff -> save -> notify) for every
configured dealer source, then exits. Exits non-zero when any source failed.
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from src import config
from src.db.store import create_store
from src.monitor.cycle import MonitorCycle
from src.monitor.runner import run_all
from src.notify.notifier import create_notifier
from src.scraper.source_factory import create_fetcher, load_sources

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("run_monitor")


async def run_monitor():
    store = create_store()
    await store.init()
    cycle = MonitorCycle(
        store=store,
        notifier=create_notifier(),
        fetcher_factory=create_fetcher,
        max_pages=config.MAX_PAGES,
    )
    sources = load_sources(config.MONITOR_SOURCES)
    return await run_all(
        cycle,
        sources,
        concurrent=config.CONCURRENT_SOURCES,
        source_delay=config.SOURCE_DELAY_SECONDS,
    )


def main():
    logger.info("Starting monitor run")
    results = asyncio.run(run_monitor())
    for key, result in results.items():
        logger.info("%s: %s", key, {k: v for k, v in result.items() if k != "changes"})

    failed = [key for key, r in results.items() if r["status"] == "failed"]
    if failed:
        logger.error("Failed sources: %s", failed)
        sys.exit(1)


if __name__ == "__main__":
    main()
