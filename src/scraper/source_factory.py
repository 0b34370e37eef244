"""Source factory: loads dealer configs and builds page fetchers.

Each dealer has a JSON file in configs/{key}.json describing its URLs and
selectors. Adding a dealer means adding a config file, not code.
"""

import json
import os
import logging
from typing import List

from src.api.schemas import SourceConfig
from src.scraper.fetcher import DealerPageFetcher

logger = logging.getLogger(__name__)

CONFIGS_DIR = os.environ.get(
    "MONITOR_CONFIGS_DIR",
    os.path.join(os.path.dirname(__file__), "..", "..", "configs"),
)


def available_sources(configs_dir: str = CONFIGS_DIR) -> List[str]:
    """Keys of every source with a config file, sorted."""
    if not os.path.isdir(configs_dir):
        return []
    return sorted(
        name[:-len(".json")] for name in os.listdir(configs_dir) if name.endswith(".json")
    )


def load_source(key: str, configs_dir: str = CONFIGS_DIR) -> SourceConfig:
    """Load and validate configs/{key}.json."""
    config_path = os.path.join(configs_dir, f"{key}.json")

    if not os.path.exists(config_path):
        raise ValueError(
            f"No config found for source '{key}' at {config_path}. "
            f"Available: {available_sources(configs_dir)}"
        )

    with open(config_path) as f:
        data = json.load(f)

    data.setdefault("key", key)
    return SourceConfig(**data)


def load_sources(keys: List[str] = None, configs_dir: str = CONFIGS_DIR) -> List[SourceConfig]:
    """Load the given sources, or all configured ones when keys is empty."""
    keys = keys or available_sources(configs_dir)
    sources = [load_source(key, configs_dir) for key in keys]
    logger.info("Loaded %d source config(s): %s", len(sources), [s.key for s in sources])
    return sources


def create_fetcher(source: SourceConfig) -> DealerPageFetcher:
    return DealerPageFetcher(source)
