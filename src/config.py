"""Runtime settings read from the environment (and a local .env file)."""

import os

from dotenv import load_dotenv

load_dotenv()

# Snapshot persistence
SNAPSHOT_BACKEND = os.environ.get("SNAPSHOT_BACKEND", "sqlite")  # sqlite | json
DB_PATH = os.environ.get("MONITOR_DB", "inventory.db")
SNAPSHOT_JSON_PATH = os.environ.get("SNAPSHOT_JSON_PATH", os.path.join("data", "inventory.json"))

# Crawl limits. MAX_PAGES is a hard ceiling no source config can exceed.
MAX_PAGES = int(os.environ.get("MAX_PAGES", "20"))
SOURCE_DELAY_SECONDS = float(os.environ.get("SOURCE_DELAY_SECONDS", "2.0"))
CONCURRENT_SOURCES = os.environ.get("CONCURRENT_SOURCES", "false").lower() in ("1", "true", "yes")

# Comma-separated source keys; empty means every config in configs/
MONITOR_SOURCES = [
    s.strip() for s in os.environ.get("MONITOR_SOURCES", "").split(",") if s.strip()
]

# Email delivery
SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.environ.get("SENDGRID_FROM_EMAIL")
SENDGRID_TO_EMAILS = [
    e.strip() for e in os.environ.get("SENDGRID_TO_EMAILS", "").split(",") if e.strip()
]

# Dashboard server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
