"""Error taxonomy for the monitor pipeline.

FetchError and StoreError abort a cycle when they hit page 1 or the store.
ParseError is absorbed at the page boundary. NotifyError is logged by the
cycle and never rolls back a snapshot write.
"""

from typing import Optional


class MonitorError(Exception):
    """Base class for all monitor errors."""


class FetchError(MonitorError):
    """Network failure, timeout, or non-2xx response while fetching a page."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class ParseError(MonitorError):
    """Expected listing structure absent from a page."""


class StoreError(MonitorError):
    """Read or write failure on persisted snapshot state."""


class NotifyError(MonitorError):
    """Change report could not be delivered."""


class CycleInProgressError(MonitorError):
    """A monitor cycle for this source is already crawling or reconciling."""

    def __init__(self, source: str):
        super().__init__(f"Monitor cycle already running for '{source}'")
        self.source = source
