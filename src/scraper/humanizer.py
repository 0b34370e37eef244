"""Politeness delay between requests to the same dealer host.

A fixed delay with optional jitter, awaited before each page after the first
and between sources. It throttles load on the remote host; nothing relies on
it for correctness.
"""

import asyncio
import random
import logging

logger = logging.getLogger(__name__)


class Humanizer:
    """Awaitable fixed delay, optionally jittered by +/- ``jitter`` fraction."""

    def __init__(self, base_delay: float = 2.0, jitter: float = 0.0):
        self.base_delay = max(0.0, base_delay)
        self.jitter = max(0.0, min(jitter, 1.0))
        self._request_count = 0

    def next_wait(self) -> float:
        if not self.jitter:
            return self.base_delay
        return self.base_delay * random.uniform(1.0 - self.jitter, 1.0 + self.jitter)

    async def delay(self):
        """Wait before the next request."""
        self._request_count += 1
        wait = self.next_wait()
        logger.debug("Politeness delay: %.2fs (request #%d)", wait, self._request_count)
        if wait > 0:
            await asyncio.sleep(wait)
