"""Live overlay cache.

Holds the most recent fragments fetched from the live data URL, indexed
by server id. The whole mapping is replaced on every successful fetch and
a failed fetch leaves it untouched.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from live_data_client import FetchResult, Ignored

logger = logging.getLogger(__name__)

DEFAULT_TTL = 60.0

Fetcher = Callable[[str], Awaitable[FetchResult]]


class LiveOverlayCache:
    """TTL-bounded cache of live server fragments"""

    def __init__(
        self,
        fetcher: Fetcher,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the cache.

        Args:
            fetcher: Coroutine function returning fragments or Ignored for a URL
            ttl: Minimum seconds between two fetches
            clock: Returns the current time in seconds
            log: Sink for ignored failures
        """
        self._fetcher = fetcher
        self.ttl = ttl
        self._clock = clock
        self._log = log or logger
        self.last_fetch: float = 0.0
        self.entries: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._attempts = 0

    def is_fresh(self) -> bool:
        return self._clock() - self.last_fetch < self.ttl

    def force_stale(self) -> None:
        """Make the next refresh eligible immediately."""
        self.last_fetch = 0.0

    async def refresh(self, live_data_url: Optional[str]) -> bool:
        """Fetch live data if a URL is configured and the TTL has elapsed.

        Returns:
            True if the entries were replaced, False otherwise
        """
        url = (live_data_url or "").strip()
        if not url:
            return False
        if self.is_fresh():
            return False

        attempt = self._attempts
        async with self._lock:
            # Callers that queued behind an in-flight fetch share its outcome
            if self._attempts != attempt or self.is_fresh():
                return False
            self._attempts += 1

            result = await self._fetcher(url)
            if isinstance(result, Ignored):
                self._log.warning(f"Live data refresh ignored: {result.reason}")
                return False

            self.entries = index_fragments(result)
            self.last_fetch = self._clock()
        self._log.info(f"Live overlay holds {len(self.entries)} server(s)")
        return True


def index_fragments(fragments: List[Any]) -> Dict[str, Dict[str, Any]]:
    """Index fragments by id, dropping any without one."""
    indexed = {}
    for fragment in fragments:
        if not isinstance(fragment, dict) or not fragment.get("id"):
            continue
        key = str(fragment["id"])
        indexed[key] = {**fragment, "id": key}
    return indexed
