"""
In-process TTL cache holding the current Plex availability index.
"""

import threading
import time
from typing import Callable, Dict, Optional

from src.plexrequests.apps.plex.availability_index import AvailabilityIndex
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

INDEX_CACHE_KEY = "plex_availability_index"
DEFAULT_TTL_SECONDS = 600


class AvailabilityIndexCache:
    """Holds one AvailabilityIndex under a fixed key for ttl_seconds.

    Readers get whatever index is published at the moment they look; a rebuild swaps
    the reference under _lock and never mutates a published index. Concurrent misses
    are collapsed into a single build through _build_lock.
    """

    def __init__(self, builder, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.builder = builder
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, AvailabilityIndex] = {}
        self._lock = threading.Lock()
        self._build_lock = threading.Lock()

    def _is_fresh(self, index: Optional[AvailabilityIndex]) -> bool:
        return index is not None and (self.clock() - index.built_at) < self.ttl_seconds

    def peek(self) -> Optional[AvailabilityIndex]:
        """Current index (fresh or not) without triggering a build."""
        with self._lock:
            return self._entries.get(INDEX_CACHE_KEY)

    def get_or_build(self) -> AvailabilityIndex:
        index = self.peek()
        if self._is_fresh(index):
            return index

        with self._build_lock:
            # Another thread may have finished a build while we waited
            index = self.peek()
            if self._is_fresh(index):
                return index
            logger.info("Plex availability index missing or expired, rebuilding")
            index = self.builder.build()
            with self._lock:
                self._entries[INDEX_CACHE_KEY] = index
            return index

    def invalidate(self):
        with self._lock:
            self._entries.pop(INDEX_CACHE_KEY, None)

    def force_rebuild(self) -> AvailabilityIndex:
        self.invalidate()
        return self.get_or_build()
