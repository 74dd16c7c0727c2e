"""
In-memory result cache with TTL expiry and insertion-order eviction.

Entries are stored as (value, timestamp) tuples in an OrderedDict. Reads do
not refresh an entry's position: when the cache is full the oldest *inserted*
key is evicted, not the least recently read one.
"""

import time
import logging
from collections import OrderedDict
from typing import Any, Optional

from realitycheck.config import settings

logger = logging.getLogger(__name__)


class ResultCache:
    def __init__(self, max_size: int = None, ttl_sec: float = None):
        self.max_size = max_size if max_size is not None else settings.cache_max_size
        self.ttl_sec = ttl_sec if ttl_sec is not None else settings.cache_ttl_sec
        self._entries: OrderedDict = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"[CACHE] MISS for key: {key}")
            return None

        value, timestamp = entry
        if time.time() - timestamp < self.ttl_sec:
            logger.debug(f"[CACHE] HIT for key: {key}")
            return value

        logger.debug(f"[CACHE] EXPIRED for key: {key}")
        del self._entries[key]
        return None

    def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            # Re-insert at the newest position; nothing else is evicted.
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[CACHE] Evicted oldest key: {evicted}")
        self._entries[key] = (value, time.time())

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
