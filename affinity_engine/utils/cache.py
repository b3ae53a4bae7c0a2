"""In-memory cache with lazy TTL expiry and LRU eviction"""

import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from .metrics import increment_cache_hit, increment_cache_miss

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


class TTLCache(Generic[K, V]):
    """
    Per-instance cache owned by a service

    Entries are replaced whole on set, so concurrent recomputation of the same
    key can only duplicate work. Expiry is checked lazily on read; there is no
    background sweeper.

    Args:
        name: Label used for hit/miss metrics
        ttl: Seconds an entry stays valid, None for no expiry
        max_entries: Evict the least recently used entry beyond this size,
            None for unbounded
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        name: str,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[K, Tuple[float, V]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> Optional[V]:
        """Return the cached value, or None when missing or expired"""
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry[0]):
            self._entries.move_to_end(key)
            self.hits += 1
            increment_cache_hit(self.name)
            return entry[1]

        if entry is not None:
            del self._entries[key]
        self.misses += 1
        increment_cache_miss(self.name)
        return None

    def set(self, key: K, value: V) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def _is_fresh(self, stored_at: float) -> bool:
        if self.ttl is None:
            return True
        return self._clock() - stored_at < self.ttl

    def __contains__(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._is_fresh(entry[0])

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "name": self.name,
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total > 0 else 0.0,
        }
