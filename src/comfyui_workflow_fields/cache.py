"""
Time-bounded cache shared by the schema and dropdown providers.

The clock is injectable so tests can move time forward instead of sleeping.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return (now - self.stored_at) < self.ttl


class TTLCache:
    """
    Thread-safe key/value cache with per-entry time-to-live.

    Usage:
        cache = TTLCache(ttl=300)
        cache.put("object_info", data)
        cache.get("object_info")  # None once 300s have passed
    """

    def __init__(self, ttl: float = 300, clock: Optional[Callable[[], float]] = None):
        self.ttl = ttl
        self.clock = clock or time.monotonic
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Fresh value for key, or None (expired entries are evicted)."""
        entry = self.get_entry(key)
        return entry.value if entry else None

    def get_entry(self, key: Hashable) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(self.clock()):
                del self._entries[key]
                return None
            return entry

    def put(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> CacheEntry:
        entry = CacheEntry(value, self.clock(), self.ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = entry
        return entry

    def expire(self, key: Optional[Hashable] = None) -> int:
        """Drop one key, or everything when key is None. Returns entries removed."""
        with self._lock:
            if key is None:
                count = len(self._entries)
                self._entries.clear()
                return count
            return 1 if self._entries.pop(key, None) is not None else 0

    def expire_where(self, predicate: Callable[[Hashable], bool]) -> int:
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def age(self, key: Hashable) -> Optional[float]:
        entry = self.get_entry(key)
        return self.clock() - entry.stored_at if entry else None

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get_entry(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
