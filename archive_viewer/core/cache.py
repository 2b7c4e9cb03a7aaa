# archive_viewer/core/cache.py

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Hashable, Optional

# Capacity per cache, sized to the number of distinct keys worth keeping warm.
CACHE_CAPACITIES = {
    "tables": 5,
    "platforms": 4,
    "tags": 8,
    "collections": 8,
    "authors": 16,
    "search": 32,
}


class CountCache:
    """
    Bounded key -> row count cache with least-recently-used eviction.

    Counts are read-through: callers compute a missing count and insert
    it. Nothing is ever invalidated, so a count goes stale if another
    process writes to the archive while the server runs. The archive is
    treated as append-only between restarts, so this is accepted.

    Access is guarded by an internal lock so one instance can be shared
    between concurrent requests.
    """

    def __init__(self, name: str, capacity: int):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be positive, got {capacity}")
        self.name = name
        self.capacity = capacity
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[Hashable, int]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[int]:
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

    def insert(self, key: Hashable, count: int) -> None:
        with self._lock:
            self._entries[key] = count
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    async def get_or_load(self, key: Hashable, load: Callable[[], Awaitable[int]]) -> int:
        """Return the cached count for key, running load() on a miss."""
        count = self.get(key)
        if count is not None:
            return count

        logging.debug(f"{self.name} count cache miss for {key!r}")
        count = await load()
        self.insert(key, count)
        return count

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _cache(name: str):
    return field(default_factory=lambda: CountCache(name, CACHE_CAPACITIES[name]))


@dataclass
class Caches:
    """
    All count caches of one application context.

    tables: unfiltered category totals, keyed by table name.
    authors/tags/platforms/collections: post totals per category, keyed by (kind, id).
    search: post search totals, keyed by the full search filter.
    """
    tables: CountCache = _cache("tables")
    platforms: CountCache = _cache("platforms")
    tags: CountCache = _cache("tags")
    collections: CountCache = _cache("collections")
    authors: CountCache = _cache("authors")
    search: CountCache = _cache("search")
