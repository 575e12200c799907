"""Bounded in-memory cache with LRU eviction and TTL expiration."""

import time
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class CacheEntry:
    """Cached value with creation and last access times (ms)."""
    value: Any
    created_at: float
    last_accessed_at: float


class BoundedCache:
    """
    Key/value store bounded by size and entry age.

    Entries are kept in access order: the first entry of the internal
    OrderedDict is always the least recently used one. When the cache is full,
    exactly one entry is evicted before inserting a new key. Expired entries
    are purged lazily on ``get`` or in bulk by ``clean_expired``; the cache
    never runs a timer of its own.

    Attributes:
        max_size: Maximum number of entries
        expiration_ms: Entry lifetime in milliseconds, counted from creation

    Note:
        Nothing here raises for absent keys. ``get`` returns None and
        ``has``/``delete`` return False.
    """

    def __init__(
        self,
        max_size: int = 50,
        expiration_ms: float = 300000,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self.expiration_ms = expiration_ms
        self._clock = clock or _now_ms
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self.expiration_ms

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value for key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if self._is_expired(entry, now):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        entry.last_accessed_at = now
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: Any):
        """Store value under key, evicting the least recently used entry if full."""
        if key in self._entries:
            del self._entries[key]
        else:
            self._evict_if_needed()

        now = self._clock()
        self._entries[key] = CacheEntry(value=value, created_at=now, last_accessed_at=now)

    def _evict_if_needed(self):
        if len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted least recently used cache entry: {evicted_key}")

    def has(self, key: Hashable) -> bool:
        """Check presence without touching recency or expiration."""
        return key in self._entries

    def delete(self, key: Hashable) -> bool:
        """Remove key. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self):
        """Remove all entries."""
        self._entries.clear()

    def clean_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(size={self.size}/{self.max_size}, "
            f"expiration={self.expiration_ms}ms)"
        )
