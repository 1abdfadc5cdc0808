"""In-memory result cache bounded by entry count and entry age.

Example usage:

    cache = CssCache(max_entries=500, max_age=60.0)
    cache.set("https://example.com", "a{color:red}")
    if cache.has("https://example.com"):
        css = cache.get("https://example.com")

Expired entries are not swept in the background. They are dropped the
next time ``has`` or ``get`` touches them, or when they become the
least recently used entry and capacity is needed.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, List, Optional

from .document import CacheEntry

DEFAULT_MAX_ENTRIES = 500
DEFAULT_MAX_AGE = 60.0


class CssCache:
    """LRU mapping from a normalized URL to its extracted CSS."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_age: float = DEFAULT_MAX_AGE,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if max_age <= 0:
            raise ValueError(f"max_age must be > 0, got {max_age}")
        self.max_entries = max_entries
        self.max_age = max_age
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self.max_age:
            del self._entries[key]
            return None
        return entry

    def has(self, key: str) -> bool:
        """True if a non-expired entry exists. Does not refresh recency."""
        with self._lock:
            return self._live_entry(key) is not None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return default
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: str) -> None:
        """Insert or replace ``key``, evicting least recently used entries."""
        entry = CacheEntry(key=key, value=value, inserted_at=self._clock())
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def keys(self) -> List[str]:
        """Stored keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
