"""Name-to-ID caches used to skip redundant backend lookups."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Protocol

# Entries only map names to file IDs, so this stays small on any server.
DEFAULT_CACHE_SIZE = 1024


class NameCache(Protocol):
    """Capability required from a reference-name cache."""

    def get(self, name: str) -> str | None:
        """Return the cached ID for ``name``, or None on a miss."""
        ...

    def put(self, name: str, backend_id: str) -> None:
        """Remember ``backend_id`` for ``name``."""
        ...

    def remove(self, name: str) -> None:
        """Forget ``name``. Unknown names are ignored."""
        ...


class LRUCache:
    """Thread-safe bounded cache that discards the least recently used entry.

    Examples:
        >>> cache = LRUCache(2)
        >>> cache.put("a", "id-a")
        >>> cache.put("b", "id-b")
        >>> cache.get("a")
        'id-a'
        >>> cache.put("c", "id-c")  # evicts "b"
        >>> cache.get("b") is None
        True
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE):
        if capacity <= 0:
            raise ValueError(f"LRU capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, name: str) -> str | None:
        with self._lock:
            backend_id = self._entries.get(name)
            if backend_id is not None:
                self._entries.move_to_end(name)
            return backend_id

    def put(self, name: str, backend_id: str) -> None:
        with self._lock:
            self._entries[name] = backend_id
            self._entries.move_to_end(name)
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)

    def remove(self, name: str) -> None:
        with self._lock:
            self._entries.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries
