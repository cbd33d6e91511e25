"""Bounded in-memory containers: an LRU dictionary and a most-recent-first list.

Both are guarded by a re-entrant lock so concurrent tool calls cannot
corrupt the recency order.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Iterable, Iterator
from typing import Any, Generic, TypeVar

DEFAULT_CACHE_MAX_SIZE = 5000

K = TypeVar("K")
V = TypeVar("V")
T = TypeVar("T")


class LRUDict(Generic[K, V]):
    """
    A mapping with strict LRU (Least Recently Used) eviction.

    Writes and ``[]`` reads mark a key as most recently used. When a write
    pushes the size past ``max_size`` the single least recently used key is
    evicted.

    Example:
        cache = LRUDict(max_size=2)
        cache["a"] = 1
        cache["b"] = 2
        cache["a"]      # "a" is now most recent
        cache["c"] = 3  # evicts "b"
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_MAX_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._max_size = max_size
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.RLock()
        self._evictions = 0

    @property
    def max_size(self) -> int:
        """Maximum cache size."""
        return self._max_size

    def __setitem__(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            self._data[key] = value
            while len(self._data) > self._max_size:
                self._data.popitem(last=False)
                self._evictions += 1

    def __getitem__(self, key: K) -> V:
        with self._lock:
            value = self._data[key]
            self._data.move_to_end(key)
            return value

    def __delitem__(self, key: K) -> None:
        with self._lock:
            del self._data[key]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[K]:
        """Iterate over keys from least to most recently used."""
        with self._lock:
            return iter(list(self._data.keys()))

    def get(self, key: K, default: V | None = None) -> V | None:
        """Get item and mark it as recently used; ``default`` on a miss."""
        with self._lock:
            if key not in self._data:
                return default
            return self[key]

    def peek(self, key: K, default: V | None = None) -> V | None:
        """Get item without updating access order."""
        with self._lock:
            return self._data.get(key, default)

    def pop(self, key: K, *args: Any) -> V:
        with self._lock:
            return self._data.pop(key, *args)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> list[K]:
        """Keys in LRU order (oldest first)."""
        with self._lock:
            return list(self._data.keys())

    def items(self) -> list[tuple[K, V]]:
        """Items in LRU order (oldest first)."""
        with self._lock:
            return list(self._data.items())

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        with self._lock:
            return {
                "size": len(self._data),
                "max_size": self._max_size,
                "evictions": self._evictions,
                "utilization": len(self._data) / self._max_size,
            }


class RecentList(Generic[T]):
    """
    A de-duplicated list ordered most recent first, capped at ``max_size``.

    Example:
        recent = RecentList(max_size=3, initial=["b", "a"])
        recent.push("a")   # ["a", "b"]
    """

    def __init__(self, max_size: int = 10, initial: Iterable[T] | None = None) -> None:
        self._max_size = max_size
        self._items: list[T] = []
        self._lock = threading.RLock()
        for item in reversed(list(initial or [])):
            self.push(item)

    @property
    def max_size(self) -> int:
        return self._max_size

    def push(self, item: T) -> None:
        """Move ``item`` to the front, dropping the oldest beyond capacity."""
        with self._lock:
            if item in self._items:
                self._items.remove(item)
            self._items.insert(0, item)
            del self._items[self._max_size :]

    def to_list(self) -> list[T]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_list())
