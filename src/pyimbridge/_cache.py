"""Fixed-capacity least-recently-used cache."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class LruCache(Generic[K, V]):
    """Mapping that evicts the least recently used entry past *capacity*.

    Reads through :meth:`get` and writes through :meth:`set` both count
    as a use.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"LRU capacity must be positive (got {capacity})")
        self._capacity = capacity
        self._data: OrderedDict[K, V] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K) -> V | None:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def set(self, key: K, value: V) -> K | None:
        """Store *value*; return the evicted key, if any."""
        self._data[key] = value
        self._data.move_to_end(key)
        if len(self._data) > self._capacity:
            evicted, _ = self._data.popitem(last=False)
            return evicted
        return None

    def add(self, key: K, value: V) -> bool:
        """Insert only if *key* is absent; return whether it was inserted."""
        if key in self._data:
            self._data.move_to_end(key)
            return False
        self.set(key, value)
        return True

    def pop(self, key: K) -> V | None:
        return self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._data))

    def values(self) -> list[V]:
        return list(self._data.values())
