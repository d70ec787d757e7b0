"""Process-local key-value store with an optional size quota."""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional

from freight_analytics.domain.exceptions import CacheWriteError
from freight_analytics.domain.interfaces import IKeyValueStore


class InMemoryStore(IKeyValueStore):
    """Dictionary-backed store; ``max_bytes`` emulates a browser storage quota."""

    def __init__(self, max_bytes: Optional[int] = None) -> None:
        if max_bytes is not None and max_bytes <= 0:
            raise ValueError("max_bytes must be greater than zero")
        self._max_bytes = max_bytes
        self._data: Dict[str, str] = {}
        self._size = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            new_size = self._size - self._entry_size(key) + self._measure(key, value)
            if self._max_bytes is not None and new_size > self._max_bytes:
                raise CacheWriteError(
                    "Storage quota exceeded",
                    context={"key": key, "limit": self._max_bytes},
                )
            self._data[key] = value
            self._size = new_size

    def delete(self, key: str) -> None:
        with self._lock:
            self._size -= self._entry_size(key)
            self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._data)
        return iter(snapshot)

    @property
    def size_bytes(self) -> int:
        return self._size

    def _entry_size(self, key: str) -> int:
        value = self._data.get(key)
        if value is None:
            return 0
        return self._measure(key, value)

    @staticmethod
    def _measure(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))
