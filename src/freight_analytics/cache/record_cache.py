"""Time-to-live cache layered over a plain key-value store.

Each entry is two strings: the JSON payload under ``<key>`` and the fetch
time (epoch seconds) under ``<key>::fetched_at``. An entry is fresh while
``now - fetched_at < ttl``; anything else, including a half-written or
corrupt entry, is evicted on read and reported as absent. Writes are best
effort: a refused write is logged and dropped so the surrounding fetch still
succeeds.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from pydantic import TypeAdapter

from freight_analytics.domain.exceptions import CacheWriteError
from freight_analytics.domain.interfaces import IKeyValueStore, IRecordCache

TIMESTAMP_SUFFIX = "::fetched_at"

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class RecordCache(IRecordCache):
    """Key-scoped TTL cache; one instance per TTL policy."""

    def __init__(
        self,
        store: IKeyValueStore,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        self._store = store
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str, adapter: Optional[TypeAdapter[Any]] = None) -> Any:
        raw = self._store.get(key)
        stamp = self._store.get(key + TIMESTAMP_SUFFIX)
        if raw is None or stamp is None:
            if raw is not None or stamp is not None:
                self._evict(key)
            self._logger.debug("cache_miss", extra={"key": key})
            return None

        try:
            fetched_at = float(stamp)
        except ValueError:
            self._logger.warning("cache_corrupt_timestamp", extra={"key": key})
            self._evict(key)
            return None

        age = self._clock() - fetched_at
        if age >= self._ttl:
            self._logger.debug(
                "cache_expired", extra={"key": key, "age": age, "ttl": self._ttl}
            )
            self._evict(key)
            return None

        try:
            payload = adapter.validate_json(raw) if adapter else json.loads(raw)
        except ValueError:
            self._logger.warning("cache_corrupt_payload", extra={"key": key})
            self._evict(key)
            return None

        self._logger.debug("cache_hit", extra={"key": key, "age": age})
        return payload

    def put(self, key: str, payload: Any) -> None:
        try:
            raw = _ANY_ADAPTER.dump_json(payload).decode("utf-8")
        except (TypeError, ValueError):
            self._logger.warning(
                "cache_write_failed",
                extra={"key": key, "reason": "serialization"},
                exc_info=True,
            )
            return

        try:
            self._store.put(key, raw)
            self._store.put(key + TIMESTAMP_SUFFIX, repr(self._clock()))
        except CacheWriteError as exc:
            self._logger.warning(
                "cache_write_failed",
                extra={"key": key, "reason": exc.message, "context": exc.context},
            )
            self._evict(key)

    def invalidate(self, key_or_prefix: str) -> int:
        """Evict every entry whose key starts with ``key_or_prefix``."""

        evicted = 0
        for stored_key in self._store.keys():
            if not stored_key.startswith(key_or_prefix):
                continue
            if not self._delete(stored_key):
                continue
            if not stored_key.endswith(TIMESTAMP_SUFFIX):
                evicted += 1
        self._logger.info(
            "cache_invalidated", extra={"prefix": key_or_prefix, "evicted": evicted}
        )
        return evicted

    def _evict(self, key: str) -> None:
        self._delete(key)
        self._delete(key + TIMESTAMP_SUFFIX)

    def _delete(self, key: str) -> bool:
        try:
            self._store.delete(key)
        except CacheWriteError as exc:
            self._logger.warning(
                "cache_delete_failed",
                extra={"key": key, "reason": exc.message, "context": exc.context},
            )
            return False
        return True
