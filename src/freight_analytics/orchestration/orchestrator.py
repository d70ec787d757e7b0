"""Cache-aware fetching of raw records for one or many actors."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter

from freight_analytics.cache.keys import (
    CacheKey,
    CacheScope,
    build_cache_key,
    entity_prefix,
    normalize_name,
)
from freight_analytics.domain.exceptions import (
    AuthError,
    RemoteSourceError,
    ValidationError,
)
from freight_analytics.domain.interfaces import IRecordCache, IRemoteSource
from freight_analytics.domain.models import (
    DateRange,
    FetchOutcome,
    FetchPattern,
    RawRecord,
    RemoteQuery,
)

_RECORDS_ADAPTER: TypeAdapter[List[RawRecord]] = TypeAdapter(List[RawRecord])


def _by_actor(record: RawRecord) -> str:
    return record.actor


def sort_newest_first(records: Sequence[RawRecord]) -> List[RawRecord]:
    """Order by event date descending; undated records go last, order kept."""

    dated = [record for record in records if record.event_date is not None]
    undated = [record for record in records if record.event_date is None]
    dated.sort(key=lambda record: record.event_date or datetime.min, reverse=True)
    return dated + undated


class FetchOrchestrator:
    """Coordinates cache lookups and remote calls for a single entity kind.

    Per-actor endpoints are fanned out on a thread pool with each actor's
    outcome captured separately; bulk endpoints are fetched once and split
    client-side. Both paths hand back a ``FetchOutcome`` so callers do not
    care which one the endpoint needs.
    """

    def __init__(
        self,
        source: IRemoteSource,
        *,
        entity: str,
        query_cache: IRecordCache,
        reference_cache: IRecordCache,
        pattern: FetchPattern = FetchPattern.PER_ACTOR,
        page_size: int = 50,
        max_pages: int = 100,
        max_workers: int = 8,
        partition_key: Callable[[RawRecord], str] = _by_actor,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._source = source
        self._entity = entity
        self._query_cache = query_cache
        self._reference_cache = reference_cache
        self._pattern = FetchPattern(pattern)
        self._case_sensitive = self._pattern is FetchPattern.BULK
        self._page_size = page_size
        self._max_pages = max_pages
        self._max_workers = max_workers
        self._partition_key = partition_key
        self._logger = logger or logging.getLogger(__name__)

    @property
    def entity(self) -> str:
        return self._entity

    @property
    def pattern(self) -> FetchPattern:
        return self._pattern

    def actor_identity(self, name: str) -> str:
        """Return the form two actor names must share to count as one actor.

        Bulk endpoints split records by exact name, so case is kept there.
        """

        return normalize_name(name, case_sensitive=self._case_sensitive)

    def selection_key(
        self,
        actors: Optional[Sequence[str]],
        date_range: Optional[DateRange] = None,
        scope: CacheScope = CacheScope.POOL,
    ) -> CacheKey:
        return build_cache_key(
            self._entity,
            actors,
            date_range,
            scope=scope,
            case_sensitive=self._case_sensitive,
        )

    def fetch(
        self, actors: Sequence[str], date_range: Optional[DateRange] = None
    ) -> FetchOutcome:
        """Fetch per-actor records with whichever strategy the endpoint needs."""

        if self._pattern is FetchPattern.BULK:
            return self.fetch_partitioned(actors, date_range)
        return self.fetch_many(actors, date_range)

    def fetch_single(
        self, actor: str, date_range: Optional[DateRange] = None
    ) -> List[RawRecord]:
        """Return one actor's records, newest first; remote errors propagate."""

        actor = _require_actor(actor)
        window = date_range or DateRange()
        key = build_cache_key(self._entity, actor, window)
        cached = self._query_cache.get(key, _RECORDS_ADAPTER)
        if cached is not None:
            return cached

        records = sort_newest_first(
            self._collect_pages(RemoteQuery(actor=actor, date_range=window))
        )
        self._query_cache.put(key, records)
        return records

    def fetch_many(
        self, actors: Sequence[str], date_range: Optional[DateRange] = None
    ) -> FetchOutcome:
        """Fetch every actor concurrently; failures become empty slots.

        The caller learns how many actors failed and whether any failure was
        an authentication problem, never which error a given actor hit.
        Names with the same ``actor_identity`` share one slot, labelled with
        the first spelling given. A fully successful pool is cached
        under the key for this actor set, not under the all-actors key, so
        ``cached_pool(None)`` only ever returns the bulk pool.
        """

        names = _unique_actors(actors, self.actor_identity)
        window = date_range or DateRange()
        results: Dict[str, Tuple[RawRecord, ...]] = {}
        failed = 0
        auth_failed = False

        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(names))
        ) as pool:
            futures: Dict[Future[List[RawRecord]], str] = {
                pool.submit(self.fetch_single, name, window): name for name in names
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = tuple(future.result())
                except RemoteSourceError as exc:
                    failed += 1
                    auth_failed = auth_failed or isinstance(exc, AuthError)
                    results[name] = ()
                    self._logger.debug(
                        "actor_fetch_failed",
                        extra={"actor": name, "error": type(exc).__name__},
                    )

        outcome = FetchOutcome(
            records_by_actor={name: results[name] for name in names},
            failed_count=failed,
            auth_failed=auth_failed,
        )
        if failed:
            self._logger.warning(
                "fetch_many_partial",
                extra={
                    "entity": self._entity,
                    "failed": failed,
                    "requested": len(names),
                    "auth_failed": auth_failed,
                },
            )
        else:
            self._query_cache.put(self._pool_key(names, window), list(outcome.pool))
        self._logger.info(
            "fetch_many_complete",
            extra={"entity": self._entity, "requested": len(names), "failed": failed},
        )
        return outcome

    def fetch_partitioned(
        self, actors: Sequence[str], date_range: Optional[DateRange] = None
    ) -> FetchOutcome:
        """Fetch the unfiltered pool once, then split it by exact actor name."""

        names = _unique_actors(actors, self.actor_identity)
        pool = self.fetch_bulk(date_range)
        partitions: Dict[str, List[RawRecord]] = {name: [] for name in names}
        for record in pool:
            owner = self._partition_key(record).strip()
            if owner in partitions:
                partitions[owner].append(record)
        return FetchOutcome(
            records_by_actor={
                name: tuple(records) for name, records in partitions.items()
            }
        )

    def fetch_bulk(self, date_range: Optional[DateRange] = None) -> List[RawRecord]:
        """Return the unfiltered record pool, cached under the long TTL."""

        window = date_range or DateRange()
        key = self._pool_key(None, window)
        cached = self._reference_cache.get(key, _RECORDS_ADAPTER)
        if cached is not None:
            return cached

        records = sort_newest_first(self._collect_pages(RemoteQuery(date_range=window)))
        self._reference_cache.put(key, records)
        return records

    def fetch_for_counterpart(
        self, counterpart: str, date_range: Optional[DateRange] = None
    ) -> List[RawRecord]:
        """Return every record for one client/consignee, newest first."""

        counterpart = _require_actor(counterpart)
        window = date_range or DateRange()
        return sort_newest_first(
            self._collect_pages(RemoteQuery(counterpart=counterpart, date_range=window))
        )

    def cached_pool(
        self, actors: Optional[Sequence[str]], date_range: Optional[DateRange] = None
    ) -> Optional[List[RawRecord]]:
        """Return the cached cross-actor pool for a previous fetch, if fresh."""

        window = date_range or DateRange()
        names = (
            _unique_actors(actors, self.actor_identity) if actors is not None else None
        )
        cache = self._reference_cache if names is None else self._query_cache
        return cache.get(self._pool_key(names, window), _RECORDS_ADAPTER)

    def invalidate(
        self,
        actor: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> int:
        """Evict one actor's slot, or everything for this entity when no actor."""

        if actor is None:
            prefix = entity_prefix(self._entity)
            evicted = self._query_cache.invalidate(prefix)
            return evicted + self._reference_cache.invalidate(prefix)
        key = build_cache_key(self._entity, _require_actor(actor), date_range)
        return self._query_cache.invalidate(key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _collect_pages(self, query: RemoteQuery) -> List[RawRecord]:
        if not self._source.paginated:
            return _dedupe(self._source.fetch_page(query))

        collected: List[RawRecord] = []
        for page in range(1, self._max_pages + 1):
            batch = self._source.fetch_page(
                query.model_copy(update={"page": page, "page_size": self._page_size})
            )
            collected.extend(batch)
            if len(batch) < self._page_size:
                break
        else:
            self._logger.warning(
                "page_limit_reached",
                extra={"entity": self._entity, "max_pages": self._max_pages},
            )
        return _dedupe(collected)

    def _pool_key(self, names: Optional[Sequence[str]], window: DateRange) -> str:
        return self.selection_key(names, window, CacheScope.POOL)


def _require_actor(name: str) -> str:
    if not name or not name.strip():
        raise ValidationError("Actor name must be non-empty")
    return name.strip()


def _unique_actors(
    actors: Sequence[str], identity: Callable[[str], str]
) -> List[str]:
    if isinstance(actors, str):
        actors = [actors]
    names: List[str] = []
    seen: set[str] = set()
    for actor in actors:
        name = _require_actor(actor)
        key = identity(name)
        if key not in seen:
            seen.add(key)
            names.append(name)
    if not names:
        raise ValidationError("At least one actor is required")
    return names


def _dedupe(records: Sequence[RawRecord]) -> List[RawRecord]:
    seen: set[str] = set()
    unique: List[RawRecord] = []
    for record in records:
        if record.id:
            if record.id in seen:
                continue
            seen.add(record.id)
        unique.append(record)
    return unique
