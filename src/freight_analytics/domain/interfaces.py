"""Domain-level interfaces defining contracts for engine collaborators."""

from __future__ import annotations

from typing import Any, Iterator, List, Optional, Protocol, Sequence

from pydantic import TypeAdapter

from .models import (
    ActorComparison,
    ComparisonTotals,
    CounterpartRank,
    ModeBreakdown,
    MonthlyBucket,
    RawRecord,
    RemoteQuery,
    RouteRank,
    SortDirection,
    SortField,
    StatSummary,
)


class IKeyValueStore(Protocol):
    """String key-value storage without native expiry."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored string or ``None`` when the key is absent."""

    def put(self, key: str, value: str) -> None:
        """Store ``value``; raise ``CacheWriteError`` when the write is refused."""

    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored.

        Raise ``CacheWriteError`` when the backend refuses the delete.
        """

    def keys(self) -> Iterator[str]:
        """Iterate over a snapshot of the stored keys."""


class IRecordCache(Protocol):
    """Time-to-live cache over a key-value store."""

    def get(self, key: str, adapter: Optional[TypeAdapter[Any]] = None) -> Any:
        """Return a fresh payload or ``None``; stale entries are evicted."""

    def put(self, key: str, payload: Any) -> None:
        """Store ``payload`` stamped with the current time; never raises."""

    def invalidate(self, key_or_prefix: str) -> int:
        """Evict every entry whose key starts with ``key_or_prefix``."""


class IRemoteSource(Protocol):
    """Fetches one page of records from the remote freight API."""

    @property
    def paginated(self) -> bool:
        """True when the endpoint honours page/page_size parameters."""

    def fetch_page(self, query: RemoteQuery) -> List[RawRecord]:
        """Return one page of records or raise a ``RemoteSourceError``."""


class IAggregator(Protocol):
    """Pure reductions from record collections to statistics."""

    def summarize(self, records: Sequence[RawRecord]) -> StatSummary:
        """Return the full summary for ``records``."""

    def bucket_by_month(self, records: Sequence[RawRecord]) -> List[MonthlyBucket]:
        """Return one bucket per calendar month, ascending."""

    def breakdown_by_mode(self, records: Sequence[RawRecord]) -> List[ModeBreakdown]:
        """Return per transport mode totals for modes that have records."""

    def top_counterparts(
        self, records: Sequence[RawRecord], limit: int = 10
    ) -> List[CounterpartRank]:
        """Return counterparts ranked by income."""

    def top_routes(
        self, records: Sequence[RawRecord], limit: int = 10
    ) -> List[RouteRank]:
        """Return origin/destination pairs ranked by income."""

    def combine(self, comparisons: Sequence[ActorComparison]) -> ComparisonTotals:
        """Sum the headline totals of a comparison set."""


class IComparisonRanker(Protocol):
    """Orders and compares per-actor summaries."""

    def rank(
        self,
        comparisons: Sequence[ActorComparison],
        field: SortField | str,
        direction: SortDirection | str,
    ) -> List[ActorComparison]:
        """Return a stably sorted copy of ``comparisons``."""

    def pairwise_delta(
        self, a: ActorComparison, b: ActorComparison
    ) -> dict[str, float]:
        """Return ``a - b`` for every numeric summary field."""
