"""Reporting facade coordinating fetching, aggregation, ranking and export."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter

from freight_analytics.analytics.aggregator import Aggregator
from freight_analytics.analytics.exporter import (
    COMPARISON_COLUMNS,
    MONTHLY_COLUMNS,
    RECORD_COLUMNS,
    Column,
    Exporter,
    ExportFile,
)
from freight_analytics.analytics.ranker import ComparisonRanker
from freight_analytics.cache.keys import (
    CacheScope,
    build_cache_key,
    scope_prefix,
)
from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.interfaces import (
    IAggregator,
    IComparisonRanker,
    IRecordCache,
)
from freight_analytics.domain.models import (
    ActorComparison,
    ActorReport,
    ComparisonReport,
    DateRange,
    MonthlyBucket,
    PairwiseReport,
    RawRecord,
    SortDirection,
    SortField,
    StatSummary,
)
from freight_analytics.orchestration.orchestrator import FetchOrchestrator


class _ComparisonSnapshot(BaseModel):
    """Cached form of a comparison view: summaries plus the raw pool."""

    model_config = ConfigDict(frozen=True)

    comparisons: Tuple[ActorComparison, ...]
    pool: Tuple[RawRecord, ...] = ()


_SNAPSHOT_ADAPTER: TypeAdapter[_ComparisonSnapshot] = TypeAdapter(_ComparisonSnapshot)
_SUMMARY_ADAPTER: TypeAdapter[StatSummary] = TypeAdapter(StatSummary)


class ReportingService:
    """High-level API the dashboard screens call for executive analytics."""

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        *,
        comparison_cache: IRecordCache,
        stats_cache: IRecordCache,
        aggregator: Optional[IAggregator] = None,
        ranker: Optional[IComparisonRanker] = None,
        exporter: Optional[Exporter] = None,
        today: Callable[[], date] = date.today,
        top_limit: int = 10,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if top_limit < 1:
            raise ValueError("top_limit must be at least 1")
        self._orchestrator = orchestrator
        self._comparison_cache = comparison_cache
        self._stats_cache = stats_cache
        self._aggregator = aggregator or Aggregator()
        self._ranker = ranker or ComparisonRanker()
        self._exporter = exporter or Exporter()
        self._today = today
        self._top_limit = top_limit
        self._logger = logger or logging.getLogger(__name__)

    @property
    def orchestrator(self) -> FetchOrchestrator:
        return self._orchestrator

    def individual_report(
        self, actor: str, date_range: Optional[DateRange] = None
    ) -> ActorReport:
        """Build the single-executive view; remote errors propagate."""

        window = date_range or DateRange()
        records = self._orchestrator.fetch_single(actor, window)
        agg = self._aggregator
        return ActorReport(
            actor=actor.strip(),
            date_range=window,
            records=tuple(records),
            summary=agg.summarize(records),
            monthly=tuple(agg.bucket_by_month(records)),
            modes=tuple(agg.breakdown_by_mode(records)),
            top_counterparts=tuple(agg.top_counterparts(records, self._top_limit)),
            top_routes=tuple(agg.top_routes(records, self._top_limit)),
        )

    def comparative_report(
        self,
        actors: Sequence[str],
        date_range: Optional[DateRange] = None,
        *,
        sort_field: SortField | str = SortField.TOTAL_INCOME,
        direction: SortDirection | str = SortDirection.DESC,
    ) -> ComparisonReport:
        """Compare many executives; individual failures only lower the count."""

        window = date_range or DateRange()
        comparisons, pool, failed, auth_failed, from_cache = self._compare(
            actors, window
        )
        agg = self._aggregator
        return ComparisonReport(
            date_range=window,
            comparisons=tuple(self._ranker.rank(comparisons, sort_field, direction)),
            totals=agg.combine(comparisons),
            top_counterparts=tuple(agg.top_counterparts(pool, self._top_limit)),
            top_routes=tuple(agg.top_routes(pool, self._top_limit)),
            failed_count=failed,
            auth_failed=auth_failed,
            from_cache=from_cache,
        )

    def pairwise_report(
        self,
        first: str,
        second: str,
        date_range: Optional[DateRange] = None,
    ) -> PairwiseReport:
        identity = self._orchestrator.actor_identity
        if identity(first) == identity(second):
            raise ValidationError(
                "Pairwise comparison needs two different actors",
                context={"first": first, "second": second},
            )
        window = date_range or DateRange()
        comparisons, _, failed, auth_failed, _ = self._compare([first, second], window)
        by_name = {identity(item.actor): item for item in comparisons}
        a = by_name[identity(first)]
        b = by_name[identity(second)]
        return PairwiseReport(
            first=a,
            second=b,
            delta=self._ranker.pairwise_delta(a, b),
            failed_count=failed,
            auth_failed=auth_failed,
        )

    def counterpart_summary(
        self, counterpart: str, date_range: Optional[DateRange] = None
    ) -> StatSummary:
        """Per-client statistics, kept under the long TTL."""

        window = date_range or DateRange()
        key = build_cache_key(
            self._orchestrator.entity, counterpart, window, scope=CacheScope.STATS
        )
        cached = self._stats_cache.get(key, _SUMMARY_ADAPTER)
        if cached is not None:
            return cached
        records = self._orchestrator.fetch_for_counterpart(counterpart, window)
        summary = self._aggregator.summarize(records)
        self._stats_cache.put(key, summary)
        return summary

    def export_records(
        self,
        records: Sequence[RawRecord],
        report_kind: str = "records",
        *,
        include_bom: bool = False,
    ) -> ExportFile:
        return self._export(records, RECORD_COLUMNS, report_kind, include_bom)

    def export_comparisons(
        self,
        comparisons: Sequence[ActorComparison],
        report_kind: str = "comparison",
        *,
        include_bom: bool = False,
    ) -> ExportFile:
        return self._export(comparisons, COMPARISON_COLUMNS, report_kind, include_bom)

    def export_monthly(
        self,
        buckets: Sequence[MonthlyBucket],
        report_kind: str = "monthly",
        *,
        include_bom: bool = False,
    ) -> ExportFile:
        return self._export(buckets, MONTHLY_COLUMNS, report_kind, include_bom)

    def refresh(
        self, actor: Optional[str] = None, date_range: Optional[DateRange] = None
    ) -> int:
        """Drop cached data so the next request goes to the remote API.

        Comparison snapshots are always dropped because any of them may
        include ``actor``.
        """

        entity = self._orchestrator.entity
        evicted = self._orchestrator.invalidate(actor, date_range)
        evicted += self._comparison_cache.invalidate(
            scope_prefix(entity, CacheScope.COMPARISON)
        )
        if actor is None:
            evicted += self._stats_cache.invalidate(
                scope_prefix(entity, CacheScope.STATS)
            )
        return evicted

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _compare(
        self, actors: Sequence[str], window: DateRange
    ) -> Tuple[List[ActorComparison], List[RawRecord], int, bool, bool]:
        key = self._orchestrator.selection_key(actors, window, CacheScope.COMPARISON)
        snapshot = self._comparison_cache.get(key, _SNAPSHOT_ADAPTER)
        if snapshot is not None:
            return list(snapshot.comparisons), list(snapshot.pool), 0, False, True

        outcome = self._orchestrator.fetch(actors, window)
        comparisons = [
            ActorComparison(actor=name, stats=self._aggregator.summarize(records))
            for name, records in outcome.records_by_actor.items()
        ]
        pool = list(outcome.pool)
        if outcome.failed_count == 0:
            self._comparison_cache.put(
                key, _ComparisonSnapshot(comparisons=tuple(comparisons), pool=tuple(pool))
            )
        else:
            self._logger.warning(
                "comparison_partial",
                extra={
                    "failed": outcome.failed_count,
                    "requested": outcome.requested_count,
                },
            )
        return comparisons, pool, outcome.failed_count, outcome.auth_failed, False

    def _export(
        self,
        items: Sequence[object],
        columns: Sequence[Column],
        report_kind: str,
        include_bom: bool,
    ) -> ExportFile:
        export = self._exporter.build_file(
            items,
            columns,
            report_kind=report_kind,
            on=self._today(),
            include_bom=include_bom,
        )
        self._logger.info(
            "export_built", extra={"file_name": export.filename, "rows": len(items)}
        )
        return export
