"""Pure business-logic helpers for record aggregation."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from freight_analytics.analytics.classifier import classify_mode
from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.interfaces import IAggregator
from freight_analytics.domain.models import (
    ActorComparison,
    ComparisonTotals,
    CounterpartRank,
    ModeBreakdown,
    MonthlyBucket,
    RawRecord,
    RouteRank,
    StatSummary,
    TransportMode,
    zero_mode_counts,
)

UNKNOWN_PLACE = "unknown"


class Aggregator(IAggregator):
    """Performs read-only calculations on record collections.

    Every method builds fresh values from its input and never mutates it, so
    the same sequence always yields the same result.
    """

    def summarize(self, records: Sequence[RawRecord]) -> StatSummary:
        total = len(records)
        completed = sum(1 for record in records if record.is_completed)
        income = sum(record.income for record in records)
        expense = sum(record.expense for record in records)
        profit = sum(record.profit for record in records)
        return StatSummary(
            total_count=total,
            completed_count=completed,
            pending_count=total - completed,
            mode_counts=self._count_modes(records),
            total_income=income,
            total_expense=expense,
            total_profit=profit,
            profit_margin=_margin(profit, income),
            average_income=income / total if total else 0.0,
            average_profit=profit / total if total else 0.0,
            completion_rate=completed * 100 / total if total else 0.0,
            unique_counterparts=len(self._counterparts(records)),
        )

    def bucket_by_month(self, records: Sequence[RawRecord]) -> List[MonthlyBucket]:
        grouped: Dict[str, List[RawRecord]] = {}
        for record in records:
            if record.event_date is None:
                continue
            period = f"{record.event_date.year:04d}-{record.event_date.month:02d}"
            grouped.setdefault(period, []).append(record)

        buckets: List[MonthlyBucket] = []
        for period in sorted(grouped):
            stats = self.summarize(grouped[period])
            buckets.append(
                MonthlyBucket(
                    period=period,
                    total_count=stats.total_count,
                    completed_count=stats.completed_count,
                    mode_counts=stats.mode_counts,
                    total_income=stats.total_income,
                    total_expense=stats.total_expense,
                    total_profit=stats.total_profit,
                    margin=stats.profit_margin,
                    unique_counterparts=stats.unique_counterparts,
                )
            )
        return buckets

    def breakdown_by_mode(self, records: Sequence[RawRecord]) -> List[ModeBreakdown]:
        grouped: Dict[TransportMode, List[RawRecord]] = {mode: [] for mode in TransportMode}
        for record in records:
            grouped[classify_mode(record.mode)].append(record)

        rows: List[ModeBreakdown] = []
        for mode, members in grouped.items():
            if not members:
                continue
            income = sum(record.income for record in members)
            profit = sum(record.profit for record in members)
            rows.append(
                ModeBreakdown(
                    mode=mode,
                    count=len(members),
                    total_income=income,
                    total_expense=sum(record.expense for record in members),
                    total_profit=profit,
                    margin=_margin(profit, income),
                )
            )
        return rows

    def top_counterparts(
        self, records: Sequence[RawRecord], limit: int = 10
    ) -> List[CounterpartRank]:
        _validate_limit(limit)
        totals: Dict[str, List[float]] = {}
        for record in records:
            name = record.counterpart.strip()
            if not name:
                continue
            entry = totals.setdefault(name, [0, 0.0, 0.0])
            entry[0] += 1
            entry[1] += record.income
            entry[2] += record.profit

        ranked = sorted(
            totals.items(), key=lambda item: (-item[1][1], -item[1][0], item[0])
        )
        return [
            CounterpartRank(
                name=name, count=int(count), total_income=income, total_profit=profit
            )
            for name, (count, income, profit) in ranked[:limit]
        ]

    def top_routes(
        self, records: Sequence[RawRecord], limit: int = 10
    ) -> List[RouteRank]:
        _validate_limit(limit)
        totals: Dict[Tuple[str, str], List[float]] = {}
        for record in records:
            route = (
                record.origin.strip() or UNKNOWN_PLACE,
                record.destination.strip() or UNKNOWN_PLACE,
            )
            entry = totals.setdefault(route, [0, 0.0])
            entry[0] += 1
            entry[1] += record.income

        ranked = sorted(
            totals.items(), key=lambda item: (-item[1][1], -item[1][0], item[0])
        )
        return [
            RouteRank(
                origin=origin,
                destination=destination,
                count=int(count),
                total_income=income,
            )
            for (origin, destination), (count, income) in ranked[:limit]
        ]

    def combine(self, comparisons: Sequence[ActorComparison]) -> ComparisonTotals:
        income = sum(item.stats.total_income for item in comparisons)
        profit = sum(item.stats.total_profit for item in comparisons)
        return ComparisonTotals(
            total_count=sum(item.stats.total_count for item in comparisons),
            total_income=income,
            total_expense=sum(item.stats.total_expense for item in comparisons),
            total_profit=profit,
            profit_margin=_margin(profit, income),
        )

    @staticmethod
    def _count_modes(records: Sequence[RawRecord]) -> Dict[TransportMode, int]:
        counts = zero_mode_counts()
        for record in records:
            counts[classify_mode(record.mode)] += 1
        return counts

    @staticmethod
    def _counterparts(records: Sequence[RawRecord]) -> set[str]:
        return {
            record.counterpart.strip()
            for record in records
            if record.counterpart.strip()
        }


def _margin(profit: float, income: float) -> float:
    # Non-positive income (credit notes only) has no meaningful margin.
    if income <= 0:
        return 0.0
    return profit * 100 / income


def _validate_limit(limit: int) -> None:
    if limit < 1:
        raise ValidationError("limit must be at least 1", context={"limit": limit})
