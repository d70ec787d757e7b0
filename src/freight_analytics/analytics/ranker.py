"""Ordering and head-to-head comparison of per-actor summaries."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.interfaces import IComparisonRanker
from freight_analytics.domain.models import (
    NUMERIC_SUMMARY_FIELDS,
    ActorComparison,
    SortDirection,
    SortField,
)


class ComparisonRanker(IComparisonRanker):
    """Stable sorting over ``ActorComparison`` sets; ties keep input order."""

    def rank(
        self,
        comparisons: Sequence[ActorComparison],
        field: SortField | str,
        direction: SortDirection | str = SortDirection.DESC,
    ) -> List[ActorComparison]:
        sort_field = _coerce_field(field)
        sort_direction = _coerce_direction(direction)
        return sorted(
            comparisons,
            key=lambda item: self._sort_key(item, sort_field),
            reverse=sort_direction is SortDirection.DESC,
        )

    def pairwise_delta(
        self, a: ActorComparison, b: ActorComparison
    ) -> Dict[str, float]:
        return {
            name: float(getattr(a.stats, name)) - float(getattr(b.stats, name))
            for name in NUMERIC_SUMMARY_FIELDS
        }

    def leader(
        self, comparisons: Sequence[ActorComparison], field: SortField | str
    ) -> Optional[ActorComparison]:
        """Return the top actor for ``field`` in descending order, if any."""

        ranked = self.rank(comparisons, field, SortDirection.DESC)
        return ranked[0] if ranked else None

    @staticmethod
    def _sort_key(item: ActorComparison, field: SortField) -> Any:
        if field is SortField.NAME:
            return (item.actor.casefold(), item.actor)
        return float(getattr(item.stats, field.value))


def _coerce_field(field: SortField | str) -> SortField:
    try:
        return SortField(field)
    except ValueError as exc:
        raise ValidationError(
            f"Unsupported sort field '{field}'",
            context={"allowed": [item.value for item in SortField]},
        ) from exc


def _coerce_direction(direction: SortDirection | str) -> SortDirection:
    try:
        return SortDirection(direction.lower())
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"Unsupported sort direction '{direction}'") from exc
