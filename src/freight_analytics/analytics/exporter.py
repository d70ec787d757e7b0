"""Delimited-text export of records and comparison sets."""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Sequence, Tuple

from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.models import (
    ActorComparison,
    MonthlyBucket,
    RawRecord,
    TransportMode,
)

Column = Tuple[str, Callable[[Any], Any]]

_BOM = "\ufeff"
_KIND_PATTERN = re.compile(r"[^A-Za-z0-9_-]+")


RECORD_COLUMNS: Tuple[Column, ...] = (
    ("Number", lambda r: r.id),
    ("Date", lambda r: r.event_date),
    ("Status", lambda r: r.status),
    ("Mode", lambda r: r.mode),
    ("Executive", lambda r: r.actor),
    ("Shipper", lambda r: r.shipper),
    ("Consignee", lambda r: r.counterpart),
    ("Origin", lambda r: r.origin),
    ("Destination", lambda r: r.destination),
    ("Income", lambda r: r.income),
    ("Expense", lambda r: r.expense),
    ("Profit", lambda r: r.profit),
)

COMPARISON_COLUMNS: Tuple[Column, ...] = (
    ("Executive", lambda c: c.actor),
    ("Total", lambda c: c.stats.total_count),
    ("Completed", lambda c: c.stats.completed_count),
    ("Completion %", lambda c: c.stats.completion_rate),
    ("Air", lambda c: c.stats.air_count),
    ("Sea", lambda c: c.stats.sea_count),
    ("Truck", lambda c: c.stats.truck_count),
    ("Other", lambda c: c.stats.other_count),
    ("Unique Clients", lambda c: c.stats.unique_counterparts),
    ("Income", lambda c: c.stats.total_income),
    ("Expense", lambda c: c.stats.total_expense),
    ("Profit", lambda c: c.stats.total_profit),
    ("Margin %", lambda c: c.stats.profit_margin),
    ("Average per Record", lambda c: c.stats.average_income),
)

MONTHLY_COLUMNS: Tuple[Column, ...] = (
    ("Period", lambda b: b.period),
    ("Records", lambda b: b.total_count),
    ("Completed", lambda b: b.completed_count),
    ("Air", lambda b: b.mode_counts.get(TransportMode.AIR, 0)),
    ("Sea", lambda b: b.mode_counts.get(TransportMode.SEA, 0)),
    ("Truck", lambda b: b.mode_counts.get(TransportMode.TRUCK, 0)),
    ("Other", lambda b: b.mode_counts.get(TransportMode.OTHER, 0)),
    ("Income", lambda b: b.total_income),
    ("Expense", lambda b: b.total_expense),
    ("Profit", lambda b: b.total_profit),
    ("Margin %", lambda b: b.margin),
    ("Clients", lambda b: b.unique_counterparts),
)


@dataclass(frozen=True)
class ExportFile:
    """A named, downloadable text blob."""

    filename: str
    content: str
    include_bom: bool = False

    def to_bytes(self) -> bytes:
        prefix = _BOM if self.include_bom else ""
        return (prefix + self.content).encode("utf-8")


def format_value(value: Any) -> str:
    """Render a cell deterministically."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def export_filename(report_kind: str, on: date) -> str:
    kind = _KIND_PATTERN.sub("-", report_kind.strip()).strip("-")
    if not kind:
        raise ValidationError("report_kind must contain a usable name")
    return f"{kind}_{on.isoformat()}.csv"


class Exporter:
    """Serializes items through an ordered list of (header, extractor) columns."""

    def __init__(self, delimiter: str = ",") -> None:
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        self._delimiter = delimiter

    def to_delimited_text(
        self, items: Iterable[Any], columns: Sequence[Column]
    ) -> str:
        if not columns:
            raise ValidationError("At least one column is required")
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self._delimiter,
            quoting=csv.QUOTE_ALL,
            lineterminator="\n",
        )
        writer.writerow([header for header, _ in columns])
        for item in items:
            writer.writerow([format_value(extract(item)) for _, extract in columns])
        return buffer.getvalue()

    def build_file(
        self,
        items: Iterable[Any],
        columns: Sequence[Column],
        *,
        report_kind: str,
        on: date,
        include_bom: bool = False,
    ) -> ExportFile:
        return ExportFile(
            filename=export_filename(report_kind, on),
            content=self.to_delimited_text(items, columns),
            include_bom=include_bom,
        )

    def records_to_text(self, records: Iterable[RawRecord]) -> str:
        return self.to_delimited_text(records, RECORD_COLUMNS)

    def comparisons_to_text(self, comparisons: Iterable[ActorComparison]) -> str:
        return self.to_delimited_text(comparisons, COMPARISON_COLUMNS)

    def monthly_to_text(self, buckets: Iterable[MonthlyBucket]) -> str:
        return self.to_delimited_text(buckets, MONTHLY_COLUMNS)

    def to_dataframe(self, items: Iterable[Any], columns: Sequence[Column]) -> Any:
        """Export the same columns to a pandas DataFrame."""

        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for dataframe export") from exc

        data = [
            {header: extract(item) for header, extract in columns} for item in items
        ]
        return pd.DataFrame(data)
