"""Freight analytics engine: cached fetching, aggregation, ranking and export."""

from .core.container import DIContainer
from .core.service import ReportingService

__all__ = [
    "ReportingService",
    "DIContainer",
    "domain",
    "cache",
    "sources",
    "orchestration",
    "analytics",
    "core",
]
