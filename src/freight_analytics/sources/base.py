"""Remote source abstractions and shared behavior implementations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from freight_analytics.domain.exceptions import RemoteSourceError
from freight_analytics.domain.models import RawRecord, RemoteQuery


class BaseRemoteSource(ABC):
    """Template-method base class that handles parsing and logging.

    Subclasses only move bytes; record validation happens here so nothing
    downstream ever sees unchecked remote JSON. No retries are attempted.
    """

    def __init__(
        self, *, paginated: bool = False, logger: Optional[logging.Logger] = None
    ) -> None:
        self._paginated = paginated
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    @property
    def paginated(self) -> bool:
        return self._paginated

    def fetch_page(self, query: RemoteQuery) -> List[RawRecord]:
        """Public API that aligns with IRemoteSource.fetch_page."""

        self.log_request(query)
        try:
            items = self._fetch_raw(query)
        except RemoteSourceError:
            raise
        except Exception as exc:  # pragma: no cover
            self.logger.exception("Unexpected remote source failure")
            raise RemoteSourceError(
                "Unexpected remote source failure",
                context={"source": self.__class__.__name__},
            ) from exc
        records = self.parse_records(items)
        self.log_response(query, records)
        return records

    @abstractmethod
    def _fetch_raw(self, query: RemoteQuery) -> Sequence[Any]:
        """Source-specific transport returning the raw item list."""

    def parse_records(self, items: Sequence[Any]) -> List[RawRecord]:
        records: List[RawRecord] = []
        skipped = 0
        for item in items:
            if not isinstance(item, Mapping):
                skipped += 1
                continue
            try:
                records.append(RawRecord.model_validate(item))
            except PydanticValidationError:
                skipped += 1
        if skipped:
            self.logger.warning(
                "remote_items_skipped",
                extra={"skipped": skipped, "source": self.__class__.__name__},
            )
        return records

    def log_request(self, query: RemoteQuery) -> None:
        """Hook for request logging prior to execution."""

        self.logger.debug(
            "remote_request",
            extra={
                "actor": query.actor,
                "counterpart": query.counterpart,
                "page": query.page,
                "source": self.__class__.__name__,
            },
        )

    def log_response(self, query: RemoteQuery, records: Sequence[RawRecord]) -> None:
        """Hook for logging successful responses."""

        self.logger.debug(
            "remote_response",
            extra={
                "actor": query.actor,
                "page": query.page,
                "records": len(records),
                "source": self.__class__.__name__,
            },
        )
