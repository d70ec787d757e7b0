"""Domain value objects for freight records and their derived statistics."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


class TransportMode(str, Enum):
    """Transport categories every record is classified into."""

    AIR = "air"
    SEA = "sea"
    TRUCK = "truck"
    OTHER = "other"


class FetchPattern(str, Enum):
    """How a remote endpoint lets records be selected per actor."""

    PER_ACTOR = "per_actor"
    BULK = "bulk"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortField(str, Enum):
    """Fields a comparison set can be ordered by."""

    NAME = "name"
    TOTAL_COUNT = "total_count"
    COMPLETED_COUNT = "completed_count"
    PENDING_COUNT = "pending_count"
    COMPLETION_RATE = "completion_rate"
    AIR_COUNT = "air_count"
    SEA_COUNT = "sea_count"
    TRUCK_COUNT = "truck_count"
    OTHER_COUNT = "other_count"
    TOTAL_INCOME = "total_income"
    TOTAL_EXPENSE = "total_expense"
    TOTAL_PROFIT = "total_profit"
    PROFIT_MARGIN = "profit_margin"
    AVERAGE_INCOME = "average_income"
    AVERAGE_PROFIT = "average_profit"
    UNIQUE_COUNTERPARTS = "unique_counterparts"


NUMERIC_SUMMARY_FIELDS: Tuple[str, ...] = tuple(
    field.value for field in SortField if field is not SortField.NAME
)


def zero_mode_counts() -> dict[TransportMode, int]:
    return {mode: 0 for mode in TransportMode}


def parse_event_date(value: Any) -> Optional[datetime]:
    """Best-effort date parsing; anything unusable becomes ``None``.

    Offsets are dropped rather than converted so the calendar month a record
    was booked in stays the one the API reported.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(
            tzinfo=None
        )
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


class RawRecord(BaseModel):
    """One quote or shipment as returned by the remote freight API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("id", "number", "Number"))
    actor: str = Field(
        default="",
        validation_alias=AliasChoices(
            "actor", "salesRep", "salesRepName", "SalesRepName"
        ),
    )
    counterpart: str = Field(
        default="",
        validation_alias=AliasChoices(
            "counterpart", "consignee", "consigneeName", "customer"
        ),
    )
    shipper: str = ""
    origin: str = ""
    destination: str = ""
    mode: str = Field(
        default="",
        validation_alias=AliasChoices("mode", "modeOfTransportation", "transportMode"),
    )
    status: str = ""
    event_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("event_date", "date", "eventDate", "createdOn"),
    )
    income: float = Field(
        default=0.0, validation_alias=AliasChoices("income", "totalIncome")
    )
    expense: float = Field(
        default=0.0, validation_alias=AliasChoices("expense", "totalExpense")
    )
    # Supplied by the API; it is not always income - expense and is kept as is.
    profit: float = 0.0

    @field_validator(
        "id",
        "actor",
        "counterpart",
        "shipper",
        "origin",
        "destination",
        "mode",
        "status",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, Mapping):
            value = value.get("name") or ""
        return str(value).strip()

    @field_validator("income", "expense", "profit", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> float:
        if value is None or isinstance(value, bool):
            return 0.0
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("event_date", mode="before")
    @classmethod
    def coerce_event_date(cls, value: Any) -> Optional[datetime]:
        return parse_event_date(value)

    @property
    def is_completed(self) -> bool:
        return self.status.strip().lower() == "completed"


class DateRange(BaseModel):
    """Inclusive date window; either bound may be open."""

    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "DateRange":
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("start must not be after end")
        return self

    @classmethod
    def unbounded(cls) -> "DateRange":
        return cls()

    def as_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.start is not None:
            params["StartDate"] = self.start.isoformat()
        if self.end is not None:
            params["EndDate"] = self.end.isoformat()
        return params


class RemoteQuery(BaseModel):
    """Filter handed to a remote source for a single page request."""

    model_config = ConfigDict(frozen=True)

    actor: Optional[str] = None
    counterpart: Optional[str] = None
    date_range: DateRange = Field(default_factory=DateRange)
    page: Optional[int] = Field(default=None, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)


class StatSummary(BaseModel):
    """Aggregate metrics for a record collection; percentages are 0-100."""

    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    completed_count: int = 0
    pending_count: int = 0
    mode_counts: Mapping[TransportMode, int] = Field(default_factory=zero_mode_counts)
    total_income: float = 0.0
    total_expense: float = 0.0
    total_profit: float = 0.0
    profit_margin: float = 0.0
    average_income: float = 0.0
    average_profit: float = 0.0
    completion_rate: float = 0.0
    unique_counterparts: int = 0

    @property
    def air_count(self) -> int:
        return self.mode_counts.get(TransportMode.AIR, 0)

    @property
    def sea_count(self) -> int:
        return self.mode_counts.get(TransportMode.SEA, 0)

    @property
    def truck_count(self) -> int:
        return self.mode_counts.get(TransportMode.TRUCK, 0)

    @property
    def other_count(self) -> int:
        return self.mode_counts.get(TransportMode.OTHER, 0)


class MonthlyBucket(BaseModel):
    """Per calendar month slice of a record collection."""

    model_config = ConfigDict(frozen=True)

    period: str
    total_count: int
    completed_count: int
    mode_counts: Mapping[TransportMode, int]
    total_income: float
    total_expense: float
    total_profit: float
    margin: float
    unique_counterparts: int


class ModeBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: TransportMode
    count: int
    total_income: float
    total_expense: float
    total_profit: float
    margin: float


class CounterpartRank(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    count: int
    total_income: float
    total_profit: float


class RouteRank(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: str
    destination: str
    count: int
    total_income: float


class ActorComparison(BaseModel):
    """An actor's summary inside a comparative or pairwise view."""

    model_config = ConfigDict(frozen=True)

    actor: str
    stats: StatSummary


class ComparisonTotals(BaseModel):
    """Sums across a comparison set."""

    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    total_income: float = 0.0
    total_expense: float = 0.0
    total_profit: float = 0.0
    profit_margin: float = 0.0


class FetchOutcome(BaseModel):
    """Result of a multi-actor fetch with per-actor failure isolation."""

    model_config = ConfigDict(frozen=True)

    records_by_actor: Mapping[str, Tuple[RawRecord, ...]] = Field(default_factory=dict)
    failed_count: int = Field(default=0, ge=0)
    auth_failed: bool = False

    @property
    def requested_count(self) -> int:
        return len(self.records_by_actor)

    @property
    def pool(self) -> Tuple[RawRecord, ...]:
        return tuple(
            record
            for records in self.records_by_actor.values()
            for record in records
        )


class ActorReport(BaseModel):
    """Everything the individual executive view shows."""

    model_config = ConfigDict(frozen=True)

    actor: str
    date_range: DateRange
    records: Tuple[RawRecord, ...]
    summary: StatSummary
    monthly: Tuple[MonthlyBucket, ...]
    modes: Tuple[ModeBreakdown, ...]
    top_counterparts: Tuple[CounterpartRank, ...]
    top_routes: Tuple[RouteRank, ...]

    @property
    def is_empty(self) -> bool:
        return self.summary.total_count == 0


class ComparisonReport(BaseModel):
    """Ranked multi-actor view plus cross-actor rankings over the pool."""

    model_config = ConfigDict(frozen=True)

    date_range: DateRange
    comparisons: Tuple[ActorComparison, ...]
    totals: ComparisonTotals
    top_counterparts: Tuple[CounterpartRank, ...] = ()
    top_routes: Tuple[RouteRank, ...] = ()
    failed_count: int = 0
    auth_failed: bool = False
    from_cache: bool = False

    @property
    def is_empty(self) -> bool:
        return self.totals.total_count == 0


class PairwiseReport(BaseModel):
    """Two actors side by side with ``first - second`` deltas."""

    model_config = ConfigDict(frozen=True)

    first: ActorComparison
    second: ActorComparison
    delta: Mapping[str, float]
    failed_count: int = 0
    auth_failed: bool = False
