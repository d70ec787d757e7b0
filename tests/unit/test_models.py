from datetime import date, datetime

import pytest
from pydantic import ValidationError

from freight_analytics.domain.models import (
    DateRange,
    FetchOutcome,
    RawRecord,
    RemoteQuery,
    StatSummary,
    TransportMode,
    parse_event_date,
)


def test_raw_record_reads_api_field_names():
    record = RawRecord.model_validate(
        {
            "number": "Q-100",
            "salesRep": "Ana Perez",
            "consignee": "  Acme Ltd ",
            "shipper": "Shipper Co",
            "modeOfTransportation": "40 - Air",
            "status": "Completed",
            "date": "2024-01-15T10:30:00",
            "origin": "SCL",
            "destination": "MIA",
            "totalIncome": 100,
            "totalExpense": "40.5",
            "profit": 59.5,
        }
    )

    assert record.id == "Q-100"
    assert record.actor == "Ana Perez"
    assert record.counterpart == "Acme Ltd"
    assert record.mode == "40 - Air"
    assert record.event_date == datetime(2024, 1, 15, 10, 30)
    assert record.income == 100.0
    assert record.expense == 40.5
    assert record.is_completed is True


def test_raw_record_flattens_nested_names_and_defaults_missing_fields():
    record = RawRecord.model_validate(
        {"consignee": {"name": "Globex"}, "totalIncome": None, "date": ""}
    )

    assert record.counterpart == "Globex"
    assert record.income == 0.0
    assert record.event_date is None
    assert record.actor == ""
    assert record.is_completed is False


def test_raw_record_keeps_profit_as_given():
    record = RawRecord(income=100, expense=40, profit=10)
    assert record.profit == 10.0


def test_raw_record_is_immutable():
    record = RawRecord(actor="A")
    with pytest.raises(ValidationError):
        record.actor = "B"  # type: ignore[misc]


def test_raw_record_round_trips_through_json():
    record = RawRecord(
        id="1", actor="A", event_date=datetime(2024, 2, 1), mode="30 - Truck"
    )
    restored = RawRecord.model_validate_json(record.model_dump_json())
    assert restored == record


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-05", datetime(2024, 3, 5)),
        ("2024-03-05T23:00:00-05:00", datetime(2024, 3, 5, 23, 0)),
        ("2024-03-05T12:00:00Z", datetime(2024, 3, 5, 12, 0)),
        ("05/03/2024", datetime(2024, 3, 5)),
        (date(2024, 3, 5), datetime(2024, 3, 5)),
        ("not a date", None),
        (12345, None),
        (None, None),
    ],
)
def test_parse_event_date(raw, expected):
    assert parse_event_date(raw) == expected


def test_date_range_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        DateRange(start=date(2024, 2, 1), end=date(2024, 1, 1))


def test_date_range_params_use_iso_dates():
    window = DateRange(start="2024-01-01", end="2024-01-31")
    assert window.as_params() == {"StartDate": "2024-01-01", "EndDate": "2024-01-31"}
    assert DateRange.unbounded().as_params() == {}


def test_remote_query_rejects_page_zero():
    with pytest.raises(ValidationError):
        RemoteQuery(page=0)


def test_stat_summary_defaults_are_zero():
    summary = StatSummary()
    assert summary.total_count == 0
    assert summary.profit_margin == 0.0
    assert summary.mode_counts == {mode: 0 for mode in TransportMode}
    assert summary.other_count == 0


def test_fetch_outcome_pool_preserves_actor_order():
    a1, a2, b1 = RawRecord(id="a1"), RawRecord(id="a2"), RawRecord(id="b1")
    outcome = FetchOutcome(records_by_actor={"B": (b1,), "A": (a1, a2)})

    assert [record.id for record in outcome.pool] == ["b1", "a1", "a2"]
    assert outcome.requested_count == 2
