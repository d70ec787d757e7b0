import csv
import io
import sys
import types
from datetime import date, datetime

import pytest

from freight_analytics.analytics.exporter import (
    COMPARISON_COLUMNS,
    MONTHLY_COLUMNS,
    RECORD_COLUMNS,
    Exporter,
    ExportFile,
    export_filename,
    format_value,
)
from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.models import (
    ActorComparison,
    RawRecord,
    StatSummary,
    TransportMode,
)


@pytest.fixture
def exporter():
    return Exporter()


@pytest.fixture
def records():
    return [
        RawRecord(
            id="Q-1",
            actor="Ana",
            counterpart='Acme, "Intl"',
            mode="40 - Air",
            status="Completed",
            event_date=datetime(2024, 1, 5, 14, 0),
            income=100.0,
            expense=25.5,
            profit=74.5,
        ),
        RawRecord(id="Q-2", actor="Ana", shipper="Line\nBreak"),
    ]


def _parse(text: str):
    return list(csv.reader(io.StringIO(text)))


def test_records_export_has_header_and_one_row_per_record(exporter, records):
    rows = _parse(exporter.records_to_text(records))

    assert rows[0] == [header for header, _ in RECORD_COLUMNS]
    assert len(rows) == 1 + len(records)
    assert all(len(row) == len(RECORD_COLUMNS) for row in rows)


def test_embedded_delimiters_quotes_and_newlines_survive(exporter, records):
    rows = _parse(exporter.records_to_text(records))

    assert rows[1][6] == 'Acme, "Intl"'
    assert rows[2][5] == "Line\nBreak"


def test_every_cell_is_quoted(exporter, records):
    text = exporter.records_to_text(records[:1])
    first_line = text.split("\n", 1)[0]
    assert first_line.startswith('"Number","Date"')


def test_cells_are_formatted_deterministically(exporter, records):
    rows = _parse(exporter.records_to_text(records))

    assert rows[1][1] == "2024-01-05"
    assert rows[1][9:] == ["100.00", "25.50", "74.50"]
    assert rows[2][1] == ""


def test_export_is_deterministic(exporter, records):
    assert exporter.records_to_text(records) == exporter.records_to_text(records)


def test_empty_items_yield_header_only(exporter):
    text = exporter.comparisons_to_text([])
    assert _parse(text) == [[header for header, _ in COMPARISON_COLUMNS]]


def test_comparison_columns_read_stats(exporter):
    comparison = ActorComparison(
        actor="Ana",
        stats=StatSummary(
            total_count=4,
            mode_counts={TransportMode.SEA: 3, TransportMode.AIR: 1},
            profit_margin=12.346,
        ),
    )
    row = _parse(exporter.comparisons_to_text([comparison]))[1]
    header = [name for name, _ in COMPARISON_COLUMNS]

    assert row[header.index("Total")] == "4"
    assert row[header.index("Sea")] == "3"
    assert row[header.index("Margin %")] == "12.35"


def test_monthly_columns_match_header(exporter):
    assert _parse(exporter.monthly_to_text([]))[0][0] == MONTHLY_COLUMNS[0][0]


def test_custom_delimiter(records):
    text = Exporter(delimiter=";").records_to_text(records[:1])
    assert text.startswith('"Number";"Date"')


def test_no_columns_is_rejected(exporter):
    with pytest.raises(ValidationError):
        exporter.to_delimited_text([], [])


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (True, "true"),
        (3, "3"),
        (2.5, "2.50"),
        (TransportMode.AIR, "air"),
        (date(2024, 3, 1), "2024-03-01"),
    ],
)
def test_format_value(value, expected):
    assert format_value(value) == expected


def test_export_filename_uses_kind_and_date():
    assert export_filename("comparison", date(2024, 5, 6)) == "comparison_2024-05-06.csv"
    assert export_filename("sales rep/report", date(2024, 5, 6)) == "sales-rep-report_2024-05-06.csv"
    with pytest.raises(ValidationError):
        export_filename("  //  ", date(2024, 5, 6))


def test_build_file_adds_bom_only_on_request(exporter, records):
    plain = exporter.build_file(
        records, RECORD_COLUMNS, report_kind="records", on=date(2024, 1, 31)
    )
    marked = exporter.build_file(
        records,
        RECORD_COLUMNS,
        report_kind="records",
        on=date(2024, 1, 31),
        include_bom=True,
    )

    assert isinstance(plain, ExportFile)
    assert plain.filename == "records_2024-01-31.csv"
    assert not plain.to_bytes().startswith(b"\xef\xbb\xbf")
    assert marked.to_bytes().startswith(b"\xef\xbb\xbf")
    assert marked.content == plain.content


def test_to_dataframe_uses_pandas(monkeypatch, exporter, records):
    captured = {}

    def fake_dataframe(data):
        captured["data"] = data
        return "frame"

    fake_pandas = types.SimpleNamespace(DataFrame=fake_dataframe)
    monkeypatch.setitem(sys.modules, "pandas", fake_pandas)

    result = exporter.to_dataframe(records, RECORD_COLUMNS)

    assert result == "frame"
    assert captured["data"][0]["Number"] == "Q-1"
    assert list(captured["data"][0]) == [header for header, _ in RECORD_COLUMNS]
