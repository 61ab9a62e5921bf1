from __future__ import annotations

from datetime import date, datetime, timezone, timedelta

import pytest

from directory_sync.models.cells import DateCell, EmptyCell, NumberCell, TextCell
from directory_sync.models.entity_schema import EMPLOYEES, OFFICE_CONTACTS
from directory_sync.models.row_data import RawRow
from directory_sync.services.normalizer import (
    clean_text,
    format_number,
    missing_headers,
    normalize_row,
    parse_date_cell,
)


def _header(name: str) -> str:
    return EMPLOYEES.get_field(name).header


@pytest.mark.parametrize(
    "cell,expected",
    [
        (NumberCell(44927), "2023-01-01T00:00:00.000Z"),
        (NumberCell(32947.0), "1990-03-15T00:00:00.000Z"),
        (TextCell("2023-05-07"), "2023-05-07T00:00:00.000Z"),
        (TextCell(" 1990-03-15 "), "1990-03-15T00:00:00.000Z"),
        (DateCell(date(1990, 3, 15)), "1990-03-15T00:00:00.000Z"),
        (DateCell(datetime(1990, 3, 15, 13, 45)), "1990-03-15T00:00:00.000Z"),
    ],
)
def test_parse_date_cell_variants(cell, expected):
    assert parse_date_cell(cell) == expected


@pytest.mark.parametrize("cell", [NumberCell(0), TextCell(""), TextCell("not a date"), EmptyCell()])
def test_parse_date_cell_unusable_is_none(cell):
    assert parse_date_cell(cell) is None


def test_parse_date_free_text_uses_local_zone():
    # 23:30 on the 6th in UTC is already the 7th in Riyadh (+03:00)
    cell = TextCell("2023-05-06T23:30:00Z")
    assert parse_date_cell(cell, "UTC") == "2023-05-06T00:00:00.000Z"
    assert parse_date_cell(cell, "Asia/Riyadh") == "2023-05-07T00:00:00.000Z"


def test_parse_date_aware_datetime_converted_to_local_zone():
    value = datetime(2023, 5, 6, 22, 0, tzinfo=timezone(timedelta(hours=0)))
    assert parse_date_cell(DateCell(value), "Asia/Riyadh") == "2023-05-07T00:00:00.000Z"


def test_format_number():
    assert format_number(1001.0) == "1001"
    assert format_number(12.5) == "12.5"
    assert format_number(42) == "42"
    assert format_number(float("nan")) == ""


def test_clean_text_and_sentinels():
    assert clean_text("  Ali  ") == "Ali"
    assert clean_text("   ") is None
    assert clean_text("null", frozenset({"NULL"})) is None
    assert clean_text("null") == "null"


def test_normalize_row_fills_every_field():
    raw = RawRow(
        row_number=2,
        cells={
            _header("employee_id"): NumberCell(1001.0),
            _header("full_name_ar"): TextCell("  أحمد "),
            _header("phone_direct"): NumberCell(501234567),
            _header("date_of_birth"): NumberCell(32947),
        },
    )
    rec = normalize_row(raw, EMPLOYEES)
    assert rec.row_number == 2
    assert set(rec.values) == set(EMPLOYEES.field_names)
    assert rec.get("employee_id") == "1001"
    assert rec.get("full_name_ar") == "أحمد"
    assert rec.get("phone_direct") == "501234567"
    assert rec.get("date_of_birth") == "1990-03-15T00:00:00.000Z"
    assert rec.get("email") is None


def test_normalize_row_numeric_zero_is_text():
    raw = RawRow(row_number=3, cells={"التحويلة": NumberCell(0), "اسم المكتب": TextCell("Reception")})
    rec = normalize_row(raw, OFFICE_CONTACTS)
    assert rec.get("extension") == "0"


def test_normalize_row_never_raises(monkeypatch):
    import directory_sync.services.normalizer as norm

    def boom(*args, **kwargs):
        raise RuntimeError("broken cell")

    monkeypatch.setattr(norm, "parse_date_cell", boom)
    raw = RawRow(
        row_number=4,
        cells={_header("employee_id"): TextCell("E1"), _header("date_of_birth"): TextCell("1990-01-01")},
    )
    rec = normalize_row(raw, EMPLOYEES)
    assert rec.get("employee_id") == "E1"
    assert rec.get("date_of_birth") is None


def test_missing_headers():
    headers = [f.header for f in OFFICE_CONTACTS.fields if f.name != "location"]
    assert missing_headers(headers, OFFICE_CONTACTS) == ["الموقع"]
