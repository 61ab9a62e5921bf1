from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pandas as pd

from ..models.cells import Cell, DateCell, EmptyCell, NumberCell, TextCell
from ..models.entity_schema import EntitySchema, FieldSpec
from ..models.row_data import RawRow, RowData

"""Row normalizer.

Turns one RawRow into the canonical record of an entity kind. Total over the
cell union and never raises: a value that cannot be interpreted becomes None
for that field only, so one malformed cell never aborts an import.

Date rules:
- native date cell      -> its calendar date (aware values first converted to the local zone)
- numeric serial        -> UTC date of (serial - 25569) days after 1970-01-01
- strict YYYY-MM-DD     -> that date (UTC)
- any other text        -> parsed, read in the local zone
The result is always `YYYY-MM-DDT00:00:00.000Z`.
"""

logger = logging.getLogger(__name__)

# Days between the spreadsheet epoch (1899-12-30) and the Unix epoch
EXCEL_EPOCH_OFFSET = 25569
MS_PER_DAY = 86400 * 1000
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_utc_midnight(day: date) -> str:
    return f"{day.isoformat()}T00:00:00.000Z"


def _local_day(value: datetime, tz: ZoneInfo) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(tz)
    return value.date()


def _serial_to_day(serial: float) -> date | None:
    if not serial:
        return None
    try:
        ms = round((serial - EXCEL_EPOCH_OFFSET) * MS_PER_DAY)
        return (_UNIX_EPOCH + timedelta(milliseconds=ms)).date()
    except (OverflowError, ValueError):
        return None


def _text_to_day(text: str, tz: ZoneInfo) -> date | None:
    text = text.strip()
    if not text:
        return None
    if _ISO_DAY.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return _local_day(parsed.to_pydatetime(), tz)


def parse_date_cell(cell: Cell, timezone: str = "UTC") -> str | None:
    """Resolve a cell to the ISO timestamp of its calendar date, or None."""
    tz = ZoneInfo(timezone)
    day: date | None
    if isinstance(cell, DateCell):
        value = cell.value
        day = _local_day(value, tz) if isinstance(value, datetime) else value
    elif isinstance(cell, NumberCell):
        day = _serial_to_day(cell.number)
    elif isinstance(cell, TextCell):
        day = _text_to_day(cell.text, tz)
    elif isinstance(cell, EmptyCell):
        day = None
    else:  # pragma: no cover - closed union
        day = None
    return format_utc_midnight(day) if day is not None else None


def format_number(number: float | int) -> str:
    """Render a numeric cell the way it reads in the sheet (1001.0 -> '1001')."""
    if isinstance(number, float):
        if number != number or number in (float("inf"), float("-inf")):
            return ""
        if number.is_integer():
            return str(int(number))
        return repr(number)
    return str(number)


def text_of(cell: Cell) -> str:
    """String form of a cell for text fields (untrimmed, '' for empty)."""
    if isinstance(cell, TextCell):
        return cell.text
    if isinstance(cell, NumberCell):
        return format_number(cell.number)
    if isinstance(cell, DateCell):
        value = cell.value
        return (value.date() if isinstance(value, datetime) else value).isoformat()
    if isinstance(cell, EmptyCell):
        return ""
    return ""  # pragma: no cover - closed union


def clean_text(value: str, null_sentinels: frozenset[str] | set[str] | None = None) -> str | None:
    """Trim; empty (or a configured null sentinel) becomes None."""
    stripped = value.strip()
    if not stripped:
        return None
    if null_sentinels and stripped.upper() in null_sentinels:
        return None
    return stripped


def _normalize_field(
    spec: FieldSpec,
    cell: Cell,
    timezone: str,
    null_sentinels: frozenset[str] | set[str] | None,
) -> str | None:
    if spec.is_date:
        if isinstance(cell, TextCell) and clean_text(cell.text, null_sentinels) is None:
            return None
        return parse_date_cell(cell, timezone)
    return clean_text(text_of(cell), null_sentinels)


def normalize_row(
    raw: RawRow,
    schema: EntitySchema,
    *,
    timezone: str = "UTC",
    null_sentinels: frozenset[str] | set[str] | None = None,
) -> RowData:
    """Normalize one spreadsheet row into the canonical record of `schema`."""
    values: dict[str, str | None] = {}
    for spec in schema.fields:
        cell = raw.cells.get(spec.header, EmptyCell())
        try:
            values[spec.name] = _normalize_field(spec, cell, timezone, null_sentinels)
        except Exception:
            # Degrade the single field, keep the row
            logger.debug(
                "row=%d field=%s could not be normalized, stored as null",
                raw.row_number,
                spec.name,
                exc_info=True,
            )
            values[spec.name] = None
    return RowData(row_number=raw.row_number, values=values)


def normalize_rows(
    rows: Iterable[RawRow],
    schema: EntitySchema,
    *,
    timezone: str = "UTC",
    null_sentinels: frozenset[str] | set[str] | None = None,
) -> list[RowData]:
    return [
        normalize_row(r, schema, timezone=timezone, null_sentinels=null_sentinels)
        for r in rows
    ]


def missing_headers(columns: Iterable[str], schema: EntitySchema) -> list[str]:
    """Schema headers absent from the sheet (informational; they read as null)."""
    present = set(columns)
    return [f.header for f in schema.fields if f.header not in present]
