from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any

import pandas as pd

from ..models.entity_schema import EntitySchema
from ..models.reconciliation import Create, Ignore, Outcome, Update
from ..models.row_data import RowData
from .normalizer import format_number

"""Diff engine.

Classifies each deduplicated record against the persisted collection:

1. no persisted row with the same (trimmed) natural key -> Create
2. every comparable field equal                          -> Ignore
3. otherwise                                             -> Update(old, new)

Equality is null aware: both sides go through "trim; empty -> null" first, so
'' and None never differ. Date fields compare at calendar-day granularity.
"""

_DAY_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def to_day(value: Any) -> str | None:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = normalize_value(value)
    if text is None:
        return None
    m = _DAY_PREFIX.match(text)
    if m:
        return m.group(1)
    parsed = pd.to_datetime(text, errors="coerce", utc=True)
    if parsed is None or pd.isna(parsed):
        return text  # unparseable, compare verbatim
    return parsed.date().isoformat()


def normalize_value(value: Any) -> str | None:
    """Trim; empty -> None. Non-string values are stringified first."""
    if value is None:
        return None
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        text = format_number(value)
    elif isinstance(value, datetime):
        text = value.isoformat()
    elif isinstance(value, date):
        text = value.isoformat()
    else:
        text = str(value)
    text = text.strip()
    return text or None


def normalize_for_compare(value: Any, is_date: bool) -> str | None:
    return to_day(value) if is_date else normalize_value(value)


def values_equal(old: Any, new: Any, is_date: bool = False) -> bool:
    return normalize_for_compare(old, is_date) == normalize_for_compare(new, is_date)


def changed_fields(old: Mapping[str, Any], new: Mapping[str, Any], schema: EntitySchema) -> list[str]:
    """Comparable fields whose normalized values differ, in schema order."""
    dates = schema.date_fields
    return [
        name for name in schema.comparable_fields
        if not values_equal(old.get(name), new.get(name), name in dates)
    ]


def index_persisted(rows: Iterable[Mapping[str, Any]], schema: EntitySchema) -> dict[str, dict[str, Any]]:
    """Key persisted rows by their trimmed natural key."""
    index: dict[str, dict[str, Any]] = {}
    for row in rows:
        key = normalize_value(row.get(schema.natural_key))
        if key is not None:
            index[key] = dict(row)
    return index


def classify(record: RowData, persisted: Mapping[str, Mapping[str, Any]], schema: EntitySchema) -> Outcome:
    key = record.key(schema.natural_key)
    old = persisted.get(key)
    if old is None:
        return Create(key=key, record=record)
    diffs = changed_fields(old, record.values, schema)
    if not diffs:
        return Ignore(key=key, record=record)
    return Update(key=key, old=dict(old), new=record, changed_fields=tuple(diffs))


def reconcile(
    records: Iterable[RowData],
    persisted_rows: Iterable[Mapping[str, Any]],
    schema: EntitySchema,
) -> list[Outcome]:
    """One outcome per incoming record, in input order."""
    index = index_persisted(persisted_rows, schema)
    return [classify(r, index, schema) for r in records]
