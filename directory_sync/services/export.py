from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from ..excel.writer import write_single_sheet
from ..models.entity_schema import EntitySchema
from .diff_engine import normalize_value, to_day

"""Export: persisted rows -> single-sheet workbook with the import headers.

Date fields are written as plain `YYYY-MM-DD` text, which the normalizer reads
back as the same calendar day, so exporting and re-importing a collection
yields only Ignore outcomes.
"""

logger = logging.getLogger(__name__)


def export_row(record: Mapping[str, Any], schema: EntitySchema) -> dict[str, Any]:
    """Project one persisted row onto header -> cell value."""
    row: dict[str, Any] = {}
    for spec in schema.fields:
        value = record.get(spec.name)
        if spec.is_date:
            row[spec.header] = to_day(value)
        else:
            row[spec.header] = normalize_value(value)
    return row


def export_records(records: Iterable[Mapping[str, Any]], schema: EntitySchema, path: Path) -> Path:
    rows = [export_row(r, schema) for r in records]
    headers = [f.header for f in schema.fields]
    out = write_single_sheet(path, schema.sheet_name, headers, rows)
    logger.debug("exported %d %s rows to %s", len(rows), schema.kind, out)
    return out
