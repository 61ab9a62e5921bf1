from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.entity_schema import EntitySchema
from ..models.row_data import RowData

"""Deduplicator: at most one record per natural key, the last occurrence wins."""


@dataclass(frozen=True)
class DedupResult:
    records: list[RowData]
    dropped_rows: list[int] = field(default_factory=list)  # rows without a natural key
    duplicate_rows: list[int] = field(default_factory=list)  # superseded by a later row

    @property
    def has_data(self) -> bool:
        return bool(self.records)


def deduplicate(records: Iterable[RowData], schema: EntitySchema) -> DedupResult:
    """Collapse records sharing a natural key.

    The surviving record is the last one in source order; it takes the slot of
    the key's first appearance. Records with an empty key cannot be matched and
    are dropped; their row numbers are returned so callers can report a count.
    """
    by_key: dict[str, RowData] = {}
    dropped: list[int] = []
    duplicates: list[int] = []
    for rec in records:
        key = rec.key(schema.natural_key)
        if not key:
            dropped.append(rec.row_number)
            continue
        previous = by_key.get(key)
        if previous is not None:
            duplicates.append(previous.row_number)
        by_key[key] = rec
    return DedupResult(records=list(by_key.values()), dropped_rows=dropped, duplicate_rows=duplicates)
