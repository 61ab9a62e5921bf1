from __future__ import annotations

from collections.abc import Iterable

from ..models.entity_schema import EntitySchema
from ..models.reconciliation import ValidationIssue
from ..models.row_data import RowData

"""Validation collector.

Reports every missing required field of every record. The result is advisory:
flagged rows are still classified and committed.
"""


def collect_issues(records: Iterable[RowData], schema: EntitySchema) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for rec in records:
        for spec in schema.required_fields:
            if rec.get(spec.name) is None:
                issues.append(
                    ValidationIssue(
                        row_index=rec.row_number,
                        message=f"missing required field '{spec.name}' (column '{spec.header}')",
                    )
                )
    return issues
