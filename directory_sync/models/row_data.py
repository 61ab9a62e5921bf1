from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .cells import Cell

"""Row models for the directory spreadsheet importer.

RawRow is one spreadsheet data row as read from the workbook (header -> cell).
RowData is the same row after normalization into the canonical field set of
one entity kind. Both keep the 1-based spreadsheet row number (header row = 1,
first data row = 2) so validation issues point at the row the operator sees.
"""

__all__ = [
    "RawRow",
    "RowData",
]


@dataclass(frozen=True)
class RawRow:
    """Spreadsheet row before normalization (ephemeral)."""
    row_number: int  # spreadsheet row, first data row = 2
    cells: dict[str, Cell]  # trimmed header -> cell


@dataclass(frozen=True)
class RowData:
    """Normalized record of one entity kind.

    Every schema field is present; values are trimmed strings or None, dates are
    ISO timestamps anchored at UTC midnight.
    """
    row_number: int
    values: dict[str, str | None]

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def key(self, natural_key: str) -> str:
        """Trimmed natural key value ('' when missing)."""
        return (self.values.get(natural_key) or "").strip()

    def as_dict(self) -> dict[str, Any]:
        return dict(self.values)
