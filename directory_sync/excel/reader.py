from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.cells import EmptyCell, TextCell, to_cell
from ..models.row_data import RawRow

"""Workbook reader.

- Only the first worksheet is read.
- Row 1 is the header row; data starts at spreadsheet row 2.
- Headers are matched later by exact (trimmed) text, so they are kept verbatim.
- Cells are read with dtype=object so openpyxl's native values (str, int,
  float, datetime) reach `to_cell` untouched.
"""

SUPPORTED_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


class WorkbookReadError(Exception):
    """Raised when the workbook cannot be opened or parsed."""


class SheetHeaderError(Exception):
    """Raised when the first worksheet has no header row."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow]


def read_first_sheet(path: Path) -> SheetData:
    """Read the first worksheet of a workbook into raw rows."""
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise WorkbookReadError(f"unsupported file type: {path.name} (expected .xlsx or .xls)")
    try:
        xls = pd.ExcelFile(path)
        if not xls.sheet_names:
            raise SheetHeaderError(f"workbook '{path.name}' has no worksheets")
        sheet_name = str(xls.sheet_names[0])
        # keep_default_na=False: "NA" / "NULL" are data here, sentinels are
        # handled by the normalizer from config
        df = xls.parse(xls.sheet_names[0], header=None, dtype=object, keep_default_na=False)
    except SheetHeaderError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"failed to read workbook '{path.name}': {e}") from e
    return sheet_from_frame(df, sheet_name)


def _header_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def sheet_from_frame(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Split a header-less frame into header + RawRows.

    Fully empty rows are skipped; spreadsheet row numbers are kept.
    """
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    columns = [_header_text(c) for c in df.iloc[0].tolist()]

    rows: list[RawRow] = []
    for position in range(1, df.shape[0]):
        values = df.iloc[position].tolist()
        cells = {}
        for col, val in zip(columns, values, strict=False):
            if not col:
                continue  # unlabeled column
            cells[col] = to_cell(val)
        if all(_is_blank(c) for c in cells.values()):
            continue
        rows.append(RawRow(row_number=position + 1, cells=cells))
    return SheetData(sheet_name=sheet_name, columns=[c for c in columns if c], rows=rows)


def _is_blank(cell: object) -> bool:
    return isinstance(cell, EmptyCell) or (isinstance(cell, TextCell) and not cell.text.strip())
