from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook writer: one sheet, one header row, one row per record."""


class WorkbookWriteError(Exception):
    pass


def write_single_sheet(
    path: Path,
    sheet_name: str,
    headers: list[str],
    rows: Iterable[dict[str, Any]],
) -> Path:
    """Write `rows` (header -> value) as a new single-sheet workbook."""
    if path.suffix.lower() != ".xlsx":
        raise WorkbookWriteError(f"export target must be .xlsx: {path.name}")
    df = pd.DataFrame(list(rows), columns=headers)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            # Excel limits sheet titles to 31 characters
            df.to_excel(writer, sheet_name=sheet_name[:31], index=False)
    except OSError as e:
        raise WorkbookWriteError(f"failed to write workbook '{path}': {e}") from e
    return path
