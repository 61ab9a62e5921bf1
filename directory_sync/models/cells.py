from __future__ import annotations

import numbers
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Union

import pandas as pd

"""Spreadsheet cell union.

A raw cell read from a workbook is exactly one of Text, Number, Date or Empty.
`to_cell` is the single place where loosely typed pandas/openpyxl values are
mapped onto the union, so the row normalizer can branch on every variant
explicitly.
"""

__all__ = [
    "TextCell",
    "NumberCell",
    "DateCell",
    "EmptyCell",
    "Cell",
    "EMPTY",
    "to_cell",
]


@dataclass(frozen=True)
class TextCell:
    text: str  # untrimmed


@dataclass(frozen=True)
class NumberCell:
    number: float | int


@dataclass(frozen=True)
class DateCell:
    value: date | datetime  # naive -> wall clock of the workbook author


@dataclass(frozen=True)
class EmptyCell:
    pass


Cell = Union[TextCell, NumberCell, DateCell, EmptyCell]

EMPTY = EmptyCell()


def to_cell(value: Any) -> Cell:
    """Map a raw workbook value onto the cell union."""
    if value is None or value is pd.NaT:
        return EMPTY
    if isinstance(value, str):
        return TextCell(value)
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return EMPTY
        return DateCell(value.to_pydatetime())
    if isinstance(value, (datetime, date)):
        return DateCell(value)
    if isinstance(value, time):
        return TextCell(value.isoformat())
    if isinstance(value, bool):
        # Excel booleans display as TRUE/FALSE
        return TextCell("TRUE" if value else "FALSE")
    if isinstance(value, numbers.Number):
        if pd.isna(value):
            return EMPTY
        if isinstance(value, numbers.Integral):
            return NumberCell(int(value))
        return NumberCell(float(value))  # type: ignore[arg-type]
    try:
        if pd.isna(value):
            return EMPTY
    except (TypeError, ValueError):
        pass
    return TextCell(str(value))
