from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Union

from .row_data import RowData

"""Reconciliation outcome models.

Every deduplicated spreadsheet record is classified against the persisted
collection as exactly one of Create, Update or Ignore. Outcomes are derived on
every import run and never stored.
"""

__all__ = [
    "Create",
    "Update",
    "Ignore",
    "Outcome",
    "ImportSummary",
    "ValidationIssue",
]


@dataclass(frozen=True)
class Create:
    """No persisted record carries this natural key."""
    key: str
    record: RowData


@dataclass(frozen=True)
class Update:
    """At least one comparable field differs.

    Carries the full persisted row and the full incoming record so the operator
    can review every field, plus the changed fields in schema order.
    """
    key: str
    old: dict[str, Any]
    new: RowData
    changed_fields: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Ignore:
    """Incoming record matches the persisted one on every comparable field."""
    key: str
    record: RowData


Outcome = Union[Create, Update, Ignore]


@dataclass(frozen=True)
class ValidationIssue:
    """Advisory, never blocks a commit."""
    row_index: int  # 1-based spreadsheet row
    message: str


@dataclass(frozen=True)
class ImportSummary:
    create: int
    update: int
    ignored: int

    @property
    def total(self) -> int:
        return self.create + self.update + self.ignored

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[Outcome]) -> ImportSummary:
        create = update = ignored = 0
        for o in outcomes:
            if isinstance(o, Create):
                create += 1
            elif isinstance(o, Update):
                update += 1
            else:
                ignored += 1
        return cls(create=create, update=update, ignored=ignored)
