from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ..models.entity_schema import EntitySchema
from ..models.reconciliation import Outcome, Update
from .diff_engine import normalize_value

"""Selection model.

Tracks, per Update record, which changed fields the operator approved. The
default never clears data: a changed field whose new value is empty is left
unselected and must be opted into. `select_all` selects every changed field,
clearing ones included.

A FieldSelection belongs to one import session and is consumed exactly once
at commit time.
"""


class SelectionError(Exception):
    pass


def clearing_fields(update: Update) -> list[str]:
    """Changed fields whose new value is empty (applying them erases data)."""
    return [f for f in update.changed_fields if normalize_value(update.new.get(f)) is None]


def default_fields(update: Update) -> set[str]:
    clearing = set(clearing_fields(update))
    return {f for f in update.changed_fields if f not in clearing}


class FieldSelection:
    """Natural key -> approved field names for every Update of a session."""

    def __init__(self, updates: Iterable[Update]) -> None:
        self._updates: dict[str, Update] = {u.key: u for u in updates}
        self._selected: dict[str, set[str]] = {
            key: default_fields(u) for key, u in self._updates.items()
        }
        self._consumed = False

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[Outcome]) -> FieldSelection:
        return cls(o for o in outcomes if isinstance(o, Update))

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def keys(self) -> list[str]:
        return list(self._updates)

    def _update_for(self, key: str) -> Update:
        if self._consumed:
            raise SelectionError("selection already consumed by a commit")
        try:
            return self._updates[key]
        except KeyError:
            raise SelectionError(f"no update pending for key '{key}'") from None

    def selected(self, key: str) -> frozenset[str]:
        self._update_for(key)
        return frozenset(self._selected[key])

    def toggle(self, key: str, field: str) -> bool:
        """Flip one changed field; returns True when it is now selected."""
        update = self._update_for(key)
        if field not in update.changed_fields:
            raise SelectionError(f"field '{field}' did not change for key '{key}'")
        chosen = self._selected[key]
        if field in chosen:
            chosen.remove(field)
            return False
        chosen.add(field)
        return True

    def select_all(self, key: str) -> None:
        update = self._update_for(key)
        self._selected[key] = set(update.changed_fields)

    def deselect_all(self, key: str) -> None:
        self._update_for(key)
        self._selected[key] = set()

    def is_all_selected(self, key: str) -> bool:
        update = self._update_for(key)
        chosen = self._selected[key]
        return bool(update.changed_fields) and all(f in chosen for f in update.changed_fields)

    def deselect_field_everywhere(self, field: str) -> int:
        """Drop `field` from every record's selection; returns records touched."""
        if self._consumed:
            raise SelectionError("selection already consumed by a commit")
        touched = 0
        for chosen in self._selected.values():
            if field in chosen:
                chosen.remove(field)
                touched += 1
        return touched

    def select_all_everywhere(self) -> None:
        for key in self.keys:
            self.select_all(key)

    def consume(self) -> dict[str, frozenset[str]]:
        """Hand the final selection to the commit; the selection is then closed."""
        if self._consumed:
            raise SelectionError("selection already consumed by a commit")
        final = {key: frozenset(chosen) for key, chosen in self._selected.items()}
        self._consumed = True
        return final


def apply_selection(update: Update, fields: Iterable[str], schema: EntitySchema) -> dict[str, Any]:
    """`old` with every selected field overwritten by the incoming value."""
    merged = dict(update.old)
    for name in fields:
        if name not in schema.comparable_fields:
            continue
        merged[name] = update.new.get(name)
    return merged
