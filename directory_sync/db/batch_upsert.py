from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extensions import AsIs
from psycopg2.extras import execute_values

"""Batched INSERT ... ON CONFLICT DO UPDATE using psycopg2.extras.execute_values.

The conflict target is the entity's natural key, so re-sending a subset of
records is idempotent. Columns a record does not carry are sent as DEFAULT.
"""

# Literal DEFAULT inside VALUES (...) for columns a record does not carry
DEFAULT = AsIs("DEFAULT")

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class BatchUpsertError(Exception):
    pass


@dataclass(frozen=True)
class UpsertResult:
    upserted_rows: int


def quote_ident(name: str) -> str:
    if not _IDENT.match(name):
        raise BatchUpsertError(f"invalid identifier: {name!r}")
    return f'"{name}"'


def build_upsert_sql(table: str, columns: Sequence[str], conflict_target: str) -> str:
    cols_sql = ",".join(quote_ident(c) for c in columns)
    target = quote_ident(conflict_target)
    updates = [c for c in columns if c != conflict_target]
    if updates:
        set_sql = ",".join(f"{quote_ident(c)}=EXCLUDED.{quote_ident(c)}" for c in updates)
        action = f"DO UPDATE SET {set_sql}"
    else:
        action = "DO NOTHING"
    return f"INSERT INTO {quote_ident(table)} ({cols_sql}) VALUES %s ON CONFLICT ({target}) {action}"


def batch_upsert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_target: str,
    page_size: int = 1000,
) -> UpsertResult:
    """Upsert `rows` (aligned with `columns`) into `table`.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table
    columns: column order of every row
    rows: row value sequences; use DEFAULT for absent values
    conflict_target: unique column deciding insert vs update
    page_size: execute_values page size
    """
    if conflict_target not in columns:
        raise BatchUpsertError(f"conflict target '{conflict_target}' missing from columns")

    rows_list = list(rows)
    if not rows_list:
        return UpsertResult(upserted_rows=0)

    sql = build_upsert_sql(table, columns, conflict_target)
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except psycopg2.Error as e:
        raise BatchUpsertError(str(e).strip()) from e
    return UpsertResult(upserted_rows=len(rows_list))
