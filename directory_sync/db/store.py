from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import psycopg2

from ..models.entity_schema import EntitySchema
from .batch_upsert import DEFAULT, BatchUpsertError, batch_upsert, quote_ident

"""Record store over a psycopg2 cursor.

The three calls the import flow needs from the database:

- fetch_by_keys: persisted rows whose trimmed natural key is in the incoming file
- upsert:        one chunk, its own transaction, conflict target = natural key
- fetch_all:     unfiltered reload after a commit

Every driver error leaves this module as BatchUpsertError.
"""

logger = logging.getLogger(__name__)


def rows_as_dicts(cursor: Any, rows: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    names = [d[0] for d in cursor.description]
    return [dict(zip(names, r, strict=False)) for r in rows]


class PostgresRecordStore:
    """Persistence collaborator backed by PostgreSQL.

    The cursor is expected to run in autocommit mode; upsert() opens and
    closes its own transaction so an upserted chunk stays committed even when
    a later chunk fails.
    """

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def fetch_by_keys(self, schema: EntitySchema, keys: Sequence[str]) -> list[dict[str, Any]]:
        if not keys:
            return []
        # keys arrive trimmed; stored keys may still carry stray whitespace
        sql = (
            f"SELECT * FROM {quote_ident(schema.table)} "
            f"WHERE btrim({quote_ident(schema.natural_key)}) = ANY(%s)"
        )
        try:
            self.cursor.execute(sql, (list(keys),))
            return rows_as_dicts(self.cursor, self.cursor.fetchall())
        except psycopg2.Error as e:
            raise BatchUpsertError(f"failed to fetch {schema.table}: {str(e).strip()}") from e

    def fetch_all(self, schema: EntitySchema) -> list[dict[str, Any]]:
        sql = f"SELECT * FROM {quote_ident(schema.table)} ORDER BY {quote_ident('id')}"
        try:
            self.cursor.execute(sql)
            return rows_as_dicts(self.cursor, self.cursor.fetchall())
        except psycopg2.Error as e:
            raise BatchUpsertError(f"failed to reload {schema.table}: {str(e).strip()}") from e

    def upsert(self, schema: EntitySchema, records: Sequence[dict[str, Any]]) -> int:
        """Upsert one chunk inside its own transaction; returns rows sent."""
        if not records:
            return 0
        columns = [c for c in schema.writable_columns if any(c in r for r in records)]
        if schema.natural_key not in columns:
            raise BatchUpsertError(f"records lack natural key '{schema.natural_key}'")
        rows = [[r[c] if c in r else DEFAULT for c in columns] for r in records]

        try:
            self.cursor.execute("BEGIN")
        except psycopg2.Error as e:
            raise BatchUpsertError(f"could not start transaction: {str(e).strip()}") from e
        try:
            result = batch_upsert(
                self.cursor,
                table=schema.table,
                columns=columns,
                rows=rows,
                conflict_target=schema.natural_key,
            )
            self.cursor.execute("COMMIT")
        except (BatchUpsertError, psycopg2.Error) as e:
            try:
                self.cursor.execute("ROLLBACK")
            except psycopg2.Error:
                logger.debug("rollback after failed chunk also failed", exc_info=True)
            if isinstance(e, BatchUpsertError):
                raise
            raise BatchUpsertError(str(e).strip()) from e
        logger.debug("table=%s upserted_rows=%d columns=%s", schema.table, result.upserted_rows, columns)
        return result.upserted_rows
