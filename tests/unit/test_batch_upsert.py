from __future__ import annotations

import psycopg2
import pytest

from directory_sync.db.batch_upsert import (
    DEFAULT,
    BatchUpsertError,
    UpsertResult,
    batch_upsert,
    build_upsert_sql,
    quote_ident,
)


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.rows: list[list] = []


# execute_values is patched so the logic runs without a live database
@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import directory_sync.db.batch_upsert as bu

    def fake_execute_values(cursor, sql, rows, page_size=1000, template=None):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)

    monkeypatch.setattr(bu, "execute_values", fake_execute_values)
    return fake_execute_values


def test_build_upsert_sql():
    sql = build_upsert_sql("employees", ["employee_id", "email"], "employee_id")
    assert sql == (
        'INSERT INTO "employees" ("employee_id","email") VALUES %s '
        'ON CONFLICT ("employee_id") DO UPDATE SET "email"=EXCLUDED."email"'
    )


def test_build_upsert_sql_key_only():
    sql = build_upsert_sql("office_contacts", ["name"], "name")
    assert sql.endswith('ON CONFLICT ("name") DO NOTHING')


def test_quote_ident_rejects_injection():
    with pytest.raises(BatchUpsertError):
        quote_ident('employees"; DROP TABLE x; --')


def test_batch_upsert_basic():
    cur = DummyCursor()
    res = batch_upsert(cur, "employees", ["employee_id", "email"], [["E1", "a@x"], ["E2", DEFAULT]],
                       conflict_target="employee_id")
    assert res == UpsertResult(upserted_rows=2)
    assert len(cur.queries) == 1
    assert cur.rows[1][1] is DEFAULT


def test_batch_upsert_empty_rows():
    cur = DummyCursor()
    res = batch_upsert(cur, "employees", ["employee_id"], [], conflict_target="employee_id")
    assert res.upserted_rows == 0
    assert cur.queries == []


def test_batch_upsert_missing_conflict_column():
    with pytest.raises(BatchUpsertError):
        batch_upsert(DummyCursor(), "employees", ["email"], [["a@x"]], conflict_target="employee_id")


def test_batch_upsert_wraps_driver_errors(monkeypatch):
    import directory_sync.db.batch_upsert as bu

    def failing(cursor, sql, rows, page_size=1000):
        raise psycopg2.IntegrityError("duplicate key value violates unique constraint ")

    monkeypatch.setattr(bu, "execute_values", failing)
    with pytest.raises(BatchUpsertError) as e:
        batch_upsert(DummyCursor(), "employees", ["employee_id"], [["E1"]], conflict_target="employee_id")
    assert str(e.value) == "duplicate key value violates unique constraint"

