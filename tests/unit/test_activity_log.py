from __future__ import annotations

import psycopg2

from directory_sync.db.activity_log import log_activity


class Cursor:
    def __init__(self, fail: bool = False) -> None:
        self.executed = []
        self.fail = fail

    def execute(self, sql, params=None):
        if self.fail:
            raise psycopg2.errors.UndefinedTable('relation "activity_log" does not exist')
        self.executed.append((sql, params))


def test_log_activity_inserts_row():
    cur = Cursor()
    assert log_activity(cur, "admin", "IMPORT_EMPLOYEES", {"count": 3}) is True
    [(sql, params)] = cur.executed
    assert sql.startswith("INSERT INTO activity_log")
    assert params[1:4] == ("admin", "IMPORT_EMPLOYEES", "IMPORT_EMPLOYEES")
    assert params[4].adapted == {"count": 3}


def test_log_activity_without_operator_is_skipped():
    cur = Cursor()
    assert log_activity(cur, None, "IMPORT_CONTACTS") is False
    assert cur.executed == []


def test_log_activity_failure_never_raises():
    assert log_activity(Cursor(fail=True), "admin", "IMPORT_CONTACTS") is False
