# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from directory_sync.db.batch_upsert import BatchUpsertError
from directory_sync.logging.init import reset_logging
from directory_sync.models.entity_schema import EntitySchema


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # keep the developer's real .env / environment out of the tests
        for var in ("DATABASE_URL", "PGDSN", "DIRECTORY_SYNC_OPERATOR"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """timezone: UTC
chunk_size: 50
logs_dir: ./logs
null_sentinels: ["NULL"]
permissions:
  - import_export_employees
  - import_export_contacts
entities:
  employees:
    table: employees
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_workbook(path: Path, rows: list[list[object]], sheet_name: str = "Sheet1") -> Path:
    """Write `rows` (first row = headers) as a real .xlsx file."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def workbook_factory(temp_workdir: Path):
    def _make(name: str, rows: list[list[object]], sheet_name: str = "Sheet1") -> Path:
        return make_workbook(temp_workdir / "data" / name, rows, sheet_name)
    return _make


class FakeCursor:
    """Records executed statements; used where a store needs a cursor."""

    def __init__(self) -> None:
        self.executed: list[tuple[str, Any]] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.executed.append((sql, params))


class FakeStore:
    """In-memory record store keyed by natural key.

    Mimics the database side of an upsert: new keys get an id and created_at,
    existing keys have the sent columns overwritten. `fail_on_call` makes the
    n-th upsert call (1-based) raise BatchUpsertError.
    """

    def __init__(self, rows: Sequence[dict[str, Any]] = (), *, natural_key: str = "employee_id",
                 fail_on_call: int | None = None) -> None:
        self.natural_key = natural_key
        self.rows: dict[str, dict[str, Any]] = {}
        self.upsert_calls: list[list[dict[str, Any]]] = []
        self.fetch_by_keys_calls: list[list[str]] = []
        self.fetch_all_calls = 0
        self.fail_on_call = fail_on_call
        self.cursor = FakeCursor()
        self._next_id = 1
        for r in rows:
            self._insert(dict(r))

    def _insert(self, record: dict[str, Any]) -> None:
        record.setdefault("id", self._next_id)
        record.setdefault("created_at", "2024-01-01T00:00:00.000Z")
        self._next_id += 1
        self.rows[str(record[self.natural_key]).strip()] = record

    def fetch_by_keys(self, schema: EntitySchema, keys: Sequence[str]) -> list[dict[str, Any]]:
        self.fetch_by_keys_calls.append(list(keys))
        return [dict(self.rows[k]) for k in keys if k in self.rows]

    def upsert(self, schema: EntitySchema, records: Sequence[dict[str, Any]]) -> int:
        self.upsert_calls.append([dict(r) for r in records])
        if self.fail_on_call is not None and len(self.upsert_calls) == self.fail_on_call:
            raise BatchUpsertError('duplicate key value violates unique constraint "employees_email_key"')
        for r in records:
            key = str(r[schema.natural_key]).strip()
            if key in self.rows:
                self.rows[key].update(r)
            else:
                self._insert(dict(r))
        return len(records)

    def fetch_all(self, schema: EntitySchema) -> list[dict[str, Any]]:
        self.fetch_all_calls += 1
        return sorted((dict(r) for r in self.rows.values()), key=lambda r: r["id"])


@pytest.fixture()
def fake_store_cls():
    return FakeStore
