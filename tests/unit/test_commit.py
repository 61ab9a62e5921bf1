from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from directory_sync.logging.error_log import ErrorLogBuffer
from directory_sync.models.commit_result import CommitStatus
from directory_sync.models.entity_schema import EMPLOYEES
from directory_sync.models.reconciliation import Create, Ignore, Update
from directory_sync.models.row_data import RowData
from directory_sync.services.commit import build_batch, chunked, commit_batch, iso_timestamp

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


def _create(i: int) -> Create:
    key = f"E{i:03d}"
    return Create(key=key, record=RowData(i + 1, {"employee_id": key, "full_name_ar": f"موظف {i}"}))


def _update(key: str = "E500") -> Update:
    old = {"id": 11, "employee_id": key, "full_name_ar": "قديم", "email": "old@x.sa",
           "created_at": "2020-01-01T00:00:00.000Z", "updated_at": "2020-01-01T00:00:00.000Z"}
    new = RowData(9, {"employee_id": key, "full_name_ar": "جديد", "email": None})
    return Update(key=key, old=old, new=new, changed_fields=("full_name_ar", "email"))


def test_iso_timestamp():
    assert iso_timestamp(NOW) == "2024-06-01T09:30:00.000Z"
    assert iso_timestamp(datetime(2024, 6, 1, 9, 30)) == "2024-06-01T09:30:00.000Z"


def test_build_batch_orders_creates_before_updates():
    outcomes = [_update(), _create(1), Ignore(key="E2", record=RowData(3, {})), _create(2)]
    batch = build_batch(outcomes, {"E500": {"full_name_ar"}}, EMPLOYEES, NOW)

    assert [r["employee_id"] for r in batch.records] == ["E001", "E002", "E500"]
    assert (batch.created, batch.updated, batch.ignored, batch.skipped_updates) == (2, 1, 1, 0)
    update = batch.records[-1]
    assert update["full_name_ar"] == "جديد"
    assert update["email"] == "old@x.sa"
    assert update["updated_at"] == "2024-06-01T09:30:00.000Z"


def test_build_batch_strips_id_and_created_at():
    batch = build_batch([_update()], {"E500": {"email"}}, EMPLOYEES, NOW)
    [record] = batch.records
    assert "id" not in record
    assert "created_at" not in record
    assert record["email"] is None


def test_build_batch_drops_updates_with_empty_selection():
    batch = build_batch([_update()], {"E500": frozenset()}, EMPLOYEES, NOW)
    assert batch.records == []
    assert batch.skipped_updates == 1


def test_chunked_rejects_zero():
    with pytest.raises(ValueError):
        list(chunked([{}], 0))


def test_commit_120_records_in_three_chunks(fake_store_cls):
    store = fake_store_cls()
    events = []
    batch = build_batch([_create(i) for i in range(120)], {}, EMPLOYEES, NOW)

    result = commit_batch(batch, store, EMPLOYEES, progress_callback=events.append,
                          file_name="staff.xlsx", file_size=2048)

    assert [len(c) for c in store.upsert_calls] == [50, 50, 20]
    assert [round(e.progress_percent, 2) for e in events] == [41.67, 83.33, 100.0]
    assert all(e.file_name == "staff.xlsx" and e.file_size == 2048 for e in events)
    assert result.status is CommitStatus.COMMITTED
    assert result.committed_records == 120
    assert result.total_chunks == 3
    assert store.fetch_all_calls == 1
    assert len(result.reloaded) == 120


def test_commit_failure_keeps_earlier_chunks(fake_store_cls, tmp_path):
    store = fake_store_cls(fail_on_call=2)
    error_log = ErrorLogBuffer(tmp_path)
    events = []
    batch = build_batch([_create(i) for i in range(120)], {}, EMPLOYEES, NOW)

    result = commit_batch(batch, store, EMPLOYEES, chunk_size=50, progress_callback=events.append,
                          file_name="staff.xlsx", error_log=error_log)

    assert result.status is CommitStatus.FAILED
    assert not result.ok
    assert result.committed_records == 50
    assert "50 of 120" in result.detail
    assert "employees_email_key" in result.detail
    assert len(store.upsert_calls) == 2  # no third chunk
    assert len(store.rows) == 50
    assert len(events) == 1
    assert store.fetch_all_calls == 0

    path = error_log.flush()
    [line] = path.read_text(encoding="utf-8").splitlines()
    data = json.loads(line)
    assert data["error_type"] == "COMMIT_CHUNK_ERROR"
    assert data["row"] == -1
    assert data["entity"] == "employees"


def test_nothing_to_import(fake_store_cls):
    store = fake_store_cls()
    batch = build_batch([Ignore(key="E1", record=RowData(2, {})), _update()], {}, EMPLOYEES, NOW)

    result = commit_batch(batch, store, EMPLOYEES)

    assert result.status is CommitStatus.NOTHING_TO_IMPORT
    assert result.ok
    assert result.ignored == 2
    assert store.upsert_calls == []
    assert store.fetch_all_calls == 0
