from __future__ import annotations

from directory_sync.models.entity_schema import OFFICE_CONTACTS
from directory_sync.models.row_data import RowData
from directory_sync.services.validation import collect_issues


def test_reports_every_missing_required_field():
    records = [
        RowData(2, {"name": "Reception", "extension": "100"}),
        RowData(3, {"name": "IT", "extension": None}),
        RowData(4, {"name": None, "extension": None}),
    ]
    issues = collect_issues(records, OFFICE_CONTACTS)
    assert [(i.row_index, i.message) for i in issues] == [
        (3, "missing required field 'extension' (column 'التحويلة')"),
        (4, "missing required field 'name' (column 'اسم المكتب')"),
        (4, "missing required field 'extension' (column 'التحويلة')"),
    ]


def test_no_issues():
    assert collect_issues([RowData(2, {"name": "A", "extension": "1"})], OFFICE_CONTACTS) == []
