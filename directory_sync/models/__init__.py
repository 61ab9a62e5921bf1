"""Domain models for the directory spreadsheet importer.

This package contains the declarative per-entity schemas, the spreadsheet cell
union and the value objects that flow through one import session.
"""

from .cells import Cell, DateCell, EmptyCell, NumberCell, TextCell, to_cell
from .commit_result import CommitResult, CommitStatus, ProgressEvent
from .config_models import DatabaseConfig, ImportConfig
from .entity_schema import EMPLOYEES, OFFICE_CONTACTS, EntitySchema, FieldSpec, get_schema
from .reconciliation import Create, Ignore, ImportSummary, Update, ValidationIssue
from .row_data import RawRow, RowData

__all__ = [
    # Schema
    "EntitySchema",
    "FieldSpec",
    "EMPLOYEES",
    "OFFICE_CONTACTS",
    "get_schema",
    # Spreadsheet cells
    "Cell",
    "TextCell",
    "NumberCell",
    "DateCell",
    "EmptyCell",
    "to_cell",
    # Rows
    "RawRow",
    "RowData",
    # Reconciliation
    "Create",
    "Update",
    "Ignore",
    "ImportSummary",
    "ValidationIssue",
    # Commit
    "CommitResult",
    "CommitStatus",
    "ProgressEvent",
    # Configuration
    "DatabaseConfig",
    "ImportConfig",
]
