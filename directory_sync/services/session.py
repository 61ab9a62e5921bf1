from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from ..excel.reader import SheetData, SheetHeaderError, WorkbookReadError, read_first_sheet
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.commit_result import CommitResult
from ..models.config_models import DEFAULT_CHUNK_SIZE
from ..models.entity_schema import EntitySchema
from ..models.reconciliation import Create, Ignore, ImportSummary, Outcome, Update, ValidationIssue
from ..models.row_data import RawRow
from .commit import ProgressCallback, RecordStore, build_batch, commit_batch
from .dedup import DedupResult, deduplicate
from .diff_engine import reconcile
from .normalizer import missing_headers, normalize_rows
from .selection import FieldSelection, SelectionError
from .validation import collect_issues

"""Import session.

One session = one workbook imported into one entity kind:

    read -> normalize -> dedup -> fetch persisted by key -> reconcile
         -> validation issues + default selection -> (operator) -> commit

Everything before commit is in memory; abandoning a session discards it
without touching the database. A session commits at most once.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal error that prevents an import session from being prepared."""


class ImportSession:
    def __init__(
        self,
        schema: EntitySchema,
        *,
        file_name: str,
        file_size: int,
        dedup: DedupResult,
        outcomes: list[Outcome],
        issues: list[ValidationIssue],
        missing_columns: list[str] | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.schema = schema
        self.file_name = file_name
        self.file_size = file_size
        self.dedup = dedup
        self.outcomes = outcomes
        self.issues = issues
        self.missing_columns = missing_columns or []
        self.error_log = error_log
        self.selection = FieldSelection.from_outcomes(outcomes)
        self.result: CommitResult | None = None

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[RawRow],
        schema: EntitySchema,
        store: RecordStore,
        *,
        file_name: str = "",
        file_size: int = 0,
        timezone: str = "UTC",
        null_sentinels: frozenset[str] | None = None,
        columns: Iterable[str] | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> ImportSession:
        records = normalize_rows(rows, schema, timezone=timezone, null_sentinels=null_sentinels)
        dedup = deduplicate(records, schema)
        keys = [r.key(schema.natural_key) for r in dedup.records]
        persisted = store.fetch_by_keys(schema, keys) if keys else []
        outcomes = reconcile(dedup.records, persisted, schema)
        issues = collect_issues(dedup.records, schema)
        missing = missing_headers(columns, schema) if columns is not None else []

        logger.debug(
            "file=%s rows=%d unique=%d dropped=%d duplicates=%d persisted=%d",
            file_name,
            len(records),
            len(dedup.records),
            len(dedup.dropped_rows),
            len(dedup.duplicate_rows),
            len(persisted),
        )
        session = cls(
            schema,
            file_name=file_name,
            file_size=file_size,
            dedup=dedup,
            outcomes=outcomes,
            issues=issues,
            missing_columns=missing,
            error_log=error_log,
        )
        session._record_problems()
        return session

    @classmethod
    def from_workbook(
        cls,
        path: Path,
        schema: EntitySchema,
        store: RecordStore,
        *,
        timezone: str = "UTC",
        null_sentinels: frozenset[str] | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> ImportSession:
        """Read the first worksheet of `path` and prepare a session for it."""
        if not path.exists():
            raise ProcessingError(f"file not found: {path}")
        try:
            sheet: SheetData = read_first_sheet(path)
        except (WorkbookReadError, SheetHeaderError) as e:
            raise ProcessingError(str(e)) from e
        return cls.from_rows(
            sheet.rows,
            schema,
            store,
            file_name=path.name,
            file_size=path.stat().st_size,
            timezone=timezone,
            null_sentinels=null_sentinels,
            columns=sheet.columns,
            error_log=error_log,
        )

    def _record_problems(self) -> None:
        if self.error_log is None:
            return
        for row in self.dedup.dropped_rows:
            self.error_log.append(
                ErrorRecord.create(
                    file=self.file_name,
                    entity=self.schema.kind,
                    row=row,
                    error_type="EMPTY_NATURAL_KEY",
                    message=f"row skipped: '{self.schema.natural_key}' is empty",
                )
            )
        for issue in self.issues:
            self.error_log.append(
                ErrorRecord.create(
                    file=self.file_name,
                    entity=self.schema.kind,
                    row=issue.row_index,
                    error_type="VALIDATION_WARNING",
                    message=issue.message,
                )
            )

    @property
    def has_data(self) -> bool:
        return self.dedup.has_data

    @property
    def summary(self) -> ImportSummary:
        return ImportSummary.from_outcomes(self.outcomes)

    @property
    def creates(self) -> list[Create]:
        return [o for o in self.outcomes if isinstance(o, Create)]

    @property
    def updates(self) -> list[Update]:
        return [o for o in self.outcomes if isinstance(o, Update)]

    @property
    def ignored(self) -> list[Ignore]:
        return [o for o in self.outcomes if isinstance(o, Ignore)]

    @property
    def committed(self) -> bool:
        return self.result is not None

    def commit(
        self,
        store: RecordStore,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress_callback: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> CommitResult:
        """Consume the selection and write the approved records."""
        if self.result is not None:
            raise SelectionError("session already committed")
        final = self.selection.consume()
        batch = build_batch(self.outcomes, final, self.schema, now)
        self.result = commit_batch(
            batch,
            store,
            self.schema,
            chunk_size=chunk_size,
            progress_callback=progress_callback,
            file_name=self.file_name,
            file_size=self.file_size,
            error_log=self.error_log,
        )
        return self.result
