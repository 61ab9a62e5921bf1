from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from ..db.batch_upsert import BatchUpsertError
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.commit_result import (
    BatchStatsAccumulator,
    ChunkReport,
    CommitResult,
    CommitStatus,
    ProgressEvent,
)
from ..models.entity_schema import NEVER_CLIENT_SUPPLIED, EntitySchema
from ..models.reconciliation import Create, Ignore, Outcome, Update
from .selection import apply_selection

"""Commit orchestrator.

1. Updates with a non-empty selection become `old` + selected new values,
   stamped with updated_at; updates with nothing selected are dropped.
2. Creates (unmodified) then updates form one ordered batch.
3. id / created_at are stripped right before transmission.
4. The batch is upserted in fixed-size chunks, strictly one after another,
   with the natural key as conflict target.
5. Progress (processed / total * 100) is reported after every chunk.
6. The first failing chunk stops the run; earlier chunks stay committed.
7. After full success the whole collection is reloaded.
"""

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50

ProgressCallback = Callable[[ProgressEvent], None]


class RecordStore(Protocol):
    def fetch_by_keys(self, schema: EntitySchema, keys: Sequence[str]) -> list[dict[str, Any]]: ...

    def upsert(self, schema: EntitySchema, records: Sequence[dict[str, Any]]) -> int: ...

    def fetch_all(self, schema: EntitySchema) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class CommitBatch:
    records: list[dict[str, Any]] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    skipped_updates: int = 0  # updates with an empty selection
    ignored: int = 0

    def __len__(self) -> int:
        return len(self.records)


def iso_timestamp(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def strip_client_columns(record: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if k not in NEVER_CLIENT_SUPPLIED}


def build_batch(
    outcomes: Iterable[Outcome],
    selections: Mapping[str, Iterable[str]],
    schema: EntitySchema,
    now: datetime | None = None,
) -> CommitBatch:
    """Assemble the ordered commit batch from outcomes and the final selection."""
    stamp = iso_timestamp(now or datetime.now(UTC))
    creates: list[dict[str, Any]] = []
    updates: list[dict[str, Any]] = []
    skipped = ignored = 0
    for outcome in outcomes:
        if isinstance(outcome, Create):
            creates.append(outcome.record.as_dict())
        elif isinstance(outcome, Update):
            chosen = list(selections.get(outcome.key, ()))
            if not chosen:
                skipped += 1
                continue
            merged = apply_selection(outcome, chosen, schema)
            merged["updated_at"] = stamp
            updates.append(merged)
        elif isinstance(outcome, Ignore):
            ignored += 1
    records = [strip_client_columns(r) for r in creates + updates]
    return CommitBatch(
        records=records,
        created=len(creates),
        updated=len(updates),
        skipped_updates=skipped,
        ignored=ignored,
    )


def chunked(records: Sequence[dict[str, Any]], size: int) -> Iterator[Sequence[dict[str, Any]]]:
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    for start in range(0, len(records), size):
        yield records[start:start + size]


def commit_batch(
    batch: CommitBatch,
    store: RecordStore,
    schema: EntitySchema,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress_callback: ProgressCallback | None = None,
    file_name: str = "",
    file_size: int = 0,
    error_log: ErrorLogBuffer | None = None,
) -> CommitResult:
    """Upsert the batch chunk by chunk and reload the collection on success."""
    counts = {
        "created": batch.created,
        "updated": batch.updated,
        "ignored": batch.ignored + batch.skipped_updates,
        "total_records": len(batch),
    }
    if not batch.records:
        logger.debug("table=%s nothing selected for commit", schema.table)
        return CommitResult(status=CommitStatus.NOTHING_TO_IMPORT, **counts)

    started = time.perf_counter()
    report = ChunkReport(total=len(batch))
    timings = BatchStatsAccumulator()

    for index, chunk in enumerate(chunked(batch.records, chunk_size), start=1):
        chunk_start = time.perf_counter()
        try:
            store.upsert(schema, chunk)
        except BatchUpsertError as e:
            timings.add_batch_time(time.perf_counter() - chunk_start)
            logger.debug("table=%s chunk=%d failed after %d records", schema.table, index, report.processed)
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        file=file_name,
                        entity=schema.kind,
                        row=-1,
                        error_type="COMMIT_CHUNK_ERROR",
                        message=f"chunk {index}: {e}",
                    )
                )
            return _result(
                CommitStatus.FAILED,
                counts,
                report,
                timings,
                started,
                title=f"Import of {schema.label} failed",
                detail=(
                    f"{report.processed} of {report.total} records were committed "
                    f"before the error: {e}"
                ),
            )
        timings.add_batch_time(time.perf_counter() - chunk_start)
        pct = report.advance(len(chunk))
        logger.debug("table=%s chunk=%d size=%d progress=%.2f", schema.table, index, len(chunk), pct)
        if progress_callback is not None:
            progress_callback(ProgressEvent(file_name=file_name, file_size=file_size, progress_percent=pct))

    reloaded: list[dict[str, Any]] | None = None
    try:
        reloaded = store.fetch_all(schema)
    except BatchUpsertError as e:
        logger.warning("committed, but reloading %s failed: %s", schema.table, e)

    return _result(CommitStatus.COMMITTED, counts, report, timings, started, reloaded=reloaded)


def _result(
    status: CommitStatus,
    counts: dict[str, int],
    report: ChunkReport,
    timings: BatchStatsAccumulator,
    started: float,
    *,
    title: str | None = None,
    detail: str | None = None,
    reloaded: list[dict[str, Any]] | None = None,
) -> CommitResult:
    total_chunks, avg, p95 = timings.get_stats()
    return CommitResult(
        status=status,
        committed_records=report.processed,
        title=title,
        detail=detail,
        reloaded=reloaded,
        elapsed_seconds=time.perf_counter() - started,
        total_chunks=total_chunks,
        avg_chunk_seconds=avg,
        p95_chunk_seconds=p95,
        **counts,
    )
