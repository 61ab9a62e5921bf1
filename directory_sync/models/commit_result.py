from __future__ import annotations

import statistics
from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Commit result models for the directory spreadsheet importer.

CommitResult aggregates the outcome of one commit (status, counts, timings and
the reloaded collection); ProgressEvent is what progress consumers receive
after every chunk.
"""


class CommitStatus(Enum):
    """Terminal state of a commit.

    - COMMITTED: every chunk was upserted and the collection reloaded
    - NOTHING_TO_IMPORT: no record was selected (all ignored / deselected)
    - FAILED: a chunk failed; earlier chunks stay committed
    """
    COMMITTED = "committed"
    NOTHING_TO_IMPORT = "nothing_to_import"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """Reported after each successful chunk."""
    file_name: str
    file_size: int  # bytes
    progress_percent: float  # processed / total * 100


@dataclass(frozen=True)
class CommitResult:
    status: CommitStatus
    created: int = 0  # create records in the batch
    updated: int = 0  # update records in the batch
    ignored: int = 0
    committed_records: int = 0  # records in chunks that succeeded
    total_records: int = 0
    title: str | None = None  # short operator facing message
    detail: str | None = None  # collaborator error text
    reloaded: list[dict[str, Any]] | None = None
    elapsed_seconds: float = 0.0
    total_chunks: int = 0
    avg_chunk_seconds: float = 0.0
    p95_chunk_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is not CommitStatus.FAILED


class BatchStatsAccumulator:
    """Accumulate per-chunk timings and summarize them."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total = len(self.batch_times)
        avg = statistics.mean(self.batch_times)
        if total == 1:
            p95 = self.batch_times[0]
        else:
            p95 = statistics.quantiles(self.batch_times, n=20, method="inclusive")[18]
        return (total, avg, p95)


@dataclass
class ChunkReport:
    """Mutable progress bookkeeping for one commit run."""
    total: int
    processed: int = 0

    def advance(self, n: int) -> float:
        self.processed += n
        return (self.processed / self.total) * 100 if self.total else 100.0
