from __future__ import annotations

from ..models.commit_result import CommitResult
from ..models.reconciliation import ImportSummary

"""Summary line rendering.

The operator facing summary is `created: N | updated: M | ignored: K`. The
SUMMARY log line after a commit adds committed/total records and chunk
timings in `key=value` form so it can be grepped.
"""


def render_summary_line(summary: ImportSummary) -> str:
    """Render the preview summary of an import session.

    >>> render_summary_line(ImportSummary(create=2, update=1, ignored=7))
    'created: 2 | updated: 1 | ignored: 7'
    """
    return f"created: {summary.create} | updated: {summary.update} | ignored: {summary.ignored}"


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny timings
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_commit_line(result: CommitResult) -> str:
    """Render the post-commit SUMMARY content (without the SUMMARY label).

    `ignored` counts unchanged records plus updates left with nothing selected.
    """
    return (
        f"created: {result.created} | updated: {result.updated} | ignored: {result.ignored} "
        f"status={result.status.value} "
        f"records={result.committed_records}/{result.total_records} "
        f"chunks={result.total_chunks} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
