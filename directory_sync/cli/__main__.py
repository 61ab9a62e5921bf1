from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.activity_log import log_activity
from ..db.batch_upsert import BatchUpsertError
from ..db.connection import DatabaseConnectionError, db_cursor
from ..db.store import PostgresRecordStore
from ..excel.writer import WorkbookWriteError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.commit_result import CommitStatus
from ..models.config_models import ImportConfig
from ..models.entity_schema import SCHEMAS, EntitySchema, get_schema
from ..services.export import export_records
from ..services.progress import ProgressTracker
from ..services.selection import SelectionError, clearing_fields
from ..services.session import ImportSession, ProcessingError
from ..services.summary import render_commit_line, render_summary_line

"""CLI entrypoint.

    python -m directory_sync.cli import employees staff.xlsx [--yes] ...
    python -m directory_sync.cli export office_contacts contacts.xlsx

Import flow: load config -> capability check -> prepare session (read,
normalize, dedup, diff) -> print preview -> confirm -> commit with progress
-> SUMMARY line -> activity log -> flush error log.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_COMMIT_FAILED = 2

OPERATOR_ENV = "DIRECTORY_SYNC_OPERATOR"

# Rows of the update preview printed per run (all updates are still committed)
PREVIEW_LIMIT = 20


@contextmanager
def _open_store(cfg: ImportConfig) -> Iterator[PostgresRecordStore]:  # pragma: no cover (thin wrapper)
    with db_cursor(cfg.database) as cur:
        yield PostgresRecordStore(cur)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so its connection settings win over the config file."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="directory_sync",
        description="Spreadsheet import / export for the staff directory",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default {DEFAULT_CONFIG_PATH})")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Reconcile a workbook against the database")
    imp.add_argument("kind", choices=sorted(SCHEMAS))
    imp.add_argument("file", type=Path)
    imp.add_argument("--yes", action="store_true", help="Commit without asking")
    imp.add_argument("--dry-run", action="store_true", help="Show the preview and stop")
    imp.add_argument(
        "--select-all",
        action="store_true",
        help="Apply every changed field, including ones that clear data",
    )
    imp.add_argument(
        "--deselect",
        action="append",
        default=[],
        metavar="FIELD",
        help="Never apply FIELD to existing records (repeatable)",
    )
    imp.add_argument("--operator", default=None, help=f"Operator name for the activity log (env {OPERATOR_ENV})")

    exp = sub.add_parser("export", help="Write the current collection to a workbook")
    exp.add_argument("kind", choices=sorted(SCHEMAS))
    exp.add_argument("out", type=Path)
    return p.parse_args(argv)


def _print_preview(session: ImportSession, logger: logging.Logger) -> None:
    schema = session.schema
    logger.info(f"file={session.file_name} entity={schema.kind} {render_summary_line(session.summary)}")
    if session.missing_columns:
        logger.warning(f"columns not found (read as empty): {', '.join(session.missing_columns)}")
    if session.dedup.dropped_rows:
        logger.warning(f"{len(session.dedup.dropped_rows)} row(s) skipped: '{schema.natural_key}' is empty")
    if session.dedup.duplicate_rows:
        logger.info(f"{len(session.dedup.duplicate_rows)} duplicate row(s) superseded by later rows")

    for update in session.updates[:PREVIEW_LIMIT]:
        chosen = session.selection.selected(update.key)
        clearing = set(clearing_fields(update))
        logger.info(f"update {schema.natural_key}={update.key}")
        for name in update.changed_fields:
            mark = "x" if name in chosen else " "
            warn = "  (clears existing value)" if name in clearing else ""
            logger.info(f"  [{mark}] {name}: {update.old.get(name)!r} -> {update.new.get(name)!r}{warn}")
    if len(session.updates) > PREVIEW_LIMIT:
        logger.info(f"... {len(session.updates) - PREVIEW_LIMIT} more update(s)")

    for issue in session.issues:
        logger.warning(f"row {issue.row_index}: {issue.message}")


def _apply_flags(session: ImportSession, args: argparse.Namespace, logger: logging.Logger) -> None:
    if args.select_all:
        session.selection.select_all_everywhere()
    for name in args.deselect:
        if name not in session.schema.field_names:
            raise SelectionError(f"unknown field '{name}' for {session.schema.kind}")
        touched = session.selection.deselect_field_everywhere(name)
        logger.debug(f"deselected {name} on {touched} record(s)")


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _run_import(args: argparse.Namespace, cfg: ImportConfig, schema: EntitySchema, logger: logging.Logger) -> int:
    error_log = ErrorLogBuffer(Path(cfg.logs_dir))
    try:
        return _import_with_store(args, cfg, schema, logger, error_log)
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


def _import_with_store(
    args: argparse.Namespace,
    cfg: ImportConfig,
    schema: EntitySchema,
    logger: logging.Logger,
    error_log: ErrorLogBuffer,
) -> int:
    try:
        with _open_store(cfg) as store:
            try:
                session = ImportSession.from_workbook(
                    args.file,
                    schema,
                    store,
                    timezone=cfg.timezone,
                    null_sentinels=cfg.null_sentinels,
                    error_log=error_log,
                )
            except (ProcessingError, BatchUpsertError) as e:
                logger.error(f"processing: {e}")
                return EXIT_FATAL

            if not session.has_data:
                logger.warning(f"no valid data found in {args.file.name}")
                return EXIT_SUCCESS

            try:
                _apply_flags(session, args, logger)
            except SelectionError as e:
                logger.error(f"selection: {e}")
                return EXIT_FATAL
            _print_preview(session, logger)

            if args.dry_run:
                logger.info("dry run: nothing committed")
                return EXIT_SUCCESS
            if not args.yes and not _confirm(f"Commit changes to {schema.label}?"):
                logger.info("import abandoned: nothing committed")
                return EXIT_SUCCESS

            with ProgressTracker(session.file_name) as tracker:
                result = session.commit(store, chunk_size=cfg.chunk_size, progress_callback=tracker)

            if result.status is CommitStatus.NOTHING_TO_IMPORT:
                logger.warning("nothing to import: no record selected")
                return EXIT_SUCCESS
            log_summary(render_commit_line(result))
            if result.status is CommitStatus.FAILED:
                logger.error(f"{result.title}: {result.detail}")
                return EXIT_COMMIT_FAILED

            operator = args.operator or os.getenv(OPERATOR_ENV)
            log_activity(
                store.cursor,
                operator,
                schema.activity_action,
                {"count": result.committed_records, "file": session.file_name},
            )
            logger.info(f"{schema.label}: {result.committed_records} record(s) imported")
            return EXIT_SUCCESS
    except DatabaseConnectionError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL


def _run_export(args: argparse.Namespace, cfg: ImportConfig, schema: EntitySchema, logger: logging.Logger) -> int:
    try:
        with _open_store(cfg) as store:
            rows = store.fetch_all(schema)
    except (DatabaseConnectionError, BatchUpsertError) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    try:
        out = export_records(rows, schema, args.out)
    except WorkbookWriteError as e:
        logger.error(f"export: {e}")
        return EXIT_FATAL
    log_summary(f"exported {len(rows)} {schema.kind} row(s) to {out}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    # None only: an empty list must not fall back to pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config, required=args.config is not None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    schema = get_schema(args.kind, cfg.entity_tables)
    if not cfg.has_permission(schema.capability):
        logger.error(f"permission denied: capability '{schema.capability}' is not granted")
        return EXIT_FATAL

    if args.command == "export":
        return _run_export(args, cfg, schema, logger)
    return _run_import(args, cfg, schema, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
