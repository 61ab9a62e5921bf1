from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Every problem worth keeping after the run (advisory validation issues, rows
dropped for an empty natural key, a failed upsert chunk) becomes one record.
row=-1 is the sentinel for issues that do not belong to a spreadsheet row.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook file name being imported
        entity: entity kind (employees / office_contacts)
        row: 1-based spreadsheet row number. -1 when not row specific
        error_type: classification in UPPER_SNAKE_CASE
        message: operator readable description or database error text
    """
    timestamp: str
    file: str
    entity: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, entity: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            entity=entity,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # asdict keeps the key set fixed
        return json.dumps(asdict(self), ensure_ascii=False)
