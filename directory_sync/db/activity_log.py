from __future__ import annotations

import logging
from typing import Any

import psycopg2
from psycopg2.extras import Json

"""Activity log writer.

One row per completed import in the `activity_log` table. Logging is best
effort: a failure is reported as a warning and never fails the import.
"""

logger = logging.getLogger(__name__)

ACTIVITY_TABLE = "activity_log"


def log_activity(
    cursor: Any,
    operator: str | None,
    action: str,
    details: dict[str, Any] | None = None,
) -> bool:
    """Insert an activity row; returns False when it could not be written."""
    if not operator:
        logger.warning("activity log skipped: no operator for action %s", action)
        return False
    try:
        cursor.execute(
            f"INSERT INTO {ACTIVITY_TABLE} (user_id, user_full_name, action, action_type, details) "
            "VALUES (%s, %s, %s, %s, %s)",
            (None, operator, action, action, Json(details or {})),
        )
    except psycopg2.Error as e:
        logger.warning("activity log failed for %s: %s", action, str(e).strip())
        return False
    return True
