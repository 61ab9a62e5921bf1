from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the directory spreadsheet importer.

These are the typed view of config/import.yml once the loader in
directory_sync/config/loader.py has validated it against the JSON schema.
"""

DEFAULT_CHUNK_SIZE = 50
DEFAULT_PERMISSIONS: tuple[str, ...] = ("import_export_employees", "import_export_contacts")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for import/export runs."""
    timezone: str = "UTC"  # zone used to read free-text dates
    chunk_size: int = DEFAULT_CHUNK_SIZE  # records per upsert call
    null_sentinels: frozenset[str] = frozenset()  # upper-cased strings read as empty
    permissions: frozenset[str] = frozenset(DEFAULT_PERMISSIONS)
    entity_tables: dict[str, str] = field(default_factory=dict)  # kind -> table override
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logs_dir: str = "./logs"

    def has_permission(self, capability: str) -> bool:
        return capability in self.permissions
