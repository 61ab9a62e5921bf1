from __future__ import annotations

from dataclasses import dataclass, field

"""Declarative per-entity schemas.

Each importable entity kind (employees, office contacts) is described once:
its table, the natural key used to match spreadsheet rows against persisted
rows, the ordered field list with the spreadsheet header of every field, and
which columns are managed by the server. The normalizer, the diff engine, the
commit orchestrator and the exporter all read this schema instead of
hardcoding field names.
"""

__all__ = [
    "FieldSpec",
    "EntitySchema",
    "SERVER_MANAGED_COLUMNS",
    "NEVER_CLIENT_SUPPLIED",
    "EMPLOYEES",
    "OFFICE_CONTACTS",
    "SCHEMAS",
    "get_schema",
]

# Columns the database owns for every entity kind
SERVER_MANAGED_COLUMNS: tuple[str, ...] = ("id", "created_at", "updated_at")
# Stripped from every record right before an upsert
NEVER_CLIENT_SUPPLIED: tuple[str, ...] = ("id", "created_at")


@dataclass(frozen=True)
class FieldSpec:
    """One importable field of an entity kind."""
    name: str  # canonical column name
    header: str  # spreadsheet column header (exact match)
    kind: str = "text"  # text | date
    comparable: bool = True  # False -> never diffed nor selectable on update
    required: bool = False  # advisory only (ValidationIssue)

    @property
    def is_date(self) -> bool:
        return self.kind == "date"


@dataclass(frozen=True)
class EntitySchema:
    """Import/export description of one entity kind."""
    kind: str
    table: str
    natural_key: str
    fields: tuple[FieldSpec, ...]
    sheet_name: str  # sheet title used on export
    capability: str  # permission required to import/export
    activity_action: str  # activity_log action recorded after an import
    label: str  # human readable plural, used in operator messages
    server_managed: tuple[str, ...] = field(default=SERVER_MANAGED_COLUMNS)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def comparable_fields(self) -> list[str]:
        """Fields the diff engine compares, in schema order."""
        return [
            f.name for f in self.fields
            if f.comparable and f.name not in self.server_managed
        ]

    @property
    def required_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.required]

    @property
    def date_fields(self) -> set[str]:
        return {f.name for f in self.fields if f.is_date}

    @property
    def writable_columns(self) -> list[str]:
        """Columns a client may send on upsert (schema fields + updated_at)."""
        cols = [n for n in self.field_names if n not in NEVER_CLIENT_SUPPLIED]
        if "updated_at" not in cols:
            cols.append("updated_at")
        return cols

    def get_field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(f"{self.kind} has no field '{name}'")

    def with_table(self, table: str) -> EntitySchema:
        """Return a copy bound to another table name (config override)."""
        return EntitySchema(
            kind=self.kind,
            table=table,
            natural_key=self.natural_key,
            fields=self.fields,
            sheet_name=self.sheet_name,
            capability=self.capability,
            activity_action=self.activity_action,
            label=self.label,
            server_managed=self.server_managed,
        )


EMPLOYEES = EntitySchema(
    kind="employees",
    table="employees",
    natural_key="employee_id",
    fields=(
        FieldSpec("employee_id", "الرقم الوظيفي"),
        FieldSpec("full_name_ar", "الاسم باللغة العربية", required=True),
        FieldSpec("full_name_en", "الاسم باللغة الإنجليزية"),
        FieldSpec("job_title", "المسمى الوظيفي"),
        # Sector is maintained in the application, never overwritten on update
        FieldSpec("department", "القطاع", comparable=False),
        FieldSpec("center", "المركز"),
        FieldSpec("phone_direct", "رقم الجوال"),
        FieldSpec("email", "البريد الإلكتروني"),
        FieldSpec("national_id", "السجل المدني / الإقامة"),
        FieldSpec("nationality", "الجنسية"),
        FieldSpec("gender", "الجنس"),
        FieldSpec("date_of_birth", "تاريخ الميلاد", kind="date"),
        FieldSpec("classification_id", "رقم التصنيف"),
    ),
    sheet_name="الموظفين",
    capability="import_export_employees",
    activity_action="IMPORT_EMPLOYEES",
    label="employees",
)

OFFICE_CONTACTS = EntitySchema(
    kind="office_contacts",
    table="office_contacts",
    natural_key="name",
    fields=(
        FieldSpec("name", "اسم المكتب", required=True),
        FieldSpec("extension", "التحويلة", required=True),
        FieldSpec("location", "الموقع"),
        FieldSpec("email", "البريد الإلكتروني"),
    ),
    sheet_name="تحويلات المكاتب",
    capability="import_export_contacts",
    activity_action="IMPORT_CONTACTS",
    label="office contacts",
)

SCHEMAS: dict[str, EntitySchema] = {
    EMPLOYEES.kind: EMPLOYEES,
    OFFICE_CONTACTS.kind: OFFICE_CONTACTS,
}


def get_schema(kind: str, table_overrides: dict[str, str] | None = None) -> EntitySchema:
    """Look up an entity schema by kind, applying an optional table override."""
    try:
        schema = SCHEMAS[kind]
    except KeyError:
        raise KeyError(f"unknown entity kind: {kind} (expected one of {sorted(SCHEMAS)})") from None
    if table_overrides and kind in table_overrides:
        return schema.with_table(table_overrides[kind])
    return schema
