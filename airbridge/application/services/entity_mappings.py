"""
Mapeos Airtable -> Postgres por entidad.

Aquí se decide:
- qué columnas escalares existen en cada tabla destino
- cómo se transforman los valores de Airtable
- el valor por defecto cuando el field falta o viene vacío

Las columnas que dependen de otras entidades (ids remapeados) o de
adjuntos migrados las completa el caso de uso, no estos mapeos.
"""
from __future__ import annotations

import re
from typing import Any, Optional

from airbridge.infrastructure.external.airtable.types import (
    FieldMapping,
    LinkedRecordList,
    Scalar,
    ScalarList,
    SourceRecord,
)
from airbridge.shared.constants.migration_constants import MIGRATION_USER, PLACEHOLDER_EMAIL_DOMAIN

_HTML_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


def strip_html(text: Any) -> Optional[str]:
    """Quita tags HTML de un rich text; None si queda vacío."""
    if not text:
        return None
    return _HTML_TAG.sub("", str(text)).strip() or None


def as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


def raw_value(record: SourceRecord, name: str) -> Any:
    """
    Valor del field en forma plana (escalar o lista).
    Los adjuntos no tienen representación plana: se migran aparte.
    """
    value = record.fields.get(name)
    if isinstance(value, Scalar):
        return value.value
    if isinstance(value, ScalarList):
        return list(value.values)
    if isinstance(value, LinkedRecordList):
        return list(value.record_ids)
    return None


def map_record_to_row(record: SourceRecord, mappings: list[FieldMapping]) -> dict[str, Any]:
    """
    Aplica los FieldMapping de una entidad.

    Reglas:
    - field ausente o "falsy" (None, "", 0, False, []) -> default
    - as_list=True: el default es [] y un escalar se envuelve en lista
    - transform se aplica solo a valores presentes; si su resultado es
      falsy también se usa el default
    """
    row: dict[str, Any] = {}
    for m in mappings:
        raw = raw_value(record, m.airtable_field)
        default = [] if m.as_list and m.default is None else m.default
        if not raw:
            row[m.pg_column] = default
            continue
        value = m.transform(raw) if m.transform else raw
        if m.as_list and value is not None:
            value = as_list(value)
        row[m.pg_column] = value if value else default
    return row


def placeholder_email(name: Optional[str]) -> str:
    """Email sintético para contactos sin Email: nombre en minúsculas con '_'."""
    local = _WHITESPACE.sub("_", str(name or "")).lower()
    return f"{local}@{PLACEHOLDER_EMAIL_DOMAIN}"


def contact_role(record: SourceRecord) -> str:
    """Miembros del equipo conservan su Role (o 'member'); el resto son vendors."""
    if record.scalar("Type") == "Team":
        return record.scalar("Role") or "member"
    return "vendor"


USER_MAPPINGS: list[FieldMapping] = [
    FieldMapping("Name", "name", default="Unknown"),
    FieldMapping("Phone", "phone"),
    FieldMapping("Type", "contact_type"),
    FieldMapping("Service Type", "service_type"),
    FieldMapping("Notes", "notes"),
    FieldMapping("Website", "website"),
    FieldMapping("License #", "license_number"),
    FieldMapping("Contact Name", "contact_name"),
    FieldMapping("Product Type", "product_types", as_list=True),
    FieldMapping("Item Type", "item_types", as_list=True),
    FieldMapping("Location", "location"),
]

PROJECT_MAPPINGS: list[FieldMapping] = [
    FieldMapping("Title", "title", default="Untitled"),
    FieldMapping("Details", "description"),
    FieldMapping("Task Progress", "task_progress", default="Not Started"),
    FieldMapping("Priority", "priority"),
    FieldMapping("Project Area", "project_area"),
    FieldMapping("Tags", "tags", as_list=True),
    FieldMapping("Due Date", "due_date"),
    FieldMapping("Additional Progress Notes", "additional_notes"),
    FieldMapping("Projects", "project_name"),
]

ITEM_MAPPINGS: list[FieldMapping] = [
    FieldMapping("Item Name", "item_name", default="Unnamed Item"),
    FieldMapping("Details", "details"),
    FieldMapping("Category", "category"),
    FieldMapping("Room/Space", "room_space"),
    FieldMapping("Sheen", "sheen"),
    FieldMapping("$ Estimate", "estimate"),
    FieldMapping("Notes", "notes"),
    FieldMapping("Link", "link"),
    FieldMapping("suggestion", "is_suggestion", default=False),
    FieldMapping("Rejected Item", "is_rejected", default=False),
    FieldMapping("Size/Dimensions", "size_dimensions", transform=strip_html),
    FieldMapping("Inside Panel Width", "inside_panel_width"),
    FieldMapping("Product ID", "product_id"),
    FieldMapping("Quantity", "quantity"),
    FieldMapping("Purchase Price", "purchase_price"),
    FieldMapping("Purchase Date", "purchase_date"),
    FieldMapping("Actual Dimensions", "actual_dimensions", transform=strip_html),
    FieldMapping("Status", "status"),
]

STATIC_INFO_MAPPINGS: list[FieldMapping] = [
    FieldMapping("Description", "value", default=""),
    FieldMapping("Select", "category", default="General"),
    FieldMapping("Notes", "description"),
    FieldMapping("Website/Link", "website_link"),
]


def build_user_row(record: SourceRecord) -> dict[str, Any]:
    row = map_record_to_row(record, USER_MAPPINGS)
    row["email"] = record.scalar("Email") or placeholder_email(record.scalar("Name") or record.record_id)
    row["role"] = contact_role(record)
    return row


def build_project_row(record: SourceRecord) -> dict[str, Any]:
    row = map_record_to_row(record, PROJECT_MAPPINGS)
    row.update(
        {
            "depends_on": [],
            # blocking/blocked_by se completan en la segunda pasada
            "blocking": [],
            "blocked_by": [],
            "created_at": record.created_time,
            "updated_at": record.created_time,
            "created_by": MIGRATION_USER,
            "progress": 0,
        }
    )
    return row


def build_item_row(record: SourceRecord) -> dict[str, Any]:
    return map_record_to_row(record, ITEM_MAPPINGS)


def build_static_info_row(record: SourceRecord) -> dict[str, Any]:
    row = map_record_to_row(record, STATIC_INFO_MAPPINGS)
    row["key"] = record.scalar("Name") or f"static_{record.record_id}"
    return row
