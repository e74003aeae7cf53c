"""
Aplanado de un SourceRecord a celdas de una pestaña (ColumnKey -> texto).
"""
from __future__ import annotations

import json
from typing import Any, Callable, Mapping, Optional

from airbridge.application.services.attachment_migrator import MigratedAttachment
from airbridge.application.services.column_layout import (
    MAX_IMAGE_COLUMNS,
    PREVIEW_FORMULA,
    ColumnKey,
    ColumnRole,
)
from airbridge.infrastructure.external.airtable.types import (
    AttachmentDescriptor,
    AttachmentList,
    LinkedRecordList,
    Scalar,
    ScalarList,
    SourceRecord,
)

# (descriptores, owner_id) -> adjuntos migrados (los fallidos sin fallback se omiten)
AttachmentResolver = Callable[[list[AttachmentDescriptor], str], list[MigratedAttachment]]


def format_scalar(value: Any) -> str:
    """Texto de celda: None -> "", bool -> true/false, objetos -> JSON."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def attachment_cells(field_name: str, migrated: list[MigratedAttachment]) -> dict[ColumnKey, str]:
    """
    Columnas de un field de adjuntos:
    - hasta MAX_IMAGE_COLUMNS pares (URL, preview); sin número si hay una sola imagen
    - "(more)": resto de imágenes, archivos no-imagen y links de fallback
    """
    shown: list[MigratedAttachment] = []
    extra_images: list[MigratedAttachment] = []
    other_files: list[MigratedAttachment] = []
    for attachment in migrated:
        if not attachment.is_image or attachment.is_fallback:
            other_files.append(attachment)
        elif len(shown) < MAX_IMAGE_COLUMNS:
            shown.append(attachment)
        else:
            extra_images.append(attachment)

    cells: dict[ColumnKey, str] = {}
    for i, image in enumerate(shown):
        variant = 0 if len(shown) == 1 else i + 1
        cells[ColumnKey(field_name, variant, ColumnRole.URL)] = image.durable_url
        cells[ColumnKey(field_name, variant, ColumnRole.PREVIEW)] = PREVIEW_FORMULA

    overflow = extra_images + other_files
    if overflow:
        cells[ColumnKey(field_name, 0, ColumnRole.OVERFLOW)] = "\n".join(m.durable_url for m in overflow)
    elif not shown:
        cells[ColumnKey(field_name, 0, ColumnRole.PREVIEW)] = ""
    return cells


def flatten_record(
    record: SourceRecord,
    *,
    resolve_attachments: AttachmentResolver,
    linked_field_names: frozenset[str] = frozenset(),
    record_names: Optional[Mapping[str, str]] = None,
) -> dict[ColumnKey, str]:
    """
    Aplana un registro.

    Los fields linkeados (según schema) muestran el nombre del PRIMER
    registro linkeado, o su id si el nombre no se pudo resolver.
    """
    names = record_names or {}
    flat: dict[ColumnKey, str] = {
        ColumnKey.value("_airtable_id"): record.record_id,
        ColumnKey.value("_created_time"): record.created_time.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }

    for name, value in record.fields.items():
        if isinstance(value, AttachmentList):
            migrated = resolve_attachments(list(value.items), record.record_id)
            flat.update(attachment_cells(name, migrated))
        elif isinstance(value, LinkedRecordList):
            if name in linked_field_names:
                first = value.record_ids[0] if value.record_ids else None
                flat[ColumnKey.value(name)] = names.get(first, first) if first else ""
            else:
                flat[ColumnKey.value(name)] = ", ".join(value.record_ids)
        elif isinstance(value, ScalarList):
            flat[ColumnKey.value(name)] = ", ".join(format_scalar(v) for v in value.values)
        elif isinstance(value, Scalar):
            flat[ColumnKey.value(name)] = format_scalar(value.value)

    return flat


def primary_display_name(record: SourceRecord) -> str:
    """Nombre visible de un registro: valor del primer field, o su id."""
    first = next(iter(record.fields.values()), None)
    if isinstance(first, Scalar):
        return format_scalar(first.value) or record.record_id
    if isinstance(first, ScalarList):
        return ", ".join(format_scalar(v) for v in first.values) or record.record_id
    return record.record_id
