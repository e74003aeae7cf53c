"""
Servicios de aplicacion.

Logica reutilizable por los dos jobs (base de datos y Google Sheets):
migracion de adjuntos, remapeo de ids, layout de columnas y formato.
"""
from airbridge.application.services.attachment_migrator import (
    AttachmentMigrator,
    MigratedAttachment,
    stored_filename,
)
from airbridge.application.services.identifier_remapper import IdentifierRemapper
from airbridge.application.services.column_layout import (
    ColumnKey,
    ColumnRole,
    order_columns,
    records_to_rows,
)
from airbridge.application.services.record_flattener import flatten_record

__all__ = [
    # Adjuntos
    "AttachmentMigrator",
    "MigratedAttachment",
    "stored_filename",
    # Ids
    "IdentifierRemapper",
    # Layout de pestañas
    "ColumnKey",
    "ColumnRole",
    "order_columns",
    "records_to_rows",
    "flatten_record",
]
