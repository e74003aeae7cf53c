"""
Excepciones del pipeline de migración.

Fatales (abortan la corrida): ConfigurationError, AirtableApiError,
StorageAccessError.
Recuperables (se registran y el lote continúa): AttachmentTransferError,
DatabaseWriteError.
"""
from typing import Any, Iterable

from airbridge.shared.exceptions.base import AppException


class ConfigurationError(AppException):
    """Falta configuración obligatoria o es inválida."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        missing_list = list(missing)
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"missing": missing_list} if missing_list else None
        )


class AirtableApiError(AppException):
    """Error de integración con Airtable."""

    def __init__(self, message: str, status_code: int | None = None, table: str | None = None):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if table:
            details["table"] = table
        super().__init__(
            message=message,
            error_code="AIRTABLE_API_ERROR",
            details=details
        )
        self.status_code = status_code


class StorageAccessError(AppException):
    """No se puede acceder a la carpeta de adjuntos del almacenamiento durable."""

    def __init__(self, folder_id: str, reason: str):
        super().__init__(
            message=f"No se puede acceder a la carpeta de adjuntos {folder_id}: {reason}",
            error_code="STORAGE_ACCESS_ERROR",
            details={"folder_id": folder_id}
        )


class AttachmentTransferError(AppException):
    """Falló la descarga o subida de un adjunto individual."""

    def __init__(self, owner_id: str, filename: str, reason: str):
        super().__init__(
            message=f"No se pudo transferir el adjunto '{filename}' de {owner_id}: {reason}",
            error_code="ATTACHMENT_TRANSFER_ERROR",
            details={"owner_id": owner_id, "filename": filename}
        )
        self.owner_id = owner_id
        self.filename = filename


class DatabaseWriteError(AppException):
    """Falló la escritura de una fila en la base de datos destino."""

    def __init__(self, table: str, source_id: str, reason: str):
        super().__init__(
            message=f"No se pudo escribir en {table} el registro {source_id}: {reason}",
            error_code="DATABASE_WRITE_ERROR",
            details={"table": table, "source_id": source_id}
        )
