"""
Almacenamiento durable de adjuntos sobre Google Drive.

El pipeline solo depende del protocolo DurableStore: escribir una vez,
buscar por nombre dentro de una carpeta y obtener una URL pública.
Todas las llamadas usan supportsAllDrives para funcionar en Shared Drives.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from googleapiclient.http import MediaIoBaseUpload
from loguru import logger


FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass(frozen=True)
class StoredFile:
    file_id: str
    public_url: str
    name: str = ""


class DurableStore(Protocol):
    """Contrato mínimo del almacenamiento de adjuntos."""

    def find(self, folder_id: str, name: str) -> Optional[StoredFile]: ...

    def upload(self, folder_id: str, name: str, data: bytes, content_type: str) -> StoredFile: ...

    def set_public_read(self, file_id: str) -> None: ...

    def get(self, file_id: str) -> dict[str, Any]: ...

    def ensure_folder(self, parent_id: str, name: str) -> str: ...


def escape_query_value(value: str) -> str:
    """Escapa comillas y backslashes para el parámetro 'q' de Drive."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def drive_view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


class GoogleDriveStore:
    """Implementación de DurableStore sobre Drive v3."""

    def __init__(self, drive_service: Any) -> None:
        self._drive = drive_service

    def ensure_folder(self, parent_id: str, name: str) -> str:
        """Retorna el id de la subcarpeta `name`, creándola si no existe."""
        q = (
            f"name='{escape_query_value(name)}' and '{parent_id}' in parents "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        found = self._drive.files().list(
            q=q,
            fields="files(id, name)",
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        ).execute()
        files = found.get("files") or []
        if files:
            return files[0]["id"]

        created = self._drive.files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            fields="id",
            supportsAllDrives=True,
        ).execute()
        logger.debug(f"    Carpeta creada en Drive: {name}")
        return created["id"]

    def find(self, folder_id: str, name: str) -> Optional[StoredFile]:
        q = f"name='{escape_query_value(name)}' and '{folder_id}' in parents and trashed=false"
        found = self._drive.files().list(
            q=q,
            fields="files(id, name, webViewLink, webContentLink)",
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        ).execute()
        files = found.get("files") or []
        if not files:
            return None
        existing = files[0]
        return StoredFile(
            file_id=existing["id"],
            public_url=existing.get("webViewLink") or drive_view_url(existing["id"]),
            name=existing.get("name", name),
        )

    def upload(self, folder_id: str, name: str, data: bytes, content_type: str) -> StoredFile:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=content_type, resumable=False)
        created = self._drive.files().create(
            body={"name": name, "parents": [folder_id]},
            media_body=media,
            fields="id, webViewLink, webContentLink",
            supportsAllDrives=True,
        ).execute()
        return StoredFile(
            file_id=created["id"],
            public_url=created.get("webViewLink") or drive_view_url(created["id"]),
            name=name,
        )

    def set_public_read(self, file_id: str) -> None:
        """
        Permiso 'anyone: reader' (necesario para IMAGE() en Sheets).
        En Shared Drives puede fallar si los permisos se heredan del drive.
        """
        self._drive.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone"},
            supportsAllDrives=True,
        ).execute()

    def get(self, file_id: str) -> dict[str, Any]:
        return self._drive.files().get(
            fileId=file_id,
            fields="id, name, mimeType, webViewLink",
            supportsAllDrives=True,
        ).execute()
