"""
Configuración de fixtures para pytest.

Fakes compartidos: registros Airtable, almacenamiento durable en memoria y
sesión HTTP de descarga. Ningún test toca la red ni una base real.
"""
from __future__ import annotations

from typing import Any, Optional

import pytest

from airbridge.infrastructure.external.airtable.types import SourceRecord
from airbridge.infrastructure.external.google.drive_store import StoredFile


def rid(n: int) -> str:
    """Record id válido de Airtable: 'rec' + 14 caracteres."""
    return f"rec{n:014d}"


def attachment(filename: str, url: Optional[str] = None, mime: str = "image/png") -> dict[str, Any]:
    return {
        "id": f"att_{filename}",
        "url": url or f"https://dl.airtable.test/{filename}",
        "filename": filename,
        "type": mime,
        "size": 1234,
        "thumbnails": {"large": {"url": f"https://thumb.airtable.test/{filename}"}},
    }


def make_record(
    record_id: str,
    fields: Optional[dict[str, Any]] = None,
    *,
    created: str = "2024-03-05T10:15:00.000Z",
    link_fields: frozenset[str] = frozenset(),
) -> SourceRecord:
    return SourceRecord.from_api(
        {"id": record_id, "createdTime": created, "fields": fields or {}},
        link_fields=link_fields,
    )


class _DummyResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"data", headers: Optional[dict] = None) -> None:
        self.status_code = status_code
        self.content = content
        self.headers = headers or {"content-type": "image/png"}
        self.reason = "OK" if status_code < 400 else "Error"


class _DummyDownloadSession:
    """Sesión de descarga: URLs en `failing` responden 404."""

    def __init__(self, failing: Optional[set[str]] = None) -> None:
        self.failing = failing or set()
        self.calls: list[str] = []

    def get(self, url: str, timeout: int = 60) -> _DummyResponse:
        self.calls.append(url)
        if url in self.failing:
            return _DummyResponse(status_code=404)
        return _DummyResponse()


class _MemoryStore:
    """DurableStore en memoria; persiste entre corridas si se reutiliza la instancia."""

    def __init__(self) -> None:
        self.files: dict[tuple[str, str], StoredFile] = {}
        self.folders: dict[tuple[str, str], str] = {}
        self.public: list[str] = []
        self.fail_permissions = False
        self.inaccessible: set[str] = set()
        self.failing_folders: set[str] = set()
        self._next = 0

    def _new_id(self, prefix: str) -> str:
        self._next += 1
        return f"{prefix}{self._next}"

    def find(self, folder_id: str, name: str) -> Optional[StoredFile]:
        return self.files.get((folder_id, name))

    def upload(self, folder_id: str, name: str, data: bytes, content_type: str) -> StoredFile:
        file_id = self._new_id("file")
        stored = StoredFile(file_id=file_id, public_url=f"https://drive.google.com/file/d/{file_id}/view", name=name)
        self.files[(folder_id, name)] = stored
        return stored

    def set_public_read(self, file_id: str) -> None:
        if self.fail_permissions:
            raise RuntimeError("permission denied")
        self.public.append(file_id)

    def get(self, file_id: str) -> dict[str, Any]:
        if file_id in self.inaccessible:
            raise RuntimeError("File not found")
        return {"id": file_id, "name": "Adjuntos"}

    def ensure_folder(self, parent_id: str, name: str) -> str:
        if name in self.failing_folders:
            raise RuntimeError(f"Drive 500 creando la carpeta {name}")
        key = (parent_id, name)
        if key not in self.folders:
            self.folders[key] = self._new_id("folder")
        return self.folders[key]


@pytest.fixture
def memory_store() -> _MemoryStore:
    return _MemoryStore()


@pytest.fixture
def download_session() -> _DummyDownloadSession:
    return _DummyDownloadSession()
