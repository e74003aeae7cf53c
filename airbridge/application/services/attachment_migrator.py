"""
Migración de adjuntos al almacenamiento durable.

Algoritmo por adjunto:
1. Cache en memoria por "{owner_id}_{filename}": como máximo una
   transferencia por corrida.
2. Nombre determinista "{owner_id[-6:]}_{filename}" (sanitizado): si ya
   existe en la carpeta destino se reutiliza sin descargar, lo que hace
   idempotentes las corridas repetidas sin un ledger persistente.
3. Si no existe: descarga completa en memoria, subida y permiso público
   (best effort).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from loguru import logger

from airbridge.infrastructure.external.airtable.types import AttachmentDescriptor
from airbridge.infrastructure.external.google.drive_store import DurableStore, StoredFile
from airbridge.shared.exceptions.domain import AttachmentTransferError, StorageAccessError

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg")


def is_image_filename(filename: str) -> bool:
    return filename.lower().endswith(IMAGE_EXTENSIONS)


def attachment_cache_key(owner_id: str, filename: str) -> str:
    return f"{owner_id}_{filename}"


def stored_filename(owner_id: str, filename: str) -> str:
    """Nombre determinista en el store: sufijo del owner + filename sanitizado."""
    return _UNSAFE_FILENAME_CHARS.sub("_", f"{owner_id[-6:]}_{filename}")


@dataclass(frozen=True)
class MigratedAttachment:
    durable_url: str
    durable_file_id: Optional[str]
    filename: str
    mime_type: str = "application/octet-stream"
    size: Optional[int] = None
    thumbnail_url: Optional[str] = None
    # True cuando la transferencia falló y se usa la URL original de Airtable
    is_fallback: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def is_image(self) -> bool:
        return is_image_filename(self.filename)


@dataclass
class AttachmentStats:
    downloads: int = 0
    uploads: int = 0
    cache_hits: int = 0
    store_hits: int = 0
    failures: int = 0
    fallbacks: int = 0
    warnings: list[str] = field(default_factory=list)


class AttachmentMigrator:
    """
    Transfiere adjuntos de Airtable al DurableStore con cache por corrida.

    Una instancia = una corrida: el cache no se comparte entre corridas.
    """

    def __init__(
        self,
        store: DurableStore,
        *,
        session: Optional[requests.Session] = None,
        download_timeout_s: int = 60,
        fallback_to_source_url: bool = True,
    ) -> None:
        self._store = store
        self._session = session or requests.Session()
        self._download_timeout_s = download_timeout_s
        self._fallback_to_source_url = fallback_to_source_url
        self._cache: dict[str, MigratedAttachment] = {}
        self._folders: dict[str, str] = {}
        self.stats = AttachmentStats()

    def verify_folder(self, folder_id: str) -> dict[str, Any]:
        """
        Verifica que la carpeta raíz de adjuntos es accesible.

        Raises:
            StorageAccessError: si la carpeta no existe o no está compartida
        """
        try:
            folder = self._store.get(folder_id)
        except Exception as e:
            raise StorageAccessError(folder_id, str(e)) from e
        logger.info(f"  Acceso OK a la carpeta de adjuntos: \"{folder.get('name')}\"")
        return folder

    def subfolder(self, parent_id: str, name: str) -> str:
        """Id de la subcarpeta `name` (creada si falta), memoizado por corrida."""
        key = f"{parent_id}/{name}"
        if key not in self._folders:
            self._folders[key] = self._store.ensure_folder(parent_id, name)
        return self._folders[key]

    def migrate(
        self,
        descriptor: AttachmentDescriptor,
        target_folder: str,
        owner_id: str,
    ) -> MigratedAttachment:
        """
        Transfiere un adjunto (o lo reutiliza).

        Raises:
            AttachmentTransferError: si la descarga o la subida fallan
        """
        key = attachment_cache_key(owner_id, descriptor.filename)
        cached = self._cache.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        name = stored_filename(owner_id, descriptor.filename)
        try:
            existing = self._store.find(target_folder, name)
        except Exception as e:
            raise AttachmentTransferError(owner_id, descriptor.filename, f"búsqueda en store: {e}") from e

        if existing is not None:
            self.stats.store_hits += 1
            result = self._to_result(existing, descriptor)
            self._cache[key] = result
            return result

        data, content_type = self._download(descriptor, owner_id)

        try:
            stored = self._store.upload(target_folder, name, data, content_type)
        except Exception as e:
            raise AttachmentTransferError(owner_id, descriptor.filename, f"subida: {e}") from e
        self.stats.uploads += 1

        warnings: tuple[str, ...] = ()
        try:
            self._store.set_public_read(stored.file_id)
        except Exception as e:
            # Shared Drives heredan permisos o rechazan grants redundantes
            warning = f"Permiso público no aplicado a {name}: {e}"
            warnings = (warning,)
            self.stats.warnings.append(warning)

        result = self._to_result(stored, descriptor, warnings=warnings)
        self._cache[key] = result
        return result

    def migrate_or_fallback(
        self,
        descriptor: AttachmentDescriptor,
        target_folder: str,
        owner_id: str,
    ) -> Optional[MigratedAttachment]:
        """
        Variante que no lanza: registra el fallo y, según configuración,
        retorna la URL original de Airtable (is_fallback=True) o None.
        """
        try:
            return self.migrate(descriptor, target_folder, owner_id)
        except AttachmentTransferError as e:
            return self._failed(descriptor, e)

    def migrate_all(
        self,
        descriptors: list[AttachmentDescriptor],
        target_folder: str,
        owner_id: str,
    ) -> list[MigratedAttachment]:
        """Migra una lista de adjuntos; los que fallan sin fallback se omiten."""
        migrated: list[MigratedAttachment] = []
        for descriptor in descriptors:
            result = self.migrate_or_fallback(descriptor, target_folder, owner_id)
            if result is not None:
                migrated.append(result)
        return migrated

    def migrate_into(
        self,
        descriptors: list[AttachmentDescriptor],
        parent_id: str,
        folder_name: str,
        owner_id: str,
    ) -> list[MigratedAttachment]:
        """
        migrate_all sobre la subcarpeta `folder_name`. Si la subcarpeta no se
        puede resolver, cada adjunto cuenta como transferencia fallida.
        """
        if not descriptors:
            return []
        try:
            folder_id = self.subfolder(parent_id, folder_name)
        except Exception as e:
            migrated: list[MigratedAttachment] = []
            for descriptor in descriptors:
                error = AttachmentTransferError(owner_id, descriptor.filename, f"carpeta {folder_name}: {e}")
                result = self._failed(descriptor, error)
                if result is not None:
                    migrated.append(result)
            return migrated
        return self.migrate_all(descriptors, folder_id, owner_id)

    def _failed(
        self,
        descriptor: AttachmentDescriptor,
        error: AttachmentTransferError,
    ) -> Optional[MigratedAttachment]:
        self.stats.failures += 1
        logger.warning(f"      Adjunto no migrado: {error.message}")
        if not self._fallback_to_source_url:
            return None
        self.stats.fallbacks += 1
        return MigratedAttachment(
            durable_url=descriptor.url,
            durable_file_id=None,
            filename=descriptor.filename,
            mime_type=descriptor.mime_type,
            size=descriptor.size,
            thumbnail_url=descriptor.thumbnail_url,
            is_fallback=True,
            warnings=(error.message,),
        )

    def _download(self, descriptor: AttachmentDescriptor, owner_id: str) -> tuple[bytes, str]:
        try:
            resp = self._session.get(descriptor.url, timeout=self._download_timeout_s)
        except requests.RequestException as e:
            raise AttachmentTransferError(owner_id, descriptor.filename, f"descarga: {e}") from e

        if not (200 <= resp.status_code < 300):
            raise AttachmentTransferError(
                owner_id, descriptor.filename, f"descarga {resp.status_code}: {resp.reason}"
            )

        self.stats.downloads += 1
        content_type = resp.headers.get("content-type") or descriptor.mime_type or "application/octet-stream"
        return resp.content, content_type

    @staticmethod
    def _to_result(
        stored: StoredFile,
        descriptor: AttachmentDescriptor,
        *,
        warnings: tuple[str, ...] = (),
    ) -> MigratedAttachment:
        return MigratedAttachment(
            durable_url=stored.public_url,
            durable_file_id=stored.file_id,
            filename=descriptor.filename,
            mime_type=descriptor.mime_type,
            size=descriptor.size,
            thumbnail_url=descriptor.thumbnail_url,
            warnings=warnings,
        )
