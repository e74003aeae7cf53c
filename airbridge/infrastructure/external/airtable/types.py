"""
Tipos y utilidades puras para el pipeline Airtable -> Postgres / Sheets.

Se mantienen libres de I/O para poder testearlos fácilmente.

Los valores de cada field se clasifican UNA vez al ingerir el registro
(Scalar | ScalarList | AttachmentList | LinkedRecordList), así el resto del
pipeline decide por tipo y no por inspección del valor crudo.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

RECORD_ID_PATTERN = re.compile(r"^rec[A-Za-z0-9]{14}$")


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Airtable suele devolver ISO8601 con zona; aun así, normalizamos para
    comparar/almacenar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_airtable_datetime(raw: str) -> datetime:
    """Parsea un timestamp de Airtable, e.g. "2025-12-16T10:15:00.000Z"."""
    return ensure_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))


@dataclass(frozen=True)
class AttachmentDescriptor:
    """Un archivo binario referenciado por un registro (field de tipo attachment)."""

    url: str
    filename: str
    mime_type: str = "application/octet-stream"
    size: Optional[int] = None
    thumbnail_url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "AttachmentDescriptor":
        thumbnails = raw.get("thumbnails") or {}
        large = thumbnails.get("large") or {}
        return cls(
            url=str(raw["url"]),
            filename=str(raw.get("filename") or raw.get("id") or "attachment"),
            mime_type=str(raw.get("type") or "application/octet-stream"),
            size=raw.get("size"),
            thumbnail_url=large.get("url"),
        )


@dataclass(frozen=True)
class Scalar:
    """Valor simple: texto, número, booleano u objeto (p.ej. collaborator)."""

    value: Any


@dataclass(frozen=True)
class ScalarList:
    """Lista de escalares (multiple select, lookups)."""

    values: tuple[Any, ...]


@dataclass(frozen=True)
class AttachmentList:
    items: tuple[AttachmentDescriptor, ...]


@dataclass(frozen=True)
class LinkedRecordList:
    """Ids de registros de otra tabla (o de la misma)."""

    record_ids: tuple[str, ...]


FieldValue = Union[Scalar, ScalarList, AttachmentList, LinkedRecordList]


def _is_attachment(item: Any) -> bool:
    return isinstance(item, Mapping) and bool(item.get("url"))


def classify_field_value(raw: Any, *, is_link: bool = False) -> FieldValue:
    """
    Clasifica el valor crudo de un field de Airtable.

    - lista de objetos con 'url'            -> AttachmentList
    - lista de record ids (o field de link) -> LinkedRecordList
    - cualquier otra lista                  -> ScalarList
    - resto                                 -> Scalar
    """
    if isinstance(raw, list):
        if raw and all(_is_attachment(item) for item in raw):
            return AttachmentList(tuple(AttachmentDescriptor.from_api(item) for item in raw))
        if raw and all(isinstance(item, str) for item in raw):
            if is_link or all(RECORD_ID_PATTERN.match(item) for item in raw):
                return LinkedRecordList(tuple(raw))
        if is_link and not raw:
            return LinkedRecordList(())
        return ScalarList(tuple(raw))
    return Scalar(raw)


@dataclass(frozen=True)
class SourceRecord:
    """
    Registro Airtable ya clasificado. Inmutable durante la corrida.

    Los accessors devuelven un valor neutro cuando el field no existe o no
    es del tipo pedido (Airtable omite los fields vacíos).
    """

    record_id: str
    created_time: datetime
    fields: Mapping[str, FieldValue] = field(default_factory=dict)

    @classmethod
    def from_api(
        cls,
        raw: Mapping[str, Any],
        *,
        link_fields: frozenset[str] = frozenset(),
    ) -> "SourceRecord":
        raw_fields = raw.get("fields") or {}
        classified = {
            name: classify_field_value(value, is_link=name in link_fields)
            for name, value in raw_fields.items()
        }
        created = raw.get("createdTime")
        return cls(
            record_id=str(raw["id"]),
            created_time=parse_airtable_datetime(created) if created else utc_now(),
            fields=MappingProxyType(classified),
        )

    def scalar(self, name: str, default: Any = None) -> Any:
        value = self.fields.get(name)
        if isinstance(value, Scalar):
            return value.value
        return default

    def scalar_list(self, name: str) -> list[Any]:
        value = self.fields.get(name)
        if isinstance(value, ScalarList):
            return list(value.values)
        if isinstance(value, LinkedRecordList):
            return list(value.record_ids)
        return []

    def attachments(self, name: str) -> list[AttachmentDescriptor]:
        value = self.fields.get(name)
        if isinstance(value, AttachmentList):
            return list(value.items)
        return []

    def links(self, name: str) -> list[str]:
        value = self.fields.get(name)
        if isinstance(value, LinkedRecordList):
            return list(value.record_ids)
        return []

    def first_link(self, name: str) -> Optional[str]:
        ids = self.links(name)
        return ids[0] if ids else None


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de un campo Airtable escalar a una columna Postgres.

    - airtable_field: nombre del field en Airtable
    - pg_column: nombre de la columna en Postgres
    - transform: función opcional para transformar el valor antes de persistir
    - default: valor si el field falta o es "falsy" (cadena vacía, 0, False)
    - as_list: si True, se lee como lista (multiple select) y el default es []
    """

    airtable_field: str
    pg_column: str
    transform: Optional[Transform] = None
    default: Any = None
    as_list: bool = False


@dataclass(frozen=True)
class Choice:
    """Opción de un field single/multiple select, con su color de Airtable."""

    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    choices: tuple[Choice, ...] = ()
    linked_table_id: Optional[str] = None

    @property
    def is_select(self) -> bool:
        return self.type in ("singleSelect", "multipleSelects") and bool(self.choices)

    @property
    def is_link(self) -> bool:
        return self.type == "multipleRecordLinks" and bool(self.linked_table_id)

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "SchemaField":
        options = raw.get("options") or {}
        choices = tuple(
            Choice(name=str(c.get("name")), color=c.get("color"))
            for c in (options.get("choices") or [])
            if c.get("name") is not None
        )
        return cls(
            name=str(raw.get("name")),
            type=str(raw.get("type")),
            choices=choices,
            linked_table_id=options.get("linkedTableId"),
        )


@dataclass(frozen=True)
class TableRef:
    """Tabla de la base Airtable y su destino (pestaña/colección)."""

    table_id: str
    table_name: str
    target_name: str


@dataclass(frozen=True)
class LinkedField:
    field_name: str
    linked_table_id: str
    linked_table_name: str
    linked_target_name: str
    is_self_link: bool
