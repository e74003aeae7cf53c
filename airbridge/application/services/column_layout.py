"""
Layout de columnas de las pestañas.

Cada celda se identifica por un ColumnKey (field base, variante, rol) y el
header se RENDERIZA desde la clave; nunca se parsea un header para
reconstruir su origen. Así "Photos 2 URL" queda siempre inmediatamente a la
izquierda de "Photos 2", y "Photos (more)" después de todas sus variantes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

META_COLUMNS = ("_airtable_id", "_created_time")

MAX_IMAGE_COLUMNS = 3

# Lee el link de Drive de la celda de la izquierda (URL) y muestra la imagen.
# Relativo a la celda: sobrevive a inserciones de columnas.
PREVIEW_FORMULA = (
    '=IF(INDIRECT(ADDRESS(ROW(),COLUMN()-1,4))<>"",'
    'IMAGE("https://drive.google.com/uc?export=view&id="&'
    'REGEXEXTRACT(INDIRECT(ADDRESS(ROW(),COLUMN()-1,4)),"/d/([^/]+)")),"")'
)


class ColumnRole(str, Enum):
    VALUE = "value"
    URL = "url"
    PREVIEW = "preview"
    OVERFLOW = "overflow"


_ROLE_ORDER = {
    ColumnRole.URL: 0,
    ColumnRole.VALUE: 1,
    ColumnRole.PREVIEW: 1,
    ColumnRole.OVERFLOW: 2,
}


@dataclass(frozen=True)
class ColumnKey:
    """
    Descriptor de columna.

    variant_index: 0 = sin numerar (una sola imagen o field escalar),
    1..MAX_IMAGE_COLUMNS = imagen numerada.
    """

    base_field: str
    variant_index: int = 0
    role: ColumnRole = ColumnRole.VALUE

    @classmethod
    def value(cls, field_name: str) -> "ColumnKey":
        return cls(field_name)

    def header(self) -> str:
        suffix = f" {self.variant_index}" if self.variant_index else ""
        if self.role is ColumnRole.URL:
            return f"{self.base_field}{suffix} URL"
        if self.role is ColumnRole.OVERFLOW:
            return f"{self.base_field} (more)"
        return f"{self.base_field}{suffix}"

    @property
    def is_meta(self) -> bool:
        return self.role is ColumnRole.VALUE and self.base_field in META_COLUMNS

    @property
    def sort_key(self) -> tuple:
        if self.is_meta:
            return (0, META_COLUMNS.index(self.base_field), "", "", 0, 0, 0)
        return (
            1,
            0,
            self.base_field.casefold(),
            self.base_field,
            1 if self.role is ColumnRole.OVERFLOW else 0,
            self.variant_index,
            _ROLE_ORDER[self.role],
        )


FlatRecord = Mapping[ColumnKey, str]


def order_columns(keys: Iterable[ColumnKey]) -> list[ColumnKey]:
    """
    Orden final de columnas: meta primero, luego por field base, con
    "(more)" al final de su field, variantes ascendentes y URL antes que
    su preview. Dos claves que renderizan el mismo header se unifican.
    """
    ordered: list[ColumnKey] = []
    seen_headers: set[str] = set()
    for key in sorted(set(keys), key=lambda k: k.sort_key):
        header = key.header()
        if header in seen_headers:
            continue
        seen_headers.add(header)
        ordered.append(key)
    return ordered


def records_to_rows(records: list[FlatRecord]) -> tuple[list[str], list[list[str]]]:
    """
    Headers y filas para escribir en la pestaña. Celdas faltantes -> "".
    Sin registros, solo se escriben las columnas meta.
    """
    keys: set[ColumnKey] = {ColumnKey.value(name) for name in META_COLUMNS}
    for record in records:
        keys.update(record.keys())

    columns = order_columns(keys)
    headers = [key.header() for key in columns]

    rows: list[list[str]] = []
    for record in records:
        by_header = {key.header(): value for key, value in record.items()}
        rows.append([by_header.get(header, "") or "" for header in headers])
    return headers, rows


def column_letter(index: int) -> str:
    """Índice 0-based -> letra de columna A1 (0 -> A, 26 -> AA)."""
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters
