"""
Constructores de requests de batchUpdate para el formato de las pestañas.

Funciones puras: arman los dicts del API de Sheets v4 y no hacen I/O.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from airbridge.application.services.column_layout import column_letter
from airbridge.infrastructure.external.airtable.types import Choice
from airbridge.infrastructure.external.google.sheets_client import quote_sheet_name
from airbridge.shared.constants.airtable_colors import (
    HEADER_BACKGROUND,
    HEADER_TEXT,
    airtable_color_to_rgb,
)

# Límite de opciones de una validación ONE_OF_LIST
MAX_DROPDOWN_OPTIONS = 500

# Filas mínimas con alto fijo (para que las filas nuevas también muestren previews)
MIN_SIZED_ROWS = 1000

# Última fila de los rangos de validación cruzada
LINKED_RANGE_LAST_ROW = 1000

# Columnas candidatas a "nombre visible" de una pestaña, en orden de prioridad
NAME_COLUMN_CANDIDATES = ("Title", "Name", "Item Name", "Contact Name")


@dataclass(frozen=True)
class LookupRule:
    """Columna lookup "(from X)" -> columna de nombres de otra pestaña."""

    pattern: re.Pattern
    linked_sheet: str
    name_column: str

    def matches(self, header: str) -> bool:
        return bool(self.pattern.search(header))


def _lookup(source: str, linked_sheet: str, name_column: str) -> LookupRule:
    return LookupRule(
        pattern=re.compile(rf"\(from {re.escape(source)}\)$", re.IGNORECASE),
        linked_sheet=linked_sheet,
        name_column=name_column,
    )


LOOKUP_RULES: tuple[LookupRule, ...] = (
    _lookup("Team Roster", "Contacts", "Name"),
    _lookup("Vendor", "Contacts", "Name"),
    _lookup("Task", "Projects", "Title"),
    _lookup("Blocking", "Projects", "Title"),
    _lookup("Blocked By", "Projects", "Title"),
    _lookup("Items & Purchases", "Items", "Item Name"),
)


def match_lookup_rule(header: str) -> Optional[LookupRule]:
    for rule in LOOKUP_RULES:
        if rule.matches(header):
            return rule
    return None


def find_name_column(headers: list[str], candidates: Iterable[str] = NAME_COLUMN_CANDIDATES) -> int:
    """Índice de la primera columna candidata presente; -1 si ninguna."""
    for candidate in candidates:
        if candidate in headers:
            return headers.index(candidate)
    return -1


def _column_range(sheet_id: int, col_index: int, end_row_index: int) -> dict[str, int]:
    return {
        "sheetId": sheet_id,
        "startRowIndex": 1,
        "endRowIndex": end_row_index,
        "startColumnIndex": col_index,
        "endColumnIndex": col_index + 1,
    }


def base_format_requests(
    sheet_id: int,
    column_count: int,
    row_count: int,
    *,
    row_height_px: int = 100,
) -> list[dict[str, Any]]:
    """
    Formato base, en orden: header congelado, header en negrita con color,
    alto fijo de filas y filtro básico sobre todo el rango de datos.

    row_count: filas de datos (sin el header)
    """
    return [
        {
            "updateSheetProperties": {
                "properties": {"sheetId": sheet_id, "gridProperties": {"frozenRowCount": 1}},
                "fields": "gridProperties.frozenRowCount",
            }
        },
        {
            "repeatCell": {
                "range": {
                    "sheetId": sheet_id,
                    "startRowIndex": 0,
                    "endRowIndex": 1,
                    "startColumnIndex": 0,
                    "endColumnIndex": column_count,
                },
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": dict(HEADER_BACKGROUND),
                        "textFormat": {"bold": True, "foregroundColor": dict(HEADER_TEXT)},
                    }
                },
                "fields": "userEnteredFormat(textFormat,backgroundColor)",
            }
        },
        {
            "updateDimensionProperties": {
                "range": {
                    "sheetId": sheet_id,
                    "dimension": "ROWS",
                    "startIndex": 1,
                    "endIndex": max(row_count + 1, MIN_SIZED_ROWS),
                },
                "properties": {"pixelSize": row_height_px},
                "fields": "pixelSize",
            }
        },
        {
            "setBasicFilter": {
                "filter": {
                    "range": {
                        "sheetId": sheet_id,
                        "startRowIndex": 0,
                        "endRowIndex": row_count + 1,
                        "startColumnIndex": 0,
                        "endColumnIndex": column_count,
                    }
                }
            }
        },
    ]


def select_field_requests(
    sheet_id: int,
    col_index: int,
    row_count: int,
    choices: list[Choice],
) -> list[dict[str, Any]]:
    """
    Dropdown (chips) de un field select + una regla TEXT_EQ por opción con
    los colores de Airtable.
    """
    cell_range = _column_range(sheet_id, col_index, row_count + 1)
    requests: list[dict[str, Any]] = [
        {
            "setDataValidation": {
                "range": cell_range,
                "rule": {
                    "condition": {
                        "type": "ONE_OF_LIST",
                        "values": [
                            {"userEnteredValue": choice.name}
                            for choice in choices[:MAX_DROPDOWN_OPTIONS]
                        ],
                    },
                    "showCustomUi": True,
                    "strict": False,
                },
            }
        }
    ]

    for choice in choices:
        background, text = airtable_color_to_rgb(choice.color)
        requests.append(
            {
                "addConditionalFormatRule": {
                    "rule": {
                        "ranges": [dict(cell_range)],
                        "booleanRule": {
                            "condition": {
                                "type": "TEXT_EQ",
                                "values": [{"userEnteredValue": choice.name}],
                            },
                            "format": {
                                "backgroundColor": background,
                                "textFormat": {"foregroundColor": text},
                            },
                        },
                    },
                    "index": 0,
                }
            }
        )
    return requests


def linked_range_validation_request(
    sheet_id: int,
    col_index: int,
    end_row_index: int,
    linked_sheet: str,
    name_col_index: int,
) -> dict[str, Any]:
    """Dropdown cuyas opciones son la columna de nombres de otra pestaña."""
    letter = column_letter(name_col_index)
    quoted = quote_sheet_name(linked_sheet)
    return {
        "setDataValidation": {
            "range": _column_range(sheet_id, col_index, end_row_index),
            "rule": {
                "condition": {
                    "type": "ONE_OF_RANGE",
                    "values": [
                        {"userEnteredValue": f"={quoted}!${letter}$2:${letter}${LINKED_RANGE_LAST_ROW}"}
                    ],
                },
                "showCustomUi": True,
                "strict": False,
            },
        }
    }


def reset_format_requests(sheet_id: int, conditional_rule_count: int) -> list[dict[str, Any]]:
    """
    Limpieza de una pestaña reutilizada: quita todas las validaciones y las
    reglas condicionales previas. Cada regla se borra en el índice 0 porque
    los índices se corren tras cada borrado.
    """
    requests: list[dict[str, Any]] = [{"setDataValidation": {"range": {"sheetId": sheet_id}}}]
    requests.extend(
        {"deleteConditionalFormatRule": {"sheetId": sheet_id, "index": 0}}
        for _ in range(conditional_rule_count)
    )
    return requests
