"""
Wrapper fino sobre Google Sheets v4 (spreadsheets / values / batchUpdate).
"""
from __future__ import annotations

from typing import Any

from loguru import logger


def quote_sheet_name(name: str) -> str:
    """Nombre de pestaña entre comillas simples (soporta espacios y ')."""
    return "'" + name.replace("'", "''") + "'"


class SheetsClient:
    def __init__(self, sheets_service: Any, spreadsheet_id: str) -> None:
        self._svc = sheets_service
        self._spreadsheet_id = spreadsheet_id

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    @property
    def url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self._spreadsheet_id}"

    def list_sheets(self) -> dict[str, int]:
        """Pestañas existentes: título -> sheetId."""
        meta = self._svc.spreadsheets().get(spreadsheetId=self._spreadsheet_id).execute()
        result: dict[str, int] = {}
        for sheet in meta.get("sheets") or []:
            props = sheet.get("properties") or {}
            if props.get("title") is not None and props.get("sheetId") is not None:
                result[props["title"]] = props["sheetId"]
        return result

    def conditional_format_count(self, sheet_id: int) -> int:
        """Reglas de formato condicional vigentes en la pestaña."""
        meta = self._svc.spreadsheets().get(
            spreadsheetId=self._spreadsheet_id,
            fields="sheets(properties.sheetId,conditionalFormats)",
        ).execute()
        for sheet in meta.get("sheets") or []:
            if (sheet.get("properties") or {}).get("sheetId") == sheet_id:
                return len(sheet.get("conditionalFormats") or [])
        return 0

    def batch_update(self, requests: list[dict[str, Any]]) -> dict[str, Any]:
        if not requests:
            return {}
        return self._svc.spreadsheets().batchUpdate(
            spreadsheetId=self._spreadsheet_id,
            body={"requests": requests},
        ).execute()

    def add_sheet(self, title: str) -> int:
        response = self.batch_update([{"addSheet": {"properties": {"title": title}}}])
        replies = response.get("replies") or [{}]
        return replies[0].get("addSheet", {}).get("properties", {}).get("sheetId", 0)

    def delete_sheet(self, sheet_id: int) -> None:
        self.batch_update([{"deleteSheet": {"sheetId": sheet_id}}])

    def clear_sheet(self, title: str) -> None:
        self._svc.spreadsheets().values().clear(
            spreadsheetId=self._spreadsheet_id,
            range=quote_sheet_name(title),
        ).execute()

    def write_values(self, title: str, values: list[list[str]]) -> None:
        self._svc.spreadsheets().values().update(
            spreadsheetId=self._spreadsheet_id,
            range=f"{quote_sheet_name(title)}!A1",
            valueInputOption="USER_ENTERED",
            body={"values": values},
        ).execute()
        logger.debug(f"    {len(values)} filas escritas en {title}")

    def read_header(self, title: str) -> list[str]:
        res = self._svc.spreadsheets().values().get(
            spreadsheetId=self._spreadsheet_id,
            range=f"{quote_sheet_name(title)}!1:1",
        ).execute()
        values = res.get("values") or [[]]
        return [str(v) for v in values[0]]

    def count_rows(self, title: str) -> int:
        """Filas usadas según la columna A (incluye el header)."""
        res = self._svc.spreadsheets().values().get(
            spreadsheetId=self._spreadsheet_id,
            range=f"{quote_sheet_name(title)}!A:A",
        ).execute()
        return len(res.get("values") or []) or 1
