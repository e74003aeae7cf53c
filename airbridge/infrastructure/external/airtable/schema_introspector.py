"""
Introspección del schema de la base Airtable.

Una sola llamada al endpoint de metadata alimenta:
- el schema por tabla (memoizado durante la corrida)
- el índice table_id -> TableRef (para saber a qué destino apunta un link)

Si el endpoint de metadata no está disponible el pipeline sigue con
schemas vacíos: sin dropdowns ni nombres de links, pero con los datos.
"""

from __future__ import annotations

from typing import Mapping, Optional

from loguru import logger

from airbridge.shared.exceptions.domain import AirtableApiError
from .airtable_client import AirtableClient
from .types import Choice, LinkedField, SchemaField, TableRef


class SchemaIntrospector:
    def __init__(
        self,
        client: AirtableClient,
        *,
        target_names: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Args:
            client: cliente Airtable
            target_names: nombre de tabla Airtable -> nombre destino
                (pestaña). Las tablas sin entrada usan su propio nombre.
        """
        self._client = client
        self._target_names = dict(target_names or {})
        self._loaded = False
        self._schemas: dict[str, list[SchemaField]] = {}
        self._tables_by_id: dict[str, TableRef] = {}

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            tables = self._client.fetch_tables_metadata()
        except AirtableApiError as e:
            logger.warning(f"    No se pudo leer la metadata de tablas ({e.message}); se continúa sin schema")
            return

        for table in tables:
            name = str(table.get("name"))
            table_id = str(table.get("id"))
            self._tables_by_id[table_id] = TableRef(
                table_id=table_id,
                table_name=name,
                target_name=self._target_names.get(name, name),
            )
            self._schemas[name] = [SchemaField.from_api(f) for f in (table.get("fields") or [])]

    def fetch_schema(self, table_name: str) -> list[SchemaField]:
        """Fields de la tabla; lista vacía si no hay metadata o la tabla no existe."""
        self._load()
        return list(self._schemas.get(table_name, []))

    def table_ref(self, table_id: str) -> Optional[TableRef]:
        self._load()
        return self._tables_by_id.get(table_id)

    def link_field_names(self, table_name: str) -> frozenset[str]:
        return frozenset(f.name for f in self.fetch_schema(table_name) if f.is_link)

    def linked_fields(self, schema: list[SchemaField], current_table: str) -> list[LinkedField]:
        """Fields de tipo link cuya tabla destino aparece en el índice."""
        linked: list[LinkedField] = []
        for f in schema:
            if not f.is_link:
                continue
            ref = self.table_ref(f.linked_table_id or "")
            if ref is None:
                continue
            linked.append(
                LinkedField(
                    field_name=f.name,
                    linked_table_id=ref.table_id,
                    linked_table_name=ref.table_name,
                    linked_target_name=ref.target_name,
                    is_self_link=ref.table_name == current_table,
                )
            )
        return linked


def select_fields(schema: list[SchemaField]) -> dict[str, list[Choice]]:
    """Fields single/multiple select con sus opciones (en orden de Airtable)."""
    return {f.name: list(f.choices) for f in schema if f.is_select}
