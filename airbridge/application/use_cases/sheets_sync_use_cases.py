"""
Caso de uso: exportar la base Airtable a Google Sheets (una pestaña por tabla).

Dos fases:
1. Por tabla: adjuntos a Drive, aplanado, escritura de valores y formato
   propio de la pestaña (header, filtro, dropdowns de selects y colores).
   Un fallo de una tabla se registra y se sigue con la siguiente.
2. Con TODAS las pestañas ya escritas: dropdowns cruzados (ONE_OF_RANGE)
   hacia la columna de nombres de otra pestaña, desde los links del schema
   y desde las columnas lookup "(from X)".

Todo lo cosmético (formato, dropdowns, nombres de links) es best effort:
los problemas quedan como warnings en el resultado.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from googleapiclient.errors import HttpError
from loguru import logger

from airbridge.application.dto.results_dto import (
    BestEffortResult,
    SheetsSyncSummaryDTO,
    TableSyncResultDTO,
)
from airbridge.application.services.attachment_migrator import AttachmentMigrator, MigratedAttachment
from airbridge.application.services.column_layout import records_to_rows
from airbridge.application.services.record_flattener import flatten_record, primary_display_name
from airbridge.application.services.sheet_formatter import (
    base_format_requests,
    find_name_column,
    linked_range_validation_request,
    match_lookup_rule,
    reset_format_requests,
    select_field_requests,
)
from airbridge.core.config import Settings
from airbridge.infrastructure.external.airtable.airtable_client import AirtableClient
from airbridge.infrastructure.external.airtable.schema_introspector import SchemaIntrospector, select_fields
from airbridge.infrastructure.external.airtable.types import (
    AttachmentDescriptor,
    AttachmentList,
    Choice,
    LinkedField,
    SourceRecord,
)
from airbridge.infrastructure.external.google.drive_store import GoogleDriveStore
from airbridge.infrastructure.external.google.google_clients import (
    build_credentials,
    build_drive_service,
    build_sheets_service,
)
from airbridge.infrastructure.external.google.sheets_client import SheetsClient
from airbridge.shared.constants.migration_constants import SHEET_TABLES
from airbridge.shared.exceptions.base import AppException
from airbridge.shared.exceptions.domain import StorageAccessError

_FOLDER_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def folder_name_for_sheet(sheet_name: str) -> str:
    return _FOLDER_NAME_UNSAFE.sub("_", sheet_name)


def drive_folder_url(folder_id: str) -> str:
    return f"https://drive.google.com/drive/folders/{folder_id}"


@dataclass(frozen=True)
class PendingLink:
    """Dropdown cruzado pendiente para la fase 2 (field linkeado del schema)."""

    sheet_name: str
    sheet_id: int
    field_name: str
    col_index: int
    end_row_index: int
    linked_sheet: str


class AirtableToSheetsSync:
    def __init__(
        self,
        *,
        airtable: AirtableClient,
        sheets: SheetsClient,
        migrator: AttachmentMigrator,
        attachments_folder_id: str,
        schema: Optional[SchemaIntrospector] = None,
        tables: Optional[Mapping[str, str]] = None,
        row_height_px: int = 100,
        service_account_email: str = "",
    ) -> None:
        """
        Args:
            tables: tabla Airtable -> pestaña, en orden de escritura
        """
        self._airtable = airtable
        self._sheets = sheets
        self._migrator = migrator
        self._attachments_folder_id = attachments_folder_id
        self._tables = dict(tables or SHEET_TABLES)
        self._schema = schema or SchemaIntrospector(airtable, target_names=self._tables)
        self._row_height_px = row_height_px
        self._service_account_email = service_account_email
        # Cache de nombres visibles de registros linkeados (id Airtable -> nombre)
        self._record_names: dict[str, str] = {}

    def run(self) -> SheetsSyncSummaryDTO:
        """
        Raises:
            StorageAccessError: si la carpeta de adjuntos no es accesible
        """
        logger.info("Verificando carpeta de adjuntos en Drive...")
        try:
            self._migrator.verify_folder(self._attachments_folder_id)
        except StorageAccessError:
            self._log_folder_troubleshooting()
            raise

        existing = self._sheets.list_sheets()
        logger.info(f"  {len(existing)} pestañas existentes")

        summary = SheetsSyncSummaryDTO(
            spreadsheet_url=self._sheets.url,
            attachments_folder_url=drive_folder_url(self._attachments_folder_id),
        )
        pending: list[PendingLink] = []

        for table_name, sheet_name in self._tables.items():
            logger.info(f"Sincronizando: {table_name} -> {sheet_name}")
            try:
                result, links = self.sync_table(table_name, sheet_name, existing)
            except (AppException, HttpError) as e:
                message = e.message if isinstance(e, AppException) else str(e)
                logger.error(f"  Error sincronizando {table_name}: {message}")
                result = TableSyncResultDTO(source_table=table_name, sheet_name=sheet_name, error=message)
                links = []
            summary.tables.append(result)
            pending.extend(links)

        logger.info("Aplicando dropdowns cruzados entre pestañas...")
        summary.cross_tab_links = self.apply_cross_tab_links(pending)

        self._log_summary(summary)
        return summary

    def sync_table(
        self,
        table_name: str,
        sheet_name: str,
        existing: dict[str, int],
    ) -> tuple[TableSyncResultDTO, list[PendingLink]]:
        """Fase 1 de una tabla. Los links cruzados se devuelven como pendientes."""
        result = TableSyncResultDTO(source_table=table_name, sheet_name=sheet_name)
        folder_name = folder_name_for_sheet(sheet_name)

        schema = self._schema.fetch_schema(table_name)
        selects = select_fields(schema)
        linked = self._schema.linked_fields(schema, table_name)
        if selects:
            logger.info(f"    {len(selects)} fields con dropdown: {', '.join(selects)}")
        if linked:
            logger.info(f"    {len(linked)} fields linkeados: {', '.join(f.field_name for f in linked)}")

        records = self._airtable.fetch_all(table_name, link_fields=self._schema.link_field_names(table_name))

        if linked:
            result.warnings.extend(self.prefetch_linked_names(records, linked).warnings)

        def resolve_attachments(descriptors: list[AttachmentDescriptor], owner_id: str) -> list[MigratedAttachment]:
            migrated = self._migrator.migrate_into(descriptors, self._attachments_folder_id, folder_name, owner_id)
            for attachment in migrated:
                result.warnings.extend(attachment.warnings)
            return migrated

        linked_names = frozenset(f.field_name for f in linked)
        flattened = []
        for i, record in enumerate(records, start=1):
            flattened.append(
                flatten_record(
                    record,
                    resolve_attachments=resolve_attachments,
                    linked_field_names=linked_names,
                    record_names=self._record_names,
                )
            )
            result.attachments += _count_attachments(record)
            if i % 20 == 0:
                logger.debug(f"    Procesados {i}/{len(records)} registros")

        headers, rows = records_to_rows(flattened)
        result.rows = len(rows)
        result.columns = headers
        logger.info(f"    {len(records)} registros procesados con {result.attachments} adjuntos")

        sheet_id = self.write_table(sheet_name, headers, rows, existing=existing)
        result.warnings.extend(self.format_table(sheet_id, sheet_name, headers, len(rows), selects).warnings)

        pending = [
            PendingLink(
                sheet_name=sheet_name,
                sheet_id=sheet_id,
                field_name=f.field_name,
                col_index=headers.index(f.field_name),
                end_row_index=len(rows) + 1,
                linked_sheet=f.linked_target_name,
            )
            for f in linked
            if f.field_name in headers
        ]

        logger.success(f"  {result.rows} registros sincronizados en {sheet_name}")
        return result, pending

    def prefetch_linked_names(self, records: list[SourceRecord], linked: list[LinkedField]) -> BestEffortResult:
        """
        Resuelve el nombre visible del PRIMER registro linkeado de cada field,
        agrupando por tabla destino. Lo que no se resuelve se muestra por id.
        """
        outcome = BestEffortResult()
        ids_by_table: dict[str, list[str]] = {}
        for lf in linked:
            wanted = ids_by_table.setdefault(lf.linked_table_name, [])
            for record in records:
                first = record.first_link(lf.field_name)
                if first and first not in self._record_names and first not in wanted:
                    wanted.append(first)

        for table_name, ids in ids_by_table.items():
            if not ids:
                continue
            try:
                found = self._airtable.fetch_records_by_ids(table_name, ids)
            except AppException as e:
                outcome.warn(f"No se pudieron resolver nombres de {table_name}: {e.message}")
                continue
            for linked_record in found:
                self._record_names[linked_record.record_id] = primary_display_name(linked_record)
                outcome.applied += 1
        return outcome

    def write_table(
        self,
        sheet_name: str,
        headers: list[str],
        rows: list[list[str]],
        *,
        existing: dict[str, int],
    ) -> int:
        """Escribe header + filas en una pestaña limpia; retorna su sheetId."""
        sheet_id = self.create_or_clear_sheet(existing, sheet_name)
        self._sheets.write_values(sheet_name, [headers, *rows])
        return sheet_id

    def create_or_clear_sheet(self, existing: dict[str, int], sheet_name: str) -> int:
        """
        Pestaña limpia para escribir. Se borra y se recrea (así no quedan
        columnas viejas); si no se puede borrar (p.ej. es la única pestaña)
        se limpian sus valores y se reutiliza.
        """
        if sheet_name in existing:
            old_id = existing[sheet_name]
            try:
                self._sheets.delete_sheet(old_id)
                logger.info(f"    Pestaña existente borrada: {sheet_name}")
            except HttpError:
                self._sheets.clear_sheet(sheet_name)
                self.reset_sheet_format(old_id, sheet_name)
                logger.info(f"    Pestaña existente limpiada: {sheet_name}")
                return old_id
            existing.pop(sheet_name, None)

        sheet_id = self._sheets.add_sheet(sheet_name)
        existing[sheet_name] = sheet_id
        logger.info(f"    Pestaña creada: {sheet_name}")
        return sheet_id

    def reset_sheet_format(self, sheet_id: int, sheet_name: str) -> None:
        """Quita validaciones y reglas condicionales que sobreviven al clear de valores."""
        try:
            rule_count = self._sheets.conditional_format_count(sheet_id)
            self._sheets.batch_update(reset_format_requests(sheet_id, rule_count))
        except HttpError as e:
            logger.warning(f"    No se pudo limpiar el formato previo de {sheet_name}: {e}")

    def format_table(
        self,
        sheet_id: int,
        sheet_name: str,
        headers: list[str],
        row_count: int,
        selects: Mapping[str, list[Choice]],
    ) -> BestEffortResult:
        """Formato propio de la pestaña en un solo batchUpdate (fase 1)."""
        outcome = BestEffortResult()
        requests = base_format_requests(sheet_id, len(headers), row_count, row_height_px=self._row_height_px)
        for field_name, choices in selects.items():
            if field_name not in headers:
                continue
            requests.extend(select_field_requests(sheet_id, headers.index(field_name), row_count, choices))

        try:
            self._sheets.batch_update(requests)
            outcome.applied += len(requests)
        except HttpError as e:
            outcome.warn(f"No se pudo aplicar el formato de {sheet_name}: {e}")
        return outcome

    def apply_cross_tab_links(self, pending: list[PendingLink]) -> BestEffortResult:
        """
        Fase 2: dropdowns hacia la columna de nombres de otra pestaña.

        - links del schema: primera columna candidata (Title, Name, ...) de la
          pestaña destino; validación sobre las filas escritas
        - lookups "(from X)": columna fija por regla; validación sobre las
          filas usadas según la columna A
        """
        outcome = BestEffortResult()
        headers_cache: dict[str, list[str]] = {}

        def headers_of(sheet_name: str) -> Optional[list[str]]:
            if sheet_name not in headers_cache:
                try:
                    headers_cache[sheet_name] = self._sheets.read_header(sheet_name)
                except HttpError as e:
                    outcome.warn(f"No se pudo leer el header de {sheet_name}: {e}")
                    return None
            return headers_cache[sheet_name]

        for link in pending:
            linked_headers = headers_of(link.linked_sheet)
            if linked_headers is None:
                continue
            name_col = find_name_column(linked_headers)
            if name_col == -1:
                outcome.warn(
                    f"{link.sheet_name}.{link.field_name}: no se encontró columna de nombre en {link.linked_sheet}"
                )
                continue
            request = linked_range_validation_request(
                link.sheet_id, link.col_index, link.end_row_index, link.linked_sheet, name_col
            )
            self._apply_link(outcome, request, f"{link.sheet_name}.{link.field_name}")

        try:
            sheets = self._sheets.list_sheets()
        except HttpError as e:
            outcome.warn(f"No se pudieron listar las pestañas: {e}")
            return outcome

        for sheet_name, sheet_id in sheets.items():
            headers = headers_of(sheet_name)
            if not headers:
                continue
            row_count: Optional[int] = None
            for col_index, header in enumerate(headers):
                rule = match_lookup_rule(header)
                if rule is None:
                    continue
                linked_headers = headers_of(rule.linked_sheet)
                if linked_headers is None:
                    continue
                name_col = find_name_column(linked_headers, (rule.name_column,))
                if name_col == -1:
                    outcome.warn(f"{sheet_name}.{header}: {rule.linked_sheet} no tiene columna {rule.name_column}")
                    continue
                if row_count is None:
                    try:
                        row_count = self._sheets.count_rows(sheet_name)
                    except HttpError as e:
                        outcome.warn(f"No se pudieron contar las filas de {sheet_name}: {e}")
                        break
                logger.info(f"  {sheet_name}: \"{header}\" -> {rule.linked_sheet}.{rule.name_column}")
                request = linked_range_validation_request(
                    sheet_id, col_index, row_count, rule.linked_sheet, name_col
                )
                self._apply_link(outcome, request, f"{sheet_name}.{header}")

        return outcome

    def _apply_link(self, outcome: BestEffortResult, request: dict[str, Any], label: str) -> None:
        try:
            self._sheets.batch_update([request])
            outcome.applied += 1
        except HttpError as e:
            outcome.warn(f"{label}: no se pudo aplicar el dropdown cruzado: {e}")

    def _log_folder_troubleshooting(self) -> None:
        logger.error("  No se puede acceder a la carpeta de adjuntos. Pasos sugeridos:")
        logger.error("  1. Verifica que GOOGLE_DRIVE_FOLDER_ID sea correcto")
        logger.error(f"  2. Comparte la carpeta con: {self._service_account_email or 'el service account'}")
        logger.error("  3. Dale acceso de \"Editor\" al service account")
        logger.error("  4. Si está en un Shared Drive, agrega el service account como miembro del drive")

    def _log_summary(self, summary: SheetsSyncSummaryDTO) -> None:
        stats = self._migrator.stats
        logger.info("Resumen de la sincronización:")
        for table in summary.tables:
            if table.error:
                logger.error(f"  {table.sheet_name}: ERROR {table.error}")
                continue
            logger.info(
                f"  {table.sheet_name}: filas={table.rows}, adjuntos={table.attachments}, "
                f"warnings={len(table.warnings)}"
            )
            for warning in table.warnings:
                logger.warning(f"    {warning}")
        links = summary.cross_tab_links
        logger.info(f"  Dropdowns cruzados aplicados: {links.applied}, warnings={len(links.warnings)}")
        for warning in links.warnings:
            logger.warning(f"    {warning}")
        logger.info(
            f"  Adjuntos: descargas={stats.downloads}, subidas={stats.uploads}, "
            f"cache={stats.cache_hits}, existentes={stats.store_hits}, fallidos={stats.failures}"
        )
        logger.success("Sincronización completada")
        logger.info(f"  Hoja: {summary.spreadsheet_url}")
        logger.info(f"  Carpeta de adjuntos: {summary.attachments_folder_url}")


def _count_attachments(record: SourceRecord) -> int:
    return sum(len(v.items) for v in record.fields.values() if isinstance(v, AttachmentList))


def build_from_env(cfg: Settings) -> AirtableToSheetsSync:
    """
    Constructor "oficial" del job leyendo la configuración.

    Raises:
        ConfigurationError: con todas las variables faltantes
    """
    cfg.require("AIRTABLE_TOKEN", "AIRTABLE_BASE_ID", "GOOGLE_SHEETS_ID", "GOOGLE_DRIVE_FOLDER_ID")
    credentials = build_credentials(cfg)

    airtable = AirtableClient.from_settings(cfg)
    migrator = AttachmentMigrator(
        GoogleDriveStore(build_drive_service(credentials)),
        download_timeout_s=cfg.ATTACHMENT_DOWNLOAD_TIMEOUT_S,
        fallback_to_source_url=cfg.ATTACHMENT_FALLBACK_TO_SOURCE_URL,
    )
    return AirtableToSheetsSync(
        airtable=airtable,
        sheets=SheetsClient(build_sheets_service(credentials), cfg.GOOGLE_SHEETS_ID),
        migrator=migrator,
        attachments_folder_id=cfg.GOOGLE_DRIVE_FOLDER_ID,
        row_height_px=cfg.SHEET_ROW_HEIGHT_PX,
        service_account_email=cfg.GOOGLE_SERVICE_ACCOUNT_EMAIL,
    )
