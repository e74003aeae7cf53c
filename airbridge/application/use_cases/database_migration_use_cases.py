"""
Caso de uso: migración completa Airtable -> Postgres.

Diseño (resumen):
- Reemplazo total: se borran las tablas destino y se insertan de nuevo
  (no hay upsert ni ledger de ids entre corridas)
- Orden de entidades: contactos -> proyectos -> items -> static info,
  para que cada referencia apunte a una entidad ya migrada
- Cada registro se inserta en su propia transacción: un fallo se registra
  con el id Airtable y el lote continúa
- Segunda pasada sobre proyectos para blocking/blocked_by (referencias al
  mismo tipo de entidad, que pueden apuntar "hacia adelante")
- Los adjuntos se copian al almacenamiento durable con nombres
  deterministas; las corridas repetidas no vuelven a descargarlos
"""
from __future__ import annotations

from typing import Any, Callable, Optional

import psycopg
from loguru import logger

from airbridge.application.dto.results_dto import EntityMigrationResult, MigrationSummaryDTO
from airbridge.application.services.attachment_migrator import (
    AttachmentMigrator,
    MigratedAttachment,
    stored_filename,
)
from airbridge.application.services.entity_mappings import (
    build_item_row,
    build_project_row,
    build_static_info_row,
    build_user_row,
)
from airbridge.application.services.identifier_remapper import IdentifierRemapper
from airbridge.core.config import Settings
from airbridge.infrastructure.database.pg_repository import CLEAR_ORDER, PostgresMigrationRepository
from airbridge.infrastructure.external.airtable.airtable_client import AirtableClient
from airbridge.infrastructure.external.airtable.schema_introspector import SchemaIntrospector
from airbridge.infrastructure.external.airtable.types import SourceRecord
from airbridge.infrastructure.external.google.drive_store import GoogleDriveStore
from airbridge.infrastructure.external.google.google_clients import build_credentials, build_drive_service
from airbridge.shared.constants.migration_constants import (
    AirtableTable,
    AttachmentFolder,
    EntityType,
)
from airbridge.shared.exceptions.domain import DatabaseWriteError

RowBuilder = Callable[[SourceRecord], dict[str, Any]]
# (conn, registro, id destino) -> warnings de filas secundarias
AfterInsert = Callable[[psycopg.Connection, SourceRecord, str], list[str]]


class AirtableToDatabaseMigration:
    """
    Orquestador de la migración. Una instancia = una corrida: los mapas de
    ids y el cache de adjuntos viven en el remapper y el migrator propios.
    """

    def __init__(
        self,
        *,
        airtable: AirtableClient,
        repository: PostgresMigrationRepository,
        migrator: AttachmentMigrator,
        attachments_folder_id: str,
        schema: Optional[SchemaIntrospector] = None,
        remapper: Optional[IdentifierRemapper] = None,
    ) -> None:
        self._airtable = airtable
        self._repo = repository
        self._migrator = migrator
        self._attachments_folder_id = attachments_folder_id
        self._schema = schema or SchemaIntrospector(airtable)
        self._remapper = remapper or IdentifierRemapper()
        # Proyecto (id Airtable) dueño de cada item, según "Items & Purchases" de los proyectos
        self._item_to_project: dict[str, str] = {}

    @property
    def remapper(self) -> IdentifierRemapper:
        return self._remapper

    def run(self) -> MigrationSummaryDTO:
        """
        Ejecuta la migración completa.

        Raises:
            StorageAccessError: carpeta de adjuntos inaccesible
            AirtableApiError: fallo al leer una tabla
            psycopg.Error: fallo de conexión o del borrado inicial
        """
        self._migrator.verify_folder(self._attachments_folder_id)
        summary = MigrationSummaryDTO()

        with self._repo.connect() as conn:
            logger.info("Borrando datos existentes de la base...")
            summary.cleared_rows = self._repo.clear_all(conn)
            for table, count in summary.cleared_rows.items():
                logger.info(f"  {table}: {count} filas borradas")

            summary.entities.append(self.migrate_contacts(conn))

            tasks = self._fetch(AirtableTable.TASK_LIST)
            projects = self.migrate_projects(conn, tasks)
            summary.entities.append(projects)

            unresolved_before = self._remapper.total_unresolved()
            summary.dependencies_updated = self.update_project_dependencies(conn, tasks)
            projects.unresolved_references += self._remapper.total_unresolved() - unresolved_before

            summary.entities.append(self.migrate_items(conn))
            summary.entities.append(self.migrate_static_info(conn))

            summary.final_row_counts = {
                table: self._repo.count_rows(conn, table) for table in reversed(CLEAR_ORDER)
            }

        self._log_summary(summary)
        return summary

    def migrate_entity(
        self,
        conn: psycopg.Connection,
        *,
        entity: EntityType,
        source_table: str,
        records: list[SourceRecord],
        build_row: RowBuilder,
        after_insert: Optional[AfterInsert] = None,
    ) -> EntityMigrationResult:
        """
        Inserta los registros uno a uno, cada uno en su propia transacción.

        Un INSERT fallido se registra con el id Airtable y no detiene el lote.
        Los inserts exitosos alimentan el mapa de ids de la entidad.
        """
        result = EntityMigrationResult(entity=entity.value, source_table=source_table, total=len(records))
        unresolved_before = self._remapper.total_unresolved()

        for record in records:
            try:
                row = build_row(record)
                with conn.transaction():
                    target_id = self._repo.insert_returning_id(conn, entity.value, row)
                    if after_insert is not None:
                        result.warnings.extend(after_insert(conn, record, target_id))
            except psycopg.Error as e:
                error = DatabaseWriteError(entity.value, record.record_id, str(e).strip())
                logger.error(f"  {error.message}")
                result.failed += 1
                result.failed_record_ids.append(record.record_id)
                continue
            except Exception as e:
                logger.exception(f"  Error inesperado migrando {record.record_id} a {entity.value}: {e}")
                result.failed += 1
                result.failed_record_ids.append(record.record_id)
                continue

            self._remapper.record(entity, record.record_id, target_id)
            result.migrated += 1
            logger.debug(f"  Migrado {record.record_id} -> {target_id}")

        result.unresolved_references = self._remapper.total_unresolved() - unresolved_before
        logger.info(f"  -> {result.migrated}/{result.total} registros migrados a {entity.value}")
        return result

    def migrate_contacts(self, conn: psycopg.Connection) -> EntityMigrationResult:
        logger.info("Migrando Contacts -> users...")
        records = self._fetch(AirtableTable.CONTACTS)

        def build_row(record: SourceRecord) -> dict[str, Any]:
            row = build_user_row(record)
            row["attachment_urls"] = self._migrate_urls(
                record, "Attachments", AttachmentFolder.CONTACT_ATTACHMENTS
            )
            return row

        return self.migrate_entity(
            conn,
            entity=EntityType.USERS,
            source_table=AirtableTable.CONTACTS.value,
            records=records,
            build_row=build_row,
        )

    def migrate_projects(self, conn: psycopg.Connection, tasks: list[SourceRecord]) -> EntityMigrationResult:
        """
        Task List -> projects, con project_assignments (Team Roster) y
        documents (Attachments) como filas secundarias.
        """
        logger.info("Migrando Task List -> projects...")
        for task in tasks:
            for item_id in task.links("Items & Purchases"):
                self._item_to_project[item_id] = task.record_id

        # Documentos transferidos antes del INSERT: la transacción del
        # proyecto no queda abierta durante descargas y subidas
        documents: dict[str, list[MigratedAttachment]] = {}

        def build_row(record: SourceRecord) -> dict[str, Any]:
            row = build_project_row(record)
            row["who_buys"] = self._remapper.resolve_many(EntityType.USERS, record.links("Who Buys?"))
            documents[record.record_id] = self._migrator.migrate_into(
                record.attachments("Attachments"),
                self._attachments_folder_id,
                AttachmentFolder.PROJECT_DOCUMENTS.value,
                record.record_id,
            )
            return row

        def after_insert(conn: psycopg.Connection, record: SourceRecord, project_id: str) -> list[str]:
            return self._insert_project_side_rows(conn, record, project_id, documents.pop(record.record_id, []))

        return self.migrate_entity(
            conn,
            entity=EntityType.PROJECTS,
            source_table=AirtableTable.TASK_LIST.value,
            records=tasks,
            build_row=build_row,
            after_insert=after_insert,
        )

    def _insert_project_side_rows(
        self,
        conn: psycopg.Connection,
        record: SourceRecord,
        project_id: str,
        documents: list[MigratedAttachment],
    ) -> list[str]:
        """
        Asignaciones y documentos (ya transferidos) del proyecto. Cada fila va
        en un savepoint: si falla se registra como warning y el proyecto se
        conserva.
        """
        warnings: list[str] = []
        roster = self._remapper.resolve_many(EntityType.USERS, record.links("Team Roster"))

        for user_id in roster:
            warning = self._insert_side_row(
                conn,
                "project_assignments",
                {"project_id": project_id, "user_id": user_id, "role": "contributor"},
                record,
            )
            if warning:
                warnings.append(warning)

        for attachment in documents:
            warnings.extend(attachment.warnings)
            document = self._document_row(project_id, record, attachment, uploaded_by=roster[0] if roster else None)
            warning = self._insert_side_row(conn, "documents", document, record)
            if warning:
                warnings.append(warning)

        return warnings

    def _insert_side_row(
        self,
        conn: psycopg.Connection,
        table: str,
        row: dict[str, Any],
        record: SourceRecord,
    ) -> Optional[str]:
        try:
            with conn.transaction():
                self._repo.insert_returning_id(conn, table, row)
        except psycopg.Error as e:
            error = DatabaseWriteError(table, record.record_id, str(e).strip())
            logger.warning(f"    {error.message}")
            return error.message
        return None

    @staticmethod
    def _document_row(
        project_id: str,
        record: SourceRecord,
        attachment: MigratedAttachment,
        *,
        uploaded_by: Optional[str],
    ) -> dict[str, Any]:
        if attachment.is_fallback:
            storage_path = attachment.durable_url
        else:
            storage_path = (
                f"{AttachmentFolder.PROJECT_DOCUMENTS.value}/"
                f"{stored_filename(record.record_id, attachment.filename)}"
            )
        return {
            "project_id": project_id,
            "filename": attachment.filename,
            "file_type": attachment.mime_type,
            "file_size": attachment.size,
            "storage_path": storage_path,
            "storage_url": attachment.durable_url,
            "thumbnail_url": attachment.thumbnail_url,
            "uploaded_by": uploaded_by,
        }

    def update_project_dependencies(self, conn: psycopg.Connection, tasks: list[SourceRecord]) -> int:
        """
        Segunda pasada: blocking / blocked_by con ids de proyectos ya migrados.
        Las referencias sin id destino se descartan (y se cuentan).
        """
        logger.info("Actualizando dependencias entre proyectos...")
        project_ids = self._remapper.mapping(EntityType.PROJECTS)
        updated = 0
        for task in tasks:
            project_id = project_ids.get(task.record_id)
            if project_id is None:
                continue

            values: dict[str, Any] = {}
            blocking = self._remapper.resolve_many(EntityType.PROJECTS, task.links("Blocking"))
            if blocking:
                values["blocking"] = blocking
            blocked_by = self._remapper.resolve_many(EntityType.PROJECTS, task.links("Blocked By"))
            if blocked_by:
                values["blocked_by"] = blocked_by
            if not values:
                continue

            try:
                with conn.transaction():
                    self._repo.update_by_id(conn, EntityType.PROJECTS.value, project_id, values)
            except psycopg.Error as e:
                logger.warning(f"  No se pudieron actualizar las dependencias de {task.record_id}: {e}")
                continue
            updated += 1

        logger.info(f"  -> dependencias actualizadas en {updated} proyectos")
        return updated

    def migrate_items(self, conn: psycopg.Connection) -> EntityMigrationResult:
        logger.info("Migrando Items & Purchases -> items...")
        records = self._fetch(AirtableTable.ITEMS_AND_PURCHASES)

        def build_row(record: SourceRecord) -> dict[str, Any]:
            row = build_item_row(record)
            row["vendor_id"] = self._remapper.resolve(EntityType.USERS, record.first_link("Vendor"))
            row["project_id"] = self._resolve_item_project(record)
            row["image_urls"] = self._migrate_urls(record, "Image", AttachmentFolder.ITEM_IMAGES)
            row["spec_sheet_urls"] = self._migrate_urls(record, "Spec Sheet", AttachmentFolder.ITEM_SPEC_SHEETS)
            return row

        return self.migrate_entity(
            conn,
            entity=EntityType.ITEMS,
            source_table=AirtableTable.ITEMS_AND_PURCHASES.value,
            records=records,
            build_row=build_row,
        )

    def _resolve_item_project(self, record: SourceRecord) -> Optional[str]:
        """Proyecto del item: link "Task" o, si falta, el proyecto que lista al item."""
        task_id = record.first_link("Task")
        if task_id:
            return self._remapper.resolve(EntityType.PROJECTS, task_id)
        owner = self._item_to_project.get(record.record_id)
        if owner:
            return self._remapper.resolve(EntityType.PROJECTS, owner)
        return None

    def migrate_static_info(self, conn: psycopg.Connection) -> EntityMigrationResult:
        logger.info("Migrando Static Information -> static_info...")
        records = self._fetch(AirtableTable.STATIC_INFORMATION)

        def build_row(record: SourceRecord) -> dict[str, Any]:
            row = build_static_info_row(record)
            row["image_urls"] = self._migrate_urls(record, "Attachment", AttachmentFolder.STATIC_INFO_FILES)
            return row

        return self.migrate_entity(
            conn,
            entity=EntityType.STATIC_INFO,
            source_table=AirtableTable.STATIC_INFORMATION.value,
            records=records,
            build_row=build_row,
        )

    def _fetch(self, table: AirtableTable) -> list[SourceRecord]:
        return self._airtable.fetch_all(table.value, link_fields=self._schema.link_field_names(table.value))

    def _migrate_urls(self, record: SourceRecord, field_name: str, folder: AttachmentFolder) -> list[str]:
        """URLs durables de los adjuntos del field (o de origen, si hubo fallback)."""
        migrated = self._migrator.migrate_into(
            record.attachments(field_name), self._attachments_folder_id, folder.value, record.record_id
        )
        return [m.durable_url for m in migrated]

    def _log_summary(self, summary: MigrationSummaryDTO) -> None:
        stats = self._migrator.stats
        logger.info("Resumen de la migración:")
        for result in summary.entities:
            logger.info(
                f"  {result.entity}: migrados={result.migrated}/{result.total}, "
                f"fallidos={result.failed}, referencias sin resolver={result.unresolved_references}"
            )
            if result.unresolved_references:
                logger.warning(
                    f"  {result.entity}: {result.unresolved_references} referencias descartadas por no tener id destino"
                )
        dropped = {e.value: self._remapper.unresolved_count(e) for e in EntityType}
        if any(dropped.values()):
            logger.info(
                "  Referencias descartadas por entidad destino: "
                + ", ".join(f"{name}={count}" for name, count in dropped.items() if count)
            )
        logger.info(f"  Dependencias de proyectos actualizadas: {summary.dependencies_updated}")
        logger.info(
            f"  Adjuntos: descargas={stats.downloads}, subidas={stats.uploads}, "
            f"cache={stats.cache_hits}, existentes={stats.store_hits}, fallidos={stats.failures}"
        )
        for table, count in summary.final_row_counts.items():
            logger.info(f"  {table}: {count} filas")
        logger.success("Migración completada")


def build_from_env(cfg: Settings) -> AirtableToDatabaseMigration:
    """
    Constructor "oficial" del job leyendo la configuración.

    Raises:
        ConfigurationError: con todas las variables faltantes
    """
    cfg.require("AIRTABLE_TOKEN", "AIRTABLE_BASE_ID", "DATABASE_URL", "GOOGLE_DRIVE_FOLDER_ID")
    cfg.require_google_credentials()

    airtable = AirtableClient.from_settings(cfg)
    store = GoogleDriveStore(build_drive_service(build_credentials(cfg)))
    migrator = AttachmentMigrator(
        store,
        download_timeout_s=cfg.ATTACHMENT_DOWNLOAD_TIMEOUT_S,
        fallback_to_source_url=cfg.ATTACHMENT_FALLBACK_TO_SOURCE_URL,
    )
    return AirtableToDatabaseMigration(
        airtable=airtable,
        repository=PostgresMigrationRepository(cfg.DATABASE_URL),
        migrator=migrator,
        attachments_folder_id=cfg.GOOGLE_DRIVE_FOLDER_ID,
    )
