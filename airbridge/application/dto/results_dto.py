"""
DTOs de resultados de una corrida.

Los resultados "best effort" llevan su lista de warnings en lugar de
tragarse los errores: los tests y el resumen final pueden inspeccionarlos.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class BestEffortResult(BaseModel):
    """
    Resultado de una operación cosmética (permisos, formato, dropdowns).
    Nunca se propaga como error; los problemas quedan en `warnings`.
    """

    applied: int = Field(0, description="Operaciones aplicadas con éxito")
    warnings: List[str] = Field(default_factory=list, description="Problemas no críticos")

    def warn(self, message: str) -> None:
        self.warnings.append(message)


class EntityMigrationResult(BaseModel):
    """Resultado de migrar una tabla Airtable a una tabla de la base."""

    entity: str = Field(..., description="Tipo de entidad: users, projects, items, static_info")
    source_table: str = Field(..., description="Tabla Airtable de origen")
    total: int = Field(0, description="Registros leídos")
    migrated: int = Field(0, description="Filas insertadas")
    failed: int = Field(0, description="Registros con error de insert")
    failed_record_ids: List[str] = Field(default_factory=list)
    unresolved_references: int = Field(0, description="Referencias descartadas por no tener id destino")
    warnings: List[str] = Field(default_factory=list)


class MigrationSummaryDTO(BaseModel):
    """Resumen de la migración completa Airtable -> base."""

    cleared_rows: Dict[str, int] = Field(default_factory=dict)
    entities: List[EntityMigrationResult] = Field(default_factory=list)
    dependencies_updated: int = Field(0, description="Proyectos con blocking/blocked_by actualizados")
    final_row_counts: Dict[str, int] = Field(default_factory=dict)

    def entity(self, name: str) -> Optional[EntityMigrationResult]:
        for result in self.entities:
            if result.entity == name:
                return result
        return None


class TableSyncResultDTO(BaseModel):
    """Resultado de sincronizar una tabla Airtable a una pestaña."""

    source_table: str
    sheet_name: str
    rows: int = 0
    attachments: int = 0
    columns: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Error que impidió sincronizar la tabla")


class SheetsSyncSummaryDTO(BaseModel):
    tables: List[TableSyncResultDTO] = Field(default_factory=list)
    cross_tab_links: BestEffortResult = Field(default_factory=BestEffortResult)
    spreadsheet_url: str = ""
    attachments_folder_url: str = ""

    def table(self, sheet_name: str) -> Optional[TableSyncResultDTO]:
        for result in self.tables:
            if result.sheet_name == sheet_name:
                return result
        return None
