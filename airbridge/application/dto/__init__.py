"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .results_dto import (
    BestEffortResult,
    EntityMigrationResult,
    MigrationSummaryDTO,
    TableSyncResultDTO,
    SheetsSyncSummaryDTO,
)

__all__ = [
    "BestEffortResult",
    "EntityMigrationResult",
    "MigrationSummaryDTO",
    "TableSyncResultDTO",
    "SheetsSyncSummaryDTO",
]
