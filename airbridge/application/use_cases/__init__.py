"""
Casos de uso de la aplicacion: los dos jobs batch del pipeline.
"""
from .database_migration_use_cases import AirtableToDatabaseMigration
from .sheets_sync_use_cases import AirtableToSheetsSync

__all__ = ["AirtableToDatabaseMigration", "AirtableToSheetsSync"]
