"""
CLI: Airtable -> Postgres (migración completa, reemplazo total).

ADVERTENCIA: borra TODAS las filas de project_assignments, documents,
messages, items, projects, static_info y users antes de importar.

Variables de entorno requeridas:
  - AIRTABLE_TOKEN
  - AIRTABLE_BASE_ID
  - DATABASE_URL (postgresql://... ; se aceptan esquemas +asyncpg/+psycopg)
  - GOOGLE_DRIVE_FOLDER_ID
  - GOOGLE_SERVICE_ACCOUNT_EMAIL + GOOGLE_PRIVATE_KEY (o GOOGLE_SERVICE_ACCOUNT_FILE)

Ejecución:
  python scripts/migrate_airtable.py --yes
  MIGRATION_ASSUME_YES=true python scripts/migrate_airtable.py
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import psycopg
from googleapiclient.errors import HttpError
from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

load_dotenv(_REPO_ROOT / ".env", override=False)

from airbridge.application.use_cases.database_migration_use_cases import build_from_env
from airbridge.core.config import Settings
from airbridge.core.events import configure_logging, warn_on_optional_config
from airbridge.infrastructure.database.pg_repository import CLEAR_ORDER
from airbridge.shared.exceptions.base import AppException


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migra la base Airtable a Postgres (reemplazo total).")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirma el borrado de los datos existentes (equivale a MIGRATION_ASSUME_YES=true).",
    )
    args = parser.parse_args(argv)

    cfg = Settings()
    configure_logging(cfg)

    logger.warning(
        f"Esta operación BORRA todas las filas de: {', '.join(CLEAR_ORDER)} "
        "y las reemplaza con los datos de Airtable."
    )
    if not (args.yes or cfg.MIGRATION_ASSUME_YES):
        logger.error("Operación destructiva no confirmada. Vuelve a ejecutar con --yes.")
        return 1

    warn_on_optional_config(cfg)

    try:
        migration = build_from_env(cfg)
        summary = migration.run()
    except AppException as e:
        logger.error(f"Migración abortada: {e.message}")
        return 1
    except psycopg.Error as e:
        logger.error(f"Migración abortada (base de datos): {e}")
        return 1
    except HttpError as e:
        logger.error(f"Migración abortada (Google API): {e}")
        return 1

    failed = sum(entity.failed for entity in summary.entities)
    if failed:
        logger.warning(f"{failed} registros no se pudieron migrar (ver log)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
