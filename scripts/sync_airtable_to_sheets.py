"""
CLI: Airtable -> Google Sheets (una pestaña por tabla, adjuntos en Drive).

Las pestañas destino se recrean en cada corrida. Los adjuntos ya subidos
en corridas anteriores se reutilizan (no se vuelven a descargar).

Variables de entorno requeridas:
  - AIRTABLE_TOKEN
  - AIRTABLE_BASE_ID
  - GOOGLE_SHEETS_ID
  - GOOGLE_DRIVE_FOLDER_ID
  - GOOGLE_SERVICE_ACCOUNT_EMAIL + GOOGLE_PRIVATE_KEY (o GOOGLE_SERVICE_ACCOUNT_FILE)

Ejecución:
  python scripts/sync_airtable_to_sheets.py
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from googleapiclient.errors import HttpError
from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

load_dotenv(_REPO_ROOT / ".env", override=False)

from airbridge.application.use_cases.sheets_sync_use_cases import build_from_env
from airbridge.core.config import Settings
from airbridge.core.events import configure_logging, warn_on_optional_config
from airbridge.shared.exceptions.base import AppException


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Exporta la base Airtable a Google Sheets.")
    parser.parse_args(argv)

    cfg = Settings()
    configure_logging(cfg)
    warn_on_optional_config(cfg)

    logger.info("Iniciando Airtable -> Google Sheets (adjuntos en Drive)...")
    try:
        summary = build_from_env(cfg).run()
    except AppException as e:
        logger.error(f"Sincronización abortada: {e.message}")
        return 1
    except HttpError as e:
        logger.error(f"Sincronización abortada (Google API): {e}")
        return 1

    if any(table.error for table in summary.tables):
        logger.warning("Algunas tablas no se sincronizaron (ver log)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
