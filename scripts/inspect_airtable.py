"""
CLI: inspección del schema de la base Airtable.

Imprime cada tabla con sus fields (tipo y opciones) y hasta N registros de
muestra (solo los nombres de fields presentes). Útil antes de ajustar los
mapeos de airbridge/application/services/entity_mappings.py.

Ejecución:
  python scripts/inspect_airtable.py
  python scripts/inspect_airtable.py --samples 5
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

load_dotenv(_REPO_ROOT / ".env", override=False)

from airbridge.core.config import Settings
from airbridge.core.events import configure_logging
from airbridge.infrastructure.external.airtable.airtable_client import AirtableClient
from airbridge.shared.exceptions.base import AppException


def describe_table(table: dict[str, Any], samples: list[dict[str, Any]]) -> list[str]:
    """Líneas de texto que describen una tabla y sus registros de muestra."""
    lines = [f"TABLA: {table.get('name')} ({table.get('id')})"]
    for field in table.get("fields") or []:
        lines.append(f"  - {field.get('name')}: {field.get('type')}")
        options = field.get("options")
        if options:
            lines.append(f"      opciones: {json.dumps(options, ensure_ascii=False)}")
    for i, record in enumerate(samples, start=1):
        names = ", ".join((record.get("fields") or {}).keys())
        lines.append(f"  muestra {i}: {names}")
    return lines


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Muestra el schema de la base Airtable.")
    parser.add_argument("--samples", type=int, default=3, help="Registros de muestra por tabla (default 3).")
    args = parser.parse_args(argv)

    cfg = Settings()
    configure_logging(cfg)

    try:
        client = AirtableClient.from_settings(cfg)
        tables = client.fetch_tables_metadata()
        logger.info(f"{len(tables)} tablas en la base {client.base_id}")
        for table in tables:
            samples = client.sample_records(str(table.get("id")), max_records=args.samples) if args.samples else []
            print("\n".join(describe_table(table, samples)))
            print()
    except AppException as e:
        logger.error(f"No se pudo leer el schema de Airtable: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
