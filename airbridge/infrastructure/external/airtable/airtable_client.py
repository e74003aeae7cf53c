"""
Cliente mínimo de Airtable REST API (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por offset (orden de llegada preservado)
- endpoint de metadata (schema de todas las tablas en una llamada)
- búsqueda de registros por id (para nombres de registros linkeados)
- reintentos opcionales para 429/5xx (desactivados por defecto: un error
  de lectura es fatal para no construir mapas de ids incompletos)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional
from urllib.parse import quote

import requests
from loguru import logger

from airbridge.core.config import Settings
from airbridge.shared.exceptions.domain import AirtableApiError
from .types import SourceRecord

# Airtable limita la longitud de filterByFormula; 10 ids por request es seguro.
RECORD_LOOKUP_BATCH_SIZE = 10


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


def build_record_ids_formula(record_ids: Iterable[str]) -> str:
    """
    Fórmula Airtable que selecciona registros por id:
    OR(RECORD_ID()='recA',RECORD_ID()='recB')
    """
    parts = [f"RECORD_ID()='{rid}'" for rid in record_ids]
    return f"OR({','.join(parts)})"


class AirtableClient:
    """
    Cliente HTTP de Airtable.

    Importante:
    - No hace cast de tipos de campos: eso se decide al mapear cada destino.
    - Sí clasifica cada valor (SourceRecord.from_api) al ingerirlo.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        timeout_s: int = 30,
        page_size: int = 100,
        max_retries: int = 0,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._page_size = page_size
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, cfg: Settings) -> "AirtableClient":
        """
        Cliente configurado desde Settings.

        Raises:
            ConfigurationError: si faltan AIRTABLE_TOKEN o AIRTABLE_BASE_ID
        """
        cfg.require("AIRTABLE_TOKEN", "AIRTABLE_BASE_ID")
        return cls(
            AirtableCredentials(token=cfg.AIRTABLE_TOKEN, base_id=cfg.AIRTABLE_BASE_ID),
            base_url=cfg.AIRTABLE_API_URL,
            timeout_s=cfg.AIRTABLE_TIMEOUT_S,
            page_size=cfg.AIRTABLE_PAGE_SIZE,
            max_retries=cfg.AIRTABLE_MAX_RETRIES,
        )

    @property
    def base_id(self) -> str:
        return self._creds.base_id

    def _table_url(self, table_name: str) -> str:
        return f"{self._base_url}/{self._creds.base_id}/{quote(table_name, safe='')}"

    def iter_records(
        self,
        table_name: str,
        *,
        link_fields: frozenset[str] = frozenset(),
        extra_query: Optional[list[tuple[str, Any]]] = None,
    ) -> Iterator[SourceRecord]:
        """
        Itera todos los registros de la tabla siguiendo el cursor 'offset'
        hasta que una respuesta no lo incluya.
        """
        url = self._table_url(table_name)
        offset: Optional[str] = None
        total = 0

        while True:
            query: list[tuple[str, Any]] = [("pageSize", self._page_size)]
            if offset:
                query.append(("offset", offset))
            if extra_query:
                query.extend(extra_query)

            payload = self._request_json("GET", url, query=query, table=table_name)
            records = payload.get("records") or []
            total += len(records)
            logger.debug(f"  {table_name}: página de {len(records)} registros (total: {total})")

            for rec in records:
                if not rec.get("id"):
                    # Caso raro; preferimos fallar temprano y visible.
                    raise AirtableApiError("Airtable devolvió un record sin 'id'", table=table_name)
                yield SourceRecord.from_api(rec, link_fields=link_fields)

            offset = payload.get("offset")
            if not offset:
                break

    def fetch_all(
        self,
        table_name: str,
        *,
        link_fields: frozenset[str] = frozenset(),
    ) -> list[SourceRecord]:
        """Lee la tabla completa en orden de llegada."""
        logger.info(f"  Leyendo tabla Airtable: {table_name}...")
        records = list(self.iter_records(table_name, link_fields=link_fields))
        logger.info(f"    -> {len(records)} registros leídos de {table_name}")
        return records

    def fetch_records_by_ids(self, table_name: str, record_ids: list[str]) -> list[SourceRecord]:
        """
        Trae registros puntuales por id, en lotes de RECORD_LOOKUP_BATCH_SIZE.
        """
        found: list[SourceRecord] = []
        for i in range(0, len(record_ids), RECORD_LOOKUP_BATCH_SIZE):
            batch = record_ids[i:i + RECORD_LOOKUP_BATCH_SIZE]
            formula = build_record_ids_formula(batch)
            found.extend(
                self.iter_records(table_name, extra_query=[("filterByFormula", formula)])
            )
        return found

    def fetch_tables_metadata(self) -> list[dict[str, Any]]:
        """
        Schema de todas las tablas de la base (una llamada):
        [{id, name, primaryFieldId, fields: [{name, type, options}]}]
        """
        url = f"{self._base_url}/meta/bases/{self._creds.base_id}/tables"
        payload = self._request_json("GET", url, query=[])
        return list(payload.get("tables") or [])

    def sample_records(self, table_id: str, max_records: int = 3) -> list[dict[str, Any]]:
        url = f"{self._base_url}/{self._creds.base_id}/{quote(table_id, safe='')}"
        payload = self._request_json("GET", url, query=[("maxRecords", max_records)])
        return list(payload.get("records") or [])

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        query: list[tuple[str, Any]],
        table: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff opcional para 429/5xx.

        Estrategia:
        - max_retries=0 (default): cualquier respuesta no-2xx es error inmediato.
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal).
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Content-Type": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=query,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise AirtableApiError(f"Airtable request falló: {e}", table=table) from e

            if 200 <= resp.status_code < 300:
                return resp.json()

            retryable = resp.status_code == 429 or 500 <= resp.status_code < 600
            if retryable and attempt < self._max_retries:
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    # Exponencial simple + jitter proporcional
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(
                    f"Airtable {resp.status_code}; reintento {attempt + 1}/{self._max_retries} en {sleep_s:.1f}s"
                )
                time.sleep(sleep_s)
                continue

            what = f" ({table})" if table else ""
            raise AirtableApiError(
                f"Airtable request falló{what} {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                table=table,
            )

        # Inalcanzable: el loop retorna o lanza.
        raise AirtableApiError("Airtable request agotó los reintentos", table=table)
