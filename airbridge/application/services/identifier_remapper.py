"""
Mapas de ids Airtable -> ids destino (UUID) por tipo de entidad.

Los mapas solo crecen durante la corrida. Una referencia sin id destino
se descarta (nunca se propaga el id Airtable a la base) y se cuenta.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from airbridge.shared.constants.migration_constants import EntityType


class IdentifierRemapper:
    def __init__(self) -> None:
        self._maps: dict[EntityType, dict[str, str]] = {entity: {} for entity in EntityType}
        self._unresolved: Counter[EntityType] = Counter()

    def record(self, entity: EntityType, source_id: str, target_id: str) -> None:
        self._maps[entity][source_id] = target_id

    def mapping(self, entity: EntityType) -> dict[str, str]:
        """Copia del mapa de la entidad."""
        return dict(self._maps[entity])

    def resolve(self, entity: EntityType, source_id: Optional[str]) -> Optional[str]:
        """Id destino o None; un id presente sin mapeo cuenta como no resuelto."""
        if not source_id:
            return None
        target = self._maps[entity].get(source_id)
        if target is None:
            self._unresolved[entity] += 1
        return target

    def resolve_many(self, entity: EntityType, source_ids: Iterable[str]) -> list[str]:
        resolved: list[str] = []
        for source_id in source_ids:
            target = self.resolve(entity, source_id)
            if target is not None:
                resolved.append(target)
        return resolved

    def unresolved_count(self, entity: EntityType) -> int:
        return self._unresolved[entity]

    def total_unresolved(self) -> int:
        return sum(self._unresolved.values())
