from __future__ import annotations

from airbridge.application.services.identifier_remapper import IdentifierRemapper
from airbridge.shared.constants.migration_constants import EntityType


def test_resolve_returns_target_id_or_none() -> None:
    remapper = IdentifierRemapper()
    remapper.record(EntityType.USERS, "recVendor", "uuid-1")

    assert remapper.resolve(EntityType.USERS, "recVendor") == "uuid-1"
    assert remapper.resolve(EntityType.USERS, "recUnknown") is None
    assert remapper.resolve(EntityType.PROJECTS, "recVendor") is None


def test_empty_reference_is_not_counted_as_unresolved() -> None:
    remapper = IdentifierRemapper()
    assert remapper.resolve(EntityType.USERS, None) is None
    assert remapper.resolve(EntityType.USERS, "") is None
    assert remapper.total_unresolved() == 0


def test_resolve_many_drops_and_counts_missing_ids() -> None:
    remapper = IdentifierRemapper()
    remapper.record(EntityType.PROJECTS, "recA", "uuid-a")
    remapper.record(EntityType.PROJECTS, "recC", "uuid-c")

    assert remapper.resolve_many(EntityType.PROJECTS, ["recA", "recB", "recC"]) == ["uuid-a", "uuid-c"]
    assert remapper.unresolved_count(EntityType.PROJECTS) == 1
    assert remapper.unresolved_count(EntityType.USERS) == 0


def test_mapping_is_a_copy() -> None:
    remapper = IdentifierRemapper()
    remapper.record(EntityType.ITEMS, "recI", "uuid-i")
    snapshot = remapper.mapping(EntityType.ITEMS)
    snapshot["recX"] = "uuid-x"

    assert remapper.mapping(EntityType.ITEMS) == {"recI": "uuid-i"}
    assert remapper.mapping(EntityType.USERS) == {}
