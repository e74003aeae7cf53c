from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Optional

import pytest

psycopg = pytest.importorskip("psycopg")

from conftest import attachment, make_record, rid
from airbridge.application.services.attachment_migrator import AttachmentMigrator
from airbridge.application.use_cases.database_migration_use_cases import AirtableToDatabaseMigration
from airbridge.infrastructure.database.pg_repository import CLEAR_ORDER
from airbridge.infrastructure.external.airtable.types import SourceRecord
from airbridge.shared.constants.migration_constants import EntityType
from airbridge.shared.exceptions.domain import StorageAccessError


class _DummyConn:
    def __init__(self) -> None:
        self.transactions = 0

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _DummyRepo:
    """Tablas en memoria; `reject` decide qué filas fallan con DataError."""

    def __init__(self, reject: Optional[Callable[[str, dict[str, Any]], bool]] = None) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {t: [] for t in CLEAR_ORDER}
        self._reject = reject or (lambda table, row: False)
        self._next = 0
        self.clears = 0

    def connect(self) -> _DummyConn:
        return _DummyConn()

    def clear_all(self, conn) -> dict[str, int]:
        self.clears += 1
        deleted = {t: len(self.tables[t]) for t in CLEAR_ORDER}
        self.tables = {t: [] for t in CLEAR_ORDER}
        return deleted

    def insert_returning_id(self, conn, table: str, row: dict[str, Any]) -> str:
        if self._reject(table, row):
            raise psycopg.DataError(f"invalid input for {table}")
        self._next += 1
        new_id = f"{table}-{self._next}"
        self.tables[table].append({"id": new_id, **row})
        return new_id

    def update_by_id(self, conn, table: str, row_id: str, values: dict[str, Any]) -> int:
        for row in self.tables[table]:
            if row["id"] == row_id:
                row.update(values)
                return 1
        return 0

    def count_rows(self, conn, table: str) -> int:
        return len(self.tables[table])

    def row(self, table: str, **match: Any) -> dict[str, Any]:
        for row in self.tables[table]:
            if all(row.get(k) == v for k, v in match.items()):
                return row
        raise AssertionError(f"sin fila en {table} con {match}")


class _DummyAirtable:
    def __init__(self, tables: dict[str, list[SourceRecord]]) -> None:
        self._tables = tables

    def fetch_all(self, table_name: str, *, link_fields: frozenset[str] = frozenset()) -> list[SourceRecord]:
        return list(self._tables.get(table_name, []))

    def fetch_tables_metadata(self) -> list[dict[str, Any]]:
        return []


def _base() -> dict[str, list[SourceRecord]]:
    return {
        "Contacts": [
            make_record(rid(1), {"Name": "Acme", "Type": "Vendor"}),
            make_record(rid(2), {"Name": "Ana", "Type": "Team", "Role": "designer"}),
            make_record(rid(3), {"Name": "Broken", "Type": "Vendor"}),
        ],
        "Task List": [
            make_record(
                rid(10),
                {
                    "Title": "Kitchen",
                    "Team Roster": [rid(2)],
                    "Blocking": [rid(11)],
                    "Items & Purchases": [rid(21)],
                    "Attachments": [attachment("plan.pdf", mime="application/pdf")],
                },
            ),
            make_record(rid(11), {"Title": "Paint", "Blocked By": [rid(10)], "Team Roster": [rid(3)]}),
        ],
        "Items & Purchases": [
            make_record(
                rid(20),
                {"Item Name": "Lamp", "Vendor": [rid(1)], "Task": [rid(10)], "Image": [attachment("lamp.png")]},
            ),
            make_record(rid(21), {"Item Name": "Chair", "Vendor": [rid(3)]}),
        ],
        "Static Information": [make_record(rid(30), {"Name": "wifi", "Description": "secret"})],
    }


def _reject_broken(table: str, row: dict[str, Any]) -> bool:
    return table == "users" and row.get("name") == "Broken"


def _migration(repo: _DummyRepo, store, session, tables=None) -> AirtableToDatabaseMigration:
    return AirtableToDatabaseMigration(
        airtable=_DummyAirtable(tables or _base()),
        repository=repo,
        migrator=AttachmentMigrator(store, session=session),
        attachments_folder_id="root",
    )


def test_full_run_remaps_references_and_counts_failures(memory_store, download_session) -> None:
    repo = _DummyRepo(reject=_reject_broken)
    summary = _migration(repo, memory_store, download_session).run()

    users = summary.entity("users")
    assert (users.migrated, users.failed, users.failed_record_ids) == (2, 1, [rid(3)])

    acme = repo.row("users", name="Acme")
    ana = repo.row("users", name="Ana")
    kitchen = repo.row("projects", title="Kitchen")

    lamp = repo.row("items", item_name="Lamp")
    assert lamp["vendor_id"] == acme["id"]
    assert lamp["project_id"] == kitchen["id"]
    assert lamp["image_urls"][0].startswith("https://drive.google.com/file/d/")

    chair = repo.row("items", item_name="Chair")
    assert chair["vendor_id"] is None
    assert chair["project_id"] == kitchen["id"]
    assert summary.entity("items").unresolved_references == 1

    assignments = [{k: v for k, v in row.items() if k != "id"} for row in repo.tables["project_assignments"]]
    assert assignments == [{"project_id": kitchen["id"], "user_id": ana["id"], "role": "contributor"}]
    [document] = repo.tables["documents"]
    assert document["project_id"] == kitchen["id"]
    assert document["storage_path"] == f"project-documents/{rid(10)[-6:]}_plan.pdf"
    assert document["uploaded_by"] == ana["id"]
    assert summary.entity("projects").unresolved_references == 1

    assert summary.final_row_counts["users"] == 2
    assert summary.final_row_counts["static_info"] == 1


def test_second_pass_resolves_forward_project_references(memory_store, download_session) -> None:
    repo = _DummyRepo()
    summary = _migration(repo, memory_store, download_session).run()

    kitchen = repo.row("projects", title="Kitchen")
    paint = repo.row("projects", title="Paint")
    assert kitchen["blocking"] == [paint["id"]]
    assert paint["blocked_by"] == [kitchen["id"]]
    assert summary.dependencies_updated == 2


def test_no_source_ids_reach_the_database(memory_store, download_session) -> None:
    repo = _DummyRepo(reject=_reject_broken)
    _migration(repo, memory_store, download_session).run()

    for table, rows in repo.tables.items():
        for row in rows:
            for value in row.values():
                values = value if isinstance(value, list) else [value]
                assert not any(isinstance(v, str) and v.startswith("rec") for v in values), (table, row)


def test_partial_failure_keeps_the_rest_of_the_batch(memory_store, download_session) -> None:
    contacts = [make_record(rid(n), {"Name": f"Contact {n}"}) for n in range(10)]
    repo = _DummyRepo(reject=lambda table, row: row.get("name") == "Contact 4")
    migration = _migration(repo, memory_store, download_session, tables={"Contacts": contacts})

    result = migration.migrate_contacts(repo.connect())

    assert (result.total, result.migrated, result.failed) == (10, 9, 1)
    assert result.failed_record_ids == [rid(4)]
    assert rid(4) not in migration.remapper.mapping(EntityType.USERS)


def test_rerun_replaces_data_and_reuses_stored_attachments(memory_store, download_session) -> None:
    repo = _DummyRepo(reject=_reject_broken)
    first = _migration(repo, memory_store, download_session).run()
    downloads_after_first = len(download_session.calls)

    second_migration = _migration(repo, memory_store, download_session)
    second = second_migration.run()

    assert repo.clears == 2
    assert first.final_row_counts == second.final_row_counts
    assert [(e.entity, e.migrated) for e in first.entities] == [(e.entity, e.migrated) for e in second.entities]
    assert len(download_session.calls) == downloads_after_first
    assert second.cleared_rows["users"] == 2


def test_inaccessible_folder_aborts_before_touching_the_database(memory_store, download_session) -> None:
    memory_store.inaccessible.add("root")
    repo = _DummyRepo()
    with pytest.raises(StorageAccessError):
        _migration(repo, memory_store, download_session).run()
    assert repo.clears == 0


def test_attachment_folder_error_keeps_every_item(memory_store, download_session) -> None:
    memory_store.failing_folders.add("item-images")
    repo = _DummyRepo()
    summary = _migration(repo, memory_store, download_session).run()

    items = summary.entity("items")
    assert (items.migrated, items.failed) == (2, 0)
    assert repo.row("items", item_name="Lamp")["image_urls"] == ["https://dl.airtable.test/lamp.png"]
    assert repo.row("items", item_name="Chair")["image_urls"] == []
    assert summary.final_row_counts["static_info"] == 1


def test_document_folder_error_keeps_the_project(memory_store, download_session) -> None:
    memory_store.failing_folders.add("project-documents")
    repo = _DummyRepo()
    summary = _migration(repo, memory_store, download_session).run()

    projects = summary.entity("projects")
    assert (projects.migrated, projects.failed) == (2, 0)
    [document] = repo.tables["documents"]
    assert document["storage_path"] == "https://dl.airtable.test/plan.pdf"
    assert any("project-documents" in w for w in projects.warnings)


def test_side_row_failure_is_a_warning_not_a_record_failure(memory_store, download_session) -> None:
    repo = _DummyRepo(reject=lambda table, row: table in ("project_assignments", "documents"))
    summary = _migration(repo, memory_store, download_session).run()

    projects = summary.entity("projects")
    assert (projects.migrated, projects.failed) == (2, 0)
    assert repo.row("projects", title="Kitchen")
    assert repo.tables["project_assignments"] == []
    assert repo.tables["documents"] == []
    assert len([w for w in projects.warnings if "project_assignments" in w]) == 2
    assert len([w for w in projects.warnings if "documents" in w]) == 1


def test_unexpected_row_building_error_costs_only_that_record(memory_store, download_session) -> None:
    records = [make_record(rid(n), {"Name": f"Contact {n}"}) for n in range(3)]
    repo = _DummyRepo()
    migration = _migration(repo, memory_store, download_session, tables={})

    def build_row(record: SourceRecord) -> dict[str, Any]:
        if record.record_id == rid(1):
            raise ValueError("valor inesperado")
        return {"name": record.scalar("Name")}

    result = migration.migrate_entity(
        repo.connect(),
        entity=EntityType.USERS,
        source_table="Contacts",
        records=records,
        build_row=build_row,
    )

    assert (result.migrated, result.failed, result.failed_record_ids) == (2, 1, [rid(1)])
    assert [row["name"] for row in repo.tables["users"]] == ["Contact 0", "Contact 2"]
