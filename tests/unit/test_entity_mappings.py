from __future__ import annotations

from conftest import make_record, rid
from airbridge.application.services.entity_mappings import (
    build_item_row,
    build_project_row,
    build_static_info_row,
    build_user_row,
    map_record_to_row,
    placeholder_email,
    strip_html,
)
from airbridge.infrastructure.external.airtable.types import FieldMapping


def test_placeholder_email_from_name() -> None:
    assert placeholder_email("Acme  Paint Co") == "acme_paint_co@placeholder.com"
    assert placeholder_email("  ") == "_@placeholder.com"


def test_user_row_uses_placeholder_email_and_role() -> None:
    team = build_user_row(make_record(rid(1), {"Name": "Ana Ruiz", "Type": "Team", "Role": "designer"}))
    vendor = build_user_row(make_record(rid(2), {"Name": "Acme", "Email": "sales@acme.test", "Type": "Vendor"}))
    member = build_user_row(make_record(rid(3), {"Name": "Luis", "Type": "Team"}))

    assert team["email"] == "ana_ruiz@placeholder.com"
    assert team["role"] == "designer"
    assert vendor["email"] == "sales@acme.test"
    assert vendor["role"] == "vendor"
    assert member["role"] == "member"


def test_user_row_defaults() -> None:
    row = build_user_row(make_record(rid(1), {"Product Type": "Paint"}))
    assert row["name"] == "Unknown"
    assert row["product_types"] == ["Paint"]
    assert row["item_types"] == []
    assert row["phone"] is None


def test_project_row_defaults_and_audit_columns() -> None:
    record = make_record(rid(1), {"Tags": ["urgent", "paint"]})
    row = build_project_row(record)

    assert row["title"] == "Untitled"
    assert row["task_progress"] == "Not Started"
    assert row["tags"] == ["urgent", "paint"]
    assert row["blocking"] == [] and row["blocked_by"] == [] and row["depends_on"] == []
    assert row["created_at"] == record.created_time
    assert row["created_by"] == "airtable_migration"
    assert row["progress"] == 0


def test_item_row_strips_html_and_defaults_flags() -> None:
    row = build_item_row(
        make_record(rid(1), {"Item Name": "Lamp", "Size/Dimensions": "<p>30 x <b>40</b></p>", "suggestion": True})
    )
    assert row["item_name"] == "Lamp"
    assert row["size_dimensions"] == "30 x 40"
    assert row["is_suggestion"] is True
    assert row["is_rejected"] is False
    assert row["actual_dimensions"] is None


def test_static_info_row_key_fallback() -> None:
    assert build_static_info_row(make_record(rid(1), {"Name": "wifi"}))["key"] == "wifi"
    row = build_static_info_row(make_record(rid(2), {}))
    assert row["key"] == f"static_{rid(2)}"
    assert row["category"] == "General"
    assert row["value"] == ""


def test_transform_result_falling_to_empty_uses_default() -> None:
    mappings = [FieldMapping("Notes", "notes", transform=strip_html, default="n/a")]
    assert map_record_to_row(make_record(rid(1), {"Notes": "<br/>"}), mappings) == {"notes": "n/a"}


def test_strip_html() -> None:
    assert strip_html("<div>Hola <i>mundo</i></div>") == "Hola mundo"
    assert strip_html("") is None


def test_contact_without_name_or_email_gets_record_based_email() -> None:
    assert build_user_row(make_record(rid(4), {}))["email"] == f"{rid(4).lower()}@placeholder.com"
