from __future__ import annotations

from airbridge.application.services.column_layout import (
    ColumnKey,
    ColumnRole,
    column_letter,
    order_columns,
    records_to_rows,
)


def _headers(keys: list[ColumnKey]) -> list[str]:
    return [k.header() for k in order_columns(keys)]


def test_header_is_rendered_from_key() -> None:
    assert ColumnKey("Photos", 2, ColumnRole.URL).header() == "Photos 2 URL"
    assert ColumnKey("Photos", 2, ColumnRole.PREVIEW).header() == "Photos 2"
    assert ColumnKey("Photos", 0, ColumnRole.URL).header() == "Photos URL"
    assert ColumnKey("Photos", 0, ColumnRole.OVERFLOW).header() == "Photos (more)"
    assert ColumnKey.value("Title").header() == "Title"


def test_url_column_is_immediately_left_of_its_preview() -> None:
    keys = [
        ColumnKey("Photos", 2, ColumnRole.PREVIEW),
        ColumnKey("Photos", 0, ColumnRole.OVERFLOW),
        ColumnKey("Photos", 1, ColumnRole.PREVIEW),
        ColumnKey("Photos", 2, ColumnRole.URL),
        ColumnKey("Photos", 1, ColumnRole.URL),
        ColumnKey.value("Name"),
    ]
    assert _headers(keys) == [
        "Name",
        "Photos 1 URL",
        "Photos 1",
        "Photos 2 URL",
        "Photos 2",
        "Photos (more)",
    ]


def test_meta_columns_come_first() -> None:
    keys = [ColumnKey.value("Alpha"), ColumnKey.value("_created_time"), ColumnKey.value("_airtable_id")]
    assert _headers(keys) == ["_airtable_id", "_created_time", "Alpha"]


def test_keys_rendering_the_same_header_are_merged() -> None:
    keys = [ColumnKey("Photos", 0, ColumnRole.PREVIEW), ColumnKey.value("Photos")]
    assert _headers(keys) == ["Photos"]


def test_records_to_rows_fills_missing_cells() -> None:
    records = [
        {ColumnKey.value("_airtable_id"): "rec1", ColumnKey.value("Title"): "A"},
        {ColumnKey.value("_airtable_id"): "rec2", ColumnKey.value("Notes"): "n"},
    ]
    headers, rows = records_to_rows(records)

    assert headers == ["_airtable_id", "_created_time", "Notes", "Title"]
    assert rows == [["rec1", "", "", "A"], ["rec2", "", "n", ""]]


def test_records_to_rows_without_records_writes_meta_headers() -> None:
    assert records_to_rows([]) == (["_airtable_id", "_created_time"], [])


def test_column_letter() -> None:
    assert column_letter(0) == "A"
    assert column_letter(25) == "Z"
    assert column_letter(26) == "AA"
    assert column_letter(27) == "AB"
    assert column_letter(701) == "ZZ"
    assert column_letter(702) == "AAA"
