from __future__ import annotations

from airbridge.application.services.sheet_formatter import (
    LINKED_RANGE_LAST_ROW,
    MAX_DROPDOWN_OPTIONS,
    base_format_requests,
    find_name_column,
    linked_range_validation_request,
    match_lookup_rule,
    reset_format_requests,
    select_field_requests,
)
from airbridge.infrastructure.external.airtable.types import Choice
from airbridge.shared.constants.airtable_colors import (
    AIRTABLE_COLORS,
    DEFAULT_COLOR,
    airtable_color_to_rgb,
)


def test_base_format_requests_order_and_ranges() -> None:
    requests = base_format_requests(7, column_count=5, row_count=20, row_height_px=80)

    assert [next(iter(r)) for r in requests] == [
        "updateSheetProperties",
        "repeatCell",
        "updateDimensionProperties",
        "setBasicFilter",
    ]
    dimension = requests[2]["updateDimensionProperties"]
    assert dimension["range"]["endIndex"] == 1000
    assert dimension["properties"]["pixelSize"] == 80
    assert requests[3]["setBasicFilter"]["filter"]["range"]["endRowIndex"] == 21
    assert requests[1]["repeatCell"]["cell"]["userEnteredFormat"]["textFormat"]["bold"] is True


def test_row_height_covers_all_rows_of_large_sheets() -> None:
    requests = base_format_requests(1, column_count=2, row_count=1500)
    assert requests[2]["updateDimensionProperties"]["range"]["endIndex"] == 1501


def test_select_field_requests_add_dropdown_and_one_rule_per_choice() -> None:
    choices = [Choice("High", "redBright"), Choice("Low", None)]
    requests = select_field_requests(3, col_index=4, row_count=10, choices=choices)

    validation = requests[0]["setDataValidation"]
    assert validation["rule"]["condition"]["type"] == "ONE_OF_LIST"
    assert [v["userEnteredValue"] for v in validation["rule"]["condition"]["values"]] == ["High", "Low"]
    assert validation["range"]["startRowIndex"] == 1
    assert validation["range"]["endRowIndex"] == 11

    rules = [r["addConditionalFormatRule"]["rule"]["booleanRule"] for r in requests[1:]]
    assert len(rules) == 2
    assert rules[0]["condition"] == {"type": "TEXT_EQ", "values": [{"userEnteredValue": "High"}]}
    assert rules[0]["format"]["backgroundColor"] == AIRTABLE_COLORS["redBright"][0]
    assert rules[1]["format"]["backgroundColor"] == AIRTABLE_COLORS[DEFAULT_COLOR][0]


def test_dropdown_options_are_capped() -> None:
    choices = [Choice(f"opt{i}") for i in range(MAX_DROPDOWN_OPTIONS + 20)]
    [validation, *_] = select_field_requests(1, 0, 5, choices)
    assert len(validation["setDataValidation"]["rule"]["condition"]["values"]) == MAX_DROPDOWN_OPTIONS


def test_linked_range_validation_quotes_sheet_and_uses_absolute_range() -> None:
    request = linked_range_validation_request(9, col_index=2, end_row_index=31, linked_sheet="Projects", name_col_index=3)
    condition = request["setDataValidation"]["rule"]["condition"]

    assert condition["type"] == "ONE_OF_RANGE"
    assert condition["values"][0]["userEnteredValue"] == f"='Projects'!$D$2:$D${LINKED_RANGE_LAST_ROW}"
    assert request["setDataValidation"]["range"]["endRowIndex"] == 31


def test_lookup_rules_match_from_suffix_case_insensitively() -> None:
    rule = match_lookup_rule("Name (from Team Roster)")
    assert rule is not None
    assert (rule.linked_sheet, rule.name_column) == ("Contacts", "Name")
    assert match_lookup_rule("title (FROM task)").linked_sheet == "Projects"
    assert match_lookup_rule("Item Name (from Items & Purchases)").name_column == "Item Name"
    assert match_lookup_rule("Vendor notes") is None


def test_find_name_column_uses_priority_order() -> None:
    assert find_name_column(["_airtable_id", "Name", "Title"]) == 2
    assert find_name_column(["_airtable_id", "Notes"]) == -1
    assert find_name_column(["A", "Item Name"], ("Item Name",)) == 1


def test_unknown_airtable_color_falls_back_to_gray() -> None:
    background, text = airtable_color_to_rgb("neonPlaid")
    assert (background, text) == AIRTABLE_COLORS[DEFAULT_COLOR]
    background["red"] = 0.0
    assert AIRTABLE_COLORS[DEFAULT_COLOR][0]["red"] != 0.0


def test_reset_format_requests_clear_validation_and_each_rule() -> None:
    requests = reset_format_requests(4, conditional_rule_count=3)

    assert requests[0] == {"setDataValidation": {"range": {"sheetId": 4}}}
    assert requests[1:] == [{"deleteConditionalFormatRule": {"sheetId": 4, "index": 0}}] * 3
    assert reset_format_requests(4, 0) == [{"setDataValidation": {"range": {"sheetId": 4}}}]
