from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.data import column_offset, parse_text_options, unique_rows
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext

RunAction = Callable[..., ActionOutcome]


def _column(ctx: RequestContext, letter: str, first: int, last: int) -> list[object]:
    sheet = ctx.book["Sheet"]
    return [sheet[f"{letter}{row}"].value for row in range(first, last + 1)]


def test_column_offset_accepts_letters_and_indexes() -> None:
    assert column_offset(2, 0) == 2
    assert column_offset("1", 0) == 1
    assert column_offset("C", 1) == 1
    with pytest.raises(ActionValidationError):
        column_offset("C3", 0)


def test_parse_text_options() -> None:
    assert parse_text_options("column: 2, ascending=false") == {
        "column": "2",
        "ascending": "false",
    }


def test_unique_rows_keeps_header_and_first_occurrence() -> None:
    rows = [["k", "v"], ["a", 1], ["a", 2], ["a", 1]]
    assert unique_rows(rows, None, True) == ([["k", "v"], ["a", 1], ["a", 2]], 1)
    assert unique_rows(rows, [0], True) == ([["k", "v"], ["a", 1]], 2)
    with pytest.raises(ActionValidationError):
        unique_rows(rows, [5], True)


def test_sort_by_column_letter_descending(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    run_action(
        {"type": "sort", "target": "A1:C5", "data": {"column": "C", "ascending": False}}
    )
    assert _column(ctx, "C", 1, 5) == ["Sales", 120, 80, 60, 45]


def test_sort_accepts_option_text(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    run_action({"type": "sort", "target": "A1:C5", "data": "column:0,ascending:true"})
    assert _column(ctx, "A", 2, 5) == ["East", "East", "North", "West"]


def test_sort_rejects_column_outside_range(
    run_action: RunAction, fill: Callable[..., None], sales_rows: list[list[object]]
) -> None:
    fill(sales_rows)
    with pytest.raises(ActionValidationError, match="outside the 3-column range"):
        run_action({"type": "sort", "target": "A1:C5", "data": {"column": 3}})


def test_filter_by_values_hides_rows(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    run_action(
        {"type": "filter", "target": "A1:C5", "data": {"column": 0, "values": ["East"]}}
    )
    sheet = ctx.book["Sheet"]
    assert sheet.auto_filter.ref == "A1:C5"
    hidden = sorted(row for row, dim in sheet.row_dimensions.items() if dim.hidden)
    assert hidden == [3, 5]
    run_action({"type": "clearFilter", "target": "A1:C5"})
    assert not sheet.auto_filter.ref
    assert not any(dim.hidden for dim in sheet.row_dimensions.values())


def test_filter_rejects_plain_text(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="Invalid filter data format"):
        run_action({"type": "filter", "target": "A1:C5", "data": "East only"})


def _hidden_rows(ctx: RequestContext) -> list[int]:
    sheet = ctx.book["Sheet"]
    return sorted(row for row, dim in sheet.row_dimensions.items() if dim.hidden)


def test_filter_operator_is_case_insensitive(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {
            "type": "filter",
            "target": "A1:C5",
            "data": {
                "column": 2,
                "criteria": ">=50",
                "criteria2": "<=100",
                "operator": "AND",
            },
        }
    )
    assert outcome.warnings == []
    assert _hidden_rows(ctx) == [2, 4]


def test_filter_unknown_operator_falls_back_to_and(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {
            "type": "filter",
            "target": "A1:C5",
            "data": {
                "column": 2,
                "criteria": ">=50",
                "criteria2": "<=100",
                "operator": "xor",
            },
        }
    )
    assert len(outcome.warnings) == 1
    assert outcome.warnings[0].startswith("Ignored invalid operator:")
    assert _hidden_rows(ctx) == [2, 4]


def test_autofill_requires_source(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="autofill requires a source"):
        run_action({"type": "autofill", "target": "A1:A5"})


def test_autofill_extends_formula(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([[1, "=A1*10"], [2], [3]])
    run_action({"type": "autofill", "target": "B1:B3", "source": "B1"})
    assert _column(ctx, "B", 1, 3) == ["=A1*10", "=A2*10", "=A3*10"]


def test_copy_values_sizes_destination_from_source(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([[1, "=A1+1"], [2, "=A2+1"]])
    run_action({"type": "copy", "target": "D1", "source": "A1:B2"})
    run_action({"type": "copyValues", "target": "G1", "source": "A1:A2"})
    sheet = ctx.book["Sheet"]
    assert sheet["E2"].value == "=D2+1"
    assert _column(ctx, "G", 1, 2) == [1, 2]


def test_remove_duplicates(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([["Name", "City"], ["Ann", "Oslo"], ["Bob", "Rome"], ["Ann", "Oslo"]])
    outcome = run_action({"type": "removeDuplicates", "target": "A1:B4"})
    assert outcome.result == {"removed": 1, "remaining": 3}
    assert _column(ctx, "A", 1, 4) == ["Name", "Ann", "Bob", None]


def test_find_replace_counts_cells(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([["old value"], ["OLD"], ["=OLD()"], ["new"]])
    outcome = run_action(
        {"type": "findReplace", "target": "A1:A4", "data": {"find": "old", "replace": "new"}}
    )
    assert outcome.result == 2
    assert _column(ctx, "A", 1, 3) == ["new value", "new", "=OLD()"]


def test_find_replace_requires_find(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="Find string cannot be empty"):
        run_action({"type": "findReplace", "target": "A1", "data": {"replace": "x"}})


def test_text_to_columns_writes_right_of_source(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([["a, b, c"], ["d,e"]])
    outcome = run_action({"type": "textToColumns", "target": "A1:A2"})
    assert outcome.result == {"destination": "Sheet!B1:D2", "columns": 3}
    sheet = ctx.book["Sheet"]
    assert [sheet["B1"].value, sheet["D1"].value, sheet["C2"].value] == ["a", "c", "e"]


def test_text_to_columns_refuses_to_overwrite(
    run_action: RunAction, fill: Callable[..., None]
) -> None:
    fill([["a;b", "taken"]])
    with pytest.raises(ActionValidationError, match="1 non-empty cell"):
        run_action(
            {"type": "textToColumns", "target": "A1", "data": {"delimiter": ";"}}
        )


def test_merge_and_unmerge(run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "mergeCells", "target": "A1:C1"})
    assert [str(area) for area in ctx.book["Sheet"].merged_cells.ranges] == ["A1:C1"]
    run_action({"type": "unmergeCells", "target": "A1:C1"})
    assert list(ctx.book["Sheet"].merged_cells.ranges) == []


def test_merge_rejects_single_cell(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="Cannot merge a single cell"):
        run_action({"type": "mergeCells", "target": "B2"})
