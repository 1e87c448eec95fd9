from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.pivots import pivot_layout
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext

RunAction = Callable[..., ActionOutcome]


def _grid(ctx: RequestContext, rows: int, cols: int) -> list[list[object]]:
    sheet = ctx.book["Summary"]
    return [
        [sheet.cell(row, col).value for col in range(1, cols + 1)]
        for row in range(1, rows + 1)
    ]


@pytest.fixture
def pivot(
    run_action: RunAction, fill: Callable[..., None], sales_rows: list[list[object]]
) -> ActionOutcome:
    fill(sales_rows)
    return run_action(
        {
            "type": "createPivotTable",
            "target": "A1:C5",
            "data": {
                "name": "SalesPivot",
                "destination": "Summary!A1",
                "rows": ["Region"],
                "values": ["Sales"],
            },
        }
    )


def test_create_pivot_on_new_sheet(pivot: ActionOutcome, ctx: RequestContext) -> None:
    assert pivot.result == {"name": "SalesPivot", "output": "A1:B5"}
    assert ctx.book.sheetnames == ["Sheet", "Summary"]
    assert _grid(ctx, 5, 2) == [
        ["Row Labels", "Sum of Sales"],
        ["East", 165],
        ["North", 60],
        ["West", 80],
        ["Grand Total", 305],
    ]


def test_create_pivot_requires_name_and_destination(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="createPivotTable requires 'name'"):
        run_action({"type": "createPivotTable", "target": "A1:C5", "data": {}})


def test_unknown_field_is_skipped_with_warning(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {
            "type": "createPivotTable",
            "target": "A1:C5",
            "data": {
                "name": "P",
                "destination": "E1",
                "rows": ["Month", "Product"],
                "values": [{"field": "Sales", "function": "median"}],
            },
        }
    )
    assert len(outcome.warnings) == 1
    assert outcome.warnings[0].startswith("Skipped row field Month:")
    sheet = ctx.book["Sheet"]
    assert [sheet["E1"].value, sheet["F1"].value] == ["Row Labels", "Sum of Sales"]
    assert [sheet["E2"].value, sheet["F2"].value] == ["Apples", 180]


def test_add_column_field(
    pivot: ActionOutcome, run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "addPivotField",
            "target": "SalesPivot",
            "data": {"field": "product", "area": "columns"},
        }
    )
    assert _grid(ctx, 2, 4) == [
        ["Row Labels", "Apples", "Pears", "Grand Total"],
        ["East", 120, 45, 165],
    ]


def test_add_field_rejects_unknown_area(
    pivot: ActionOutcome, run_action: RunAction
) -> None:
    with pytest.raises(ActionValidationError, match='Invalid pivot area "side"'):
        run_action(
            {
                "type": "addPivotField",
                "target": "SalesPivot",
                "data": {"field": "Product", "area": "side"},
            }
        )


def test_configure_layout(
    pivot: ActionOutcome, run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "configurePivotLayout",
            "target": "SalesPivot",
            "data": {"layout": "tabular", "showColumnGrandTotals": False},
        }
    )
    grid = _grid(ctx, 5, 2)
    assert grid[0] == ["Region", "Sum of Sales"]
    assert grid[4] == [None, None]


def test_pivot_layout_names() -> None:
    assert pivot_layout(" outline ") == "Outline"
    with pytest.raises(ActionValidationError, match="Invalid pivot layout"):
        pivot_layout("grid")


def test_refresh_picks_up_source_changes(
    pivot: ActionOutcome, run_action: RunAction, ctx: RequestContext
) -> None:
    ctx.book["Sheet"]["C2"] = 200
    outcome = run_action({"type": "refreshPivotTable", "target": "SalesPivot"})
    assert outcome.result == 1
    assert ctx.book["Summary"]["B2"].value == 245
    every = run_action(
        {"type": "refreshPivotTable", "target": "SalesPivot", "data": {"refreshAll": True}}
    )
    assert every.result == 1


def test_delete_pivot_clears_output(
    pivot: ActionOutcome, run_action: RunAction, ctx: RequestContext
) -> None:
    run_action({"type": "deletePivotTable", "target": "SalesPivot"})
    assert ctx.book["Summary"]["A1"].value is None
    assert ctx.state.for_sheet(ctx.book["Summary"]).pivots == {}
