from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext
from sheetact.host.state import SlicerState

RunAction = Callable[..., ActionOutcome]


def _slicers(ctx: RequestContext) -> dict[str, SlicerState]:
    return ctx.state.for_sheet(ctx.book["Sheet"]).slicers


@pytest.fixture
def slicer(
    run_action: RunAction, fill: Callable[..., None], sales_rows: list[list[object]]
) -> str:
    fill(sales_rows)
    run_action({"type": "createTable", "target": "A1:C5"})
    return run_action(
        {
            "type": "createSlicer",
            "target": "Table1",
            "data": {"field": "region", "selectedItems": ["east"]},
        }
    ).result


def test_create_slicer_on_table(slicer: str, ctx: RequestContext) -> None:
    assert slicer == "Slicer_Region"
    state = _slicers(ctx)[slicer]
    assert (state.source_kind, state.source_name, state.field) == (
        "table",
        "Table1",
        "Region",
    )
    assert state.items == ["East", "West", "North"]
    assert state.selected_items == ["East"]
    assert (state.left, state.width) == (100.0, 200.0)


def test_create_slicer_unknown_source(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match='No table or pivot table named "Ghost"'):
        run_action({"type": "createSlicer", "target": "Ghost", "data": {"field": "x"}})


def test_create_slicer_invalid_style_warns(
    slicer: str, run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "createSlicer",
            "target": "Table1",
            "data": {"field": "Product", "style": "Fancy", "left": 10},
        }
    )
    assert outcome.result == "Slicer_Product"
    assert outcome.warnings == ["Invalid slicer style Fancy; using SlicerStyleLight1"]
    assert _slicers(ctx)["Slicer_Product"].left == 10.0


def test_configure_slicer(
    slicer: str, run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "configureSlicer",
            "target": slicer,
            "data": {"sortBy": "Descending", "caption": "Regions", "clearFilters": True},
        }
    )
    state = _slicers(ctx)[slicer]
    assert (state.sort_by, state.caption, state.selected_items) == (
        "Descending",
        "Regions",
        [],
    )


def test_configure_slicer_rejects_sort_order(
    slicer: str, run_action: RunAction
) -> None:
    with pytest.raises(ActionValidationError, match='Invalid sortBy "Sideways"'):
        run_action(
            {"type": "configureSlicer", "target": slicer, "data": {"sortBy": "Sideways"}}
        )


def test_failed_reconnect_keeps_original(
    slicer: str, run_action: RunAction, ctx: RequestContext
) -> None:
    with pytest.raises(ActionValidationError, match='Field "Month" not found'):
        run_action(
            {
                "type": "connectSlicerToTable",
                "target": slicer,
                "data": {"tableName": "Table1", "field": "Month"},
            }
        )
    assert list(_slicers(ctx)) == [slicer]


def test_reconnect_requires_source_name(slicer: str, run_action: RunAction) -> None:
    with pytest.raises(
        ActionValidationError, match="connectSlicerToTable requires 'tableName'"
    ):
        run_action({"type": "connectSlicerToTable", "target": slicer})


def test_reconnect_to_pivot_keeps_name_and_look(
    slicer: str, run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "configureSlicer",
            "target": slicer,
            "data": {"caption": "Regions", "top": 40},
        }
    )
    run_action(
        {
            "type": "createPivotTable",
            "target": "A1:C5",
            "data": {
                "name": "SalesPivot",
                "destination": "F1",
                "rows": ["Region"],
                "values": ["Sales"],
            },
        }
    )
    outcome = run_action(
        {"type": "connectSlicerToPivot", "target": slicer, "data": {"pivotName": "SalesPivot"}}
    )
    assert outcome.result == slicer
    state = _slicers(ctx)[slicer]
    assert (state.source_kind, state.source_name, state.field) == (
        "pivot",
        "SalesPivot",
        "Region",
    )
    assert (state.caption, state.top) == ("Regions", 40.0)


def test_delete_slicer(slicer: str, run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "deleteSlicer", "target": slicer})
    assert _slicers(ctx) == {}
